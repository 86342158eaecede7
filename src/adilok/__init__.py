"""ADILOK - train running message receiver driving shift registers."""

__version__ = "0.1.0"
