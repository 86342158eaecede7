from setuptools import setup, find_packages
import os

# Read README.md if it exists
long_description = ""
if os.path.exists("README.md"):
    with open("README.md", "r", encoding="utf-8") as f:
        long_description = f.read()

# Determine if we're on a Raspberry Pi
is_raspberry_pi = False
try:
    with open("/proc/cpuinfo", "r") as f:
        for line in f:
            if line.startswith("Model"):
                if "Raspberry Pi" in line:
                    is_raspberry_pi = True
                break
except OSError:
    pass

# Base requirements
install_requires = [
    "numpy>=1.24.0",
    "pydantic>=2.6.0",
    "pyyaml>=6.0",
    "paho-mqtt>=2.0.0",
]

# Hardware-specific requirements
if is_raspberry_pi:
    install_requires.extend(
        [
            "gpiozero>=2.0",
            "lgpio>=0.2.2.0",
        ]
    )

setup(
    name="adilok",
    version="0.1.0",
    packages=find_packages(where="src"),
    package_dir={"": "src"},
    install_requires=install_requires,
    extras_require={
        "gpio": [
            "gpiozero>=2.0",
        ],
        "dev": [
            "pytest>=7.4.3",
            "pytest-asyncio>=0.21.0",
            "black>=23.11.0",
            "isort>=5.12.0",
            "mypy>=1.7.1",
        ],
    },
    python_requires=">=3.9",
    author="ADILOK Team",
    description="Train running message receiver driving shift registers on a Raspberry Pi",
    long_description=long_description,
    long_description_content_type="text/markdown",
    classifiers=[
        "Development Status :: 3 - Alpha",
        "Intended Audience :: Developers",
        "License :: OSI Approved :: MIT License",
        "Programming Language :: Python :: 3.9",
        "Programming Language :: Python :: 3.10",
        "Programming Language :: Python :: 3.11",
    ],
    entry_points={
        "console_scripts": [
            "adilok=adilok.app:run",
        ],
    },
)
