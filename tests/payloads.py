import json

PULSE_SECONDS = 0.02


def tracking(**fields) -> str:
    """Train-tracking payload as sent by the feed"""
    payload = {
        "timestamp": "2019-05-01T12:00:00.000Z",
        "trainNumber": 8741,
        "type": "OCCUPY",
    }
    payload.update(fields)
    return json.dumps(payload)


def route_set(route_type: str, *sections, train_number: int = 8741) -> str:
    """Route-set payload; sections are (stationCode, sectionId) pairs"""
    return json.dumps(
        {
            "messageTime": "2019-05-01T12:00:00.000Z",
            "trainNumber": train_number,
            "routeType": route_type,
            "routesections": [
                {"stationCode": station, "sectionId": section}
                for station, section in sections
            ],
        }
    )
