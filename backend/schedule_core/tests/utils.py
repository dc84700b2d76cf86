from datetime import UTC, datetime

TENANT = "tenant-a"
OTHER_TENANT = "tenant-b"
BERLIN_TENANT = "tenant-berlin"


def utc(*args: int) -> datetime:
    return datetime(*args, tzinfo=UTC)
