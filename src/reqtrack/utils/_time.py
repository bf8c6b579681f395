from datetime import UTC, datetime
from typing import Annotated

import pendulum
from pydantic import PlainSerializer


def utc_now() -> pendulum.DateTime:
    """Return the current time in UTC."""
    return pendulum.now("UTC")


def format_timestamp(value: datetime) -> str:
    """Format a datetime as fixed-width ISO-8601 UTC text.

    Fixed width keeps stored timestamps sortable as plain strings.
    """
    if value.tzinfo is None:
        value = value.replace(tzinfo=UTC)
    return value.astimezone(UTC).strftime("%Y-%m-%dT%H:%M:%S.%fZ")


Timestamp = Annotated[
    datetime, PlainSerializer(format_timestamp, return_type=str, when_used="json")
]
