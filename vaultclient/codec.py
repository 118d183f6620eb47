"""
Wire codecs for the value types Vault encodes its own way.

Durations (lease_duration, ttl, ...) travel as a bare integer count of
seconds and are held as timedelta, so the largest accepted value is
MAX_DURATION_SECONDS (about 2.7 million years). Timestamps come in two
shapes depending on the endpoint: integer epoch seconds or an RFC-3339
string with an offset. Each model field picks one of the two timestamp
types explicitly; nothing is guessed from content.
"""
import re
from datetime import datetime, timedelta, timezone
from typing import Annotated

from pydantic import PlainSerializer, PlainValidator
from pydantic_core import core_schema

from .errors import InvalidTimestamp

MAX_SECONDS = 2**63 - 1
# timedelta.max in whole seconds; anything above it is rejected
MAX_DURATION_SECONDS = timedelta.max.days * 86400 + timedelta.max.seconds
_WRAP_TTL = re.compile(r"^\d+[smh]?$")


def decode_duration_seconds(value) -> timedelta:
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValueError(f"duration must be an integer number of seconds, got {value!r}")
    if not 0 <= value <= MAX_SECONDS:
        raise ValueError(f"duration out of range: {value}")
    if value > MAX_DURATION_SECONDS:
        raise ValueError(f"duration {value}s exceeds the supported maximum of {MAX_DURATION_SECONDS}s")
    return timedelta(seconds=value)


def encode_duration_seconds(d: timedelta) -> int:
    if d < timedelta(0):
        raise ValueError(f"negative duration: {d}")
    # целые секунды, микросекунды отбрасываем
    return d.days * 86400 + d.seconds


def _duration(value) -> timedelta:
    if isinstance(value, timedelta):
        encode_duration_seconds(value)
        return value
    return decode_duration_seconds(value)


Duration = Annotated[
    timedelta,
    PlainValidator(_duration),
    PlainSerializer(encode_duration_seconds, return_type=int),
]


def _retag(cls, dt: datetime):
    return cls(dt.year, dt.month, dt.day, dt.hour, dt.minute, dt.second,
               dt.microsecond, tzinfo=dt.tzinfo, fold=dt.fold)


class EpochTimestamp(datetime):
    """A UTC datetime that came from (and goes back to) integer epoch seconds."""

    @classmethod
    def __get_pydantic_core_schema__(cls, source, handler):
        return core_schema.no_info_plain_validator_function(
            cls._validate,
            serialization=core_schema.plain_serializer_function_ser_schema(encode_timestamp_epoch),
        )

    @classmethod
    def _validate(cls, value):
        if isinstance(value, cls):
            return value
        return decode_timestamp_epoch(value)


class RFC3339Timestamp(datetime):
    """An offset-aware datetime parsed from an RFC-3339 string; the offset is kept."""

    @classmethod
    def __get_pydantic_core_schema__(cls, source, handler):
        return core_schema.no_info_plain_validator_function(
            cls._validate,
            serialization=core_schema.plain_serializer_function_ser_schema(encode_timestamp_rfc3339),
        )

    @classmethod
    def _validate(cls, value):
        if isinstance(value, cls):
            return value
        return decode_timestamp_rfc3339(value)


def decode_timestamp_epoch(value) -> EpochTimestamp:
    if isinstance(value, bool) or not isinstance(value, int):
        raise InvalidTimestamp(value, TypeError("expected integer epoch seconds"))
    try:
        dt = datetime.fromtimestamp(value, tz=timezone.utc)
    except (OverflowError, OSError, ValueError) as e:
        raise InvalidTimestamp(value, e) from e
    return _retag(EpochTimestamp, dt)


def encode_timestamp_epoch(ts: datetime) -> int:
    return int(ts.timestamp())


def decode_timestamp_rfc3339(value) -> RFC3339Timestamp:
    if not isinstance(value, str):
        raise InvalidTimestamp(value, TypeError("expected an RFC-3339 string"))
    s = value.strip()
    # fromisoformat (3.11+) understands "Z" and truncates nanoseconds
    try:
        dt = datetime.fromisoformat(s)
    except ValueError as e:
        raise InvalidTimestamp(value, e) from e
    if dt.tzinfo is None:
        raise InvalidTimestamp(value, ValueError("no UTC offset"))
    return _retag(RFC3339Timestamp, dt)


def encode_timestamp_rfc3339(ts: datetime) -> str:
    return ts.isoformat()


def format_wrap_ttl(ttl) -> str:
    """X-Vault-Wrap-TTL value: "<seconds>" or "<n>s|m|h"."""
    if isinstance(ttl, timedelta):
        return str(encode_duration_seconds(ttl))
    if isinstance(ttl, int) and not isinstance(ttl, bool):
        if ttl < 0:
            raise ValueError(f"negative wrap ttl: {ttl}")
        return str(ttl)
    if isinstance(ttl, str) and _WRAP_TTL.match(ttl):
        return ttl
    raise ValueError(f"bad wrap ttl {ttl!r}, expected seconds or e.g. '15s', '20m', '25h'")
