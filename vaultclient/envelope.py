"""
The response envelope every Vault endpoint answers with:

    {"request_id": ..., "lease_id": ..., "renewable": ..., "lease_duration": ...,
     "data": {...}, "warnings": [...], "auth": {...}, "wrap_info": {...}}

`data` is typed per call site (Envelope[SomeModel]); unknown keys are ignored
everywhere so newer servers don't break older clients.
"""
from dataclasses import dataclass
from typing import Generic, TypeVar

from pydantic import BaseModel, ConfigDict, ValidationError, field_validator

from .codec import Duration, RFC3339Timestamp
from .errors import Malformed

D = TypeVar("D")


class WireModel(BaseModel):
    model_config = ConfigDict(extra="ignore")


class Unit(WireModel):
    """Payload type for endpoints whose interesting part is not `data` (logins etc.)."""


class AuthInfo(WireModel):
    client_token: str
    accessor: str | None = None
    policies: list[str]
    metadata: dict[str, str]
    lease_duration: Duration | None = None
    renewable: bool

    @field_validator("policies", "metadata", mode="before")
    @classmethod
    def _null_as_empty(cls, v, info):
        if v is None:
            return [] if info.field_name == "policies" else {}
        return v


class WrapInfo(WireModel):
    ttl: Duration
    token: str
    creation_time: RFC3339Timestamp
    creation_path: str | None = None
    wrapped_accessor: str | None = None


class Envelope(WireModel, Generic[D]):
    request_id: str | None = None
    lease_id: str | None = None
    renewable: bool | None = None
    lease_duration: Duration | None = None
    data: D | None = None
    warnings: list[str] | None = None
    auth: AuthInfo | None = None
    wrap_info: WrapInfo | None = None


@dataclass(frozen=True)
class EmptyResult:
    """2xx with a zero-length body (DELETE, most writes)."""
    status: int = 204


def _reason(e: ValidationError) -> str:
    err = e.errors()[0]
    loc = ".".join(str(p) for p in err["loc"]) or "<root>"
    more = f" (+{e.error_count() - 1} more)" if e.error_count() > 1 else ""
    return f"{loc}: {err['msg']}{more}"


def decode_envelope(raw: bytes | str, data_type=dict) -> Envelope:
    if isinstance(raw, str):
        raw = raw.encode("utf-8")
    try:
        return Envelope[data_type].model_validate_json(raw)
    except ValidationError as e:
        raise Malformed(raw, _reason(e)) from e


class WrappedResponse(WireModel):
    response: str


def decode_unwrapped(raw: bytes | str, data_type=dict) -> Envelope:
    """
    Body of cubbyhole/response: the original response sits double-encoded,
    as a JSON string in data.response, and is always decoded from there.
    """
    outer = decode_envelope(raw, WrappedResponse)
    if outer.data is None:
        raise Malformed(raw, "data.response: missing")
    return decode_envelope(outer.data.response, data_type)
