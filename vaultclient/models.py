"""Payload models for the `data` part of the endpoints the client wraps."""
from pydantic import BaseModel, ConfigDict

from .codec import Duration, EpochTimestamp, RFC3339Timestamp
from .envelope import WireModel


class TokenData(WireModel):
    # auth/token/lookup-self: creation_time is epoch seconds, issue/expire are RFC-3339
    id: str
    accessor: str | None = None
    creation_time: EpochTimestamp
    creation_ttl: Duration | None = None
    issue_time: RFC3339Timestamp | None = None
    expire_time: RFC3339Timestamp | None = None
    explicit_max_ttl: Duration | None = None
    ttl: Duration
    display_name: str | None = None
    entity_id: str | None = None
    meta: dict[str, str] | None = None
    num_uses: int = 0
    orphan: bool = False
    path: str | None = None
    policies: list[str] = []
    renewable: bool | None = None


class SecretData(WireModel):
    value: str


class SecretList(WireModel):
    keys: list[str] = []


class TransitCiphertext(WireModel):
    ciphertext: str


class TransitPlaintext(WireModel):
    plaintext: str


class PostgresqlLogin(WireModel):
    username: str
    password: str


class TokenOptions(BaseModel):
    """Body of auth/token/create; unset fields are left to the server defaults."""
    model_config = ConfigDict(extra="forbid")

    id: str | None = None
    role: str | None = None
    policies: list[str] | None = None
    meta: dict[str, str] | None = None
    no_parent: bool | None = None
    no_default_policy: bool | None = None
    renewable: bool | None = None
    ttl: Duration | None = None
    explicit_max_ttl: Duration | None = None
    period: Duration | None = None
    display_name: str | None = None
    num_uses: int | None = None

    def endpoint(self) -> str:
        return f"/v1/auth/token/create/{self.role}" if self.role else "/v1/auth/token/create"

    def to_body(self) -> dict:
        return self.model_dump(mode="json", exclude_none=True, exclude={"role"})
