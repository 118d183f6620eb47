import base64, binascii, threading
from datetime import timedelta

import requests

from .codec import encode_duration_seconds, format_wrap_ttl
from .config import Config
from .envelope import AuthInfo, EmptyResult, Envelope, Unit, WrapInfo, decode_envelope, decode_unwrapped
from .errors import Forbidden, MissingWrapInfo, RemoteRejected, VaultError
from .jsonlog import jlog
from .metrics import Metrics
from .models import (PostgresqlLogin, SecretData, SecretList, TokenData, TokenOptions,
                     TransitCiphertext, TransitPlaintext)
from .transport import Transport, WRAP_TTL_HEADER

VERBS = frozenset({"GET", "POST", "PUT", "DELETE", "LIST"})
TRANSIT_PREFIX = "vault:v1:"
LOOKUP_SELF = "/v1/auth/token/lookup-self"
UNWRAP = "/v1/cubbyhole/response"


def _api_path(endpoint: str) -> str:
    endpoint = endpoint.lstrip("/")
    return "/" + endpoint if endpoint.startswith("v1/") else "/v1/" + endpoint


def _seconds(v) -> int:
    return encode_duration_seconds(v) if isinstance(v, timedelta) else int(v)


def _b64(raw: bytes) -> str:
    return base64.b64encode(raw).decode("ascii")


def _unb64(s: str, what: str) -> bytes:
    try:
        return base64.b64decode(s, validate=True)
    except binascii.Error as e:
        raise VaultError(f"{what} is not valid base64: {e}") from e


class VaultClient:
    """
    Token-authenticated client over one or more Vault hosts.

    Construction does a lookup-self round trip (403 -> Forbidden) and keeps
    the result in `data`. Every named operation goes through `call`, which
    can also be used directly for any endpoint.
    """

    def __init__(self, hosts: list[str], token: str | None, timeout: float = 5.0,
                 metrics: Metrics | None = None, *, lookup: bool = True,
                 session: requests.Session | None = None):
        self.transport = Transport(hosts, token, timeout, metrics, session)
        self.hosts, self.token = list(self.transport.hosts), token
        self.timeout, self.metrics = timeout, metrics
        self._lock = threading.Lock()
        self._auth: AuthInfo | None = None
        self.data: Envelope | None = None
        if lookup:
            try:
                self.data = self._lookup_on_connect()
            except Exception:
                self.transport.close()
                raise

    @classmethod
    def for_wrapping_token(cls, hosts: list[str], token: str, timeout: float = 5.0,
                           metrics: Metrics | None = None) -> "VaultClient":
        # никакого lookup-self: он бы потратил одноразовый токен
        return cls(hosts, token, timeout, metrics, lookup=False)

    @classmethod
    def from_config(cls, cfg: Config) -> "VaultClient":
        token = cfg.read_token()
        if not token:
            raise ValueError("no vault token configured (VAULT_TOKEN / VAULT_TOKEN_FILE)")
        m = Metrics(cfg.metrics_port) if cfg.metrics_port is not None else None
        return cls(cfg.host_list(), token, cfg.http_timeout, m)

    @classmethod
    def login_approle(cls, hosts: list[str], role_id: str, secret_id: str,
                      timeout: float = 5.0, metrics: Metrics | None = None) -> "VaultClient":
        with cls(hosts, None, timeout, metrics, lookup=False) as anon:
            res = anon.call("POST", "/v1/auth/approle/login", body={"role_id": role_id, "secret_id": secret_id},
                            data_type=Unit)
        auth = _auth_of(res, "approle login")
        client = cls(hosts, auth.client_token, timeout, metrics)
        client.auth = auth
        return client

    def _lookup_on_connect(self) -> Envelope:
        r = self.transport.send("GET", LOOKUP_SELF)
        if r.status_code == 403:
            jlog("error", "self_lookup_forbidden", hosts=self.hosts)
            raise Forbidden(f"token rejected by {LOOKUP_SELF}: {r.text}")
        if not 200 <= r.status_code < 300:
            raise RemoteRejected(r.status_code, r.text)
        return decode_envelope(r.content, TokenData)

    @property
    def auth(self) -> AuthInfo | None:
        with self._lock:
            return self._auth

    @auth.setter
    def auth(self, value: AuthInfo | None):
        with self._lock:
            self._auth = value

    def close(self):
        self.transport.close()

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        self.close()

    # --- generic dispatch ---

    def _send(self, method: str, endpoint: str, wrap_ttl=None, body=None) -> requests.Response:
        verb = method.upper()
        if verb not in VERBS:
            raise ValueError(f"unsupported verb {method!r}, expected one of {sorted(VERBS)}")
        path = _api_path(endpoint)
        headers = {WRAP_TTL_HEADER: format_wrap_ttl(wrap_ttl)} if wrap_ttl is not None else None
        # LIST уходит как есть, это собственный метод Vault
        r = self.transport.send(verb, path, headers, body)
        if not 200 <= r.status_code < 300:
            jlog("warning", "remote_rejected", method=verb, path=path, status=r.status_code)
            raise RemoteRejected(r.status_code, r.text)
        return r

    def call(self, method: str, endpoint: str, wrap_ttl=None, body=None, data_type=dict) -> Envelope | EmptyResult:
        """
        Calls any endpoint. A zero-length 2xx body gives EmptyResult, anything
        else is decoded as Envelope[data_type]. Non-2xx raises RemoteRejected.
        """
        r = self._send(method, endpoint, wrap_ttl, body)
        if not r.content:
            return EmptyResult(r.status_code)
        return decode_envelope(r.content, data_type)

    def _envelope(self, method: str, endpoint: str, data_type=dict, body=None) -> Envelope:
        res = self.call(method, endpoint, body=body, data_type=data_type)
        if isinstance(res, EmptyResult):
            raise VaultError(f"no data returned from {endpoint}")
        return res

    def _data(self, method: str, endpoint: str, data_type, body=None):
        env = self._envelope(method, endpoint, data_type, body)
        if env.data is None:
            raise VaultError(f"no data returned from {endpoint}")
        return env.data

    # --- wrapping ---

    def request_wrapped(self, method: str, endpoint: str, ttl, body=None) -> WrapInfo:
        res = self.call(method, endpoint, wrap_ttl=ttl, body=body, data_type=Unit)
        if isinstance(res, EmptyResult) or res.wrap_info is None:
            raise MissingWrapInfo(f"{method.upper()} {endpoint} was asked to wrap but returned no wrap_info")
        return res.wrap_info

    def unwrap(self, token: str, data_type=dict) -> Envelope:
        """Exchanges a single-use wrapping token for the response it hides."""
        with VaultClient.for_wrapping_token(self.hosts, token, self.timeout, self.metrics) as scoped:
            jlog("info", "unwrap", hosts=self.hosts)
            # cubbyhole/response читается GET-ом и всегда двойной JSON
            r = scoped._send("GET", UNWRAP)
        if not r.content:
            raise VaultError("no data returned from unwrap")
        return decode_unwrapped(r.content, data_type)

    # --- token ---

    def lookup(self) -> Envelope:
        return self._envelope("GET", LOOKUP_SELF, TokenData)

    def renew(self, increment=None) -> AuthInfo:
        body = {"increment": f"{_seconds(increment)}s"} if increment is not None else None
        res = self.call("POST", "/v1/auth/token/renew-self", body=body, data_type=Unit)
        auth = _auth_of(res, "token renewal")
        self.auth = auth
        return auth

    def revoke(self):
        self.call("POST", "/v1/auth/token/revoke-self")

    def create_token(self, opts: TokenOptions | None = None) -> AuthInfo:
        opts = opts or TokenOptions()
        res = self.call("POST", opts.endpoint(), body=opts.to_body(), data_type=Unit)
        return _auth_of(res, "token creation")

    # --- generic secret/ mount ---

    def set_secret(self, key: str, value: str):
        self.call("POST", f"/v1/secret/{key}", body={"value": value})

    def get_secret(self, key: str) -> str:
        return self._data("GET", f"/v1/secret/{key}", SecretData).value

    def set_custom_secret(self, key: str, payload):
        body = payload.model_dump(mode="json") if hasattr(payload, "model_dump") else payload
        self.call("POST", f"/v1/secret/{key}", body=body)

    def get_custom_secret(self, key: str, data_type):
        return self._data("GET", f"/v1/secret/{key}", data_type)

    def delete_secret(self, key: str):
        self.call("DELETE", f"/v1/secret/{key}")

    def list_secrets(self, path: str = "") -> list[str]:
        return self._data("LIST", f"/v1/secret/{path}".rstrip("/"), SecretList).keys

    def get_secret_wrapped(self, key: str, ttl) -> WrapInfo:
        return self.request_wrapped("GET", f"/v1/secret/{key}", ttl)

    # --- transit ---

    def transit_encrypt(self, key: str, plaintext: bytes, mountpoint: str = "transit") -> bytes:
        data = self._data("POST", f"/v1/{mountpoint}/encrypt/{key}", TransitCiphertext,
                          body={"plaintext": _b64(plaintext)})
        if not data.ciphertext.startswith(TRANSIT_PREFIX):
            raise VaultError(f"ciphertext does not start with {TRANSIT_PREFIX!r}")
        return _unb64(data.ciphertext[len(TRANSIT_PREFIX):], "ciphertext")

    def transit_decrypt(self, key: str, ciphertext: bytes, mountpoint: str = "transit") -> bytes:
        data = self._data("POST", f"/v1/{mountpoint}/decrypt/{key}", TransitPlaintext,
                          body={"ciphertext": TRANSIT_PREFIX + _b64(ciphertext)})
        return _unb64(data.plaintext, "plaintext")

    # --- other backends ---

    def get_postgresql_backend(self, name: str, mountpoint: str = "postgresql") -> PostgresqlLogin:
        return self._data("GET", f"/v1/{mountpoint}/creds/{name}", PostgresqlLogin)


def _auth_of(res: Envelope | EmptyResult, what: str) -> AuthInfo:
    if isinstance(res, EmptyResult) or res.auth is None:
        raise VaultError(f"no auth data returned while {what}")
    return res.auth
