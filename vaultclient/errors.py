class VaultClientError(Exception):
    """Base for everything the client raises on a remote or decode failure."""


class TransportError(VaultClientError):
    pass


class AllHostsUnreachable(TransportError):
    def __init__(self, hosts: list[str], last: Exception | None = None):
        self.hosts, self.last = list(hosts), last
        super().__init__(f"no reachable host among {', '.join(self.hosts)}: {last}")


class DecodeError(VaultClientError):
    pass


class Malformed(DecodeError):
    SNIPPET_LEN = 200

    def __init__(self, raw: bytes | str, reason: str = ""):
        if isinstance(raw, bytes):
            raw = raw.decode("utf-8", errors="replace")
        self.snippet = raw[: self.SNIPPET_LEN]
        self.reason = reason
        super().__init__(f"malformed response ({reason}): {self.snippet!r}")


class InvalidTimestamp(DecodeError):
    def __init__(self, value, cause: Exception | None = None):
        self.value, self.cause = value, cause
        super().__init__(f"invalid timestamp {value!r}: {cause}")


class Forbidden(VaultClientError):
    pass


class MissingWrapInfo(VaultClientError):
    pass


class VaultError(VaultClientError):
    pass


class RemoteRejected(TransportError, VaultError):
    # ответ от живого хоста, но не 2xx; тело уже прочитано
    def __init__(self, status: int, body: str):
        self.status, self.body = status, body
        super().__init__(f"vault returned HTTP {status}: {body}")
