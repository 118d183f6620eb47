import json, time, requests
from urllib3.exceptions import ConnectTimeoutError, MaxRetryError, NewConnectionError
from .errors import AllHostsUnreachable, TransportError
from .jsonlog import jlog
from .metrics import Metrics

TOKEN_HEADER = "X-Vault-Token"
WRAP_TTL_HEADER = "X-Vault-Wrap-TTL"


def _never_connected(e: requests.ConnectionError) -> bool:
    """True only when the TCP connection itself failed (refused, unresolvable, connect timeout)."""
    if isinstance(e, requests.ConnectTimeout):
        return True
    reason = e.args[0] if e.args else None
    if isinstance(reason, MaxRetryError):
        reason = reason.reason
    # NewConnectionError is a ConnectTimeoutError subclass
    return isinstance(reason, (NewConnectionError, ConnectTimeoutError))


class Transport:
    """
    Sends one request to the first Vault host that accepts a connection.

    Hosts are walked in order and only a failure to establish the connection
    moves on to the next one. Once a host has accepted the connection no
    other host is tried: whatever it answers (500 included) is returned
    as-is, and a drop or read timeout is a TransportError.
    """

    def __init__(self, hosts: list[str], token: str | None, timeout: float = 5.0,
                 metrics: Metrics | None = None, session: requests.Session | None = None):
        hosts = [h.rstrip("/") for h in hosts if h]
        if not hosts:
            raise ValueError("at least one vault host is required")
        self.hosts, self.token, self.timeout, self.metrics = tuple(hosts), token, timeout, metrics
        self.session = session or requests.Session()

    def _headers(self, extra: dict | None) -> dict:
        headers = {"Content-Type": "application/json"}
        if self.token:
            headers[TOKEN_HEADER] = self.token
        headers.update(extra or {})
        return headers

    def send(self, method: str, path: str, headers: dict | None = None, body=None) -> requests.Response:
        if not path.startswith("/"):
            path = "/" + path
        headers = self._headers(headers)
        if body is None or isinstance(body, (str, bytes)):
            data = body
        else:
            data = json.dumps(body)

        last = None
        for host in self.hosts:
            url = f"{host}{path}"
            try:
                r = self.session.request(method, url, headers=headers, data=data, timeout=self.timeout)
            except requests.ConnectionError as e:
                if not _never_connected(e):
                    # хост уже получил запрос; повтор на другом хосте недопустим
                    raise TransportError(f"{method} {url}: {e}") from e
                # отказ/недоступен/таймаут соединения -> следующий хост
                last = e
                jlog("warning", "host_unreachable", host=host, method=method, path=path, error=str(e))
                if self.metrics: self.metrics.unreachable(host)
                continue
            except requests.RequestException as e:
                raise TransportError(f"{method} {url}: {e}") from e
            if self.metrics: self.metrics.response(host, method, r.status_code, time.time())
            jlog("debug", "request", method=method, path=path, host=host, status=r.status_code)
            return r

        jlog("error", "all_hosts_unreachable", method=method, path=path, hosts=list(self.hosts))
        if self.metrics: self.metrics.all_down()
        raise AllHostsUnreachable(list(self.hosts), last)

    def close(self):
        self.session.close()
