from prometheus_client import start_http_server, Gauge, Counter, CollectorRegistry

class Metrics:
    """
    Метрики клиента на отдельном реестре:
    - vault_client_requests_total{host,method,status} (Counter)
    - vault_client_host_unreachable_total{host} (Counter)
    - vault_client_all_hosts_unreachable_total (Counter)
    - vault_client_last_request_time_seconds (Gauge)
    """

    def __init__(self, port: int | None = None):
        # СВОЙ реестр — никаких process_/python_ метрик
        self.registry = CollectorRegistry()

        self.REQUESTS    = Counter("vault_client_requests_total", "Responses received", ["host", "method", "status"], registry=self.registry)
        self.UNREACHABLE = Counter("vault_client_host_unreachable_total", "Connection failures per host", ["host"], registry=self.registry)
        self.ALL_DOWN    = Counter("vault_client_all_hosts_unreachable_total", "Calls where no host answered", registry=self.registry)
        self.LAST_REQUEST = Gauge("vault_client_last_request_time_seconds", "Last response time (unix seconds)", registry=self.registry)

        # /metrics только если попросили порт
        if port is not None:
            start_http_server(port, registry=self.registry)

    def response(self, host: str, method: str, status: int, ts: float):
        self.REQUESTS.labels(host=host, method=method, status=str(status)).inc()
        self.LAST_REQUEST.set(ts)

    def unreachable(self, host: str):
        self.UNREACHABLE.labels(host=host).inc()

    def all_down(self):
        self.ALL_DOWN.inc()
