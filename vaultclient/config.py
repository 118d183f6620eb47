from dataclasses import dataclass
import os

@dataclass(frozen=True)
class Config:
    vault_addr: str = os.getenv("VAULT_ADDR", "http://127.0.0.1:8200")   # "http://a:8200,http://b:8200"
    token: str | None = os.getenv("VAULT_TOKEN")
    token_file: str | None = os.getenv("VAULT_TOKEN_FILE")

    http_timeout: float = float(os.getenv("HTTP_TIMEOUT", "5.0"))
    metrics_port: int | None = int(os.environ["METRICS_PORT"]) if os.getenv("METRICS_PORT") else None

    def host_list(self) -> list[str]:
        return [h.strip() for h in self.vault_addr.split(",") if h.strip()]

    def read_token(self) -> str | None:
        if self.token:
            return self.token.strip()
        if not self.token_file:
            return None
        try:
            with open(self.token_file, "r", encoding="utf-8") as f:
                return f.read().strip() or None
        except FileNotFoundError:
            return None

    @classmethod
    def from_env(cls) -> "Config":
        # дефолты полей вычисляются при импорте; тут читаем окружение заново
        port = os.getenv("METRICS_PORT")
        return cls(
            vault_addr=os.getenv("VAULT_ADDR", "http://127.0.0.1:8200"),
            token=os.getenv("VAULT_TOKEN"),
            token_file=os.getenv("VAULT_TOKEN_FILE"),
            http_timeout=float(os.getenv("HTTP_TIMEOUT", "5.0")),
            metrics_port=int(port) if port else None,
        )
