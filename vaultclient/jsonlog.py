import logging, json
from datetime import datetime, timezone

# хендлеры и уровень настраивает приложение
logger = logging.getLogger("vaultclient")
logger.addHandler(logging.NullHandler())

def jlog(level: str, msg: str, **fields):
    rec = {"ts": datetime.now(timezone.utc).isoformat(), "msg": msg, **fields}
    getattr(logger, level)(json.dumps(rec, ensure_ascii=False, default=str))
