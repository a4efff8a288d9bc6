import logging
from typing import Any, Dict, Optional, Tuple

from sqlalchemy import text
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError

from redis_client import RedisClient

logger = logging.getLogger(__name__)


def check_database(engine: Engine) -> Tuple[bool, str]:
    try:
        with engine.connect() as conn:
            conn.execute(text("SELECT 1"))
        return True, "database: OK"
    except SQLAlchemyError as e:
        return False, f"database: ERROR ({e})"


def check_cache(cache: Optional[RedisClient]) -> Tuple[bool, str]:
    if cache is None:
        return True, "redis: disabled"
    if cache.is_available():
        return True, "redis: OK"
    return False, "redis: unavailable"


def collect_health(engine: Engine, cache: Optional[RedisClient] = None) -> Dict[str, Any]:
    checks = {
        "database": lambda: check_database(engine),
        "redis": lambda: check_cache(cache),
    }

    results: Dict[str, Any] = {}
    messages = []
    for name, func in checks.items():
        ok, message = func()
        results[name] = ok
        messages.append(message)
        if ok:
            logger.debug("[OK ] %s", message)
        else:
            logger.warning("[FAIL] %s", message)

    # the cache is optional, only the store decides overall status
    results["status"] = "ok" if results["database"] else "degraded"
    results["messages"] = messages
    return results
