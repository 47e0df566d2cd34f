import logging
import os
from dataclasses import dataclass, field
from typing import Callable, FrozenSet, List, Optional, Tuple, TypeVar

from dotenv import load_dotenv

log = logging.getLogger(__name__)

T = TypeVar("T")

TRUTHY = {"1", "true", "yes", "on"}


def env_parsed(name: str, default: T, parse: Callable[[str], T]) -> T:
    """Parsed env value; unset, blank or unparseable falls back to ``default``."""
    raw = (os.getenv(name) or "").strip()
    if not raw:
        return default
    try:
        return parse(raw)
    except ValueError:
        log.warning("Ignoring %s=%r, using %r", name, raw, default)
        return default


def env_int(name: str, default: int) -> int:
    return env_parsed(name, default, int)


def env_float(name: str, default: float) -> float:
    return env_parsed(name, default, float)


def env_bool(name: str, default: bool) -> bool:
    return env_parsed(name, default, lambda raw: raw.lower() in TRUTHY)


def env_csv(name: str, default: str) -> List[str]:
    raw = env_parsed(name, default, str)
    return [item.strip() for item in raw.split(",") if item.strip()]


DEFAULT_CORS_ORIGINS = (
    "http://127.0.0.1,http://localhost,http://127.0.0.1:8080,http://localhost:8080,"
    "http://localhost:3000"
)


@dataclass(frozen=True)
class Settings:
    api_key: Optional[str] = None
    base_url: str = "https://api.wmata.com"
    connect_timeout_sec: float = 5.0
    read_timeout_sec: float = 30.0

    static_ttl_sec: float = 24 * 60 * 60
    static_refresh_interval_sec: float = 24 * 60 * 60
    static_collapse_sec: float = 60.0

    prediction_ttl_sec: float = 25.0
    prediction_refresh_interval_sec: float = 20.0
    prediction_collapse_sec: float = 1.0

    prewarm: bool = True
    static_dir: str = "static"
    cors_allowed_origins: FrozenSet[str] = field(
        default_factory=lambda: frozenset(DEFAULT_CORS_ORIGINS.split(","))
    )
    log_level: str = "INFO"
    host: str = "127.0.0.1"
    port: int = 8080

    @property
    def timeout(self) -> Tuple[float, float]:
        return (self.connect_timeout_sec, self.read_timeout_sec)


def load_settings() -> Settings:
    load_dotenv()
    return Settings(
        api_key=os.getenv("WMATA_API_KEY") or None,
        base_url=os.getenv("WMATA_BASE_URL", "https://api.wmata.com").rstrip("/"),
        connect_timeout_sec=env_float("WMATA_CONNECT_TIMEOUT_SEC", 5.0),
        read_timeout_sec=env_float("WMATA_READ_TIMEOUT_SEC", 30.0),
        static_ttl_sec=env_float("STATIC_CACHE_TTL_SEC", 24 * 60 * 60),
        static_refresh_interval_sec=env_float("STATIC_REFRESH_INTERVAL_SEC", 24 * 60 * 60),
        static_collapse_sec=env_float("STATIC_COLLAPSE_SEC", 60.0),
        prediction_ttl_sec=env_float("PREDICTION_CACHE_TTL_SEC", 25.0),
        prediction_refresh_interval_sec=env_float("PREDICTION_REFRESH_INTERVAL_SEC", 20.0),
        prediction_collapse_sec=env_float("PREDICTION_COLLAPSE_SEC", 1.0),
        prewarm=env_bool("PREWARM", True),
        static_dir=os.getenv("STATIC_DIR", "static"),
        cors_allowed_origins=frozenset(env_csv("CORS_ALLOWED_ORIGINS", DEFAULT_CORS_ORIGINS)),
        log_level=os.getenv("LOG_LEVEL", "INFO").upper(),
        host=os.getenv("APP_HOST", "127.0.0.1"),
        port=env_int("APP_PORT", 8080),
    )


def configure_logging(level: str = "INFO") -> None:
    logging.basicConfig(
        level=level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
