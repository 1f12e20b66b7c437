# system_mapper/config.py
import logging


class DefaultConfig:
    """Defaults loaded into app.config; create_app() takes a mapping of overrides."""
    REDIS_URL = "redis://localhost:6379/0"
    DEFAULT_MAP_NAME = "My System Map"
    MAX_CONTENT_LENGTH = 10 * 1024 * 1024  # 10MB request bodies (imports)
    MAX_MAPS = 0  # 0 = unlimited
    MAX_NODES_PER_MAP = 0  # 0 = unlimited
    CORS_ORIGINS = "*"
    LOG_REQUESTS = False
    LOG_LEVEL = "INFO"
    EMBED_WATERMARK = True


def cors_origins(value: str):
    """'*' allows any origin, otherwise a comma separated list."""
    if value.strip() == "*":
        return "*"
    return [origin.strip() for origin in value.split(",") if origin.strip()]


def configure_logging(level: str = "INFO"):
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )
