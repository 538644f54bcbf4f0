import logging

from pydantic_settings import BaseSettings
from pydantic import ConfigDict
from typing import List, Optional


class Settings(BaseSettings):
    # Environment
    ENV: str = "development"
    CONFIG_STRICT: bool = False

    # Database
    DATABASE_URL: Optional[str] = None
    TEST_DATABASE_URL: Optional[str] = None

    # Streaming protocol (the external flow agreement host)
    STREAM_PROTOCOL_HOST: Optional[str] = None
    STREAM_ACCEPTED_TOKEN: Optional[str] = None
    STREAM_RECEIVER: str = "streampass"
    STREAM_PROTOCOL_BACKEND: str = "memory"  # memory | http
    STREAM_PROTOCOL_URL: Optional[str] = None
    STREAM_PROTOCOL_TIMEOUT_SECONDS: float = 5.0

    # Pass collection
    PASS_NAME: str = "StreamPass"
    PASS_SYMBOL: str = "PASS"
    PASS_OWNER: Optional[str] = None
    PASS_TIERS: List[int] = [0]

    model_config = ConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )
settings = Settings()


def validate_config(strict: Optional[bool] = None, settings_obj: Optional[Settings] = None, logger: Optional[logging.Logger] = None) -> bool:
    """Validate required configuration.

    In strict mode raise RuntimeError; otherwise emit warnings only.
    """
    cfg = settings_obj or settings
    log = logger or logging.getLogger("streampass")
    strict_mode = strict if strict is not None else getattr(cfg, "CONFIG_STRICT", False)

    required_keys = [
        "DATABASE_URL",
        "STREAM_PROTOCOL_HOST",
        "STREAM_ACCEPTED_TOKEN",
        "PASS_OWNER",
    ]
    if getattr(cfg, "STREAM_PROTOCOL_BACKEND", "memory") == "http":
        required_keys.append("STREAM_PROTOCOL_URL")

    missing = [key for key in required_keys if not getattr(cfg, key, None)]
    if missing:
        message = f"Missing required configuration: {', '.join(missing)}"
        if strict_mode:
            raise RuntimeError(message)
        log.warning(message)

    return True
