"""
Application settings read from the environment.
"""

import os
from dataclasses import dataclass, field
from typing import List


def _flag(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() in ("1", "true", "yes", "on")


@dataclass
class Settings:
    database_url: str = "mongodb://localhost:27017"
    database_name: str = "dashboard"
    port: int = 8000
    log_level: str = "INFO"
    log_file: str = ""
    require_auth: bool = True
    strict_status_transitions: bool = False
    cors_origins: List[str] = field(default_factory=lambda: ["*"])

    @classmethod
    def from_env(cls) -> "Settings":
        origins = os.getenv("CORS_ORIGINS", "*")
        return cls(
            database_url=os.getenv("DATABASE_URL", cls.database_url),
            database_name=os.getenv("DATABASE_NAME", cls.database_name),
            port=int(os.getenv("PORT", cls.port)),
            log_level=os.getenv("LOG_LEVEL", cls.log_level),
            log_file=os.getenv("LOG_FILE", ""),
            require_auth=_flag("REQUIRE_AUTH", True),
            strict_status_transitions=_flag("STRICT_STATUS_TRANSITIONS", False),
            cors_origins=[o.strip() for o in origins.split(",") if o.strip()],
        )


settings = Settings.from_env()


def get_settings() -> Settings:
    return settings
