from __future__ import annotations

import os
from dataclasses import dataclass


def _csv(value: str) -> list[str]:
    items: list[str] = []
    for part in (value or "").split(","):
        item = part.strip()
        if item:
            items.append(item)
    return items


def _env_str(name: str, default: str) -> str:
    return str(os.getenv(name, default) or default).strip()


def _env_bool(name: str, default: bool = False) -> bool:
    raw = str(os.getenv(name, "") or "").strip().lower()
    if not raw:
        return default
    return raw in {"1", "true", "yes", "y", "on"}


def _env_int(name: str, default: int) -> int:
    try:
        return int(os.getenv(name, str(default)))
    except (TypeError, ValueError):
        return default


def _env_float(name: str, default: float) -> float:
    try:
        return float(os.getenv(name, str(default)))
    except (TypeError, ValueError):
        return default


@dataclass(frozen=True)
class BaseConfig:
    ENV: str = "development"
    DEBUG: bool = False
    TESTING: bool = False

    APP_VERSION: str = "dev"
    TIMEZONE_DISPLAY: str = "Asia/Kolkata"

    MONGODB_URI: str = "mongodb://localhost:27017"
    DB_NAME: str = "pipeline"
    MONGO_SERVER_SELECTION_TIMEOUT_MS: int = 5000

    CORS_ORIGINS: list[str] | str = (
        "http://localhost:5173,http://127.0.0.1:5173,http://localhost:3000,http://127.0.0.1:3000"
    )
    CORS_ALLOW_CREDENTIALS: bool = False

    LOG_LEVEL: str = "INFO"

    # "log" writes notifications to the log only; "sendgrid" delivers them.
    MAIL_BACKEND: str = "log"
    SENDGRID_API_KEY: str = ""
    MAIL_FROM: str = "noreply@example.com"
    MAIL_FROM_NAME: str = "Hiring Team"
    NOTIFY_TIMEOUT_SECONDS: float = 5.0

    REPORTING_OFFSET_MINUTES: int = 15

    def __post_init__(self) -> None:
        object.__setattr__(self, "APP_VERSION", _env_str("APP_VERSION", self.APP_VERSION))
        object.__setattr__(self, "TIMEZONE_DISPLAY", _env_str("TIMEZONE_DISPLAY", self.TIMEZONE_DISPLAY))

        object.__setattr__(self, "MONGODB_URI", _env_str("MONGODB_URI", self.MONGODB_URI))
        object.__setattr__(self, "DB_NAME", _env_str("DB_NAME", self.DB_NAME))
        object.__setattr__(
            self,
            "MONGO_SERVER_SELECTION_TIMEOUT_MS",
            _env_int("MONGO_SERVER_SELECTION_TIMEOUT_MS", self.MONGO_SERVER_SELECTION_TIMEOUT_MS),
        )

        cors_raw = os.getenv("CORS_ORIGINS")
        if cors_raw is not None:
            cors_raw = str(cors_raw or "").strip()
            if cors_raw == "*":
                object.__setattr__(self, "CORS_ORIGINS", "*")
            else:
                object.__setattr__(self, "CORS_ORIGINS", _csv(cors_raw))
        else:
            object.__setattr__(self, "CORS_ORIGINS", _csv(str(self.CORS_ORIGINS)))

        object.__setattr__(
            self, "CORS_ALLOW_CREDENTIALS", _env_bool("CORS_ALLOW_CREDENTIALS", self.CORS_ALLOW_CREDENTIALS)
        )

        object.__setattr__(self, "LOG_LEVEL", _env_str("LOG_LEVEL", self.LOG_LEVEL).upper())

        object.__setattr__(self, "MAIL_BACKEND", _env_str("MAIL_BACKEND", self.MAIL_BACKEND).lower())
        object.__setattr__(self, "SENDGRID_API_KEY", str(os.getenv("SENDGRID_API_KEY", "") or "").strip())
        object.__setattr__(self, "MAIL_FROM", _env_str("MAIL_FROM", self.MAIL_FROM))
        object.__setattr__(self, "MAIL_FROM_NAME", _env_str("MAIL_FROM_NAME", self.MAIL_FROM_NAME))
        object.__setattr__(
            self,
            "NOTIFY_TIMEOUT_SECONDS",
            max(0.1, _env_float("NOTIFY_TIMEOUT_SECONDS", self.NOTIFY_TIMEOUT_SECONDS)),
        )

        object.__setattr__(
            self,
            "REPORTING_OFFSET_MINUTES",
            max(0, _env_int("REPORTING_OFFSET_MINUTES", self.REPORTING_OFFSET_MINUTES)),
        )

    @property
    def IS_PRODUCTION(self) -> bool:
        return str(self.ENV or "").lower() == "production"

    def validate(self) -> None:
        if self.MAIL_BACKEND not in {"log", "sendgrid"}:
            raise RuntimeError(f"Invalid MAIL_BACKEND: {self.MAIL_BACKEND} (expected 'log' or 'sendgrid')")
        if self.MAIL_BACKEND == "sendgrid" and not self.SENDGRID_API_KEY:
            raise RuntimeError("SENDGRID_API_KEY must be set when MAIL_BACKEND=sendgrid")
        if self.IS_PRODUCTION and (not str(self.MONGODB_URI or "").strip() or not str(self.DB_NAME or "").strip()):
            raise RuntimeError("MONGODB_URI and DB_NAME must be set in production")
        if self.IS_PRODUCTION and str(self.MONGODB_URI or "").startswith("mongomock://"):
            raise RuntimeError("MONGODB_URI must point at a real MongoDB in production")


@dataclass(frozen=True)
class DevelopmentConfig(BaseConfig):
    ENV: str = "development"
    DEBUG: bool = True


@dataclass(frozen=True)
class ProductionConfig(BaseConfig):
    ENV: str = "production"
    DEBUG: bool = False
    MAIL_BACKEND: str = "sendgrid"


@dataclass(frozen=True)
class TestingConfig(BaseConfig):
    ENV: str = "testing"
    TESTING: bool = True
    MONGODB_URI: str = "mongomock://localhost"
    DB_NAME: str = "pipeline_test"
    NOTIFY_TIMEOUT_SECONDS: float = 1.0


def get_config() -> BaseConfig:
    env = str(os.getenv("ENV") or os.getenv("APP_ENV") or "development").strip().lower()
    if env in {"prod", "production"}:
        cfg: BaseConfig = ProductionConfig()
    elif env in {"test", "testing"}:
        cfg = TestingConfig()
    else:
        cfg = DevelopmentConfig()

    cfg.validate()
    return cfg
