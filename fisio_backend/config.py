from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from pathlib import Path

from dotenv import load_dotenv

load_dotenv()

# Banco SQLite em arquivo na raiz do projeto quando DATABASE_URL não está definida
DEFAULT_DB_PATH = Path(__file__).resolve().parents[1] / "fisio_clinica.sqlite"

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def _env_bool(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() in {"1", "true", "yes", "on"}


@dataclass(frozen=True)
class Settings:
    database_url: str = f"sqlite:///{DEFAULT_DB_PATH}"
    db_echo: bool = False
    # Em produção: defina via variável de ambiente
    jwt_secret: str = "CHANGE_ME_DEV_SECRET"
    jwt_algorithm: str = "HS256"
    jwt_expire_minutes: int = 60
    log_level: str = "INFO"
    seed_on_startup: bool = False

    @classmethod
    def from_env(cls) -> "Settings":
        return cls(
            database_url=os.getenv("DATABASE_URL", cls.database_url),
            db_echo=_env_bool("DB_ECHO", False),
            jwt_secret=os.getenv("JWT_SECRET", cls.jwt_secret),
            jwt_expire_minutes=int(os.getenv("JWT_EXPIRE_MINUTES", "60")),
            log_level=os.getenv("LOG_LEVEL", "INFO").upper(),
            seed_on_startup=_env_bool("SEED_ON_STARTUP", False),
        )


def configure_logging(level: str = "INFO") -> None:
    logging.basicConfig(level=getattr(logging, level.upper(), logging.INFO), format=LOG_FORMAT)
    # SQLAlchemy é verboso em INFO
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)
