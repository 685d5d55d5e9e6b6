import logging
import os
from dataclasses import dataclass
from functools import lru_cache
from typing import List

from dotenv import load_dotenv

"""
Configuracion del proceso leida del entorno (y de un .env si existe).

Se lee UNA sola vez al arrancar: el QR_SECRET queda fijo durante toda la vida
del proceso. Cambiarlo invalida todos los tokens QR emitidos.
"""

load_dotenv()

DEFAULT_DATABASE_URL = "sqlite+aiosqlite:///./database/marchamo.db"
DEFAULT_QR_SECRET = "dev_secret_change_me"


@dataclass(frozen=True)
class Settings:
    database_url: str
    qr_secret: str
    front_url: str
    seed_on_start: bool
    port: int
    log_level: str
    cors_origins: List[str]

    @classmethod
    def from_env(cls) -> "Settings":
        origins = os.getenv("CORS_ORIGINS", "*")
        return cls(
            database_url=os.getenv("DATABASE_URL", DEFAULT_DATABASE_URL),
            qr_secret=os.getenv("QR_SECRET", DEFAULT_QR_SECRET),
            front_url=os.getenv("FRONT_URL", "http://localhost:5173").rstrip("/"),
            seed_on_start=os.getenv("SEED_ON_START", "").strip().lower() == "true",
            port=int(os.getenv("PORT", "3002")),
            log_level=os.getenv("LOG_LEVEL", "INFO").upper(),
            cors_origins=[o.strip() for o in origins.split(",") if o.strip()],
        )


@lru_cache
def get_settings() -> Settings:
    return Settings.from_env()


def configure_logging(level: str = "INFO") -> None:
    logging.basicConfig(
        level=level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
