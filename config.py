import logging
import os
from typing import Optional

from pydantic import BaseModel


def _default_database_url() -> str:
    return "postgresql+psycopg2://{user}:{password}@{host}:{port}/{name}".format(
        user=os.getenv("PGUSER", "postgres"),
        password=os.getenv("PGPASSWORD", ""),
        host=os.getenv("PGHOST", "localhost"),
        port=os.getenv("PGPORT", "5432"),
        name=os.getenv("PGDATABASE", "postgres"),
    )


class Settings(BaseModel):
    secret_key: str = "supersecretkey-change"
    algorithm: str = "HS256"
    access_token_expire_minutes: int = 60
    database_url: str = "sqlite://"
    db_pool_size: int = 5
    db_max_overflow: int = 10
    frontend_url: str = "https://reactjs-ecommerce1.vercel.app"
    log_level: str = "INFO"
    port: int = 5000


def load_settings() -> Settings:
    return Settings(
        secret_key=os.getenv("SECRET_KEY", "supersecretkey-change"),
        access_token_expire_minutes=int(os.getenv("ACCESS_TOKEN_EXPIRE_MINUTES", 60)),
        database_url=os.getenv("DATABASE_URL") or _default_database_url(),
        db_pool_size=int(os.getenv("DB_POOL_SIZE", 5)),
        db_max_overflow=int(os.getenv("DB_MAX_OVERFLOW", 10)),
        frontend_url=os.getenv("FRONTEND_URL", "https://reactjs-ecommerce1.vercel.app"),
        log_level=os.getenv("LOG_LEVEL", "INFO"),
        port=int(os.getenv("PORT", 5000)),
    )


def configure_logging(level: Optional[str] = None):
    logging.basicConfig(
        level=(level or "INFO").upper(),
        format="%(levelname)s %(asctime)s %(name)s %(message)s",
    )
