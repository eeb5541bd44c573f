"""
Process settings (Pydantic Settings) and logging setup.
"""
import logging

from pydantic import Field, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(message)s"


def configure_logging(level="INFO"):
    """Configure root logging once for the process; werkzeug only reports errors."""
    logging.basicConfig(level=level, format=LOG_FORMAT)
    logging.getLogger("werkzeug").setLevel(logging.ERROR)


class Settings(BaseSettings):
    """
    Read from ``VAST_*`` environment variables, e.g. ``VAST_DB_HOST``.

    Unset or empty variables keep their defaults; invalid values raise pydantic's
    ValidationError when the settings are built.
    """

    model_config = SettingsConfigDict(env_prefix="VAST_", env_ignore_empty=True, extra="ignore", frozen=True)

    db_host: str = "db"
    db_port: int = 5432
    db_name: str = "vastdb"
    db_user: str = "myuser"
    db_password: str = "mypassword"
    db_pool_min: int = Field(2, ge=1)
    db_pool_max: int = 10
    scan_batch_size: int = Field(10000, ge=1)
    log_level: str = "INFO"
    host: str = "0.0.0.0"
    port: int = 5000

    @field_validator("log_level", mode="after")
    @classmethod
    def upper_level(cls, v: str) -> str:
        return v.strip().upper()

    @model_validator(mode="after")
    def check_pool_bounds(self):
        if self.db_pool_max < self.db_pool_min:
            raise ValueError("db_pool_max must not be smaller than db_pool_min")
        return self

    def dsn_kwargs(self):
        return {
            "host": self.db_host,
            "port": self.db_port,
            "database": self.db_name,
            "user": self.db_user,
            "password": self.db_password,
        }
