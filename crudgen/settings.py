"""
Configuration for crudgen.

Values come from keyword arguments, then ``CRUDGEN_*`` environment
variables, then ``crudgen.toml`` / ``crudgen.local.toml`` in the working
directory.
"""

from enum import Enum
from functools import lru_cache
from pathlib import Path

from pydantic import Field
from pydantic_settings import (
    BaseSettings,
    PydanticBaseSettingsSource,
    SettingsConfigDict,
    TomlConfigSettingsSource,
)


class DatabaseDriver(str, Enum):
    """Async database drivers the record store can run on."""

    SQLITE = "sqlite+aiosqlite"
    POSTGRESQL = "postgresql+asyncpg"


class Settings(BaseSettings):
    """Runtime settings of a crudgen deployment."""

    model_config = SettingsConfigDict(
        toml_file=["crudgen.toml", "crudgen.local.toml"], env_prefix="CRUDGEN_", extra="ignore"
    )

    # HTTP server
    host: str = "127.0.0.1"
    port: int = 8000
    root_url: str = "/"
    debug: bool = False

    # Attachments
    storage_path: str = str(Path.home() / "crudgen")
    uploads_dir: str = "uploads"
    upload_chunk_size: int = Field(default=1024 * 1024, gt=0)

    # List views
    default_page_size: int = Field(default=20, gt=0)
    max_page_size: int = Field(default=100, gt=0)

    # Record store
    database_driver: DatabaseDriver = DatabaseDriver.SQLITE
    database_name: str = "crudgen"
    database_host: str = "localhost"
    database_port: int = 5432
    database_username: str = "postgres"
    database_password: str = "postgres"

    # Logging
    log_level: str = "INFO"
    log_to_file: bool = False
    log_dir: str | None = None
    log_rotation: str = "10 MB"
    log_retention: str = "2 weeks"
    log_serialize: bool = False

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,  # noqa: ARG003
        file_secret_settings: PydanticBaseSettingsSource,  # noqa: ARG003
    ) -> tuple[PydanticBaseSettingsSource, ...]:
        return init_settings, env_settings, TomlConfigSettingsSource(settings_cls)

    @property
    def database_url(self) -> str:
        """SQLAlchemy URL of the record store."""
        match self.database_driver:
            case DatabaseDriver.SQLITE:
                return f"{self.database_driver.value}:///{self.database_name}.db"
            case DatabaseDriver.POSTGRESQL:
                credentials = f"{self.database_username}:{self.database_password}"
                location = f"{self.database_host}:{self.database_port}"
                return f"{self.database_driver.value}://{credentials}@{location}/{self.database_name}"

    @property
    def storage_root(self) -> Path:
        """Directory holding the uploads tree."""
        return Path(self.storage_path).expanduser()

    @property
    def log_path(self) -> Path:
        """Log file location; defaults to ``<storage>/logs/crudgen.log``."""
        directory = Path(self.log_dir).expanduser() if self.log_dir else self.storage_root / "logs"
        return directory / "crudgen.log"


@lru_cache
def get_settings() -> Settings:
    return Settings()


settings = get_settings()
