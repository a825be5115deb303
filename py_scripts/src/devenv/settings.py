"""Environment-derived configuration.

Every value can be set through an environment variable of the same name
(``DB_HOST``, ``DB_PORT``...) or a ``.env`` file at the project root.
Real environment variables win over the file.
"""

import re
import shlex
from pathlib import Path
from typing import Literal
from urllib.parse import quote

from pydantic import Field, ValidationError, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from .errors import ConfigError

SslMode = Literal["disable", "allow", "prefer", "require", "verify-ca", "verify-full"]

# Go time.ParseDuration syntax, as consumed by the server
_DURATION_RE = re.compile(r"^(0|(([0-9]+(\.[0-9]*)?|\.[0-9]+)(ns|us|µs|ms|s|m|h))+)$")

# Variables emitted by `devenv init`, in output order
EXPORTED = (
    "DB_HOST",
    "DB_PORT",
    "DB_USER",
    "DB_PASSWORD",
    "DB_SSLMODE",
    "DB_NAME",
    "CONFIG_REFRESH_DURATION",
    "TARGET_REFRESH_DURATION",
    "EXPORT_FILE_MAX_RECORDS",
)


class Settings(BaseSettings):
    """Local database and server configuration."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    db_host: str = "localhost"
    db_port: int = Field(default=5432, ge=1, le=65535)
    db_user: str = "postgres"
    db_password: str = "postgres"
    db_sslmode: SslMode = "require"
    db_name: str = "devdb"
    config_refresh_duration: str = "10s"
    target_refresh_duration: str = "10s"
    export_file_max_records: int = Field(default=10000, gt=0)

    db_image: str = "postgres:16"
    db_container_name: str = "devenv-postgres"

    @field_validator("config_refresh_duration", "target_refresh_duration")
    @classmethod
    def _check_duration(cls, value: str) -> str:
        if not _DURATION_RE.match(value):
            raise ValueError(f"invalid duration {value!r} (expected e.g. 10s, 1m30s)")
        return value

    @property
    def database_url(self) -> str:
        """Connection URL composed from the individual parameters."""
        user = quote(self.db_user, safe="")
        password = quote(self.db_password, safe="")
        # IPv6 literals need brackets
        host = self.db_host
        if ":" in host and not host.startswith("["):
            host = f"[{host}]"
        return (
            f"postgres://{user}:{password}@{host}:{self.db_port}"
            f"/{self.db_name}?sslmode={self.db_sslmode}"
        )

    def env_vars(self) -> dict[str, str]:
        """The exported configuration as environment variable strings."""
        values = {name: str(getattr(self, name.lower())) for name in EXPORTED}
        values["DATABASE_URL"] = self.database_url
        return values

    def export_lines(self) -> list[str]:
        """Shell statements that reproduce this configuration."""
        return [f"export {name}={shlex.quote(value)}" for name, value in self.env_vars().items()]


def load_settings(root: Path | None = None) -> Settings:
    """Load settings, reading ``.env`` from ``root`` when given.

    Raises:
        ConfigError: If any variable fails validation.
    """
    env_file = root / ".env" if root is not None else None
    try:
        return Settings(_env_file=env_file)
    except ValidationError as e:
        problems = "; ".join(
            f"{'.'.join(str(p) for p in err['loc']).upper()}: {err['msg']}"
            for err in e.errors()
        )
        raise ConfigError(f"Invalid configuration: {problems}") from e
