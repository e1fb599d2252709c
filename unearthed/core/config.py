"""Configuration management using Pydantic Settings."""

import logging
import re
from pathlib import Path

from pydantic import BaseModel, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from unearthed.utils.filenames import RESERVED_CHARACTERS

logger = logging.getLogger(__name__)

DEFAULT_BASE_URL = "https://unearthed.app/api/public"
DEFAULT_FILENAME_TEMPLATE = "{{title}}"
QUOTE_COLOR_MODES = ("none", "background", "text")

_HEX_COLOR = re.compile(r"^#(?:[0-9a-fA-F]{3}|[0-9a-fA-F]{6})$")


class ConfigError(Exception):
    """Raised when required configuration is missing or invalid."""


class ApiConfig(BaseModel):
    """Configuration for the Unearthed remote service."""

    base_url: str = DEFAULT_BASE_URL
    api_key: str | None = None
    timeout: float = 30.0
    connect_timeout: float = 10.0

    @field_validator("base_url", mode="before")
    @classmethod
    def validate_url(cls, v: str) -> str:
        """Validate API base URL format."""
        if not str(v).startswith(("http://", "https://")):
            raise ValueError("API base URL must start with http:// or https://")
        return str(v).rstrip("/")

    @field_validator("timeout", "connect_timeout")
    @classmethod
    def validate_timeout(cls, v: float) -> float:
        if v <= 0:
            raise ValueError("Timeouts must be positive")
        return v


class VaultConfig(BaseModel):
    """Configuration for the markdown vault that receives synced notes.

    Attributes:
        path: Vault root directory. Every other path is relative to it.
        root_folder: Folder (inside the vault) that holds the per-type folders
        filename_template: Placeholder template used to name source notes
        source_template: Template for the header of a newly created source note
        quote_template: Template for each appended quote. When set, quote
                        identities are tracked with invisible markers instead of
                        blockquote lines.
        quote_color_mode: 'none', 'background' or 'text'
        color_overrides: Highlight color name → hex overrides
    """

    path: Path | None = None
    root_folder: str = "Unearthed"
    auto_sync: bool = False
    filename_template: str = DEFAULT_FILENAME_TEMPLATE
    source_template: str = ""
    quote_template: str = ""
    filename_lowercase: bool = True
    filename_replacement: str = "-"
    quote_color_mode: str = "none"
    color_overrides: dict[str, str] = Field(default_factory=dict)

    @field_validator("path", mode="before")
    @classmethod
    def expand_path(cls, v: str | Path | None) -> Path | None:
        """Expand user home directory in paths."""
        if v is None or v == "":
            return None
        return Path(v).expanduser().resolve()

    @field_validator("root_folder", mode="before")
    @classmethod
    def validate_root_folder(cls, v: str) -> str:
        v = str(v).strip().strip("/")
        if not v:
            raise ValueError("Root folder cannot be empty")
        return v

    @field_validator("filename_replacement", mode="before")
    @classmethod
    def validate_replacement(cls, v: str) -> str:
        """Replacement must be a single filesystem-safe character."""
        v = str(v)
        if len(v) != 1:
            raise ValueError("Filename replacement must be exactly one character")
        if v in RESERVED_CHARACTERS or v.isspace() or ord(v) < 32 or ord(v) == 127:
            raise ValueError(f"Filename replacement '{v}' is not allowed in filenames")
        return v

    @field_validator("quote_color_mode", mode="before")
    @classmethod
    def validate_color_mode(cls, v: str) -> str:
        """Validate quote color mode."""
        v = str(v).lower()
        if v not in QUOTE_COLOR_MODES:
            raise ValueError(f"Quote color mode must be one of: {', '.join(QUOTE_COLOR_MODES)}")
        return v

    @field_validator("color_overrides", mode="before")
    @classmethod
    def validate_color_overrides(cls, v: dict[str, str] | None) -> dict[str, str]:
        overrides = {}
        for name, value in (v or {}).items():
            if not _HEX_COLOR.match(str(value)):
                raise ValueError(f"Color override for '{name}' must be a hex value like #ffd400")
            overrides[str(name).strip().lower()] = str(value)
        return overrides

    @property
    def uses_quote_template(self) -> bool:
        return bool(self.quote_template)


class DailyReflectionConfig(BaseModel):
    """Configuration for the daily reflection injected into the daily note."""

    enabled: bool = False
    location: str = "Daily Notes"
    date_format: str = "YYYY-MM-DD"
    template: str = ""

    @field_validator("location", mode="before")
    @classmethod
    def normalize_location(cls, v: str | None) -> str:
        return str(v or "").strip().strip("/")


class GeneralConfig(BaseModel):
    """General application configuration."""

    log_level: str = "INFO"
    data_dir: Path = Field(
        default_factory=lambda: Path.home() / ".unearthed"
    )
    log_file_name: str = "unearthed.log"
    log_file_max_bytes: int = 5 * 1024 * 1024
    log_file_backup_count: int = 3
    # Log category → level, e.g. {"vault": "DEBUG"}
    log_overrides: dict[str, str] = Field(default_factory=dict)
    # Runtime metadata - not serialized to config file (stored in settings DB instead)
    config_file: Path | None = Field(default=None, exclude=True)

    @field_validator("log_level", mode="before")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Validate log level."""
        valid_levels = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
        v = v.upper()
        if v not in valid_levels:
            raise ValueError(f"Log level must be one of: {', '.join(valid_levels)}")
        return v

    @field_validator("data_dir", mode="before")
    @classmethod
    def expand_data_dir(cls, v: str | Path) -> Path:
        """Expand user home directory in data directory path."""
        return Path(v).expanduser().resolve()


class AppConfig(BaseSettings):
    """Main application configuration."""

    model_config = SettingsConfigDict(
        env_prefix="UNEARTHED_",
        env_nested_delimiter="__",
        case_sensitive=False,
    )

    general: GeneralConfig = Field(default_factory=GeneralConfig)
    api: ApiConfig = Field(default_factory=ApiConfig)
    vault: VaultConfig = Field(default_factory=VaultConfig)
    daily_reflection: DailyReflectionConfig = Field(default_factory=DailyReflectionConfig)

    @classmethod
    def load_from_file(cls, config_path: Path) -> "AppConfig":
        """Load configuration from a TOML file."""
        if not config_path.exists():
            logger.warning(f"Config file not found: {config_path}, using defaults")
            return cls()

        import tomllib

        with open(config_path, "rb") as f:
            config_dict = tomllib.load(f)

        return cls(**config_dict)

    def save_to_file(self, config_path: Path) -> None:
        """Save configuration to a TOML file."""
        import tomli_w

        config_path.parent.mkdir(parents=True, exist_ok=True)

        # Convert to dict, handling Path objects and excluding None values
        config_dict = self.model_dump(mode="json", exclude_none=True)

        with open(config_path, "wb") as f:
            tomli_w.dump(config_dict, f)

        logger.info(f"Configuration saved to {config_path}")

    def ensure_data_dir(self) -> None:
        """Ensure data directory exists."""
        self.general.data_dir.mkdir(parents=True, exist_ok=True)
        logger.debug(f"Data directory: {self.general.data_dir}")

    def require_sync_settings(self) -> None:
        """Raise ConfigError unless the settings needed to sync are present."""
        if not self.api.api_key:
            raise ConfigError("API key is not configured (set UNEARTHED_API__API_KEY)")
        if self.vault.path is None:
            raise ConfigError("Vault path is not configured (set UNEARTHED_VAULT__PATH)")

    @property
    def state_db_path(self) -> Path:
        """Path to the runtime state database."""
        return self.general.data_dir / "state.db"

    @property
    def default_config_path(self) -> Path:
        """Get default configuration file path."""
        return self.general.data_dir / "config.toml"


def load_config(config_path: Path | None = None) -> AppConfig:
    """Load configuration from file or create default."""
    if config_path is None:
        config = AppConfig()
        config_path = config.default_config_path

    if config_path.exists():
        config = AppConfig.load_from_file(config_path)
    else:
        config = AppConfig()

    config.general.config_file = config_path
    config.ensure_data_dir()
    return config
