"""
Configuration management.
"""

import os
from dataclasses import dataclass, field


def _env_list(name: str, default: str) -> list[str]:
    raw = os.getenv(name, default)
    return [item.strip().lower() for item in raw.split(",") if item.strip()]


@dataclass
class Config:
    """
    Application configuration.

    Loads from environment variables with sensible defaults.
    """

    # Server
    host: str = field(default_factory=lambda: os.getenv("HOST", "127.0.0.1"))
    port: int = field(default_factory=lambda: int(os.getenv("PORT", "8000")))
    debug: bool = field(default_factory=lambda: os.getenv("DEBUG", "false").lower() == "true")

    # Autosave
    autosave_debounce_ms: int = field(
        default_factory=lambda: int(os.getenv("AUTOSAVE_DEBOUNCE_MS", "2000"))
    )
    autosave_storage_key: str = field(
        default_factory=lambda: os.getenv("AUTOSAVE_STORAGE_KEY", "development-wizard-storage")
    )
    autosave_enabled: bool = field(
        default_factory=lambda: os.getenv("AUTOSAVE_ENABLED", "true").lower() == "true"
    )

    # Wizard
    enabled_development_types: list[str] = field(
        default_factory=lambda: _env_list(
            "ENABLED_DEVELOPMENT_TYPES", "residential,commercial,mixed,land"
        )
    )

    # Data
    data_dir: str = field(default_factory=lambda: os.getenv("DATA_DIR", "./data"))

    @classmethod
    def load(cls) -> "Config":
        """Load configuration from environment."""
        return cls()

    @property
    def drafts_path(self) -> str:
        return os.path.join(self.data_dir, "drafts.json")

    def autosave_options(self) -> dict:
        """Keyword arguments for AutoSaveController."""
        return {
            "debounce_ms": self.autosave_debounce_ms,
            "storage_key": self.autosave_storage_key,
            "enabled": self.autosave_enabled,
        }

    def to_dict(self) -> dict:
        """Convert config to dictionary."""
        return {
            "host": self.host,
            "port": self.port,
            "debug": self.debug,
            "autosave_debounce_ms": self.autosave_debounce_ms,
            "autosave_storage_key": self.autosave_storage_key,
            "autosave_enabled": self.autosave_enabled,
            "enabled_development_types": list(self.enabled_development_types),
            "data_dir": self.data_dir,
        }
