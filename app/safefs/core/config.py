"""Configuration model and TOML file I/O.

Settings are stored in ~/.config/safefs/config.toml and supply the
default traversal policy for the CLI. A missing file means defaults.
"""

import logging
import tomllib
from pathlib import Path
from typing import Annotated

import tomli_w
from pydantic import BaseModel, ConfigDict, Field, ValidationError

from safefs.core.paths import get_config_path
from safefs.errors import SafefsError
from safefs.fileops.atomic import atomic_write_file
from safefs.fileops.models import TraversalOptions

logger = logging.getLogger(__name__)

DEFAULT_EXCLUDE_PATTERNS: tuple[str, ...] = (".git/",)


class SafefsConfig(BaseModel):
    """Persistent safefs settings.

    Attributes:
        exclude_patterns: Exclusion patterns applied to every walk.
        follow_symlinks: Follow symlinks when listing files.
        ignore_hidden: Skip dot-files and dot-directories.
        ignore_permission_errors: Skip unreadable entries instead of failing.
        max_depth: Deepest level to descend into (None = unlimited).
    """

    model_config = ConfigDict(extra="forbid")

    exclude_patterns: Annotated[
        list[str],
        Field(description="Exclusion patterns (directory, glob or literal)"),
    ] = list(DEFAULT_EXCLUDE_PATTERNS)
    follow_symlinks: bool = False
    ignore_hidden: bool = False
    ignore_permission_errors: bool = False
    max_depth: Annotated[
        int | None,
        Field(ge=0, description="Maximum traversal depth (None = unlimited)"),
    ] = None

    def traversal_options(self, extra_patterns: list[str] | None = None) -> TraversalOptions:
        """Build traversal options from these settings.

        Args:
            extra_patterns: Patterns appended to the configured ones.

        Returns:
            TraversalOptions reflecting this configuration.
        """
        return TraversalOptions(
            exclude_patterns=tuple(self.exclude_patterns + (extra_patterns or [])),
            follow_symlinks=self.follow_symlinks,
            max_depth=self.max_depth,
            ignore_hidden=self.ignore_hidden,
            ignore_permission_errors=self.ignore_permission_errors,
        )


class ConfigError(SafefsError):
    """Base exception for configuration errors."""


class ConfigParseError(ConfigError):
    """Raised when the config file is not valid TOML."""


class ConfigValidationError(ConfigError):
    """Raised when the config content doesn't match the schema."""


def load_config(path: Path | None = None) -> SafefsConfig:
    """Load configuration from a TOML file.

    Args:
        path: Path to the config file. If None, uses the default config path.

    Returns:
        Validated SafefsConfig. Defaults if the file doesn't exist.

    Raises:
        ConfigParseError: If the TOML syntax is invalid.
        ConfigValidationError: If the content doesn't match the schema.
        ConfigError: If the file cannot be read.
    """
    config_path = path or get_config_path()

    try:
        with open(config_path, "rb") as f:
            data = tomllib.load(f)
    except FileNotFoundError:
        logger.debug("No config at %s, using defaults", config_path)
        return SafefsConfig()
    except tomllib.TOMLDecodeError as e:
        raise ConfigParseError(
            f"Invalid TOML syntax: {e}", operation="load_config", path=config_path, cause=e
        ) from e
    except OSError as e:
        raise ConfigError(
            f"Failed to read config: {e}", operation="load_config", path=config_path, cause=e
        ) from e

    try:
        return SafefsConfig.model_validate(data)
    except ValidationError as e:
        raise ConfigValidationError(
            f"Invalid config content: {e}", operation="load_config", path=config_path, cause=e
        ) from e


def save_config(config: SafefsConfig, path: Path | None = None) -> Path:
    """Save configuration to a TOML file atomically.

    Args:
        config: The configuration to save.
        path: Destination. If None, uses the default config path.

    Returns:
        Path where the config was saved.

    Raises:
        SafefsError: If the file cannot be written.
    """
    config_path = path or get_config_path()
    data = tomli_w.dumps(_config_to_dict(config)).encode("utf-8")
    atomic_write_file(config_path, data)
    logger.debug("Saved config to %s", config_path)
    return config_path


def _config_to_dict(config: SafefsConfig) -> dict[str, object]:
    """Convert SafefsConfig to a TOML-serializable dictionary.

    TOML has no null, so an unset max_depth is omitted.
    """
    return config.model_dump(exclude_none=True)


def get_default_config() -> SafefsConfig:
    """Create a default SafefsConfig."""
    return SafefsConfig()
