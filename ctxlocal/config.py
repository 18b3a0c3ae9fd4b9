"""
Configuration management for ctxlocal.

Loads configuration from multiple sources in order of priority:
1. Environment variables (CTXLOCAL_*)
2. Explicit config file (--config)
3. User config (~/.config/ctxlocal/config.toml)
4. System config (/etc/ctxlocal/config.toml)
5. Default config (bundled with package)

Every value has a default, so the verifier runs with no configuration.
"""

import os
import tomllib
from pathlib import Path
from typing import Any, Literal, Optional

from pydantic import BaseModel, Field, ValidationError

from .errors import ConfigurationError


class HarnessConfig(BaseModel):
    """Interleaving pressure applied by the scenarios."""
    concurrency: int = Field(default=500, ge=1, description="Tasks in the fan-out scenario")
    checkpoints: int = Field(default=10, ge=1, description="Suspensions per fan-out task")
    regression_concurrency: int = Field(
        default=50,
        ge=50,
        description="Tasks in the shared-slot regression scenario (>= 50)"
    )
    regression_suspensions: int = Field(
        default=5,
        ge=5,
        description="Suspensions per regression task (>= 5)"
    )
    chain_delay: float = Field(
        default=0.01,
        ge=0.0,
        description="Seconds of timed deferral in the chained-continuation scenario"
    )
    reentry_rounds: int = Field(default=3, ge=2, description="Sequential re-runs of one value")


class ReportConfig(BaseModel):
    """Report presentation."""
    max_displayed_errors: int = Field(default=10, ge=0, description="Mismatches listed per scenario")
    use_colors: bool = Field(default=True, description="Use colors in output")
    show_observations: bool = Field(default=True, description="Show checkpoint counts")


class LoggingConfig(BaseModel):
    """Logging configuration."""
    level: Literal["debug", "info", "warning", "error"] = Field(
        default="warning",
        description="Log level"
    )


class CtxLocalConfig(BaseModel):
    """Main ctxlocal configuration."""
    harness: HarnessConfig = Field(default_factory=HarnessConfig)
    report: ReportConfig = Field(default_factory=ReportConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)


def get_config_paths(explicit: Optional[str] = None) -> list[Path]:
    """Get configuration file paths in order of priority."""
    paths = []

    if explicit:
        paths.append(Path(explicit).expanduser())

    # User config
    paths.append(Path.home() / ".config" / "ctxlocal" / "config.toml")

    # System config
    paths.append(Path("/etc/ctxlocal/config.toml"))

    # Default config (bundled inside package)
    paths.append(Path(__file__).parent / "data" / "default.toml")

    return paths


def load_toml_config(path: Path) -> dict[str, Any]:
    """Load configuration from a TOML file."""
    if path.exists():
        try:
            with open(path, "rb") as f:
                return tomllib.load(f)
        except tomllib.TOMLDecodeError as e:
            raise ConfigurationError(
                f"Invalid TOML in {path}: {e}",
                suggested_action="Fix the syntax error or remove the file."
            ) from e
    return {}


def merge_configs(base: dict, override: dict) -> dict:
    """Deep merge two configuration dictionaries."""
    result = base.copy()
    for key, value in override.items():
        if key in result and isinstance(result[key], dict) and isinstance(value, dict):
            result[key] = merge_configs(result[key], value)
        else:
            result[key] = value
    return result


def _env_int(name: str) -> Optional[int]:
    raw = os.environ.get(name)
    if raw is None or raw == "":
        return None
    try:
        return int(raw)
    except ValueError as e:
        raise ConfigurationError(f"{name} must be an integer, got {raw!r}") from e


def load_env_overrides() -> dict[str, Any]:
    """Load configuration overrides from environment variables."""
    overrides: dict[str, Any] = {}

    concurrency = _env_int("CTXLOCAL_CONCURRENCY")
    if concurrency is not None:
        overrides.setdefault("harness", {})["concurrency"] = concurrency

    checkpoints = _env_int("CTXLOCAL_CHECKPOINTS")
    if checkpoints is not None:
        overrides.setdefault("harness", {})["checkpoints"] = checkpoints

    if os.environ.get("CTXLOCAL_NO_COLOR"):
        overrides.setdefault("report", {})["use_colors"] = False

    # Debug mode
    if os.environ.get("CTXLOCAL_DEBUG"):
        overrides.setdefault("logging", {})["level"] = "debug"

    return overrides


def load_config(path: Optional[str] = None) -> CtxLocalConfig:
    """Load configuration from all sources.

    Args:
        path: Optional explicit config file; must exist when given.

    Raises:
        ConfigurationError: On a missing explicit file, malformed TOML,
            or values outside their allowed range.
    """
    if path and not Path(path).expanduser().exists():
        raise ConfigurationError(f"Config file not found: {path}")

    config_data: dict[str, Any] = {}

    # Load from files (lowest to highest priority)
    for config_path in reversed(get_config_paths(path)):
        config_data = merge_configs(config_data, load_toml_config(config_path))

    # Apply environment overrides (highest priority)
    config_data = merge_configs(config_data, load_env_overrides())

    try:
        return CtxLocalConfig(**config_data)
    except ValidationError as e:
        raise ConfigurationError(
            f"Invalid configuration: {e}",
            user_message="Configuration values are out of range.",
            suggested_action="Check the [harness] and [report] sections."
        ) from e


# Global config instance
_config: Optional[CtxLocalConfig] = None


def get_config() -> CtxLocalConfig:
    """Get the global configuration instance."""
    global _config
    if _config is None:
        _config = load_config()
    return _config


def reset_config() -> None:
    """Reset the global configuration (useful for testing)."""
    global _config
    _config = None
