"""
Cadence CLI Configuration Management.

Handles loading, saving, and validating configuration from various sources:
- Default values
- Configuration files (TOML)
- Environment variables
- Command-line arguments
"""

from __future__ import annotations

import json
import os
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Optional, List

# Try to import tomllib (Python 3.11+) or tomli as fallback
try:
    import tomllib
except ImportError:
    try:
        import tomli as tomllib  # type: ignore
    except ImportError:
        tomllib = None  # type: ignore

# Try to import pyyaml
try:
    import yaml
except ImportError:
    yaml = None  # type: ignore


# Configuration directory and file constants
CONFIG_DIR = Path.home() / ".config" / "cadence"
CONFIG_FILE = "config.toml"

DEFAULT_CONFIG_DIR = Path.home() / ".config" / "cadence"
DEFAULT_CONFIG_FILE = "config.toml"
DEFAULT_DATA_DIR = Path.home() / ".local" / "share" / "cadence"


@dataclass
class ValidationError:
    """Validation error for configuration."""
    field: str
    message: str
    severity: str  # "error" or "warning"

    def __str__(self) -> str:
        return f"[{self.severity.upper()}] {self.field}: {self.message}"


@dataclass
class ExecutorConfig:
    """Limits and timeouts for one invocation of the schedule executor.

    All timeouts are in seconds. ``cron_timeout`` governs the whole
    invocation and must stay above ``execution_timeout`` so a single
    slow schedule can never consume the entire budget.
    """

    # Selection limits
    max_documents_per_run: int = 50
    max_schedules_per_run: int = 100
    max_concurrent_executions: int = 5

    # Timeouts
    execution_timeout: float = 240.0  # 4 minutes per schedule
    cron_timeout: float = 270.0  # 4.5 minutes per invocation
    load_timeout: float = 30.0
    write_timeout: float = 30.0  # whole write-back phase, after cron_timeout

    # Error backoff
    max_error_count: int = 3
    error_reset_hours: float = 24.0

    # Never-run schedules look back this far for a missed tick
    bootstrap_lookback_hours: float = 24.0


@dataclass
class EngineConfig:
    """Configuration for the remote code execution engine."""

    url: str = "http://localhost:3000/api/agent/execute-schedule"
    api_key: Optional[str] = None
    timeout: float = 300.0


@dataclass
class TriggerConfig:
    """Configuration for the invocation entry point."""

    # Authorization is only enforced when environment == "production"
    environment: str = "development"
    cron_secret: Optional[str] = None

    @property
    def is_production(self) -> bool:
        """Check if running in production mode."""
        return self.environment.lower() == "production"


@dataclass
class LoggingConfig:
    """Configuration for logging."""

    level: str = "INFO"
    format: str = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    file: Optional[Path] = None


@dataclass
class CadenceConfig:
    """Main configuration container for Cadence CLI."""

    # Paths
    config_dir: Path = DEFAULT_CONFIG_DIR
    data_dir: Path = DEFAULT_DATA_DIR

    # Sub-configurations
    executor: ExecutorConfig = field(default_factory=ExecutorConfig)
    engine: EngineConfig = field(default_factory=EngineConfig)
    trigger: TriggerConfig = field(default_factory=TriggerConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)

    # Database
    database_url: str = ""

    def __post_init__(self):
        """Initialize derived values."""
        if not self.database_url:
            self.database_url = f"sqlite:///{self.data_dir}/cadence.db"


def load_config(
    config_path: Optional[Path] = None,
    env_prefix: str = "CADENCE_"
) -> CadenceConfig:
    """
    Load configuration from file and environment variables.

    Priority (highest to lowest):
    1. Environment variables
    2. Config file
    3. Default values

    Args:
        config_path: Path to config file (default: ~/.config/cadence/config.toml)
        env_prefix: Prefix for environment variables

    Returns:
        Loaded configuration
    """
    config = CadenceConfig()

    # Determine config file path
    if config_path is None:
        env_config_dir = os.environ.get(f"{env_prefix}CONFIG_DIR")
        if env_config_dir:
            config_path = Path(env_config_dir) / DEFAULT_CONFIG_FILE
        else:
            config_path = DEFAULT_CONFIG_DIR / DEFAULT_CONFIG_FILE

    # Load from file if exists
    if config_path.exists() and tomllib is not None:
        config = _load_from_file(config_path, config)

    # Override with environment variables
    config = _load_from_env(config, env_prefix)

    return config


def _load_from_file(path: Path, config: CadenceConfig) -> CadenceConfig:
    """Load configuration from a TOML file."""
    if tomllib is None:
        return config

    try:
        with open(path, "rb") as f:
            data = tomllib.load(f)

        for section in ("executor", "engine", "trigger", "logging"):
            if section in data:
                section_obj = getattr(config, section)
                for key, value in data[section].items():
                    if hasattr(section_obj, key):
                        setattr(section_obj, key, value)

        # Top-level settings
        if "config_dir" in data:
            config.config_dir = Path(data["config_dir"])
        if "data_dir" in data:
            config.data_dir = Path(data["data_dir"])
            config.database_url = f"sqlite:///{config.data_dir}/cadence.db"
        if "database_url" in data:
            config.database_url = data["database_url"]

    except Exception as e:
        print(f"Warning: Failed to load config from {path}: {e}")

    return config


def _load_from_env(config: CadenceConfig, prefix: str) -> CadenceConfig:
    """Load configuration from environment variables."""

    # Executor limits
    if env_val := os.environ.get(f"{prefix}MAX_DOCUMENTS_PER_RUN"):
        config.executor.max_documents_per_run = int(env_val)
    if env_val := os.environ.get(f"{prefix}MAX_SCHEDULES_PER_RUN"):
        config.executor.max_schedules_per_run = int(env_val)
    if env_val := os.environ.get(f"{prefix}MAX_CONCURRENT_EXECUTIONS"):
        config.executor.max_concurrent_executions = int(env_val)
    if env_val := os.environ.get(f"{prefix}EXECUTION_TIMEOUT"):
        config.executor.execution_timeout = float(env_val)
    if env_val := os.environ.get(f"{prefix}CRON_TIMEOUT"):
        config.executor.cron_timeout = float(env_val)
    if env_val := os.environ.get(f"{prefix}MAX_ERROR_COUNT"):
        config.executor.max_error_count = int(env_val)
    if env_val := os.environ.get(f"{prefix}ERROR_RESET_HOURS"):
        config.executor.error_reset_hours = float(env_val)

    # Engine settings
    if env_val := os.environ.get(f"{prefix}ENGINE_URL"):
        config.engine.url = env_val
    if env_val := os.environ.get(f"{prefix}ENGINE_API_KEY"):
        config.engine.api_key = env_val
    if env_val := os.environ.get(f"{prefix}ENGINE_TIMEOUT"):
        config.engine.timeout = float(env_val)

    # Trigger settings
    if env_val := os.environ.get(f"{prefix}ENVIRONMENT"):
        config.trigger.environment = env_val
    if env_val := os.environ.get(f"{prefix}CRON_SECRET"):
        config.trigger.cron_secret = env_val

    # Logging settings
    if env_val := os.environ.get(f"{prefix}LOG_LEVEL"):
        config.logging.level = env_val.upper()

    # Paths
    if env_val := os.environ.get(f"{prefix}CONFIG_DIR"):
        config.config_dir = Path(env_val)
    if env_val := os.environ.get(f"{prefix}DATA_DIR"):
        config.data_dir = Path(env_val)
        if not os.environ.get(f"{prefix}DATABASE_URL"):
            config.database_url = f"sqlite:///{config.data_dir}/cadence.db"
    if env_val := os.environ.get(f"{prefix}DATABASE_URL"):
        config.database_url = env_val

    return config


def _toml_value(value: Any) -> str:
    """Render a scalar as a TOML literal."""
    if isinstance(value, bool):
        return str(value).lower()
    if isinstance(value, (int, float)):
        return str(value)
    return json.dumps("" if value is None else str(value))


def save_config(config: CadenceConfig, path: Optional[Path] = None) -> None:
    """
    Save configuration to a TOML file.

    Args:
        config: Configuration to save
        path: Path to save to (default: config.config_dir / config.toml)
    """
    if path is None:
        path = config.config_dir / DEFAULT_CONFIG_FILE

    path.parent.mkdir(parents=True, exist_ok=True)

    lines = [
        "# Cadence CLI Configuration",
        "# Generated automatically - edit with care",
        "",
        f"config_dir = {_toml_value(config.config_dir)}",
        f"data_dir = {_toml_value(config.data_dir)}",
        f"database_url = {_toml_value(config.database_url)}",
        "",
        "[executor]",
    ]
    for key in (
        "max_documents_per_run",
        "max_schedules_per_run",
        "max_concurrent_executions",
        "execution_timeout",
        "cron_timeout",
        "load_timeout",
        "write_timeout",
        "max_error_count",
        "error_reset_hours",
        "bootstrap_lookback_hours",
    ):
        lines.append(f"{key} = {_toml_value(getattr(config.executor, key))}")

    lines.extend([
        "",
        "[engine]",
        f"url = {_toml_value(config.engine.url)}",
        f"api_key = {_toml_value(config.engine.api_key)}",
        f"timeout = {_toml_value(config.engine.timeout)}",
        "",
        "[trigger]",
        f"environment = {_toml_value(config.trigger.environment)}",
        f"cron_secret = {_toml_value(config.trigger.cron_secret)}",
        "",
        "[logging]",
        f"level = {_toml_value(config.logging.level)}",
    ])

    with open(path, "w") as f:
        f.write("\n".join(lines) + "\n")


def ensure_directories(config: CadenceConfig) -> None:
    """Ensure all required directories exist."""
    config.config_dir.mkdir(parents=True, exist_ok=True)
    config.data_dir.mkdir(parents=True, exist_ok=True)


def get_default_config() -> CadenceConfig:
    """Get the default configuration."""
    return CadenceConfig()


# Global configuration instance (lazy-loaded)
_global_config: Optional[CadenceConfig] = None


def get_config() -> CadenceConfig:
    """Get the global configuration instance."""
    global _global_config
    if _global_config is None:
        _global_config = load_config()
    return _global_config


def set_config(config: CadenceConfig) -> None:
    """Set the global configuration instance."""
    global _global_config
    _global_config = config


def clear_config_cache() -> None:
    """Clear the global configuration cache."""
    global _global_config
    _global_config = None


def set_config_value(section: str, key: str, value: Any, config_path: Optional[Path] = None) -> None:
    """
    Set a single configuration value and persist to file.

    Args:
        section: Configuration section (e.g., 'executor', 'engine', 'trigger')
        key: Configuration key within the section
        value: Value to set (will be converted to appropriate type)
        config_path: Path to config file (default: CONFIG_DIR / CONFIG_FILE)
    """
    if config_path is None:
        config_path = CONFIG_DIR / CONFIG_FILE

    config = load_config(config_path)

    section_obj = getattr(config, section, None)
    if section_obj is None or section not in ("executor", "engine", "trigger", "logging"):
        raise ValueError(f"Unknown configuration section: {section}")

    if not hasattr(section_obj, key) or isinstance(getattr(type(section_obj), key, None), property):
        raise ValueError(f"Unknown configuration key: {section}.{key}")

    current_value = getattr(section_obj, key)
    current_type = type(current_value)

    # Convert value to appropriate type
    if current_type == bool:
        converted_value = value.lower() in ("true", "1", "yes", "on")
    elif current_type == int:
        converted_value = int(value)
    elif current_type == float:
        converted_value = float(value)
    elif current_type == Path:
        converted_value = Path(value)
    else:
        converted_value = value

    setattr(section_obj, key, converted_value)

    save_config(config, config_path)


def _validate_url(url: str) -> bool:
    """Validate a URL format."""
    url_pattern = r"^https?://[^\s/$.?#].[^\s]*$"
    return bool(re.match(url_pattern, url))


def validate_config(config: Optional[CadenceConfig] = None) -> List[ValidationError]:
    """
    Validate configuration and return list of errors.

    Args:
        config: Configuration to validate (default: loaded from file)

    Returns:
        List of validation errors (empty if valid)
    """
    if config is None:
        config = load_config()

    errors: List[ValidationError] = []
    executor = config.executor

    # Limits must be positive
    for key in (
        "max_documents_per_run",
        "max_schedules_per_run",
        "max_concurrent_executions",
        "max_error_count",
    ):
        if getattr(executor, key) < 1:
            errors.append(ValidationError(
                field=f"executor.{key}",
                message="Must be at least 1.",
                severity="error"
            ))

    for key in ("execution_timeout", "cron_timeout", "load_timeout", "write_timeout"):
        if getattr(executor, key) <= 0:
            errors.append(ValidationError(
                field=f"executor.{key}",
                message="Timeout must be positive.",
                severity="error"
            ))

    if executor.cron_timeout <= executor.execution_timeout:
        errors.append(ValidationError(
            field="executor.cron_timeout",
            message=(
                f"Invocation timeout ({executor.cron_timeout}s) must be greater "
                f"than execution timeout ({executor.execution_timeout}s)."
            ),
            severity="error"
        ))

    if executor.error_reset_hours < 0:
        errors.append(ValidationError(
            field="executor.error_reset_hours",
            message="Must not be negative.",
            severity="error"
        ))

    # Engine validation
    if not config.engine.url:
        errors.append(ValidationError(
            field="engine.url",
            message="Execution engine URL not set. Schedules cannot run.",
            severity="error"
        ))
    elif not _validate_url(config.engine.url):
        errors.append(ValidationError(
            field="engine.url",
            message=f"Invalid URL format: {config.engine.url}",
            severity="error"
        ))

    # Trigger validation
    if config.trigger.is_production and not config.trigger.cron_secret:
        errors.append(ValidationError(
            field="trigger.cron_secret",
            message="Cron secret not set in production. All invocations will be rejected.",
            severity="warning"
        ))

    # Path validation
    if not config.data_dir.exists():
        errors.append(ValidationError(
            field="data_dir",
            message=f"Data directory does not exist: {config.data_dir}",
            severity="warning"
        ))

    return errors


def config_to_dict(config: CadenceConfig, mask_secrets: bool = True) -> dict[str, Any]:
    """
    Convert configuration to dictionary.

    Args:
        config: Configuration to convert
        mask_secrets: If True, mask sensitive values like API keys

    Returns:
        Dictionary representation of config
    """
    def mask_value(key: str, value: Any) -> Any:
        """Mask sensitive values."""
        if not mask_secrets:
            return value
        sensitive_keys = {"api_key", "password", "secret", "token"}
        if value and any(sk in key.lower() for sk in sensitive_keys):
            if isinstance(value, str) and len(value) > 4:
                return value[:4] + "****"
            return "****"
        return value

    executor = config.executor
    return {
        "config_dir": str(config.config_dir),
        "data_dir": str(config.data_dir),
        "database_url": config.database_url,
        "executor": {
            "max_documents_per_run": executor.max_documents_per_run,
            "max_schedules_per_run": executor.max_schedules_per_run,
            "max_concurrent_executions": executor.max_concurrent_executions,
            "execution_timeout": executor.execution_timeout,
            "cron_timeout": executor.cron_timeout,
            "load_timeout": executor.load_timeout,
            "write_timeout": executor.write_timeout,
            "max_error_count": executor.max_error_count,
            "error_reset_hours": executor.error_reset_hours,
            "bootstrap_lookback_hours": executor.bootstrap_lookback_hours,
        },
        "engine": {
            "url": config.engine.url,
            "api_key": mask_value("api_key", config.engine.api_key),
            "timeout": config.engine.timeout,
        },
        "trigger": {
            "environment": config.trigger.environment,
            "is_production": config.trigger.is_production,
            "cron_secret": mask_value("cron_secret", config.trigger.cron_secret),
        },
        "logging": {
            "level": config.logging.level,
            "format": config.logging.format,
            "file": str(config.logging.file) if config.logging.file else None,
        },
    }


def export_config_yaml(config: CadenceConfig, mask_secrets: bool = True) -> str:
    """
    Export configuration as YAML string.

    Raises:
        ImportError: If pyyaml is not installed
    """
    if yaml is None:
        raise ImportError("pyyaml is required for YAML export. Install with: pip install pyyaml")

    config_dict = config_to_dict(config, mask_secrets)
    return yaml.dump(config_dict, default_flow_style=False, sort_keys=False, allow_unicode=True)


def export_config_json(config: CadenceConfig, mask_secrets: bool = True) -> str:
    """Export configuration as JSON string."""
    config_dict = config_to_dict(config, mask_secrets)
    return json.dumps(config_dict, indent=2)
