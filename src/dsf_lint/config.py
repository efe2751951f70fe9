"""Configuration management for dsf-lint using Pydantic models."""

import json
from enum import Enum
from pathlib import Path

from pydantic import BaseModel, ConfigDict, Field, field_validator

CONFIG_FILE_NAME = ".dsf-lint.json"


class ApiVersionSetting(str, Enum):
    """Plugin API version selection."""
    AUTO = "auto"
    V1 = "v1"
    V2 = "v2"


class OutputFormat(str, Enum):
    """Console output formats."""
    TABLE = "table"
    JSON = "json"
    MARKDOWN = "markdown"


class LogLevel(str, Enum):
    """Logging levels."""
    ERROR = "error"
    WARN = "warn"
    INFO = "info"
    DEBUG = "debug"


class ProjectConfig(BaseModel):
    """Project configuration section."""
    name: str | None = None
    root: str = "."


class ResourcesConfig(BaseModel):
    """Where FHIR resources are looked up."""
    roots: list[str] = Field(default_factory=list)
    include_jars: bool = Field(alias="includeJars", default=True)

    model_config = ConfigDict(populate_by_name=True)


class CapabilityConfig(BaseModel):
    """Implementation class lookup configuration section."""
    api_version: ApiVersionSetting = Field(alias="apiVersion", default=ApiVersionSetting.AUTO)
    class_dirs: list[str] = Field(alias="classDirs", default_factory=lambda: [
        "target/classes",
        "build/classes/java/main",
        "build/classes",
        "."
    ])
    jar_dirs: list[str] = Field(alias="jarDirs", default_factory=lambda: [
        ".",
        "target",
        "target/dependency",
        "lib"
    ])
    source_dirs: list[str] = Field(alias="sourceDirs", default_factory=lambda: ["src/main/java"])

    model_config = ConfigDict(use_enum_values=True, populate_by_name=True)


class ValidationConfig(BaseModel):
    """Validation configuration section."""
    fail_on_warn: bool = Field(alias="failOnWarn", default=False)
    include_success: bool = Field(alias="includeSuccess", default=True)
    workers: int = 1

    @field_validator("workers")
    @classmethod
    def validate_workers(cls, v):
        if v < 1:
            raise ValueError("workers must be >= 1")
        return v

    model_config = ConfigDict(populate_by_name=True)


class OutputConfig(BaseModel):
    """Output configuration section."""
    format: OutputFormat = OutputFormat.TABLE
    report_dir: str | None = Field(alias="reportDir", default=None)

    model_config = ConfigDict(use_enum_values=True, populate_by_name=True)


class LoggingConfig(BaseModel):
    """Logging configuration section."""
    level: LogLevel = LogLevel.WARN

    model_config = ConfigDict(use_enum_values=True)


class LintConfig(BaseModel):
    """Complete dsf-lint configuration model."""
    project: ProjectConfig = Field(default_factory=ProjectConfig)
    resources: ResourcesConfig = Field(default_factory=ResourcesConfig)
    capability: CapabilityConfig = Field(default_factory=CapabilityConfig)
    validation: ValidationConfig = Field(default_factory=ValidationConfig)
    output: OutputConfig = Field(default_factory=OutputConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)

    model_config = ConfigDict(extra="forbid")


def load_config(config_path: str | Path | None = None) -> LintConfig:
    """Load configuration from file with fallback to defaults.

    Args:
        config_path: Optional path to configuration file. If None, searches
                    current directory and parents for .dsf-lint.json

    Returns:
        LintConfig: Loaded and validated configuration

    Raises:
        ValueError: If configuration is invalid
    """
    if config_path is None:
        config_path = find_config_file()
    else:
        config_path = Path(config_path)

    if config_path and config_path.exists():
        try:
            with open(config_path, encoding="utf-8") as f:
                config_data = json.load(f)
            return LintConfig(**config_data)
        except json.JSONDecodeError as e:
            raise ValueError(f"Invalid JSON in config file {config_path}: {e}")
        except Exception as e:
            raise ValueError(f"Failed to load config from {config_path}: {e}")
    else:
        return create_default_config()


def find_config_file(start_dir: Path | None = None) -> Path | None:
    """Find .dsf-lint.json by searching up the directory tree.

    Args:
        start_dir: Directory to start search from (default: current directory)

    Returns:
        Path to config file if found, None otherwise
    """
    if start_dir is None:
        start_dir = Path.cwd()

    current = Path(start_dir).resolve()

    while True:
        config_file = current / CONFIG_FILE_NAME
        if config_file.exists():
            return config_file

        parent = current.parent
        if parent == current:
            break
        current = parent

    return None


def create_default_config() -> LintConfig:
    """Create default configuration for zero-config operation."""
    return LintConfig()
