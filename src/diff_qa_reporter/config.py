"""
Configuration loading and validation for Diff QA Reporter.

This module handles configuration file parsing, validation, and provides
sensible defaults for all configuration options.
"""

from pathlib import Path
from typing import Optional

import yaml
from pydantic import BaseModel, Field

from diff_qa_reporter.errors import ConfigError
from diff_qa_reporter.models.change import ClassificationRule
from diff_qa_reporter.models.testcase import InvariantCheck


class CollectorConfig(BaseModel):
    """Configuration for the diff collector."""

    timeout_seconds: float = Field(
        default=60.0,
        gt=0,
        description="Blanket timeout around the whole collection step.",
    )
    max_workers: int = Field(
        default=4,
        ge=1,
        description="Parallel git queries issued while collecting.",
    )
    path_prefixes: list[str] = Field(
        default_factory=list,
        description="Path prefixes to produce scoped raw diffs for.",
    )
    git_executable: str = Field(
        default="git",
        description="git binary to invoke.",
    )


class ClassifierConfig(BaseModel):
    """Configuration for the change classifier."""

    rules: Optional[list[ClassificationRule]] = Field(
        default=None,
        description="Replacement rule table. None keeps the built-in table.",
    )
    prepend_rules: list[ClassificationRule] = Field(
        default_factory=list,
        description="Rules evaluated before the active rule table.",
    )


class InvariantConfig(BaseModel):
    """Configuration for the domain invariant catalog."""

    enabled: bool = Field(
        default=True,
        description="Emit test cases from the invariant catalog.",
    )
    extra: list[InvariantCheck] = Field(
        default_factory=list,
        description="Additional invariants appended to the built-in catalog.",
    )


class CommandsConfig(BaseModel):
    """Commands quoted in the README's local testing section."""

    install: str = Field(default="npm install")
    migrate: str = Field(default="npx prisma migrate dev")
    test: str = Field(default="npm test")
    dev: str = Field(default="npm run dev")
    base_url: str = Field(default="http://localhost:3000")


class OutputConfig(BaseModel):
    """Configuration for report output."""

    project_name: str = Field(
        default="VHA Procurement Workflow System",
        description="Project name shown in report headers.",
    )
    qa_output: Optional[Path] = Field(
        default=None,
        description="Default path for the QA changelog.",
    )
    readme_output: Optional[Path] = Field(
        default=None,
        description="Default path for the developer README.",
    )


class Config(BaseModel):
    """Root configuration model for Diff QA Reporter."""

    collector: CollectorConfig = Field(default_factory=CollectorConfig)
    classifier: ClassifierConfig = Field(default_factory=ClassifierConfig)
    invariants: InvariantConfig = Field(default_factory=InvariantConfig)
    commands: CommandsConfig = Field(default_factory=CommandsConfig)
    output: OutputConfig = Field(default_factory=OutputConfig)

    class Config:
        """Pydantic model configuration."""

        extra = "forbid"


def load_config(config_path: Optional[Path] = None) -> Config:
    """
    Load configuration from a YAML file.

    Args:
        config_path: Path to the configuration file. If None, returns defaults.

    Returns:
        Config object with loaded or default values.

    Raises:
        ConfigError: If the file doesn't exist or is invalid.
    """
    if config_path is None:
        return Config()

    if not config_path.exists():
        raise ConfigError(f"Configuration file not found: {config_path}")

    try:
        with open(config_path, encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}
        return Config(**data)
    except yaml.YAMLError as e:
        raise ConfigError(f"Invalid YAML in configuration file: {e}") from e
    except Exception as e:
        raise ConfigError(f"Failed to load configuration: {e}") from e


def load_rules(rules_path: Path) -> list[ClassificationRule]:
    """
    Load a replacement classification table from a YAML file.

    The file holds either a top-level list of rules or a mapping with a
    `rules` key. Rule order in the file is the evaluation order.

    Raises:
        ConfigError: If the file is missing or malformed.
    """
    if not rules_path.exists():
        raise ConfigError(f"Rules file not found: {rules_path}")

    try:
        with open(rules_path, encoding="utf-8") as f:
            data = yaml.safe_load(f) or []
    except yaml.YAMLError as e:
        raise ConfigError(f"Invalid YAML in rules file: {e}") from e

    if isinstance(data, dict):
        data = data.get("rules", [])
    if not isinstance(data, list):
        raise ConfigError(f"Rules file must contain a list of rules: {rules_path}")

    try:
        return [ClassificationRule(**item) for item in data]
    except Exception as e:
        raise ConfigError(f"Invalid rule in {rules_path}: {e}") from e


def find_config_file(start_path: Path) -> Optional[Path]:
    """
    Search for a configuration file starting from the given path.

    Searches for `.diff-qa-reporter.yaml` or `.diff-qa-reporter.yml`
    in the start path and parent directories.

    Args:
        start_path: Directory to start searching from.

    Returns:
        Path to the config file if found, None otherwise.
    """
    config_names = [".diff-qa-reporter.yaml", ".diff-qa-reporter.yml"]

    current = start_path.resolve()
    while current != current.parent:
        for name in config_names:
            config_path = current / name
            if config_path.exists():
                return config_path
        current = current.parent

    return None
