"""Configuration handling for the sales watcher."""

import logging
import os
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

import yaml
from dotenv import load_dotenv

from sales_watcher.errors import ConfigError, ValidationError
from sales_watcher.models.records import Rule

logger = logging.getLogger(__name__)

# Duplicate policies for the rule match store
LOG_ALL = "log_all"
DEDUPE = "dedupe"
DUPLICATE_POLICIES = (LOG_ALL, DEDUPE)

LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")

RULE_FIELDS = (
    "name",
    "link_flair_pattern",
    "product_type_pattern",
    "description_pattern",
    "price_min",
    "price_max",
)


@dataclass
class DatabaseConfig:
    """Database connection configuration."""

    url: str = "sqlite:///sales_watcher.db"
    echo: bool = False
    chunk_size: int = 500  # rows fetched per page when iterating posts


@dataclass
class MatchingConfig:
    """Rule match recording configuration."""

    duplicate_policy: str = LOG_ALL


@dataclass
class LoggingConfig:
    """Logging configuration."""

    level: str = "INFO"
    file: Optional[str] = None


@dataclass
class Config:
    """Application configuration combining environment variables and YAML config."""

    database: DatabaseConfig = field(default_factory=DatabaseConfig)
    matching: MatchingConfig = field(default_factory=MatchingConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)
    rules: List[Rule] = field(default_factory=list)

    @classmethod
    def from_files(cls, config_path: str, env_path: Optional[str] = None) -> "Config":
        """
        Load configuration from YAML file and environment variables.

        Environment variables seed the values; keys present in the YAML file
        override them.

        Args:
            config_path: Path to YAML configuration file
            env_path: Optional path to .env file (defaults to .env in current directory)

        Returns:
            Config instance with merged configuration

        Raises:
            ConfigError: If the YAML file cannot be parsed or a rule entry is malformed
        """
        if env_path:
            load_dotenv(env_path)
        else:
            load_dotenv()

        config = cls()
        config.database = DatabaseConfig(
            url=os.getenv("DATABASE_URL", DatabaseConfig.url),
            echo=os.getenv("DATABASE_ECHO", "false").lower() == "true",
        )
        config.matching = MatchingConfig(
            duplicate_policy=os.getenv("MATCH_DUPLICATE_POLICY", LOG_ALL),
        )
        config.logging = LoggingConfig(level=os.getenv("LOG_LEVEL", "INFO").upper())

        if not os.path.exists(config_path):
            logger.warning(f"Config file {config_path} not found, using environment and defaults")
            return config

        try:
            with open(config_path, "r", encoding="utf-8") as file:
                yaml_config = yaml.safe_load(file)
        except yaml.YAMLError as e:
            raise ConfigError(f"Failed to parse {config_path}: {e}") from e

        if not yaml_config:
            return config
        if not isinstance(yaml_config, dict):
            raise ConfigError(f"{config_path}: top level must be a mapping")

        _merge_section(config.database, yaml_config.get("database"))
        _merge_section(config.matching, yaml_config.get("matching"))
        _merge_section(config.logging, yaml_config.get("logging"))
        config.logging.level = str(config.logging.level).upper()

        rules = yaml_config.get("rules") or []
        if not isinstance(rules, list):
            raise ConfigError(f"{config_path}: 'rules' must be a list")
        config.rules = [rule_from_dict(entry, index) for index, entry in enumerate(rules)]

        logger.info(f"Loaded configuration from {config_path} with {len(config.rules)} rules")
        return config

    def validate(self) -> List[str]:
        """
        Validate configuration and return a list of validation errors.

        Returns:
            List of validation error messages (empty if valid)
        """
        errors = []

        if not self.database.url:
            errors.append("database.url must not be empty")
        if self.database.chunk_size <= 0:
            errors.append("database.chunk_size must be greater than 0")

        if self.matching.duplicate_policy not in DUPLICATE_POLICIES:
            errors.append(
                f"matching.duplicate_policy must be one of {', '.join(DUPLICATE_POLICIES)}, "
                f"got {self.matching.duplicate_policy!r}"
            )

        if self.logging.level not in LOG_LEVELS:
            errors.append(f"logging.level must be one of {', '.join(LOG_LEVELS)}, got {self.logging.level!r}")

        seen = set()
        for rule in self.rules:
            try:
                rule.validate()
            except ValidationError as e:
                errors.append(str(e))
            if rule.id in seen:
                errors.append(f"duplicate rule id {rule.id!r}")
            seen.add(rule.id)

        return errors


def _merge_section(target: Any, values: Optional[Dict[str, Any]]) -> None:
    """Copy known keys from a YAML mapping onto a config dataclass."""
    if not isinstance(values, dict):
        return
    for key, value in values.items():
        if hasattr(target, key):
            setattr(target, key, value)
        else:
            logger.warning(f"Ignoring unknown config key {type(target).__name__}.{key}")


def rule_from_dict(entry: Any, index: int = 0) -> Rule:
    """
    Build a Rule from one entry of the ``rules`` list.

    Rules without an ``id`` get one derived from their contents, so the same
    rule declared twice keeps its id across restarts.
    """
    if not isinstance(entry, dict):
        raise ConfigError(f"rules[{index}] must be a mapping, got {type(entry).__name__}")

    for key in entry:
        if key != "id" and key not in RULE_FIELDS:
            logger.warning(f"Ignoring unknown key {key!r} in rules[{index}]")

    values = {key: entry.get(key) for key in RULE_FIELDS}
    for bound in ("price_min", "price_max"):
        if values[bound] is not None:
            try:
                values[bound] = float(values[bound])
            except (TypeError, ValueError) as e:
                raise ConfigError(f"rules[{index}].{bound} must be a number, got {values[bound]!r}") from e

    rule_id = entry.get("id")
    if rule_id is None:
        rule_id = Rule.content_id(**values)
    return Rule(id=str(rule_id), **values)
