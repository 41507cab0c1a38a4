"""
Configuration Management for StarMapper

🔧 Unified Configuration System:
Dataclass configuration for the mapper and its logging, loadable from
dictionaries, JSON/YAML files and ``STARMAPPER_*`` environment variables.
"""

import json
import logging
import logging.handlers
import os
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any, Dict, Optional, Union


class Environment(Enum):
    """Application environments"""
    DEVELOPMENT = "development"
    TESTING = "testing"
    STAGING = "staging"
    PRODUCTION = "production"


@dataclass
class MapperConfig:
    """Mapper behaviour"""
    setter_prefix: str = "set_"
    attribute_setters: bool = False
    max_depth: Optional[int] = 32
    null_identifier: str = "NULL"
    relax_required: bool = True


@dataclass
class LoggingConfig:
    """Logging configuration"""
    level: str = "INFO"
    format: str = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    file_path: Optional[str] = None
    max_file_size: int = 10 * 1024 * 1024  # 10MB
    backup_count: int = 5


@dataclass
class ApplicationConfig:
    """Complete application configuration"""
    environment: Environment = Environment.DEVELOPMENT

    mapper: MapperConfig = field(default_factory=MapperConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)

    @classmethod
    def for_environment(cls, environment: Environment) -> 'ApplicationConfig':
        """Create configuration for specific environment"""
        config = cls(environment=environment)

        if environment == Environment.DEVELOPMENT:
            config.logging.level = "DEBUG"

        elif environment == Environment.TESTING:
            config.logging.level = "WARNING"

        elif environment == Environment.PRODUCTION:
            config.logging.level = "INFO"
            config.logging.file_path = "/var/log/starmapper/mapper.log"

        return config

    @classmethod
    def from_dict(cls, config_dict: Dict[str, Any]) -> 'ApplicationConfig':
        """Create configuration from dictionary"""
        unknown = set(config_dict) - {"environment", "mapper", "logging"}
        if unknown:
            raise ValueError(f"Unknown configuration option: {sorted(unknown)[0]}")

        environment = Environment(config_dict.get("environment", Environment.DEVELOPMENT.value))
        config = cls(environment=environment)

        for section in ("mapper", "logging"):
            target = getattr(config, section)
            for key, value in config_dict.get(section, {}).items():
                if not hasattr(target, key):
                    raise ValueError(f"Unknown {section} option: {key}")
                setattr(target, key, value)

        return config

    @classmethod
    def from_file(cls, config_path: Union[str, Path]) -> 'ApplicationConfig':
        """Load configuration from file"""
        config_path = Path(config_path)

        if not config_path.exists():
            raise FileNotFoundError(f"Configuration file not found: {config_path}")

        if config_path.suffix == '.json':
            with open(config_path) as f:
                config_dict = json.load(f)
        elif config_path.suffix in ('.yml', '.yaml'):
            import yaml
            with open(config_path) as f:
                config_dict = yaml.safe_load(f) or {}
        else:
            raise ValueError(f"Unsupported configuration file format: {config_path.suffix}")

        return cls.from_dict(config_dict)

    @classmethod
    def from_environment(cls) -> 'ApplicationConfig':
        """Create configuration from environment variables"""
        env_name = os.getenv('STARMAPPER_ENV', 'development')
        environment = Environment(env_name)

        config = cls.for_environment(environment)

        # Override with environment variables
        if os.getenv('STARMAPPER_SETTER_PREFIX') is not None:
            config.mapper.setter_prefix = os.getenv('STARMAPPER_SETTER_PREFIX')

        if os.getenv('STARMAPPER_MAX_DEPTH'):
            config.mapper.max_depth = int(os.getenv('STARMAPPER_MAX_DEPTH'))

        if os.getenv('STARMAPPER_LOG_LEVEL'):
            config.logging.level = os.getenv('STARMAPPER_LOG_LEVEL').upper()

        return config

    def to_dict(self) -> Dict[str, Any]:
        """Convert configuration to dictionary"""
        return {
            "environment": self.environment.value,
            "mapper": {
                "setter_prefix": self.mapper.setter_prefix,
                "attribute_setters": self.mapper.attribute_setters,
                "max_depth": self.mapper.max_depth,
                "null_identifier": self.mapper.null_identifier,
                "relax_required": self.mapper.relax_required,
            },
            "logging": {
                "level": self.logging.level,
                "format": self.logging.format,
                "file_path": self.logging.file_path,
                "max_file_size": self.logging.max_file_size,
                "backup_count": self.logging.backup_count,
            },
        }


def configure_logging(config: LoggingConfig, logger_name: str = "starmapper") -> logging.Logger:
    """Apply a LoggingConfig to the package logger."""
    logger = logging.getLogger(logger_name)
    logger.setLevel(config.level.upper())

    formatter = logging.Formatter(config.format)
    if config.file_path:
        Path(config.file_path).parent.mkdir(parents=True, exist_ok=True)
        handler: logging.Handler = logging.handlers.RotatingFileHandler(
            config.file_path,
            maxBytes=config.max_file_size,
            backupCount=config.backup_count,
        )
    else:
        handler = logging.StreamHandler()
    handler.setFormatter(formatter)

    for existing in list(logger.handlers):
        if getattr(existing, "_starmapper", False):
            logger.removeHandler(existing)
            existing.close()
    handler._starmapper = True
    logger.addHandler(handler)
    return logger


# Global configuration management
_current_config: Optional[ApplicationConfig] = None


def set_config(config: ApplicationConfig):
    """Set the global configuration"""
    global _current_config
    _current_config = config


def get_config() -> ApplicationConfig:
    """Get the current global configuration"""
    global _current_config

    if _current_config is None:
        # Auto-create from environment if not set
        _current_config = ApplicationConfig.from_environment()

    return _current_config


def configure_from_file(config_path: Union[str, Path]):
    """Configure application from file"""
    config = ApplicationConfig.from_file(config_path)
    set_config(config)
    return config


def configure_from_dict(config_dict: Dict[str, Any]):
    """Configure application from dictionary"""
    config = ApplicationConfig.from_dict(config_dict)
    set_config(config)
    return config


# Export main components
__all__ = [
    "ApplicationConfig", "Environment", "MapperConfig", "LoggingConfig",
    "configure_logging", "set_config", "get_config",
    "configure_from_file", "configure_from_dict",
]
