"""
Configuration Management Module
Loads and validates configuration from config.yaml
"""

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Optional

import yaml

logger = logging.getLogger(__name__)


@dataclass
class DatabaseConfig:
    """Database configuration"""
    path: str = "data/database.db"
    seed_path: Optional[str] = None  # None means the packaged default seed
    read_only: bool = True
    echo: bool = False


@dataclass
class QueryConfig:
    """Query operation defaults"""
    default_limit: int = 10


@dataclass
class FreshnessConfig:
    """Freshness check defaults"""
    default_max_age_days: int = 45


@dataclass
class ServiceConfig:
    """Service identity reported by the about operation"""
    name: str = "Sanctions Law Reference Service"
    version: str = "0.1.0"
    category: str = "threat_intel"
    description: str = (
        "Legal-basis retrieval for sanctions frameworks across UN, EU, US, UK, "
        "and CJEU case law. Not an entity-screening sanctions list."
    )
    disclaimer: str = (
        "This is a reference tool, not professional advice. Verify critical data "
        "against authoritative sources. This tool provides legal-basis research, "
        "NOT entity screening."
    )
    last_ingestion: str = "2026-02-22"
    database_built: str = "2026-02-22"


@dataclass
class MonitoringSettings:
    """Query monitoring configuration"""
    slow_query_threshold_ms: float = 1000.0
    warning_threshold_ms: float = 500.0
    enable_prometheus: bool = True


@dataclass
class LoggingConfig:
    """Logging configuration"""
    level: str = "INFO"
    format: str = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


class ConfigurationError(Exception):
    """Raised when configuration is invalid"""
    pass


_TRUE_VALUES = ('1', 'true', 'yes', 'on')


class ConfigManager:
    """Manages service configuration"""

    _instance: Optional['ConfigManager'] = None

    def __init__(self, config_path: Optional[str] = None):
        """Initialize configuration manager

        Args:
            config_path: Path to config.yaml file
        """
        self.config_path = Path(config_path) if config_path else self._find_config()
        self._raw_config: Dict[str, Any] = {}
        self.database: DatabaseConfig = DatabaseConfig()
        self.query: QueryConfig = QueryConfig()
        self.freshness: FreshnessConfig = FreshnessConfig()
        self.service: ServiceConfig = ServiceConfig()
        self.monitoring: MonitoringSettings = MonitoringSettings()
        self.logging: LoggingConfig = LoggingConfig()

        if self.config_path and self.config_path.exists():
            self.load()
        else:
            logger.warning(f"Config file not found at {self.config_path}, using defaults")

        self._apply_env_overrides()

    def _find_config(self) -> Path:
        """Find config.yaml via CONFIG_PATH or in common locations"""
        env_path = os.getenv("CONFIG_PATH")
        if env_path:
            return Path(env_path)

        search_paths = [
            Path(__file__).parent / "config.yaml",
            Path.cwd() / "config.yaml",
        ]

        for path in search_paths:
            if path.exists():
                return path

        return search_paths[0]

    def load(self) -> None:
        """Load configuration from YAML file"""
        try:
            with open(self.config_path, 'r', encoding='utf-8') as f:
                self._raw_config = yaml.safe_load(f) or {}
        except yaml.YAMLError as e:
            raise ConfigurationError(f"Invalid YAML in config file: {e}")
        except FileNotFoundError:
            raise ConfigurationError(f"Config file not found: {self.config_path}")

        if not isinstance(self._raw_config, dict):
            raise ConfigurationError(f"Config file must hold a mapping: {self.config_path}")

        self._parse_database()
        self._parse_query()
        self._parse_freshness()
        self._parse_service()
        self._parse_monitoring()
        self._parse_logging()
        self._validate()

    def _section(self, name: str) -> Dict[str, Any]:
        cfg = self._raw_config.get(name) or {}
        if not isinstance(cfg, dict):
            raise ConfigurationError(f"Section '{name}' must be a mapping")
        return cfg

    def _parse_database(self) -> None:
        """Parse database configuration"""
        cfg = self._section('database')
        self.database = DatabaseConfig(
            path=cfg.get('path', self.database.path),
            seed_path=cfg.get('seed_path', self.database.seed_path),
            read_only=cfg.get('read_only', self.database.read_only),
            echo=cfg.get('echo', self.database.echo)
        )

    def _parse_query(self) -> None:
        cfg = self._section('query')
        self.query = QueryConfig(
            default_limit=cfg.get('default_limit', 10)
        )

    def _parse_freshness(self) -> None:
        cfg = self._section('freshness')
        self.freshness = FreshnessConfig(
            default_max_age_days=cfg.get('default_max_age_days', 45)
        )

    def _parse_service(self) -> None:
        """Parse service identity; unspecified keys keep their defaults"""
        cfg = self._section('service')
        defaults = ServiceConfig()
        self.service = ServiceConfig(
            name=cfg.get('name', defaults.name),
            version=str(cfg.get('version', defaults.version)),
            category=cfg.get('category', defaults.category),
            description=cfg.get('description', defaults.description),
            disclaimer=cfg.get('disclaimer', defaults.disclaimer),
            last_ingestion=str(cfg.get('last_ingestion', defaults.last_ingestion)),
            database_built=str(cfg.get('database_built', defaults.database_built))
        )

    def _parse_monitoring(self) -> None:
        cfg = self._section('monitoring')
        self.monitoring = MonitoringSettings(
            slow_query_threshold_ms=cfg.get('slow_query_threshold_ms', 1000.0),
            warning_threshold_ms=cfg.get('warning_threshold_ms', 500.0),
            enable_prometheus=cfg.get('enable_prometheus', True)
        )

    def _parse_logging(self) -> None:
        """Parse logging configuration"""
        cfg = self._section('logging')
        self.logging = LoggingConfig(
            level=cfg.get('level', 'INFO'),
            format=cfg.get('format', self.logging.format)
        )

    def _apply_env_overrides(self) -> None:
        """Environment variables win over the YAML file"""
        db_path = os.getenv("SANCTIONS_LAW_DB_PATH")
        if db_path:
            self.database.path = db_path

        seed_path = os.getenv("SANCTIONS_LAW_SEED_PATH")
        if seed_path:
            self.database.seed_path = seed_path

        echo = os.getenv("SANCTIONS_LAW_DB_ECHO")
        if echo is not None:
            self.database.echo = echo.strip().lower() in _TRUE_VALUES

    def _validate(self) -> None:
        """Validate configuration values"""
        if not isinstance(self.query.default_limit, int) or not 1 <= self.query.default_limit <= 50:
            raise ConfigurationError(
                f"query.default_limit must be an integer between 1 and 50, got {self.query.default_limit!r}"
            )

        max_age = self.freshness.default_max_age_days
        if not isinstance(max_age, int) or max_age < 1:
            raise ConfigurationError(
                f"freshness.default_max_age_days must be a positive integer, got {max_age!r}"
            )

        if self.monitoring.warning_threshold_ms > self.monitoring.slow_query_threshold_ms:
            raise ConfigurationError("monitoring.warning_threshold_ms exceeds slow_query_threshold_ms")

        if not isinstance(logging.getLevelName(str(self.logging.level).upper()), int):
            raise ConfigurationError(f"Unknown logging level: {self.logging.level}")

        if not self.database.path:
            raise ConfigurationError("database.path must not be empty")

    @classmethod
    def get_instance(cls, config_path: Optional[str] = None) -> 'ConfigManager':
        """Get singleton instance of ConfigManager"""
        if cls._instance is None:
            cls._instance = ConfigManager(config_path)
        return cls._instance

    @classmethod
    def reset_instance(cls) -> None:
        """Reset singleton instance (useful for testing)"""
        cls._instance = None

    def to_dict(self) -> Dict[str, Any]:
        """Export configuration as dictionary"""
        return {
            'database': {
                'path': self.database.path,
                'seed_path': self.database.seed_path,
                'read_only': self.database.read_only,
                'echo': self.database.echo
            },
            'query': {
                'default_limit': self.query.default_limit
            },
            'freshness': {
                'default_max_age_days': self.freshness.default_max_age_days
            },
            'service': {
                'name': self.service.name,
                'version': self.service.version,
                'category': self.service.category,
                'last_ingestion': self.service.last_ingestion,
                'database_built': self.service.database_built
            },
            'monitoring': {
                'slow_query_threshold_ms': self.monitoring.slow_query_threshold_ms,
                'warning_threshold_ms': self.monitoring.warning_threshold_ms,
                'enable_prometheus': self.monitoring.enable_prometheus
            },
            'logging': {
                'level': self.logging.level,
                'format': self.logging.format
            }
        }


def get_config(config_path: Optional[str] = None) -> ConfigManager:
    """Convenience function to get configuration instance"""
    return ConfigManager.get_instance(config_path)
