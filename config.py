#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
Habit tracker client - configuration

All settings come from environment variables. Nothing is loaded at import
time; call ``load_config()`` once at process start and pass the result on.
"""

import os
import sys
import logging
from pathlib import Path
from typing import Optional, Dict, Any
from dataclasses import dataclass
from enum import Enum

import pytz

from models.enums import StoreBackend


class Environment(Enum):
    """Runtime environments"""
    DEVELOPMENT = "development"
    STAGING = "staging"
    PRODUCTION = "production"


class LogLevel(Enum):
    """Logging levels"""
    DEBUG = "DEBUG"
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"
    CRITICAL = "CRITICAL"


@dataclass
class StoreConfig:
    """Remote record store"""
    backend: StoreBackend = StoreBackend.LOCAL
    supabase_url: Optional[str] = None
    supabase_key: Optional[str] = None
    request_timeout: float = 10.0


@dataclass
class LocalConfig:
    """Directories on this installation"""
    data_dir: Path = Path("data")
    log_dir: Path = Path("logs")

    @property
    def settings_file(self) -> Path:
        return self.data_dir / "settings.json"

    @property
    def store_dir(self) -> Path:
        return self.data_dir / "store"


@dataclass
class RolloverConfig:
    """Calendar day boundaries and the midnight activation job"""
    timezone: str = "UTC"
    check_hour: int = 0
    check_minute: int = 1


@dataclass
class SessionConfig:
    """Auth session handling"""
    refresh_leeway_seconds: int = 60


class AppConfig:
    """Main configuration object"""

    def __init__(self, environ: Optional[Dict[str, str]] = None):
        self._environ = os.environ if environ is None else environ
        self.environment = Environment(self._get('ENVIRONMENT', 'development'))
        self._load_config()
        self._validate_config()

    def _get(self, key: str, default: Optional[str] = None) -> Optional[str]:
        return self._environ.get(key, default)

    def _load_config(self):
        """Read every section from the environment"""

        self.store = StoreConfig(
            backend=StoreBackend(self._get('STORE_BACKEND', 'local').lower()),
            supabase_url=self._get('SUPABASE_URL'),
            supabase_key=self._get('SUPABASE_KEY'),
            request_timeout=float(self._get('STORE_TIMEOUT', 10))
        )

        self.local = LocalConfig(
            data_dir=Path(self._get('DATA_DIR', 'data')),
            log_dir=Path(self._get('LOG_DIR', 'logs'))
        )

        self.rollover = RolloverConfig(
            timezone=self._get('TIMEZONE', 'UTC'),
            check_hour=int(self._get('ROLLOVER_HOUR', 0)),
            check_minute=int(self._get('ROLLOVER_MINUTE', 1))
        )

        self.session = SessionConfig(
            refresh_leeway_seconds=int(self._get('SESSION_REFRESH_LEEWAY', 60))
        )

        # Logging
        self.log_level = LogLevel(self._get('LOG_LEVEL', 'INFO').upper())
        self.log_to_file = self._get('LOG_TO_FILE', 'true').lower() == 'true'
        self.log_format = self._get(
            'LOG_FORMAT',
            '%(asctime)s [%(levelname)s] %(name)s: %(message)s'
        )

    def _validate_config(self):
        """Collect every problem and fail once"""
        errors = []

        if self.store.backend == StoreBackend.SUPABASE:
            if not self.store.supabase_url:
                errors.append("SUPABASE_URL is required for the supabase backend")
            elif not self.store.supabase_url.startswith(('http://', 'https://')):
                errors.append("SUPABASE_URL must be an http(s) URL")
            if not self.store.supabase_key:
                errors.append("SUPABASE_KEY is required for the supabase backend")

        if self.store.request_timeout <= 0:
            errors.append("STORE_TIMEOUT must be positive")

        if self.rollover.timezone not in pytz.all_timezones_set:
            errors.append(f"Unknown TIMEZONE {self.rollover.timezone}")

        if not 0 <= self.rollover.check_hour <= 23:
            errors.append("ROLLOVER_HOUR must be within 0-23")
        if not 0 <= self.rollover.check_minute <= 59:
            errors.append("ROLLOVER_MINUTE must be within 0-59")

        if self.session.refresh_leeway_seconds < 0:
            errors.append("SESSION_REFRESH_LEEWAY must not be negative")

        if errors:
            raise ValueError("Configuration errors:\n" + "\n".join(f"• {error}" for error in errors))

    def ensure_directories(self):
        """Create the data and log directories"""
        for directory in [self.local.data_dir, self.local.store_dir, self.local.log_dir]:
            directory.mkdir(parents=True, exist_ok=True)

    def get_logging_config(self) -> Dict[str, Any]:
        """Config dict for logging.config.dictConfig"""
        handlers = ['console']
        if self.log_to_file:
            handlers.append('file')

        config = {
            'version': 1,
            'disable_existing_loggers': False,
            'formatters': {
                'default': {
                    'format': self.log_format,
                    'datefmt': '%Y-%m-%d %H:%M:%S'
                }
            },
            'handlers': {
                'console': {
                    'class': 'logging.StreamHandler',
                    'level': self.log_level.value,
                    'formatter': 'default',
                    'stream': sys.stderr
                }
            },
            'loggers': {
                '': {
                    'level': self.log_level.value,
                    'handlers': handlers,
                    'propagate': False
                },
                'aiohttp': {
                    'level': 'WARNING',
                    'handlers': handlers,
                    'propagate': False
                },
                'apscheduler': {
                    'level': 'WARNING',
                    'handlers': handlers,
                    'propagate': False
                }
            }
        }

        if self.log_to_file:
            config['handlers']['file'] = {
                'class': 'logging.handlers.RotatingFileHandler',
                'level': self.log_level.value,
                'formatter': 'default',
                'filename': str(self.local.log_dir / f"habits_{self.environment.value}.log"),
                'maxBytes': 10485760,  # 10MB
                'backupCount': 5,
                'encoding': 'utf-8'
            }

        return config

    def to_dict(self) -> Dict[str, Any]:
        """Config summary with secrets hidden"""
        return {
            'environment': self.environment.value,
            'store': {
                'backend': self.store.backend.value,
                'supabase_url': self.store.supabase_url,
                'supabase_key': (self.store.supabase_key[:6] + "...") if self.store.supabase_key else None,
                'request_timeout': self.store.request_timeout
            },
            'data_dir': str(self.local.data_dir),
            'timezone': self.rollover.timezone,
            'log_level': self.log_level.value
        }


def load_config(environ: Optional[Dict[str, str]] = None) -> AppConfig:
    """Build the configuration, logging what was picked up"""
    config = AppConfig(environ)
    logging.getLogger(__name__).debug(f"⚙️ Configuration loaded: {config.to_dict()}")
    return config


__all__ = [
    'AppConfig',
    'load_config',
    'Environment',
    'LogLevel',
    'StoreConfig',
    'LocalConfig',
    'RolloverConfig',
    'SessionConfig'
]
