"""Configuration management for EIP failover"""

import os
import re
import yaml
from pathlib import Path
from typing import Any, Dict, Optional
from .exceptions import ConfigError

_DURATION_RE = re.compile(r"^(\d+(?:\.\d+)?)(ms|s|m|h)$")
_DURATION_UNITS = {"ms": 0.001, "s": 1, "m": 60, "h": 3600}


def parse_duration(value: str) -> float:
    """
    Convert a Consul duration string such as ``15s`` or ``1m`` to seconds

    Raises:
        ConfigError: If the value is not a valid duration
    """
    match = _DURATION_RE.match(str(value).strip())
    if not match:
        raise ConfigError(f"Invalid duration '{value}'. Expected e.g. '15s', '1m'")
    amount, unit = match.groups()
    return float(amount) * _DURATION_UNITS[unit]


class Config:
    """Configuration manager for EIP failover"""

    DEFAULT_LOG_LEVEL = "INFO"
    DEFAULT_CONFIG_PATH = "/etc/eip-failover/config.yaml"
    DEFAULT_CONSUL_ADDRESS = "http://127.0.0.1:8500"
    DEFAULT_SESSION_TTL = "15s"
    DEFAULT_LOCK_DELAY = "15s"
    DEFAULT_RETRY_INTERVAL = 3.0
    DEFAULT_EMPTY_BACKOFF = 3.0
    DEFAULT_METADATA_TIMEOUT = 5.0
    DEFAULT_REQUEST_TIMEOUT = 10.0

    # Consul rejects session TTLs outside this range
    MIN_SESSION_TTL = 10
    MAX_SESSION_TTL = 86400

    def __init__(self, config_path: Optional[str] = None):
        """
        Initialize configuration from file

        The file is optional only at the default location; an explicitly
        given path must exist.

        Args:
            config_path: Path to YAML configuration file

        Raises:
            ConfigError: If configuration is invalid or missing
        """
        self.config_path = config_path or self.DEFAULT_CONFIG_PATH
        self._config = self._load_config()
        self._validate()

    def _load_config(self) -> Dict[str, Any]:
        """Load configuration from YAML file"""
        config_file = Path(self.config_path)

        if not config_file.exists():
            if self.config_path != self.DEFAULT_CONFIG_PATH:
                raise ConfigError(f"Config file not found: {self.config_path}")
            return {}

        try:
            with open(config_file, 'r') as f:
                config = yaml.safe_load(f)
        except yaml.YAMLError as e:
            raise ConfigError(f"Invalid YAML in config file: {e}")
        except OSError as e:
            raise ConfigError(f"Failed to read config file: {e}")

        if config is None:
            return {}
        if not isinstance(config, dict):
            raise ConfigError("Config file must contain a mapping")
        return config

    def _validate(self):
        """Validate configuration values"""
        log_level = str(self._config.get('log_level', self.DEFAULT_LOG_LEVEL))
        valid_levels = ['DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL']
        if log_level.upper() not in valid_levels:
            raise ConfigError(
                f"Invalid log_level '{log_level}'. Must be one of: {', '.join(valid_levels)}"
            )

        ttl = parse_duration(self.session_ttl)
        if not self.MIN_SESSION_TTL <= ttl <= self.MAX_SESSION_TTL:
            raise ConfigError(
                f"session_ttl must be between {self.MIN_SESSION_TTL}s "
                f"and {self.MAX_SESSION_TTL}s, got '{self.session_ttl}'"
            )
        parse_duration(self.lock_delay)

        for name in ('retry_interval', 'empty_backoff', 'metadata_timeout',
                     'request_timeout', 'renew_interval'):
            if getattr(self, name) <= 0:
                raise ConfigError(f"{name} must be positive")

        if self.renew_interval >= ttl:
            raise ConfigError(
                f"renew_interval ({self.renew_interval}s) must be shorter than "
                f"session_ttl ({self.session_ttl})"
            )

        timeout = self.acquire_timeout
        if timeout is not None and timeout <= 0:
            raise ConfigError("acquire_timeout must be positive")

    def _number(self, key: str, default: Optional[float]) -> Optional[float]:
        value = self._config.get(key, default)
        if value is None:
            return None
        try:
            return float(value)
        except (TypeError, ValueError):
            raise ConfigError(f"Invalid value for {key}: {value!r}")

    @property
    def consul_address(self) -> str:
        """Get Consul HTTP API address"""
        address = (
            self._config.get('consul_address')
            or os.environ.get('CONSUL_HTTP_ADDR')
            or self.DEFAULT_CONSUL_ADDRESS
        )
        if "://" not in address:
            address = f"http://{address}"
        return address.rstrip('/')

    @property
    def consul_token(self) -> Optional[str]:
        """Get Consul ACL token"""
        return self._config.get('consul_token') or os.environ.get('CONSUL_HTTP_TOKEN')

    @property
    def consul_datacenter(self) -> Optional[str]:
        return self._config.get('consul_datacenter')

    @property
    def session_ttl(self) -> str:
        """Get Consul session TTL as a duration string"""
        return str(self._config.get('session_ttl', self.DEFAULT_SESSION_TTL))

    @property
    def lock_delay(self) -> str:
        return str(self._config.get('lock_delay', self.DEFAULT_LOCK_DELAY))

    @property
    def retry_interval(self) -> float:
        """Seconds to wait after every slot was found contended"""
        return self._number('retry_interval', self.DEFAULT_RETRY_INTERVAL)

    @property
    def empty_backoff(self) -> float:
        """Seconds to wait when the directory is empty"""
        return self._number('empty_backoff', self.DEFAULT_EMPTY_BACKOFF)

    @property
    def acquire_timeout(self) -> Optional[float]:
        """Deadline for slot acquisition in seconds, None blocks forever"""
        return self._number('acquire_timeout', None)

    @property
    def renew_interval(self) -> float:
        """Seconds between session renewals while holding the lock"""
        return self._number('renew_interval', parse_duration(self.session_ttl) / 2)

    @property
    def metadata_timeout(self) -> float:
        return self._number('metadata_timeout', self.DEFAULT_METADATA_TIMEOUT)

    @property
    def request_timeout(self) -> float:
        return self._number('request_timeout', self.DEFAULT_REQUEST_TIMEOUT)

    @property
    def log_file(self) -> Optional[str]:
        """Get log file path"""
        return self._config.get('log_file')

    @property
    def log_level(self) -> str:
        """Get log level"""
        return str(self._config.get('log_level', self.DEFAULT_LOG_LEVEL)).upper()

    def to_dict(self) -> Dict[str, Any]:
        """Export configuration as dictionary (excluding sensitive data)"""
        return {
            'consul_address': self.consul_address,
            'consul_datacenter': self.consul_datacenter,
            'session_ttl': self.session_ttl,
            'lock_delay': self.lock_delay,
            'retry_interval': self.retry_interval,
            'empty_backoff': self.empty_backoff,
            'acquire_timeout': self.acquire_timeout,
            'renew_interval': self.renew_interval,
            'log_file': self.log_file,
            'log_level': self.log_level,
            'has_consul_token': bool(self.consul_token),
        }
