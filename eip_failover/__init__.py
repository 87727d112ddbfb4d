"""
EIP Failover Package

Elects one instance of a fleet owner of each Elastic IP in a pool, using
Consul session locks, and binds the address to it.
"""

__version__ = "1.0.0"

from .failover import EIPFailover
from .config import Config
from .exceptions import EIPFailoverError, EC2APIError, CoordinationError, ConfigError

__all__ = [
    "EIPFailover",
    "Config",
    "EIPFailoverError",
    "EC2APIError",
    "CoordinationError",
    "ConfigError",
]
