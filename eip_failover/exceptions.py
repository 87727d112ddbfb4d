"""Custom exceptions for EIP failover

Every exception derived from EIPFailoverError is fatal for a failover run
and is turned into a non-zero exit code by the CLI. Expected conditions
(lock contention, a failed disassociation) never surface as exceptions.
"""


class EIPFailoverError(Exception):
    """Base exception for EIP failover errors"""
    pass


class ConfigError(EIPFailoverError):
    """Exception raised for configuration errors"""
    pass


class MetadataError(EIPFailoverError):
    """Exception raised for instance metadata errors"""
    pass


class CoordinationError(EIPFailoverError):
    """Exception raised for Consul errors other than lock contention"""
    pass


class LockLostError(CoordinationError):
    """Exception raised when the session backing a held lock is gone"""
    pass


class SlotAcquisitionTimeout(CoordinationError):
    """Exception raised when no slot could be locked before the deadline"""
    pass


class EC2APIError(EIPFailoverError):
    """Exception raised for EC2 API errors"""
    pass


class StaleAllocationError(EC2APIError):
    """Exception raised when a directory entry names an unknown allocation ID"""
    pass
