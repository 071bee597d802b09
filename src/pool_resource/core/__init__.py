"""Core module - Foundation components with no internal dependencies.

This module provides the basic building blocks used throughout the application:
- Version information
- Custom exceptions
- Configuration dataclasses
- Constants and defaults
- Build identity for commit messages
"""

from pool_resource.core.version import __version__

from pool_resource.core.exceptions import (
    PoolResourceError,
    ConfigurationError,
    RequestValidationError,
    DescriptorError,
    NoLocksAvailableError,
    StoreError,
    StoreSetupError,
    TooManyUnexpectedErrorsError,
    LockNoLongerAcquiredError,
)

from pool_resource.core.config import (
    RetryConfig,
    GitConfigEntry,
    Source,
    OutParams,
    parse_duration,
    effective_retry_delay,
)

from pool_resource.core.constants import (
    UNCLAIMED_DIR,
    CLAIMED_DIR,
    NAME_FILE,
    METADATA_FILE,
    DEFAULT_RETRY_DELAY,
    MAX_UNEXPECTED_ERRORS,
    SKIP_TRIGGER_MARKER,
)

from pool_resource.core.identity import BuildIdentity

__all__ = [
    # Version
    '__version__',
    # Exceptions
    'PoolResourceError',
    'ConfigurationError',
    'RequestValidationError',
    'DescriptorError',
    'NoLocksAvailableError',
    'StoreError',
    'StoreSetupError',
    'TooManyUnexpectedErrorsError',
    'LockNoLongerAcquiredError',
    # Config dataclasses
    'RetryConfig',
    'GitConfigEntry',
    'Source',
    'OutParams',
    'parse_duration',
    'effective_retry_delay',
    # Constants
    'UNCLAIMED_DIR',
    'CLAIMED_DIR',
    'NAME_FILE',
    'METADATA_FILE',
    'DEFAULT_RETRY_DELAY',
    'MAX_UNEXPECTED_ERRORS',
    'SKIP_TRIGGER_MARKER',
    # Identity
    'BuildIdentity',
]
