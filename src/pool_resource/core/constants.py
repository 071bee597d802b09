"""Constants and default values for pool-resource.

This module centralizes magic numbers, directory names and commit
conventions shared by the store, lock and resource layers.
"""

# ==================== POOL LAYOUT ====================

# Sub-directories of every pool; these names are part of the on-disk contract
UNCLAIMED_DIR: str = "unclaimed"
CLAIMED_DIR: str = "claimed"

# Descriptor files read from a caller-provided directory
NAME_FILE: str = "name"
METADATA_FILE: str = "metadata"

# ==================== RETRY DEFAULTS ====================

DEFAULT_RETRY_DELAY: float = 10.0  # Seconds between attempts
MAX_UNEXPECTED_ERRORS: int = 5  # Unexpected push failures before giving up

# ==================== GIT ====================

COMMIT_USER_NAME: str = "CI Pool Resource"
COMMIT_USER_EMAIL: str = "ci-pool@localhost"

# Appended to commit messages when downstream triggers should ignore them
SKIP_TRIGGER_MARKER: str = "[ci skip]"

# Timeouts (seconds) for git subprocesses
GIT_NETWORK_TIMEOUT: int = 300
GIT_LOCAL_TIMEOUT: int = 60

# ==================== LOGGING DEFAULTS ====================

LOG_FILE_MAX_BYTES: int = 10 * 1024 * 1024  # 10MB max per log file
LOG_FILE_BACKUP_COUNT: int = 5  # Number of backup log files to keep

# ==================== ENVIRONMENT ====================

RETRY_DELAY_ENV: str = "POOL_RETRY_DELAY"
LOG_DIR_ENV: str = "POOL_LOG_DIR"
