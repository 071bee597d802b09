"""Version information for pool-resource."""

__version__ = "1.4.0"
