"""quotagate: IP and token rate limiting for an HTTP service."""

__version__ = "0.1.0"
