"""venuepulse: venue activity prediction and validation feedback service."""

__version__ = "1.0.0"
