"""Version information for md-reader."""

__version__ = "0.1.0"
