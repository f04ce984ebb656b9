"""Real-time container log streaming client."""

__version__ = "0.1.0"
