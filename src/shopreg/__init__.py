"""In-memory user and order registry services."""

__version__ = "1.0.0"
