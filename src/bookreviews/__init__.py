"""Book catalog with reader reviews and consistent rating aggregates."""

__version__ = "0.1.0"
