"""Route recommendation and live traffic/weather monitoring."""

__version__ = "0.1.0"
