"""Zone 2 heart rate monitor."""

__version__ = "0.1.0"
