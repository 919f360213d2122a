"""Time-blocking scheduling engine: recurrence, lifecycle, day layout and insights."""

__version__ = "1.0.0"
