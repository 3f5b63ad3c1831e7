"""Hotel room-inventory availability and reservation booking core."""

__version__ = "0.1.0"
