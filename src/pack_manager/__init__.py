"""Pack Manager API — manifest graph and background operation tracking service."""

__version__ = "0.1.0"
