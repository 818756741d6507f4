"""deprepair - fix declared Maven dependencies to match actual usage."""

__version__ = "0.1.0"
