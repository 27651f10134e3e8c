"""wattmon - hardware power monitoring with session-based energy accounting."""

__version__ = "0.1.0"

__all__ = ["__version__"]
