"""Building blocks for mediating virtual input devices between a Linux host and its containers."""

__version__ = "0.3.2"