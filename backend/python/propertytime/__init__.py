"""Property time submission backend."""

__version__ = '1.4.0'
