"""HTTP server that reports recorded network bandwidth usage, with the storage supplied by the caller."""

__version__ = "0.1.0"