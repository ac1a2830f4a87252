"""HTTP server that drains in-flight requests before exiting."""

__version__ = "0.1.0"
