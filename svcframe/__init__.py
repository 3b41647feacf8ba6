"""Health checks, route assembly, page templates, interceptors and connection helpers for web services."""

__version__ = "0.1.0"