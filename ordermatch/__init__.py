"""Price-time priority order matching engine with an HTTP API and a WebSocket server."""

__version__ = "0.1.0"
__all__ = ["__version__"]