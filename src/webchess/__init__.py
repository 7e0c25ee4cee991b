"""Chess rules engine, move search and game API for the browser client."""

__version__ = "0.1.0"
