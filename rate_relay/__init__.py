"""USD-BRL rate relay: bounded upstream fetch, quote response, detached persistence."""

__version__ = "0.1.0"
