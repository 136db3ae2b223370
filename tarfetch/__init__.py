"""TCP file server, mirror and client that search a directory tree and deliver matches as tar.gz archives."""

__version__ = "0.1.0"