"""A small framed RPC framework over TCP, with a greeting service and a connection pool."""

__version__ = "0.1.0"