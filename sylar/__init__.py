"""Byte buffers, socket addresses, typed configuration, descriptor tracking and HTTP messages for network servers."""

__version__ = "0.1.0"
__all__ = ["address", "bytearray", "config", "fdmanager", "http"]