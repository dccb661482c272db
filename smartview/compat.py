# -*- encoding: utf-8 -*-
"""Standard library imports shared across the client"""

from configparser import ConfigParser
from urllib.error import HTTPError, URLError
from urllib.request import Request, urlopen

__all__ = [
    "ConfigParser",
    "HTTPError",
    "URLError",
    "Request",
    "urlopen",
    "to_str",
    "to_bytes",
]


def to_str(b):
    """Decode provider bytes for display"""
    if isinstance(b, bytes):
        return b.decode("utf-8", errors="replace")
    return str(b)


def to_bytes(s):
    """Convert string to UTF-8 encoded bytes"""
    if isinstance(s, bytes):
        return s
    return str(s).encode("utf-8")
