"""AWS provider implementations."""

from .dns import DNS

__all__ = [
    "DNS",
]
