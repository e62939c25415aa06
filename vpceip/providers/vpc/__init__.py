"""VPC v1 provider — Elastic IP and bandwidth management."""

from .adapter import VpcEIPAdapter
from .client import VpcClientProvider

__all__ = ["VpcEIPAdapter", "VpcClientProvider"]
