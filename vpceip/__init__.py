"""vpceip — Elastic IP resource adapter for the VPC v1 API."""

__version__ = "0.1.0"
