"""Policy-driven compliance evaluation for AWS security groups."""

__version__ = "0.1.0"
