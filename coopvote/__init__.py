"""Cooperative election portal: ballot casting and live tallying."""

__version__ = "0.1.0"
