"""Schema and zero-knowledge query builder for verifiable credentials."""

__version__ = "0.1.0"
