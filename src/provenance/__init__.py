"""Product provenance registry: deterministic record engine for product origin claims."""

__version__ = "0.1.0"
