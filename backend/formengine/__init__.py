"""Form generation and government-portal field-mapping engine."""

__version__ = "1.0.0"
