"""Domain-level error types shared across the fusion engine."""
