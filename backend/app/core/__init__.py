"""Core choice engine: extraction, candidate generation, validation, scoring and integration."""
