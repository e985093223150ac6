"""Configuration, errors, result type and scheduling."""
