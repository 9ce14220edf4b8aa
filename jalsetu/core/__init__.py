"""Configuration, logging, errors, monitoring and retry helpers."""
