"""Shared infrastructure: logging, configuration, errors and persistence."""
