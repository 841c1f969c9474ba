"""Server-level constants."""
