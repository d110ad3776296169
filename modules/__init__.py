"""Configuration parsing modules for the print server."""

__all__ = [
    "directives",
    "privacy_policy",
    "privacy_tables",
    "queue_attributes",
]
