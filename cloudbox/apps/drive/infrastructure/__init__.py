"""Adapters for external systems: object storage and file metadata."""
