"""Folder/file hierarchy engine for the cloud drive."""
