"""Shared infrastructure: configuration, logging, paths and file access."""
