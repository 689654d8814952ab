"""Shared utilities: logging, paths, serialization."""
