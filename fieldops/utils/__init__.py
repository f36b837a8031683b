"""Shared helpers: logging setup and secret redaction."""
