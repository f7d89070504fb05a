"""Shared utilities: logging setup and timezone helpers."""
