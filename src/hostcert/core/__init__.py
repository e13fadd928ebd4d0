"""Shared enums and host helpers."""
