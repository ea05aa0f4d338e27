"""Core errors and logging helpers."""
