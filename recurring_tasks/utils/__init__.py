"""Utility helpers: logging and metrics."""
