"""Recurring task services."""
