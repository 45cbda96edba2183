"""Pydantic schemas for recurrence patterns and the HTTP surface."""
