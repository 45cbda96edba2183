"""Authentication middleware."""
