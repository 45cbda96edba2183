"""
Recurring Task Scheduling Engine

This package computes future occurrences for recurring household tasks,
materializes task instances without duplication and cascades to the next
instance when one is completed.

Layout:
- services: Pure recurrence library plus the scheduler and completion cascade
- routers / middleware: Authenticated HTTP surface
- models / schemas: SQLModel table and wire-level models
"""

__version__ = "1.0.0"
