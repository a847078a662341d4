"""
Task subsystem.

Components:
- task_models.py: data structures (Task, Category, Cadence + per-cadence table)
- calendar_utils.py: calendar period arithmetic
- task_store.py: SQLite-backed storage + predicate queries + change listeners
- task_visibility.py: which tasks each cadence view shows for a browsed date
- task_api.py: validated mutations that keep reminders in sync
"""
