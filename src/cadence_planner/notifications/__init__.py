"""
Notification subsystem.

Components:
- notification_models.py: triggers, requests, authorization status
- notification_scheduler.py: deadline + recurring reminder policy
- notification_center.py: in-process center + delivery loop
- preferences.py: JSON-backed user preferences
- background.py: thread hosting the asyncio loop for the console app
"""
