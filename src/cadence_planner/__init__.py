"""Personal task planner: daily/weekly/monthly cadences, deadline promotion and local reminders."""

__version__ = "0.1.0"
