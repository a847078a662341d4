# config.example.py

"""
Documentation-only module (safe to commit).

The real configuration is loaded from environment variables (optionally via a local .env file).
This file exists to make the repo self-documenting even without opening .env.example.
"""

ENV_VARS = {
    # App / logging
    "PLANNER_APP_NAME": "App display name (default: cadence-planner).",
    "PLANNER_LOG_LEVEL": "Console logging level (default: INFO).",
    # Calendar
    "PLANNER_TIMEZONE": "local | UTC | IANA name (Europe/Berlin) | fixed offset (+02:00). Default: local.",
    # Notifications
    "PLANNER_NOTIFICATIONS_AUTO_GRANT": "Grant notification permission on first request (true/false, default true).",
    "PLANNER_DISPATCH_INTERVAL_SECONDS": "How often due reminders are checked (default: 15).",
    "PLANNER_DISPATCH_RETRY_SECONDS": "Retry delay after a failed delivery (default: 60).",
    # Connectors
    "PLANNER_CONSOLE_ENABLED": "Run the interactive console (true/false, default true).",
    # Paths (gitignored)
    "PLANNER_DATA_DIR": "Local data directory (default: .local/planner).",
    "PLANNER_TASKS_DB_PATH": "TaskStore SQLite path (default: <data_dir>/tasks.sqlite3).",
    "PLANNER_PREFS_PATH": "Preferences JSON path (default: <data_dir>/preferences.json).",
}
