# config.example.py

"""
Documentation-only module (safe to commit).

The real configuration is loaded from environment variables (optionally via a local .env file).
Do NOT commit real secrets (API token, password). Keep them in .env (local, gitignored).

This file exists to make the repo self-documenting even without opening .env.example.
"""

ENV_VARS = {
    # App / logging
    "TASKBELL_APP_NAME": "App display name, also used as the desktop notification app name (default: taskbell).",
    "TASKBELL_LOG_LEVEL": "Console logging level (default: INFO). The log file always gets DEBUG.",
    "TASKBELL_CONSOLE_ENABLED": "Run the interactive console (true/false). Off => just wait for reminders.",
    # Persistence
    "TASKBELL_BACKEND": "Task persistence backend: sqlite (default) or http.",
    "TASKBELL_API_BASE_URL": "REST backend base URL (default: http://localhost:3001/api).",
    "TASKBELL_API_TOKEN": "Bearer token for the REST backend (skips login).",
    "TASKBELL_API_EMAIL": "Login email for the REST backend (used when no token is set).",
    "TASKBELL_API_PASSWORD": "Login password for the REST backend.",
    "TASKBELL_HTTP_TIMEOUT_SECONDS": "HTTP request timeout (default: 10).",
    "TASKBELL_LOCAL_USER": "Owner key for the SQLite backend (default: local).",
    # Paths (gitignored)
    "TASKBELL_DATA_DIR": "Local data directory (default: .local/taskbell). Holds taskbell.log.",
    "TASKBELL_TASKS_DB_PATH": "SQLite task database (default: <data_dir>/tasks.sqlite3).",
    "TASKBELL_PREFS_PATH": "Preferences JSON: permission answer, banner dismissal (default: <data_dir>/prefs.json).",
    # Notifications
    "TASKBELL_NATIVE_NOTIFICATIONS": "Allow desktop notifications at all (true/false).",
    "TASKBELL_REQUIRE_INTERACTION": "Desktop notifications stay open until answered (default: true).",
    "TASKBELL_NATIVE_DISMISS_SECONDS": "Auto-close for desktop notifications when interaction is not required (default: 10).",
    "TASKBELL_TOAST_DISMISS_SECONDS": "In-app toast auto-dismiss (default: 5).",
    "TASKBELL_SNOOZE_MINUTES": "Snooze duration offered on reminders (default: 5).",
    # Audio cue
    "TASKBELL_SOUND_ENABLED": "Play a short tone when a reminder fires (true/false).",
    "TASKBELL_SOUND_FREQUENCY_HZ": "Tone frequency (default: 800).",
    "TASKBELL_SOUND_DURATION_SECONDS": "Tone length (default: 0.5).",
    "TASKBELL_SOUND_VOLUME": "Starting gain 0..1 (default: 0.3).",
}
