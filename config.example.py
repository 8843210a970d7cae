# config.example.py

"""
Documentation-only module (safe to commit).

The real configuration is loaded from environment variables (optionally via a local .env file).
Do NOT commit real secrets (webhook URLs may carry tokens). Use a local, gitignored .env.

This file exists to make the repo self-documenting even without opening .env.example.
"""

ENV_VARS = {
    # App / logging
    "SAMPLEAPP_APP_NAME": "App display name (default: sampleapp).",
    "SAMPLEAPP_LOG_LEVEL": "Console logging level (default: INFO). The log file always gets DEBUG.",
    # Connectors
    "SAMPLEAPP_CONSOLE_ENABLED": "Run the interactive console (true/false, default: true).",
    # Paths (gitignored)
    "SAMPLEAPP_DATA_DIR": "Local data directory for logs (default: .local/sampleapp).",
    # Background task queue
    "SAMPLEAPP_TASK_QUEUE_CAPACITY": "Max buffered work items (default: 100, always bounded).",
    "SAMPLEAPP_TASK_QUEUE_OVERFLOW": "'wait' blocks producers when full, 'reject' raises (default: wait).",
    "SAMPLEAPP_SHUTDOWN_TIMEOUT_SECONDS": "How long shutdown waits for the in-flight item (default: 30).",
    "SAMPLEAPP_ITEM_TIMEOUT_SECONDS": "Per-item execution timeout, 0 disables (default: 0).",
    "SAMPLEAPP_ENQUEUE_TIMEOUT_SECONDS": "How long a console command waits for queue space before giving up (default: 10).",
    # Scheduler
    "SAMPLEAPP_HEARTBEAT_INTERVAL_SECONDS": "Heartbeat job interval, 0 disables (default: 0).",
    "SAMPLEAPP_HEARTBEAT_CRON": "Cron expression for the heartbeat job, e.g. '*/5 * * * *'; overrides the interval.",
    # Notifications
    "SAMPLEAPP_NOTIFY_WEBHOOK_URL": "POST notifications here as JSON; empty => log only.",
    "SAMPLEAPP_NOTIFY_TIMEOUT_SECONDS": "HTTP timeout for the webhook (default: 10).",
}
