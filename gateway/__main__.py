"""
Sync gateway - main entry point.

Usage:
    python -m gateway

Configuration is entirely via environment variables.
See gateway/config.py and tasksync/sync_policy/config.py.
"""

import uvicorn

from .config import Settings


def main() -> None:
    settings = Settings()
    # Logging is configured by the app on startup.
    uvicorn.run("gateway.app:app", host=settings.host, port=settings.port, log_config=None)


if __name__ == "__main__":
    main()
