"""memberhub entrypoint.

Run with:
  python -m memberhub
"""
from __future__ import annotations

import uvicorn

from memberhub.core.config import get_settings
from memberhub.core.logging_config import configure_logging


def main() -> None:
    settings = get_settings()
    configure_logging(settings.log_level)
    uvicorn.run(
        "memberhub.main:create_app",
        factory=True,
        host=settings.host,
        port=settings.port,
        log_level=settings.log_level.lower(),
    )


if __name__ == "__main__":
    main()
