"""Entry point: ``python -m api.main`` (from ``backend/``) or ``urgency-timer-api``."""

import uvicorn

from api.app import create_app
from api.core.config import get_settings

app = create_app()


def run() -> None:
    settings = get_settings()
    uvicorn.run(app, host=settings.host, port=settings.port, log_config=None)


if __name__ == "__main__":
    run()
