"""Run the API with uvicorn: ``python -m hotel_genie.api``."""
from __future__ import annotations

import uvicorn

from hotel_genie.config.settings import Settings

from .app import create_app


def main() -> None:
    settings = Settings()
    uvicorn.run(create_app(settings), host=settings.api_host, port=settings.api_port, log_config=None)


if __name__ == "__main__":
    main()
