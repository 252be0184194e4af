"""Run the API with uvicorn: ``python -m downloader``."""

import logging

import uvicorn

from downloader.core.config import get_settings


def main() -> None:
    settings = get_settings()
    logging.basicConfig(
        level=settings.log_level.upper(),
        format="%(asctime)s %(levelname)s %(name)s %(message)s",
    )
    logging.getLogger(__name__).info("app.listening host=%s port=%s", settings.host, settings.port)
    uvicorn.run(
        "downloader.main:create_app",
        factory=True,
        host=settings.host,
        port=settings.port,
        log_config=None,
    )


if __name__ == "__main__":
    main()
