"""Run the API server: ``python -m marginalia``."""

import uvicorn

from marginalia.config import get_settings


def main() -> None:
    """Start uvicorn with the configured host and port."""
    settings = get_settings()
    uvicorn.run(
        "marginalia.main:app",
        host=settings.api_host,
        port=settings.api_port,
        reload=settings.api_reload,
        log_config=None,
    )


if __name__ == "__main__":
    main()
