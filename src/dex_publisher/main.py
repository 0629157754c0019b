from __future__ import annotations
import logging
import uvicorn
from dex_publisher.infrastructure.config import get_settings

def main() -> None:
    """Serve the DEX publisher API with uvicorn."""
    settings = get_settings()
    logging.basicConfig(
        level=settings.log_level.upper(),
        format="%(asctime)s  %(levelname)-8s  %(name)s  %(message)s",
    )
    # httpx logs every request line at INFO.
    logging.getLogger("httpx").setLevel(logging.WARNING)
    if settings.github_token is None:
        logging.getLogger(__name__).warning(
            "GITHUB_TOKEN is not set; publishing will fail with 401/403"
        )
    uvicorn.run(
        "dex_publisher.interface.app:create_app",
        factory=True,
        host=settings.host,
        port=settings.port,
        log_level=settings.log_level.lower(),
    )


if __name__ == "__main__":
    main()
