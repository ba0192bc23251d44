"""Main entry point for the AI Translator API."""

import logging

import uvicorn
from src.ai_translator.config import get_settings

logger = logging.getLogger("ai_translator")


def main():
    """Run the translation API server."""
    settings = get_settings()
    logging.basicConfig(
        level=settings.log_level.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    logger.info("Server will run on http://%s:%s", settings.api_host, settings.api_port)
    logger.info("API Documentation available at http://%s:%s/docs", settings.api_host, settings.api_port)

    uvicorn.run(
        "src.ai_translator.api.main:app",
        host=settings.api_host,
        port=settings.api_port,
        reload=settings.debug,
        log_level=settings.log_level.lower()
    )


if __name__ == "__main__":
    main()
