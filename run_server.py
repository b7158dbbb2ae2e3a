#!/usr/bin/env python3
"""
chatgate server launcher
Runs the FastAPI chat gateway under uvicorn
"""
import os
import sys

# Fix encoding issues on servers with ASCII locale
os.environ.setdefault('PYTHONIOENCODING', 'utf-8')
os.environ.setdefault('LANG', 'en_US.UTF-8')

import logging
import uvicorn
from chatgate.config import settings

logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)


def main():
    if not settings.openai_api_key:
        logger.error("OPENAI_API_KEY is not set; refusing to start")
        raise SystemExit(1)

    logger.info("Starting chatgate...")
    logger.info(f"Python {sys.version}, encoding={sys.getdefaultencoding()}")
    logger.info(f"HTTP server will run on http://{settings.host}:{settings.port}")

    uvicorn.run(
        "chatgate.main:app",
        host=settings.host,
        port=settings.port,
        log_level="info",
    )


if __name__ == "__main__":
    main()
