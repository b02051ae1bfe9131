"""
LINE FAQ Bridge - webhook entry point

Receives LINE messages, answers from the FAQ catalog and/or an LLM,
hands off to human staff on request.

Run locally:
    python app.py
    uvicorn app:app --port 3000
"""

import logging
import os

import config
from linebridge.api import create_app

logging.basicConfig(
    level=config.LOG_LEVEL,
    format="%(asctime)s - %(levelname)s - %(name)s - %(message)s"
)
logger = logging.getLogger(__name__)

app = create_app()


def run():
    import uvicorn
    logger.info(f"Server running on port {config.PORT}")
    uvicorn.run("app:app", host="0.0.0.0", port=config.PORT, reload=bool(int(os.environ.get("RELOAD", "0"))))


if __name__ == "__main__":
    run()
