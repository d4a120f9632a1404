"""
Entry point for running the gateway.

Usage:
    python -m gateway

Starts the FastAPI server on http://HOST:PORT (default 0.0.0.0:8080).
"""
import uvicorn
from logging_setup import setup_logging_from_env

from .config import get_config

if __name__ == "__main__":
    # LOG_LEVEL, LOG_FORMAT, LOG_PII
    setup_logging_from_env()

    config = get_config()
    uvicorn.run(
        "gateway.server:app",
        host=config.host,
        port=config.port,
        log_level="info"
    )
