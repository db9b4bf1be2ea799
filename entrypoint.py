import uvicorn
import os
from logging_config import setup_logging

# Setup logging before importing app
log_level = os.getenv("LOG_LEVEL", "INFO")
log_file = os.getenv("LOG_FILE", None)
setup_logging(log_level=log_level, log_file=log_file)

from app import app  # noqa: E402
from constants import HOST, PORT  # noqa: E402
from logging_config import get_logger  # noqa: E402

logger = get_logger(__name__)


def main():
    logger.info(f"Starting Secure Link Manager on {HOST}:{PORT}")
    uvicorn.run(app, host=HOST, port=PORT)


if __name__ == "__main__":
    main()
