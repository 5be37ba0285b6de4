#!/usr/bin/env python3
import logging
import sys
from dotenv import load_dotenv

from app.cli import run
from config.settings import get_app_config

logger = logging.getLogger(__name__)


def main() -> int:
    # Load environment variables
    load_dotenv()

    # Configure logging
    app_config = get_app_config()
    logging.basicConfig(
        level="DEBUG" if app_config["debug"] else app_config["log_level"].upper(),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )

    try:
        return run()
    except KeyboardInterrupt:
        logger.info("Interrupted by user")
        return 130
    except Exception as e:
        logger.error(f"An error occurred: {e}", exc_info=True)
        return 1


if __name__ == "__main__":
    sys.exit(main())
