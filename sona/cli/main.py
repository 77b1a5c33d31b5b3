"""
Process entry point for the `sona` command.
"""

import logging
import os
import sys
import traceback
from datetime import datetime
from pathlib import Path

from dotenv import load_dotenv

from sona.cli.commands import app
from sona.core.binaries import extend_path
from sona.core.constants import APP_VERSION, EXTRA_PATH_DIRS, LOG_PATH

logger = logging.getLogger("sona")


def setup_logging(log_file: Path = LOG_PATH, level: int = logging.INFO):
    """Log to ~/.sona/sona.log; the terminal only gets the CLI's own output."""
    log_file.parent.mkdir(parents=True, exist_ok=True)
    logging.basicConfig(
        level=level,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        handlers=[
            logging.FileHandler(log_file, encoding="utf-8"),
        ],
    )


def main():
    # .env in the working directory, if present
    load_dotenv()

    # Shells launched without a profile miss Homebrew and ~/bin
    extend_path(EXTRA_PATH_DIRS)

    try:
        setup_logging()
    except OSError as e:
        print(f"Warning: could not open log file {LOG_PATH}: {e}", file=sys.stderr)

    logger.info("sona v%s starting at %s", APP_VERSION, datetime.now().isoformat())
    logger.info("argv: %s", sys.argv[1:])
    logger.debug("PATH: %s", os.environ.get("PATH", ""))

    try:
        app()
    except Exception as e:
        error_msg = f"{type(e).__name__}: {e}"
        logger.critical("Fatal error: %s\n%s", error_msg, traceback.format_exc())
        print(f"Fatal error: {error_msg}\nCheck logs at: {LOG_PATH}", file=sys.stderr)
        sys.exit(1)


if __name__ == "__main__":
    main()
