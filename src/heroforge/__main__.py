from pathlib import Path
import logging
import os
import sys

from dotenv import load_dotenv
from rich.logging import RichHandler

# Ensure the src directory is on sys.path when running as a script
_SRC_DIR = Path(__file__).resolve().parents[1]
if str(_SRC_DIR) not in sys.path:
    sys.path.insert(0, str(_SRC_DIR))

from heroforge.presentation.cli import run_cli

load_dotenv()


def _configure_logging() -> None:
    level = os.getenv("HEROFORGE_LOG_LEVEL", "WARNING").strip().upper() or "WARNING"
    logging.basicConfig(
        level=getattr(logging, level, logging.WARNING),
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(rich_tracebacks=True, show_path=False)],
    )


def main(argv=None) -> int:
    _configure_logging()
    try:
        return run_cli(argv)
    except KeyboardInterrupt:
        print("\nSession ended.")
        return 130


if __name__ == "__main__":
    raise SystemExit(main())
