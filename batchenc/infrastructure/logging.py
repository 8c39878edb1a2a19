import logging
from pathlib import Path
from typing import Optional
from rich.console import Console
from rich.logging import RichHandler

DEFAULT_LOG_NAME = "batchenc.log"

def setup_logging(log_path: Path, debug: bool = False, console: Optional[Console] = None) -> logging.Logger:
    """
    Setup logging configuration for batchenc.

    Always logs to log_path. When a console is given, records are also rendered
    through rich so they interleave with the progress bars.

    Args:
        log_path: Path to the log file (parent directories are created)
        debug: If True, enable DEBUG level logging
        console: Optional rich Console for interactive output
    """
    log_file = Path(log_path)
    log_file.parent.mkdir(parents=True, exist_ok=True)

    level = logging.DEBUG if debug else logging.INFO

    handlers: list = [logging.FileHandler(log_file)]
    handlers[0].setFormatter(logging.Formatter('%(asctime)s - %(levelname)s - %(message)s'))
    if console is not None:
        handlers.append(RichHandler(console=console, show_path=False, markup=False))

    logging.basicConfig(
        level=level,
        format='%(message)s',
        handlers=handlers,
        force=True  # Override any existing configuration
    )

    logger = logging.getLogger(__name__)
    logger.debug(f"Logging initialized: {log_file} (debug={'ON' if debug else 'OFF'})")

    return logger
