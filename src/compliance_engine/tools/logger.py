import logging
import sys
from typing import Optional

LOG_FORMAT = "%(asctime)s | %(level_style)s | %(name)s | %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

# ANSI color codes (only applied when output is a TTY)
RESET = "\033[0m"
BOLD = "\033[1m"
DIM = "\033[2m"
SEA_GREEN = "\033[38;5;72m"
BROWN = "\033[38;5;94m"
BLOOD_RED = "\033[38;5;124m"
CYAN = "\033[36m"

# Level -> (level_color, marker)
LEVEL_STYLES = {
    logging.DEBUG: (DIM + CYAN, "·"),
    logging.INFO: (SEA_GREEN, "i"),
    logging.WARNING: (BROWN, "!"),
    logging.ERROR: (BLOOD_RED + BOLD, "x"),
    logging.CRITICAL: (BLOOD_RED + BOLD, "X"),
}


class ColoredFormatter(logging.Formatter):
    """
    Formatter that colours the level label.
    Disables colours when stderr is not a TTY (e.g. in CI or pipes).
    """

    def __init__(
        self,
        fmt: Optional[str] = None,
        datefmt: Optional[str] = None,
        use_color: Optional[bool] = None,
    ):
        super().__init__(fmt=fmt or LOG_FORMAT, datefmt=datefmt or DATE_FORMAT)
        if use_color is None:
            use_color = hasattr(sys.stderr, "isatty") and sys.stderr.isatty()
        self.use_color = use_color

    def format(self, record: logging.LogRecord) -> str:
        if self.use_color and record.levelno in LEVEL_STYLES:
            level_color, marker = LEVEL_STYLES[record.levelno]
            record.level_style = f"{marker} {level_color}{record.levelname:<8}{RESET}"
        else:
            record.level_style = f"{record.levelname:<10}"
        return super().format(record)


def setup_logger(name: str, level: int = logging.INFO) -> logging.Logger:
    """
    Create a console logger writing to stderr.

    stdout stays reserved for CLI JSON output and MCP stdio JSON-RPC.

    Example:
        >>> logger = setup_logger("compliance-engine")
        >>> logger.info("ready")
    """
    logger = logging.getLogger(name)
    logger.setLevel(level)

    # Prevent duplicate handlers
    if logger.handlers:
        return logger

    console_handler = logging.StreamHandler(sys.stderr)
    console_handler.setFormatter(ColoredFormatter())
    console_handler.setLevel(level)

    logger.addHandler(console_handler)
    logger.propagate = False

    return logger
