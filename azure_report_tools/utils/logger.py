"""Logging setup"""

import logging
from typing import Optional, Union

from rich.console import Console
from rich.logging import RichHandler

ROOT_LOGGER_NAME = "azure_report_tools"

_console = Console(stderr=True)


def setup_logger(name: str, level: Optional[Union[str, int]] = None) -> logging.Logger:
    """Return a named logger under the package root logger

    Handlers live on the root package logger only, so calling this for every
    class does not duplicate output.
    """
    if not name.startswith(ROOT_LOGGER_NAME):
        name = f"{ROOT_LOGGER_NAME}.{name}"
    logger = logging.getLogger(name)
    if level is not None:
        logger.setLevel(level)
    return logger


def setup_logging(
    verbose: bool = False,
    log_file: Optional[str] = None,
) -> logging.Logger:
    """Configure console (and optional file) logging for a CLI run"""
    root = logging.getLogger(ROOT_LOGGER_NAME)
    root.setLevel(logging.DEBUG if verbose else logging.INFO)

    for handler in root.handlers[:]:
        root.removeHandler(handler)

    console_handler = RichHandler(
        console=_console,
        show_path=verbose,
        rich_tracebacks=verbose,
        markup=False,
    )
    console_handler.setFormatter(logging.Formatter("%(message)s", datefmt="[%X]"))
    root.addHandler(console_handler)

    if log_file:
        file_handler = logging.FileHandler(log_file)
        file_handler.setFormatter(
            logging.Formatter('%(asctime)s - %(name)s - %(levelname)s - %(message)s')
        )
        root.addHandler(file_handler)

    # Azure SDK HTTP logging is noisy at INFO
    logging.getLogger("azure").setLevel(logging.DEBUG if verbose else logging.WARNING)

    if verbose:
        root.debug("Debug mode enabled - verbose logging active")
    return root
