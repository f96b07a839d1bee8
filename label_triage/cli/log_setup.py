"""Logging configuration for CLI runs."""

import logging

from rich.console import Console
from rich.logging import RichHandler

from ..config import parse_runner_debug


def configure_logging(verbose: bool = False, console: Console | None = None) -> None:
    """Route library logging through rich.

    Debug output is enabled by ``--verbose`` or by a CI runner started in
    debug mode. PyGithub and urllib3 stay at WARNING unless verbose.
    """
    debug = verbose or parse_runner_debug()
    level = logging.DEBUG if debug else logging.INFO

    root = logging.getLogger()
    for handler in list(root.handlers):
        if isinstance(handler, RichHandler):
            root.removeHandler(handler)

    handler = RichHandler(
        console=console or Console(stderr=True),
        show_path=debug,
        rich_tracebacks=True,
    )
    handler.setFormatter(logging.Formatter("%(name)s: %(message)s"))
    root.addHandler(handler)
    root.setLevel(level)

    for noisy in ("github", "urllib3"):
        logging.getLogger(noisy).setLevel(logging.DEBUG if verbose else logging.WARNING)
