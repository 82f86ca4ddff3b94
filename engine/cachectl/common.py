"""Shared utilities — console output and file logging.

Used by the CLI and the reconcile driver. Library code logs through
``logging.getLogger(__name__)`` and never prints.
"""

from __future__ import annotations

import logging
import sys
from datetime import datetime
from pathlib import Path
from typing import Optional

from rich.console import Console
from rich.panel import Panel

# ---------------------------------------------------------------------------
# Console singleton
# ---------------------------------------------------------------------------
console = Console()

# ---------------------------------------------------------------------------
# Timestamp for log file naming
# ---------------------------------------------------------------------------
TIMESTAMP = datetime.now().strftime("%Y-%m-%d-%H%M%S")

# ---------------------------------------------------------------------------
# Display helpers
# ---------------------------------------------------------------------------


def print_header(title: str) -> None:
    console.print()
    console.print(Panel(f"[bold]{title}[/bold]", border_style="blue", expand=True))
    console.print()


def print_info(msg: str) -> None:
    console.print(f"[blue]ℹ {msg}[/blue]")


def print_success(msg: str) -> None:
    console.print(f"[bold green]✔ {msg}[/bold green]")


def print_warning(msg: str) -> None:
    console.print(f"[bold yellow]⚠ {msg}[/bold yellow]")


def print_error(msg: str) -> None:
    console.print(f"[bold red]✖ {msg}[/bold red]")


def print_detail(msg: str) -> None:
    console.print(f"  {msg}")


def die(msg: str, code: int = 1) -> None:
    print_error(msg)
    sys.exit(code)


# ---------------------------------------------------------------------------
# File-based logging
# ---------------------------------------------------------------------------

_log_file: Optional[Path] = None


def init_logging(prefix: str = "cachectl", log_dir: Optional[Path] = None, debug: bool = False) -> Path:
    """Attach a file handler to the ``cachectl`` logger. Returns the log file path.

    Calling it again for the same file is a no-op, so the CLI and the driver
    can both ask for logging without duplicating handlers.
    """
    global _log_file

    if log_dir is None:
        from .config import settings
        log_dir = settings.local_dir / "logs"

    log_dir.mkdir(parents=True, exist_ok=True)
    log_file = log_dir / f"{prefix}-{TIMESTAMP}.log"
    if _log_file == log_file:
        return log_file

    logger = logging.getLogger("cachectl")
    logger.setLevel(logging.DEBUG if debug else logging.INFO)
    fh = logging.FileHandler(log_file)
    fh.setFormatter(logging.Formatter("%(asctime)s %(levelname)s %(name)s %(message)s"))
    logger.addHandler(fh)
    _log_file = log_file
    return log_file


def get_log_file() -> Optional[Path]:
    return _log_file
