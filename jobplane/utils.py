"""
Utility functions for jobplane.

Includes logging setup, console output and extension-template conversion.
"""

import json
import logging
from datetime import datetime, timezone
from pathlib import Path
from typing import Iterable, Optional

import yaml
from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table

from jobplane.errors import ValidationError
from jobplane.schemas import Job


# Global console for pretty output
console = Console()


def setup_logging(
    log_level: str = "INFO",
    log_format: str = "pretty",
    log_file: Optional[Path] = None,
    console_output: bool = True,
) -> logging.Logger:
    """
    Set up logging for jobplane.

    Args:
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR)
        log_format: "structured" (JSON) or "pretty" (human-readable)
        log_file: Optional log file path
        console_output: Also log to console (stderr)

    Returns:
        Configured logger
    """
    logger = logging.getLogger("jobplane")
    logger.setLevel(getattr(logging, log_level.upper()))
    logger.handlers = []  # Clear existing handlers

    if log_file is not None:
        log_file.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(log_file)
        if log_format == "structured":
            file_handler.setFormatter(StructuredFormatter())
        else:
            file_handler.setFormatter(
                logging.Formatter("%(asctime)s - %(name)s - %(levelname)s - %(message)s")
            )
        logger.addHandler(file_handler)

    if console_output:
        if log_format == "pretty":
            console_handler: logging.Handler = RichHandler(
                console=Console(stderr=True), rich_tracebacks=True, show_time=False
            )
        else:
            console_handler = logging.StreamHandler()
            console_handler.setFormatter(StructuredFormatter())
        logger.addHandler(console_handler)

    return logger


class StructuredFormatter(logging.Formatter):
    """JSON formatter for structured logging."""

    def format(self, record: logging.LogRecord) -> str:
        log_data = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }

        # Add extra fields if present
        for key in ("job_id", "request_id", "cluster_id"):
            if hasattr(record, key):
                log_data[key] = getattr(record, key)

        # Add exception info if present
        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)

        return json.dumps(log_data)


def json_to_yaml(text: str) -> str:
    """
    Convert a JSON document to a YAML document.

    Raises:
        ValidationError: If text is not valid JSON
    """
    try:
        data = json.loads(text)
    except json.JSONDecodeError as e:
        raise ValidationError(f"extension template is not valid JSON: {e}")
    return yaml.safe_dump(data, sort_keys=False, default_flow_style=False)


def print_jobs_table(jobs: Iterable[Job], title: str = "Jobs") -> None:
    """Render jobs as a table on the console."""
    table = Table(title=title)
    table.add_column("ID", no_wrap=True)
    table.add_column("Name")
    table.add_column("Queue")
    table.add_column("Status")
    table.add_column("Created")
    for job in jobs:
        table.add_row(
            job.id,
            job.config.name,
            job.queue_id,
            job.status.value,
            job.created_at.strftime("%Y-%m-%d %H:%M:%S"),
        )
    console.print(table)
