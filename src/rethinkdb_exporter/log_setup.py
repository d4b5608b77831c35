"""
Process-wide logging setup.

Modules log through logging.getLogger(__name__). setup_logging() is called
once by the CLI and installs either a rich console handler or a JSON
lines handler on stdout.
"""

import json
import logging
import sys
from datetime import datetime, timezone

from rich.console import Console
from rich.logging import RichHandler


class JsonFormatter(logging.Formatter):
    """Format records as one JSON object per line."""

    def format(self, record: logging.LogRecord) -> str:
        data = {
            "time": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "msg": record.getMessage(),
        }
        if record.exc_info:
            data["error"] = self.formatException(record.exc_info)
        return json.dumps(data)


def setup_logging(debug: bool = False, json_output: bool = False) -> None:
    """
    Configure the root logger.

    Args:
        debug: Log at DEBUG instead of INFO.
        json_output: Emit JSON lines instead of rich console output.
    """
    level = logging.DEBUG if debug else logging.INFO

    if json_output:
        handler: logging.Handler = logging.StreamHandler(sys.stdout)
        handler.setFormatter(JsonFormatter())
    else:
        handler = RichHandler(console=Console(stderr=True), show_path=False)
        handler.setFormatter(logging.Formatter("%(message)s"))

    root = logging.getLogger()
    for existing in list(root.handlers):
        root.removeHandler(existing)
    root.addHandler(handler)
    root.setLevel(level)
