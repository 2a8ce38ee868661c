"""JSON-lines event log (``app.log`` for run events, ``server.log`` for requests)."""

import json
import logging
from datetime import datetime, timezone
from pathlib import Path

logger = logging.getLogger(__name__)


class EventLog:
    def __init__(self, log_dir: Path):
        self.log_dir = Path(log_dir)
        self.log_dir.mkdir(parents=True, exist_ok=True)

    def _write(self, filename: str, tag: str, fields: dict) -> None:
        line = {"ts": datetime.now(timezone.utc).isoformat(), "tag": tag, **fields}
        try:
            with open(self.log_dir / filename, "a", encoding="utf-8") as f:
                f.write(json.dumps(line, default=str) + "\n")
        except OSError as e:
            logger.warning("Event log write failed (%s): %s", tag, e)

    def event(self, tag: str, **fields) -> None:
        self._write("app.log", tag, fields)

    def server(self, tag: str, **fields) -> None:
        self._write("server.log", tag, fields)
