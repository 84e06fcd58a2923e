"""
Durable queue store.

The pending queue lives in one file as a pretty-printed JSON array of
[token, payload, channel, name] rows. Reads fail soft: a missing, empty or
malformed file is an empty queue. The store has no locking of its own;
the coordinator is its only writer.
"""

from __future__ import annotations

import json
import logging
import os
import tempfile
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Optional, Sequence

from slack_reporter.errors import CouldNotSaveJSONError
from slack_reporter.models.envelope import Envelope

logger = logging.getLogger(__name__)


def _write_atomically(path: Path, text: str) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    fd, tmp = tempfile.mkstemp(dir=path.parent, prefix=f".{path.name}.", suffix=".tmp")
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            f.write(text)
            f.flush()
            os.fsync(f.fileno())
        os.replace(tmp, path)
    except BaseException:
        try:
            os.unlink(tmp)
        except OSError:
            pass
        raise


class QueueStore:
    def __init__(self, path: Path):
        self.path = Path(path)

    def load(self) -> list[Envelope]:
        try:
            raw = self.path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return []
        except (OSError, UnicodeDecodeError) as e:
            logger.warning(f"Could not read queue file {self.path}: {e}")
            return []
        if not raw.strip():
            return []
        try:
            rows = json.loads(raw)
            if not isinstance(rows, list):
                raise ValueError(f"expected an array, got {type(rows).__name__}")
            return [Envelope.from_row(row) for row in rows]
        except ValueError as e:
            # json.JSONDecodeError and pydantic's ValidationError are both ValueErrors
            logger.warning(f"Ignoring malformed queue file {self.path}: {e}")
            return []

    def save(self, envelopes: Sequence[Envelope]) -> None:
        rows = [e.to_row() for e in envelopes]
        try:
            text = json.dumps(rows, indent=2, ensure_ascii=False, allow_nan=False)
        except (TypeError, ValueError) as e:
            raise CouldNotSaveJSONError(f"Queue is not JSON serializable: {e}") from e
        try:
            _write_atomically(self.path, text)
        except OSError as e:
            raise CouldNotSaveJSONError(
                f"Could not write queue file {self.path}: {e}",
                details={"path": str(self.path), "errno": e.errno},
            ) from e
        logger.debug(f"Saved {len(rows)} queued submission(s) to {self.path}")

    def append(self, envelope: Envelope) -> list[Envelope]:
        queue = self.load()
        queue.append(envelope)
        self.save(queue)
        return queue

    def peek_first(self) -> Optional[Envelope]:
        queue = self.load()
        return queue[0] if queue else None

    def remove_first(self) -> Optional[Envelope]:
        queue = self.load()
        if not queue:
            return None
        head = queue.pop(0)
        self.save(queue)
        return head

    def clear(self) -> None:
        self.save([])


class DeadLetterLog:
    """Append-only JSON-lines record of submissions dropped by the retry policy."""

    def __init__(self, path: Path):
        self.path = Path(path)

    def push(self, envelope: Envelope, reason: str, attempts: int) -> None:
        entry = {
            "ts": datetime.now(timezone.utc).isoformat(),
            "reason": reason,
            "attempts": attempts,
            "row": envelope.to_row(),
        }
        self.path.parent.mkdir(parents=True, exist_ok=True)
        with self.path.open("a", encoding="utf-8") as f:
            f.write(json.dumps(entry, ensure_ascii=False) + "\n")

    def entries(self) -> list[dict[str, Any]]:
        try:
            lines = self.path.read_text(encoding="utf-8").splitlines()
        except FileNotFoundError:
            return []
        out: list[dict[str, Any]] = []
        for line in lines:
            if not line.strip():
                continue
            try:
                out.append(json.loads(line))
            except json.JSONDecodeError:
                continue
        return out
