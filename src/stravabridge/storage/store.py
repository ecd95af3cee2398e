"""
File-backed activity store: append-only JSONL log plus a JSON ledger.

activity-store.jsonl — one ActivityRecord per line, never rewritten
state.json           — Ledger (poll cursor + processed ids), rewritten on save

Reads are tolerant: a corrupt log line is skipped and a missing or corrupt
ledger comes back as a fresh Ledger, so a damaged file never stops
processing.
"""
import json
import logging
import threading
from collections import deque
from pathlib import Path
from typing import List, Union

from pydantic import ValidationError

from stravabridge.models.ledger import Ledger
from stravabridge.models.record import ActivityRecord

logger = logging.getLogger(__name__)

DEFAULT_TAIL = 2000


class RecordStore:
    """Owns the activity log and the ledger file. Callers never edit the log."""

    def __init__(self, store_path: Union[str, Path], state_path: Union[str, Path]):
        self.store_path = Path(store_path)
        self.state_path = Path(state_path)
        self._lock = threading.Lock()

    # ─── Activity log ─────────────────────────────────────────────────────────

    def append(self, record: ActivityRecord) -> None:
        """Append one record as a JSON line, creating the file if needed."""
        line = record.to_json_line() + "\n"
        with self._lock:
            self.store_path.parent.mkdir(parents=True, exist_ok=True)
            with self.store_path.open("a", encoding="utf-8") as f:
                f.write(line)

    def read_tail(self, max_count: int = DEFAULT_TAIL) -> List[ActivityRecord]:
        """
        Return up to the last `max_count` records, oldest first.

        This reads the whole file. Blank lines are ignored; lines that are not
        valid records are logged and skipped.
        """
        if max_count <= 0 or not self.store_path.exists():
            return []

        with self.store_path.open("r", encoding="utf-8", errors="replace") as f:
            tail = deque((line for line in f if line.strip()), maxlen=max_count)

        records: List[ActivityRecord] = []
        for line in tail:
            try:
                records.append(ActivityRecord.model_validate_json(line))
            except ValidationError as exc:
                logger.warning(
                    "Skipping unreadable line in %s: %s",
                    self.store_path, exc.errors()[0].get("msg", exc),
                )
        return records

    # ─── Ledger ───────────────────────────────────────────────────────────────

    def load_ledger(self) -> Ledger:
        """Load the ledger; a missing or corrupt file yields an empty Ledger."""
        try:
            raw = self.state_path.read_text(encoding="utf-8")
            return Ledger.model_validate(json.loads(raw))
        except FileNotFoundError:
            return Ledger()
        except (OSError, ValueError) as exc:
            logger.warning("Ledger %s unreadable, starting fresh: %s", self.state_path, exc)
            return Ledger()

    def save_ledger(self, ledger: Ledger) -> None:
        with self._lock:
            self._write_ledger(ledger)

    def commit_processed(self, activity_id: Union[int, str]) -> Ledger:
        """
        Mark one id processed against the ledger currently on disk.

        Load, mark and save happen under the store lock, so marks written by
        another ingestion path since our last load are kept.
        """
        with self._lock:
            ledger = self.load_ledger()
            ledger.mark_processed(activity_id)
            self._write_ledger(ledger)
        return ledger

    def commit_cursor(self, last_checked_at: int) -> Ledger:
        """Advance the polling cursor on the on-disk ledger."""
        with self._lock:
            ledger = self.load_ledger()
            ledger.last_checked_at = last_checked_at
            self._write_ledger(ledger)
        return ledger

    def _write_ledger(self, ledger: Ledger) -> None:
        self.state_path.parent.mkdir(parents=True, exist_ok=True)
        self.state_path.write_text(ledger.to_json(), encoding="utf-8")
