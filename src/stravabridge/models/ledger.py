"""Idempotency ledger: polling cursor plus the set of processed activity ids."""
import time
from typing import Dict, Optional, Union

from pydantic import BaseModel, ConfigDict, Field

MAX_PROCESSED_ITEMS = 4000


def now_ms() -> int:
    return int(time.time() * 1000)


class Ledger(BaseModel):
    """
    Mutable processing state persisted as state.json.

    last_checked_at: epoch ms of the last completed poll (0 = never polled)
    processed:       activity id (as str) → epoch ms it was marked processed
                     (null stamps from older files sort as oldest)

    Retention is count-based: once more than MAX_PROCESSED_ITEMS ids are
    stored, the oldest-marked ones are evicted regardless of age.
    """

    model_config = ConfigDict(populate_by_name=True)

    last_checked_at: int = Field(default=0, alias="lastCheckedAt")
    processed: Dict[str, Optional[int]] = Field(default_factory=dict)

    def is_processed(self, activity_id: Union[int, str]) -> bool:
        return str(activity_id) in self.processed

    def mark_processed(
        self,
        activity_id: Union[int, str],
        now: Optional[int] = None,
    ) -> None:
        """Record `activity_id` as processed at `now` (epoch ms) and prune."""
        self.processed[str(activity_id)] = now if now is not None else now_ms()
        self.prune_processed()

    def prune_processed(self, max_items: int = MAX_PROCESSED_ITEMS) -> None:
        """Evict oldest-marked ids until at most `max_items` remain."""
        excess = len(self.processed) - max_items
        if excess <= 0:
            return
        oldest_first = sorted(self.processed.items(), key=lambda kv: kv[1] or 0)
        for activity_id, _ in oldest_first[:excess]:
            del self.processed[activity_id]

    def to_json(self) -> str:
        return self.model_dump_json(by_alias=True, indent=2)
