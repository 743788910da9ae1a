"""Per-id outcomes for lenient batch operations.

Unknown or repeated ids in a batch are skipped rather than failing the
whole request; each id's fate is recorded here instead of raised.
"""

from __future__ import annotations

import enum
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Tuple


class Outcome(str, enum.Enum):
    ATTACHED = "attached"
    STACKED = "stacked"
    DETACHED = "detached"
    SKIPPED_UNKNOWN = "skipped_unknown"
    SKIPPED_DUPLICATE = "skipped_duplicate"
    SKIPPED_ABSENT = "skipped_absent"
    # property still on the catalog item, so its instances stay
    SKIPPED_LINKED = "skipped_linked"


CHANGING = {Outcome.ATTACHED, Outcome.STACKED, Outcome.DETACHED}


@dataclass
class BatchResult:
    entries: List[Tuple[int, Outcome]] = field(default_factory=list)

    def record(self, entry_id: int, outcome: Outcome) -> None:
        self.entries.append((entry_id, outcome))

    def ids(self, outcome: Outcome) -> List[int]:
        return [i for i, o in self.entries if o is outcome]

    @property
    def changed(self) -> bool:
        return any(o in CHANGING for _, o in self.entries)

    def counts(self) -> Dict[str, int]:
        out: Dict[str, int] = {}
        for _, o in self.entries:
            out[o.value] = out.get(o.value, 0) + 1
        return out

    def as_dict(self) -> Dict:
        return {
            "results": [{"id": i, "outcome": o.value} for i, o in self.entries],
            "counts": self.counts(),
        }


def unique_ids(ids: Iterable, result: BatchResult) -> List[int]:
    """Return ``ids`` in first-seen order; repeats are recorded as duplicates."""
    seen = set()
    out: List[int] = []
    for raw in ids:
        if raw in seen:
            result.record(raw, Outcome.SKIPPED_DUPLICATE)
            continue
        seen.add(raw)
        out.append(raw)
    return out
