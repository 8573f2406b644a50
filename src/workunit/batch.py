from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Iterator, List, Tuple


class Phase(Enum):
    """Mutation phases, in the order they are flushed"""

    CREATE = "create_by_tx"
    UPDATE = "update_by_tx"
    DELETE = "delete_by_tx"

    @property
    def method(self) -> str:
        return self.value


@dataclass
class PendingBatch:
    """Work items marked since the last commit cycle.

    Each list is append-only and keeps marking order. Items are flushed
    list by list: every create, then every update, then every delete.
    """

    creates: List[Any] = field(default_factory=list)
    updates: List[Any] = field(default_factory=list)
    deletes: List[Any] = field(default_factory=list)

    def add(self, phase: Phase, item: Any) -> None:
        self._items(phase).append(item)

    def phases(self) -> Iterator[Tuple[Phase, List[Any]]]:
        for phase in Phase:
            yield phase, self._items(phase)

    def clear(self) -> None:
        self.creates.clear()
        self.updates.clear()
        self.deletes.clear()

    def _items(self, phase: Phase) -> List[Any]:
        if phase is Phase.CREATE:
            return self.creates
        if phase is Phase.UPDATE:
            return self.updates
        return self.deletes

    def __len__(self) -> int:
        return len(self.creates) + len(self.updates) + len(self.deletes)

    def __str__(self) -> str:
        return (
            f"<PendingBatch creates={len(self.creates)} "
            f"updates={len(self.updates)} deletes={len(self.deletes)}>"
        )
