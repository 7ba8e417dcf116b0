"""Per-account balance history keyed by snapshot id."""

from __future__ import annotations

from bisect import bisect_right

from stakepool.core.types import Checkpoint


class CheckpointHistory:
    """Ordered ``(snapshot_id, balance)`` log for one account.

    A balance written while the current snapshot id is ``c`` is keyed
    ``c + 1``: it is the balance that snapshot ``c + 1`` will observe.
    Keys are non-decreasing; a second write in the same window replaces
    the last entry instead of appending.
    """

    __slots__ = ("_ids", "_values")

    def __init__(self) -> None:
        self._ids: list[int] = []
        self._values: list[int] = []

    def __len__(self) -> int:
        return len(self._ids)

    def write(self, current_id: int, balance: int) -> None:
        key = current_id + 1
        if self._ids and self._ids[-1] == key:
            self._values[-1] = balance
            return
        if self._ids and self._ids[-1] > key:
            raise ValueError(f"checkpoint {key} is older than {self._ids[-1]}")
        self._ids.append(key)
        self._values.append(balance)

    def value_at(self, snapshot_id: int) -> int:
        """Balance observed by ``snapshot_id`` (0 before the first write)."""
        idx = bisect_right(self._ids, snapshot_id)
        if idx == 0:
            return 0
        return self._values[idx - 1]

    def latest(self) -> int:
        return self._values[-1] if self._values else 0

    def to_list(self) -> list[Checkpoint]:
        return [
            Checkpoint(snapshot_id=sid, balance=value)
            for sid, value in zip(self._ids, self._values)
        ]
