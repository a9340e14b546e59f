"""Logical clock: the height used to timestamp registry writes.

The registry has no notion of wall-clock time. The hosting environment
(a ledger sequencer, a batch importer, a test) supplies a non-decreasing
integer height, and every record write is stamped with the height
current at that call.
"""

from __future__ import annotations

from typing import Protocol, runtime_checkable


@runtime_checkable
class LogicalClock(Protocol):
    """Source of the current logical height."""

    def current_height(self) -> int:
        ...


class ManualClock:
    """Clock advanced explicitly by its owner.

    Heights never move backwards: set_height() rejects a lower value.
    """

    def __init__(self, height: int = 0) -> None:
        if height < 0:
            raise ValueError(f"Height must be >= 0, got {height}")
        self._height = height

    def current_height(self) -> int:
        return self._height

    def advance(self, blocks: int = 1) -> int:
        if blocks < 0:
            raise ValueError(f"Cannot advance by a negative amount: {blocks}")
        self._height += blocks
        return self._height

    def set_height(self, height: int) -> None:
        if height < self._height:
            raise ValueError(
                f"Height is non-decreasing: {height} < {self._height}"
            )
        self._height = height
