"""Value transfer: the fee movement requested on each registration.

The registry decides whether a transfer is due and with what parameters
(amount, sender, recipient, height). How value actually moves is owned
by the ValueTransfer collaborator. The engine requests the transfer before it
mutates any state; a collaborator that cannot move the value raises
TransferError and the registration is rejected with nothing written.

If the hosting environment cannot make the transfer and the registry
write commit together, the integration layer must wrap both in a
compensating transaction. That is outside this package.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional, Protocol, runtime_checkable

from provenance.models.product import Identity


class TransferError(Exception):
    """Raised when a value transfer cannot be completed."""


@runtime_checkable
class ValueTransfer(Protocol):
    """Moves fee units from one identity to another."""

    def transfer(
        self, amount: int, sender: Identity, recipient: Identity, height: int,
    ) -> None:
        ...


@dataclass(frozen=True)
class TransferRecord:
    """An auditable record of one requested transfer."""
    amount: int
    sender: Identity
    recipient: Identity
    height: int


class TransferLedger:
    """In-memory ValueTransfer that records every transfer it accepts.

    Optional balances turn the ledger into a funds check: when a balance
    map is supplied, a sender without enough units is refused.

    Usage:
        ledger = TransferLedger()
        ledger.transfer(500, "ST1PRODUCER", "ST2AUTHORITY", height=12)
        ledger.transfers()  # [TransferRecord(500, "ST1PRODUCER", "ST2AUTHORITY", 12)]
    """

    def __init__(self, balances: Optional[dict[Identity, int]] = None) -> None:
        self._records: list[TransferRecord] = []
        self._balances = dict(balances) if balances is not None else None

    def transfer(
        self, amount: int, sender: Identity, recipient: Identity, height: int,
    ) -> None:
        if amount < 0:
            raise TransferError(f"Transfer amount must be >= 0, got {amount}")
        if sender == recipient:
            raise TransferError(f"Sender and recipient are the same: {sender}")
        if self._balances is not None:
            available = self._balances.get(sender, 0)
            if available < amount:
                raise TransferError(
                    f"Insufficient balance for {sender}: "
                    f"{available} < {amount}"
                )
            self._balances[sender] = available - amount
            self._balances[recipient] = self._balances.get(recipient, 0) + amount
        self._records.append(
            TransferRecord(
                amount=amount,
                sender=sender,
                recipient=recipient,
                height=height,
            )
        )

    def transfers(self, sender: Optional[Identity] = None) -> list[TransferRecord]:
        """Return recorded transfers, optionally filtered by sender."""
        if sender is None:
            return list(self._records)
        return [r for r in self._records if r.sender == sender]

    def total_collected(self, recipient: Optional[Identity] = None) -> int:
        return sum(
            r.amount for r in self._records
            if recipient is None or r.recipient == recipient
        )

    def balance(self, identity: Identity) -> Optional[int]:
        if self._balances is None:
            return None
        return self._balances.get(identity, 0)

    @property
    def count(self) -> int:
        return len(self._records)
