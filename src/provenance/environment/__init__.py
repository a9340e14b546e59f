"""Environment collaborators: logical clock and value transfer."""

from provenance.environment.clock import LogicalClock, ManualClock
from provenance.environment.transfer import (
    TransferError,
    TransferLedger,
    TransferRecord,
    ValueTransfer,
)

__all__ = [
    "LogicalClock",
    "ManualClock",
    "TransferError",
    "TransferLedger",
    "TransferRecord",
    "ValueTransfer",
]
