"""Structural invariant checks over a RegistryState.

Used after loading a persisted snapshot and by the CLI's
check-invariants command. Returns a list of violation descriptions;
an empty list means the state is consistent.
"""

from __future__ import annotations

from provenance.registry.state import RegistryState
from provenance.registry.validation import (
    MAX_DESCRIPTION_LENGTH,
    MAX_METADATA_HASH_LENGTH,
    MAX_ORIGIN_LENGTH,
    MAX_PRODUCT_ID_LENGTH,
)


def check_state_invariants(state: RegistryState) -> list[str]:
    violations: list[str] = []
    records = dict(state.items())
    index = state.key_index()

    if state.next_product_id > state.max_products:
        violations.append(
            f"next_product_id {state.next_product_id} exceeds "
            f"max_products {state.max_products}"
        )

    # Ids are exactly 0..next_product_id-1
    expected_ids = set(range(state.next_product_id))
    if set(records) != expected_ids:
        missing = sorted(expected_ids - set(records))
        extra = sorted(set(records) - expected_ids)
        violations.append(
            f"Non-sequential product ids (missing={missing}, unexpected={extra})"
        )

    # Dual index consistency, both directions
    if len(index) != len(records):
        violations.append(
            f"Index size {len(index)} != product count {len(records)}"
        )
    for product_id, numeric_id in index.items():
        record = records.get(numeric_id)
        if record is None:
            violations.append(
                f"Index entry {product_id!r} points to missing id {numeric_id}"
            )
        elif record.product_id != product_id:
            violations.append(
                f"Index entry {product_id!r} points to id {numeric_id} "
                f"holding {record.product_id!r}"
            )
    for numeric_id, record in records.items():
        if index.get(record.product_id) != numeric_id:
            violations.append(
                f"Product {numeric_id} ({record.product_id!r}) missing from index"
            )

    for numeric_id, record in records.items():
        for field, value, limit in (
            ("product_id", record.product_id, MAX_PRODUCT_ID_LENGTH),
            ("metadata_hash", record.metadata_hash, MAX_METADATA_HASH_LENGTH),
            ("description", record.description, MAX_DESCRIPTION_LENGTH),
            ("origin", record.origin, MAX_ORIGIN_LENGTH),
        ):
            if not value or len(value) > limit:
                violations.append(
                    f"Product {numeric_id}: {field} violates length bounds"
                )

    for numeric_id, update in state.updates().items():
        record = records.get(numeric_id)
        if record is None:
            violations.append(f"Update slot {numeric_id} has no product")
            continue
        if update.updater != record.producer:
            violations.append(
                f"Update slot {numeric_id}: updater {update.updater} is not "
                f"producer {record.producer}"
            )

    for numeric_id, record in records.items():
        if record.timestamp > state.last_height:
            violations.append(
                f"Product {numeric_id}: timestamp {record.timestamp} is past "
                f"last height {state.last_height}"
            )

    if state.authority is None and records:
        violations.append("Products exist but no authority is configured")

    return violations
