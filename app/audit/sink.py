"""
Audit Sink

In-memory, append-only store of authorization decisions with tamper-evident
hash chaining. Each record's ``event_hash`` is the SHA-256 of the previous
record's hash concatenated with the canonical JSON of the event.

Retention purges keep the hash of every removed record as a tombstone, so
the surviving chain still verifies and an unrecorded removal does not.
"""

from __future__ import annotations

import hashlib
import json
import threading
from datetime import datetime
from typing import Any

from loguru import logger

from kanbax_core.domain.audit import AuditAction, AuditEvent, AuditRecord


class InMemoryAuditSink:
    """
    Append-only audit trail safe for concurrent writers.

    Provides:
    - Ordered, never-mutated storage of AuditEvents
    - Tenant-scoped retention purges
    - Hash-chained records for tamper evidence
    - Tenant-scoped querying for inspection

    Usage:
        sink = InMemoryAuditSink()
        await sink.log(event)

        denied = await sink.query_events(
            tenant_id="tenant-1",
            action=AuditAction.ACCESS_DENIED,
        )
    """

    def __init__(self, echo: bool | None = None):
        """
        Args:
            echo: Log every appended event; defaults to ``settings.AUDIT_LOG_EVENTS``.
        """
        if echo is None:
            from kanbax_core.config import settings

            echo = settings.AUDIT_LOG_EVENTS
        self._echo = echo
        self._records: list[AuditRecord] = []
        self._tombstones: dict[int, str] = {}
        self._next_sequence = 1
        self._last_hash: str | None = None
        self._lock = threading.Lock()

    @staticmethod
    def _compute_event_hash(event_data: dict[str, Any], previous_hash: str | None) -> str:
        """SHA-256 over previous hash + canonical JSON (sorted keys)."""
        canonical = json.dumps(event_data, sort_keys=True, default=str)
        hash_input = (previous_hash or "") + canonical
        return hashlib.sha256(hash_input.encode()).hexdigest()

    async def log(self, event: AuditEvent) -> AuditEvent:
        """
        Append an event to the chain.

        Returns:
            The event as stored.
        """
        event_data = event.model_dump(mode="json")
        with self._lock:
            previous_hash = self._last_hash
            record = AuditRecord(
                sequence_number=self._next_sequence,
                event=event,
                previous_hash=previous_hash,
                event_hash=self._compute_event_hash(event_data, previous_hash),
            )
            self._records.append(record)
            self._next_sequence += 1
            self._last_hash = record.event_hash

        if self._echo:
            decision = event.policy_decision
            logger.info(
                f"Audit #{record.sequence_number}: {event.action.value} "
                f"{event.resource_type}/{event.resource_id} by {event.actor_id} "
                f"[{decision.outcome.value} via {decision.policy_id}]"
            )
        return event

    async def get_events(self) -> list[AuditEvent]:
        with self._lock:
            return [record.event for record in self._records]

    def get_records(self) -> list[AuditRecord]:
        with self._lock:
            return list(self._records)

    async def query_events(
        self,
        tenant_id: str,
        action: AuditAction | None = None,
        resource_id: str | None = None,
        limit: int = 100,
    ) -> list[AuditEvent]:
        """
        Query audit events for a tenant, newest first.

        Args:
            tenant_id: Filter by tenant (required)
            action: Filter by audit action
            resource_id: Filter by resource ID
            limit: Maximum number of events to return
        """
        with self._lock:
            records = list(self._records)

        results: list[AuditEvent] = []
        for record in reversed(records):
            event = record.event
            if event.tenant_id != tenant_id:
                continue
            if action is not None and event.action != action:
                continue
            if resource_id is not None and event.resource_id != resource_id:
                continue
            results.append(event)
            if len(results) >= limit:
                break
        return results

    async def verify_chain_integrity(self, tenant_id: str | None = None) -> tuple[bool, list[str]]:
        """
        Verify the hash chain.

        The chain is global, so links are checked across all records; when
        ``tenant_id`` is given, only that tenant's records are reported on.
        A record whose predecessor was purged links to that predecessor's
        tombstone.

        Returns:
            Tuple of (is_valid, list of error messages)
        """
        with self._lock:
            records = list(self._records)
            known_hashes = dict(self._tombstones)

        errors: list[str] = []
        for record in records:
            expected_previous_hash = known_hashes.get(record.sequence_number - 1)
            in_scope = tenant_id is None or record.event.tenant_id == tenant_id

            if in_scope and record.previous_hash != expected_previous_hash:
                errors.append(
                    f"Event {record.event.id}: previous_hash mismatch. "
                    f"Expected '{expected_previous_hash}', got '{record.previous_hash}'"
                )

            computed_hash = self._compute_event_hash(
                record.event.model_dump(mode="json"), record.previous_hash
            )
            if in_scope and computed_hash != record.event_hash:
                errors.append(
                    f"Event {record.event.id}: event_hash mismatch. "
                    f"Computed '{computed_hash}', stored '{record.event_hash}'"
                )

            known_hashes[record.sequence_number] = record.event_hash

        if errors:
            logger.warning(f"Audit chain verification found {len(errors)} problem(s)")
        return len(errors) == 0, errors

    async def count_before(self, cutoff: datetime, tenant_id: str) -> int:
        """Number of ``tenant_id`` events older than ``cutoff``."""
        with self._lock:
            return sum(
                1
                for record in self._records
                if record.event.tenant_id == tenant_id and record.event.timestamp < cutoff
            )

    async def delete_before(self, cutoff: datetime, tenant_id: str) -> int:
        """
        Purge ``tenant_id`` events older than ``cutoff``.

        Other tenants' events are never touched. Each purged record leaves
        its hash behind as a tombstone.

        Returns:
            Number of events removed.
        """
        with self._lock:
            kept: list[AuditRecord] = []
            removed = 0
            for record in self._records:
                if record.event.tenant_id == tenant_id and record.event.timestamp < cutoff:
                    self._tombstones[record.sequence_number] = record.event_hash
                    removed += 1
                else:
                    kept.append(record)
            self._records = kept

        if removed:
            logger.info(f"Purged {removed} audit event(s) for tenant {tenant_id} older than {cutoff.isoformat()}")
        return removed
