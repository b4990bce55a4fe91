"""
Tamper-evident audit trail.

Every accepted or rejected mint and every admin action is recorded. Each
event's digest covers the digest of the event before it, so editing or
dropping an event breaks `verify_chain()` from that point on.

Copyright (c) 2026 Momentum. All rights reserved.
"""

from __future__ import annotations

import hashlib
import json
import threading
from collections import deque
from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Deque, Dict, List, Optional, Tuple


class AuditEventType(Enum):
    """Types of audit events."""
    MINT_PUBLIC = "mint_public"
    MINT_ALLOWLIST = "mint_allowlist"
    MINT_ADMIN = "mint_admin"
    PHASE_ADVANCED = "phase_advanced"
    ALLOWLIST_POPULATED = "allowlist_populated"
    METADATA_UPDATED = "metadata_updated"
    FUNDS_WITHDRAWN = "funds_withdrawn"
    REQUEST_REJECTED = "request_rejected"


def canonical_json_bytes(obj: Any) -> bytes:
    """Sorted keys, no whitespace, UTF-8."""
    return json.dumps(obj, sort_keys=True, separators=(",", ":"), ensure_ascii=False).encode("utf-8")


@dataclass
class AuditEvent:
    """One audit record. `digest` covers every other field, `prev_digest` included."""
    seq: int
    event_type: AuditEventType
    timestamp: str
    actor: str
    action: str
    outcome: str  # success | denied
    details: Dict[str, Any]
    correlation_id: str = ""
    prev_digest: Optional[str] = None
    digest: str = ""

    def __post_init__(self):
        if not self.digest:
            self.digest = self.compute_digest()

    def payload(self) -> Dict[str, Any]:
        return {
            "seq": self.seq,
            "event_type": self.event_type.value,
            "timestamp": self.timestamp,
            "actor": self.actor,
            "action": self.action,
            "outcome": self.outcome,
            "details": self.details,
            "correlation_id": self.correlation_id,
            "prev_digest": self.prev_digest,
        }

    def compute_digest(self) -> str:
        return hashlib.sha256(canonical_json_bytes(self.payload())).hexdigest()

    def to_dict(self) -> Dict[str, Any]:
        return {**self.payload(), "digest": self.digest}


class AuditLogger:
    """
    Append-only, hash-chained audit log held in memory.

    At most `max_events` events are retained; once full the oldest are
    evicted and the chain is checked from the oldest event still held.
    """

    def __init__(self, max_events: int = 100000, enabled: bool = True):
        self.enabled = enabled
        self._events: Deque[AuditEvent] = deque(maxlen=max_events)
        self._seq = 0
        self._head: Optional[str] = None
        self._lock = threading.Lock()

    def log(
        self,
        event_type: AuditEventType,
        actor: str,
        action: str,
        outcome: str,
        details: Optional[Dict[str, Any]] = None,
        correlation_id: str = "",
    ) -> Optional[AuditEvent]:
        """Append an event; returns None when auditing is disabled."""
        if not self.enabled:
            return None

        with self._lock:
            self._seq += 1
            event = AuditEvent(
                seq=self._seq,
                event_type=event_type,
                timestamp=datetime.now(timezone.utc).isoformat(),
                actor=actor,
                action=action,
                outcome=outcome,
                details=dict(details or {}),
                correlation_id=correlation_id,
                prev_digest=self._head,
            )
            self._events.append(event)
            self._head = event.digest
        return event

    def verify_chain(self) -> Tuple[bool, Optional[int]]:
        """(True, None) if intact, else (False, index of the first bad event)."""
        with self._lock:
            events = list(self._events)

        previous: Optional[AuditEvent] = None
        for i, event in enumerate(events):
            if event.compute_digest() != event.digest:
                return False, i
            if previous is not None and event.prev_digest != previous.digest:
                return False, i
            previous = event
        return True, None

    def get_events(
        self,
        actor: Optional[str] = None,
        event_type: Optional[AuditEventType] = None,
        outcome: Optional[str] = None,
        limit: int = 100,
    ) -> List[AuditEvent]:
        """Matching events, oldest first, at most the last `limit`."""
        with self._lock:
            events = list(self._events)

        matched = [
            e for e in events
            if (actor is None or e.actor == actor)
            and (event_type is None or e.event_type is event_type)
            and (outcome is None or e.outcome == outcome)
        ]
        return matched[-limit:]

    def export(self) -> List[Dict[str, Any]]:
        with self._lock:
            return [e.to_dict() for e in self._events]

    def __len__(self) -> int:
        with self._lock:
            return len(self._events)
