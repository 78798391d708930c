"""Append-only audit trail, written in the caller's transaction."""

from __future__ import annotations

from datetime import datetime
from typing import Any, Callable, Optional
from uuid import UUID

from .store import AUDIT_LOG, EntityStore
from .timeutil import utc_now


class AuditRecorder:
    """Adds one audit row per mutation; the caller commits both together.

    Store failures propagate unchanged, so a lost audit write fails the
    operation that produced it.
    """

    def __init__(self, store: EntityStore, clock: Callable[[], datetime] = utc_now):
        self.store = store
        self.clock = clock

    def record(
        self,
        action: str,
        entity_type: str,
        entity_id: UUID,
        actor_id: UUID,
        *,
        org_id: Optional[UUID],
        details: Optional[dict[str, Any]] = None,
    ) -> Any:
        return self.store.create(
            AUDIT_LOG,
            {
                "org_id": org_id,
                "action": action,
                "entity_type": entity_type,
                "entity_id": entity_id,
                "actor_id": actor_id,
                "details": details or {},
                "created_at": self.clock(),
            },
        )
