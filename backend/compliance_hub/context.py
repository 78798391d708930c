"""Per-request service wiring.

Use cases receive a ServiceContext instead of reaching for module-level
clients, so tests can swap in doubles for the store and the AI oracle.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Callable

from fastapi import Depends
from sqlalchemy.orm import Session

from .config import Settings, get_settings
from .database import get_db
from .services.audit import AuditRecorder
from .services.store import EntityStore, SqlAlchemyStore
from .services.suggestion_oracle import HttpSuggestionOracle, SuggestionOracle
from .services.timeutil import utc_now


@dataclass
class ServiceContext:
    store: EntityStore
    oracle: SuggestionOracle
    settings: Settings
    clock: Callable[[], datetime] = utc_now
    audit: AuditRecorder = field(default=None)  # type: ignore[assignment]

    def __post_init__(self) -> None:
        if self.audit is None:
            self.audit = AuditRecorder(self.store, self.clock)


def get_service_context(
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_settings),
) -> ServiceContext:
    return ServiceContext(
        store=SqlAlchemyStore(db),
        oracle=HttpSuggestionOracle(settings),
        settings=settings,
    )
