"""Recurring task creation.

Instances are committed one at a time in occurrence order. A failure at
instance k keeps 1..k-1 and is reported back as a partial result.
"""
from __future__ import annotations

import logging

from ..context import ServiceContext
from ..domain_errors import DomainError
from ..schemas import Principal, RecurrenceRule, RecurringTaskResult, TaskCreate, TaskResponse
from ..services.recurrence import expand_recurrence
from ..services.store import unit_of_work
from .tasks import insert_task, prepare_task_create

logger = logging.getLogger(__name__)


def create_recurring_task_use_case(
    *,
    ctx: ServiceContext,
    payload: TaskCreate,
    rule: RecurrenceRule,
    principal: Principal,
) -> RecurringTaskResult:
    org_id, priority = prepare_task_create(ctx=ctx, payload=payload, principal=principal)
    instances = expand_recurrence(
        payload.model_copy(update={"priority": priority}),
        rule,
        now=ctx.clock(),
        max_occurrences=ctx.settings.RECURRENCE_MAX_OCCURRENCES,
    )

    created: list[TaskResponse] = []
    for position, instance in enumerate(instances, start=1):
        try:
            with unit_of_work(ctx.store):
                task = insert_task(
                    ctx=ctx,
                    payload=instance,
                    org_id=org_id,
                    principal=principal,
                    audit_details={
                        "recurrence": {
                            "frequency": rule.frequency.value,
                            "interval": rule.interval,
                            "occurrence": position,
                            "of": len(instances),
                        }
                    },
                )
        except DomainError as exc:
            logger.warning(
                "Recurring task batch stopped at occurrence %s of %s: %s",
                position,
                len(instances),
                exc.code,
            )
            return RecurringTaskResult(
                tasks=created,
                requested=len(instances),
                created=len(created),
                failed_at=position,
                error=exc.to_dict(),
            )
        created.append(TaskResponse.model_validate(task, from_attributes=True))

    logger.info("Created %s recurring task(s) for org %s", len(created), org_id)
    return RecurringTaskResult(tasks=created, requested=len(instances), created=len(created))
