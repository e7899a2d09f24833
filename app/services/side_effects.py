"""Best-effort side effects that follow a committed booking update."""

import logging
import uuid
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field

from sqlalchemy import inspect
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.exceptions import DependencyFailure
from app.models.booking import Booking

logger = logging.getLogger(__name__)


@dataclass
class SideEffectFailure:
    """A side effect that did not land; the booking update still stands."""

    operation: str
    code: str
    kind: str = "DependencyFailure"


@dataclass
class WorkflowResult:
    """Outcome of a booking workflow operation."""

    booking: Booking
    message: str
    pending_approval: bool = False
    additional_cost: int | None = None
    new_total: int | None = None
    deducted_amount: int | None = None
    side_effect_failures: list[SideEffectFailure] = field(default_factory=list)


async def run_side_effect(
    db: AsyncSession,
    booking: Booking,
    operation: str,
    action: Callable[[], Awaitable[object]],
) -> SideEffectFailure | None:
    """Run and commit ``action``; on failure log it and return a failure record.

    Only storage errors and DependencyFailure are absorbed. The booking
    row was committed before this runs, so it is reloaded after a rollback.
    """
    try:
        await action()
        await db.commit()
    except (SQLAlchemyError, DependencyFailure) as e:
        await db.rollback()
        if inspect(booking).persistent:
            await db.refresh(booking)
        code = uuid.uuid4().hex[:12]
        logger.error(
            f"Side effect '{operation}' failed for booking {booking.id} (code={code}): {e}"
        )
        return SideEffectFailure(operation=operation, code=code)
    return None


async def run_side_effects(
    db: AsyncSession,
    result: WorkflowResult,
    effects: list[tuple[str, Callable[[], Awaitable[object]]]],
) -> WorkflowResult:
    """Run each effect independently, collecting failures on ``result``."""
    for operation, action in effects:
        failure = await run_side_effect(db, result.booking, operation, action)
        if failure:
            result.side_effect_failures.append(failure)
    return result
