"""Admin endpoints."""

from typing import Annotated

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.deps import get_db, require_staff
from app.core.permissions import Actor
from app.schemas.booking import ReconciliationResponse
from app.services.reconciliation_service import reconciliation_service

router = APIRouter()


@router.post("/reconcile", response_model=ReconciliationResponse)
async def run_reconciliation(
    actor: Annotated[Actor, Depends(require_staff)],
    db: Annotated[AsyncSession, Depends(get_db)],
) -> ReconciliationResponse:
    """Recompute balances, restore placeholder payments and car availability."""
    report = await reconciliation_service.reconcile(db, actor)
    return ReconciliationResponse.model_validate(report)
