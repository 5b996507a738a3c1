"""Slot router - FastAPI endpoints for slot discovery"""

from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from ...database import get_db
from .schemas import SlotResponse, slot_to_response
from .service import SlotService

router = APIRouter(prefix="/slots", tags=["Slots"])


def get_slot_service(db: Session = Depends(get_db)) -> SlotService:
    """Dependency injection for SlotService"""
    return SlotService(db)


@router.get("", response_model=list[SlotResponse])
async def list_slots(
    ownerId: Optional[str] = Query(None),
    definitionId: Optional[str] = Query(None),
    start: Optional[datetime] = Query(None),
    end: Optional[datetime] = Query(None),
    status: Optional[str] = Query(None),
    locationType: Optional[str] = Query(None),
    service: SlotService = Depends(get_slot_service),
):
    """List slots by owner or definition, optionally within a start-time window"""
    slots = service.list_slots(
        owner_id=ownerId,
        definition_id=definitionId,
        start=start,
        end=end,
        status=status,
        location_type=locationType,
    )
    return [slot_to_response(s) for s in slots]


@router.get("/next", response_model=SlotResponse)
async def get_next_available_slot(
    ownerId: str = Query(...),
    locationType: Optional[str] = Query(None),
    service: SlotService = Depends(get_slot_service),
):
    """Earliest upcoming available slot of an owner"""
    return slot_to_response(service.get_next_available_slot(ownerId, locationType))


@router.get("/{slot_id}", response_model=SlotResponse)
async def get_slot(slot_id: str, service: SlotService = Depends(get_slot_service)):
    return slot_to_response(service.get_slot(slot_id))
