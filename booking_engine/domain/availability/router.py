"""Availability router - FastAPI endpoints for availability definitions"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from ...auth import get_current_person_id
from ...database import get_db
from .schemas import AvailabilityCreate, AvailabilityResponse, AvailabilityUpdate
from .service import AvailabilityService, definition_to_response

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/availability", tags=["Availability"])


def get_availability_service(db: Session = Depends(get_db)) -> AvailabilityService:
    """Dependency injection for AvailabilityService"""
    return AvailabilityService(db)


@router.get("", response_model=list[AvailabilityResponse])
async def list_definitions(
    status: Optional[str] = Query(None),
    person_id: str = Depends(get_current_person_id),
    service: AvailabilityService = Depends(get_availability_service),
):
    """List the current owner's availability definitions"""
    definitions = service.list_definitions(person_id, status)
    return [definition_to_response(d) for d in definitions]


@router.post("", response_model=AvailabilityResponse, status_code=201)
async def create_definition(
    data: AvailabilityCreate,
    person_id: str = Depends(get_current_person_id),
    service: AvailabilityService = Depends(get_availability_service),
):
    """Create a definition; active definitions get their slots generated immediately"""
    definition = service.create_definition(person_id, data)
    return definition_to_response(definition)


@router.get("/{definition_id}", response_model=AvailabilityResponse)
async def get_definition(
    definition_id: str,
    service: AvailabilityService = Depends(get_availability_service),
):
    """Public read; clients need the form and billing config before booking"""
    return definition_to_response(service.get_definition(definition_id))


@router.patch("/{definition_id}", response_model=AvailabilityResponse)
async def update_definition(
    definition_id: str,
    data: AvailabilityUpdate,
    person_id: str = Depends(get_current_person_id),
    service: AvailabilityService = Depends(get_availability_service),
):
    definition = service.update_definition(definition_id, person_id, data)
    return definition_to_response(definition)


@router.delete("/{definition_id}")
async def delete_definition(
    definition_id: str,
    person_id: str = Depends(get_current_person_id),
    service: AvailabilityService = Depends(get_availability_service),
):
    """Delete a definition; booked slots and their bookings are kept"""
    return service.delete_definition(definition_id, person_id)
