"""Schedule exception router - FastAPI endpoints for blackout intervals"""

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from ...auth import get_current_person_id
from ...database import get_db
from .schemas import ExceptionCreate, ExceptionResponse
from .service import ScheduleExceptionService, exception_to_response

router = APIRouter(prefix="/availability", tags=["Schedule Exceptions"])


def get_exception_service(db: Session = Depends(get_db)) -> ScheduleExceptionService:
    """Dependency injection for ScheduleExceptionService"""
    return ScheduleExceptionService(db)


@router.get("/{definition_id}/exceptions", response_model=list[ExceptionResponse])
async def list_exceptions(
    definition_id: str,
    person_id: str = Depends(get_current_person_id),
    service: ScheduleExceptionService = Depends(get_exception_service),
):
    exceptions = service.list_exceptions(definition_id, person_id)
    return [exception_to_response(e) for e in exceptions]


@router.post("/{definition_id}/exceptions", response_model=ExceptionResponse, status_code=201)
async def create_exception(
    definition_id: str,
    data: ExceptionCreate,
    person_id: str = Depends(get_current_person_id),
    service: ScheduleExceptionService = Depends(get_exception_service),
):
    """Add a blackout; overlapping available slots are removed right away"""
    exception = service.create_exception(definition_id, person_id, data)
    return exception_to_response(exception)


@router.delete("/exceptions/{exception_id}")
async def delete_exception(
    exception_id: str,
    person_id: str = Depends(get_current_person_id),
    service: ScheduleExceptionService = Depends(get_exception_service),
):
    return service.delete_exception(exception_id, person_id)
