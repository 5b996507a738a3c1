import logging
from typing import Optional

from fastapi import Header, HTTPException

logger = logging.getLogger(__name__)

MAX_PERSON_ID_LENGTH = 36


async def get_current_person_id(x_person_id: Optional[str] = Header(default=None)) -> str:
    """
    Resolve the acting person from the X-Person-Id header.

    Identity is established upstream (gateway or identity service); the
    engine only needs a stable person identifier for ownership and party
    checks.
    """
    if not x_person_id or not x_person_id.strip():
        logger.warning("⚠️ Request without X-Person-Id header")
        raise HTTPException(status_code=401, detail="Missing X-Person-Id header")

    person_id = x_person_id.strip()
    if len(person_id) > MAX_PERSON_ID_LENGTH:
        logger.warning(f"⚠️ Rejected oversized person id ({len(person_id)} chars)")
        raise HTTPException(status_code=401, detail="Invalid X-Person-Id header")
    return person_id
