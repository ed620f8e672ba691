# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Teacher class endpoints.

- POST /classes - List a teacher's classes with active student counts
"""

import logging
from typing import Any

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession

from linguadash.api.dependencies import get_db
from linguadash.domains.classes import ClassService, MissingTeacherError
from linguadash.models.classes import TeacherClassesRequest

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post("/classes", summary="Teacher classes")
async def teacher_classes(
    data: TeacherClassesRequest,
    db: AsyncSession = Depends(get_db),
) -> list[dict[str, Any]]:
    """List the teacher's classes, newest first.

    Raises:
        HTTPException: If no teacher id is given.
    """
    service = ClassService(db)
    try:
        return await service.list_classes(data.teacher_id)
    except MissingTeacherError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
