# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Clerk webhook endpoint.

- POST /webhooks/clerk - Verify and apply a Clerk user event

The endpoint is public; deliveries are authenticated by their Svix
signature instead of a session.
"""

import logging

from fastapi import APIRouter, Depends, HTTPException, Request, status
from sqlalchemy.ext.asyncio import AsyncSession

from linguadash.api.dependencies import get_db
from linguadash.core.config import get_settings
from linguadash.domains.enrollment import (
    ClerkWebhookHandler,
    InvalidWebhookSignatureError,
    MissingWebhookHeadersError,
    WebhookNotConfiguredError,
    WebhookProcessingError,
)

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post("/clerk", summary="Clerk webhook")
async def clerk_webhook(
    request: Request,
    db: AsyncSession = Depends(get_db),
) -> dict[str, bool]:
    """Verify the delivery signature and apply the event.

    Raises:
        HTTPException: 500 if unconfigured or processing fails, 400 if
            headers are missing or the signature is invalid.
    """
    settings = get_settings()
    handler = ClerkWebhookHandler(db, settings.clerk, settings.dashboard)

    payload = await request.body()
    try:
        event = handler.verify(payload, request.headers)
    except WebhookNotConfiguredError as e:
        logger.error("CLERK_WEBHOOK_SECRET is not configured")
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=str(e))
    except (MissingWebhookHeadersError, InvalidWebhookSignatureError) as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))

    try:
        await handler.handle(event)
    except WebhookProcessingError as e:
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=str(e))

    return {"received": True}
