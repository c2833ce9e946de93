"""Completion sync endpoint.

Runs one completion sync for the authenticated user against their Peloton
account. Triggered by the web app (on calendar load and via a manual refresh).
"""

from __future__ import annotations

from datetime import datetime, timezone

from fastapi import APIRouter, Body, Depends, HTTPException, status
from fastapi.responses import JSONResponse
from loguru import logger
from pydantic import BaseModel
from sqlalchemy import select

from ride_planner.api.dependencies.auth import get_current_user_id
from ride_planner.config.settings import settings
from ride_planner.core.encryption import DecryptionError, decrypt_token
from ride_planner.db.models import PelotonToken, Profile
from ride_planner.db.session import get_session
from ride_planner.integrations.peloton.client import PelotonClient
from ride_planner.planner.completion_sync import sync_completed_workouts
from ride_planner.planner.store import SqlPlannedWorkoutStore
from ride_planner.utils.timezone import to_utc

router = APIRouter(prefix="/planner", tags=["planner"])


class SyncCompletionsRequest(BaseModel):
    timezone: str | None = None  # Browser-detected IANA timezone


class SyncCompletionsResponse(BaseModel):
    message: str
    matched: int


@router.post("/sync-completions", response_model=SyncCompletionsResponse)
def sync_completions(
    body: SyncCompletionsRequest | None = Body(default=None),
    user_id: str = Depends(get_current_user_id),
):
    """Detect Peloton classes the user finished and mark their planned workouts completed.

    Timezone priority: profile preference, then the browser timezone from the
    request body, then settings.default_timezone.
    """
    browser_timezone = body.timezone if body else None

    with get_session() as session:
        profile = session.execute(select(Profile).where(Profile.id == user_id)).scalar_one_or_none()
        if profile is None or not profile.peloton_user_id:
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Peloton profile not found")

        tz_name = profile.timezone or browser_timezone or settings.default_timezone

        tokens = session.get(PelotonToken, user_id)
        if tokens is None:
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Peloton not connected")

        if to_utc(tokens.expires_at) < datetime.now(timezone.utc):
            raise HTTPException(
                status_code=status.HTTP_401_UNAUTHORIZED,
                detail="Peloton token expired. Please reconnect.",
            )

        try:
            access_token = decrypt_token(tokens.access_token_encrypted)
        except DecryptionError as e:
            raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail=str(e)) from e

        result = sync_completed_workouts(
            user_id,
            profile.peloton_user_id,
            PelotonClient(access_token),
            SqlPlannedWorkoutStore(session),
            timezone=tz_name,
        )

    if not result.success:
        logger.warning(f"Completion sync failed for user_id={user_id}: {result.error}")
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={"error": result.error or "Sync failed", "matched": result.matched},
        )

    message = (
        f"Detected {result.matched} completed workout(s)" if result.matched > 0 else "No new completions detected"
    )
    return SyncCompletionsResponse(message=message, matched=result.matched)
