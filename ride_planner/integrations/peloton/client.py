from __future__ import annotations

import httpx
from loguru import logger

from ride_planner.config.settings import settings
from ride_planner.integrations.peloton.schemas import PelotonWorkout


class PelotonAuthError(Exception):
    """Raised when Peloton rejects the access token (401/403)."""


class PelotonClient:
    """Thin Peloton API client.

    - One page per call, pagination is the caller's concern
    - No token refresh, no retries
    """

    def __init__(self, access_token: str, *, base_url: str | None = None):
        self._access_token = access_token
        self._base_url = (base_url or settings.peloton_api_base_url).rstrip("/")

    def _headers(self) -> dict[str, str]:
        return {
            "Authorization": f"Bearer {self._access_token}",
            "Peloton-Platform": "web",
        }

    def get_user_workouts(
        self,
        peloton_user_id: str,
        *,
        limit: int = 20,
        joins: str | None = "ride",
    ) -> list[PelotonWorkout]:
        """Fetch ONE PAGE of the user's most recent workouts, newest first.

        Raises:
            PelotonAuthError: If the token is rejected
            httpx.HTTPStatusError: For any other non-2xx response
        """
        params: dict[str, str | int] = {"limit": limit, "page": 0, "sort_by": "-created"}
        if joins:
            params["joins"] = joins

        resp = httpx.get(
            f"{self._base_url}/api/user/{peloton_user_id}/workouts",
            headers=self._headers(),
            params=params,
            timeout=settings.peloton_request_timeout,
        )

        if resp.status_code in {401, 403}:
            logger.warning(f"Peloton rejected access token: status={resp.status_code} peloton_user_id={peloton_user_id}")
            raise PelotonAuthError(f"Peloton authentication failed with status {resp.status_code}")

        resp.raise_for_status()

        payload = resp.json() or {}
        data = payload.get("data") or []
        return [PelotonWorkout(**raw, raw=raw) for raw in data]
