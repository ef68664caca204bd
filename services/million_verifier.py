"""MillionVerifier email verification client."""

from __future__ import annotations

import logging
import os
from typing import Optional

import httpx

logger = logging.getLogger(__name__)

API_BASE_URL = "https://api.millionverifier.com/api/v3/"
DEFAULT_TIMEOUT = 15.0


class MillionVerifierClient:
    """
    Single-address verification against the MillionVerifier v3 API.

    Returns the provider's raw `result` field; mapping it to a stored status is
    domain.verification's job. HTTP and transport errors propagate so the
    verification queue can retry the item.
    """

    def __init__(self, api_key: str, *, timeout: float = DEFAULT_TIMEOUT, base_url: str = API_BASE_URL) -> None:
        if not api_key:
            raise ValueError("api_key is required")
        self._api_key = api_key
        self._timeout = timeout
        self._base_url = base_url

    @classmethod
    def from_env(cls) -> "MillionVerifierClient":
        api_key = os.getenv("MILLIONVERIFIER_API_KEY")
        if not api_key:
            raise RuntimeError(
                "Missing environment variable: MILLIONVERIFIER_API_KEY. "
                "Set it to your MillionVerifier API key."
            )
        return cls(api_key)

    def verify(self, email: str) -> str:
        response = httpx.get(
            self._base_url,
            params={"api": self._api_key, "email": email},
            timeout=self._timeout,
        )
        response.raise_for_status()

        result: Optional[str] = response.json().get("result")
        logger.debug("Verified email", extra={"result": result})
        return result or "unknown"


__all__ = ["MillionVerifierClient"]
