"""Shared-password gate for the Fundraise API."""
from __future__ import annotations

import secrets

from fastapi import Header, HTTPException

from fundraise.config import get_settings


async def require_password(
    x_pipeline_password: str | None = Header(default=None),
) -> None:
    """Reject the request unless it carries the configured password.

    No password configured means the API is open.
    """
    expected = get_settings().password
    if not expected:
        return
    if x_pipeline_password is None or not secrets.compare_digest(
        x_pipeline_password.encode(), expected.encode()
    ):
        raise HTTPException(status_code=401, detail="Invalid or missing password")
