"""
Request dependencies: caller identity, correlation id, app components.

Authentication is done upstream. The gateway in front of the API puts
the authenticated user's id in the X-User-Id header; a request without
it is rejected.
"""

from typing import Optional
from uuid import UUID

from fastapi import Header, HTTPException, Request

from pocketbook.audit import create_correlation_id
from pocketbook.orchestrator import AppComponents


def get_components(request: Request) -> AppComponents:
    return request.app.state.components


def get_current_user(
    x_user_id: Optional[str] = Header(default=None),
) -> str:
    if not x_user_id or not x_user_id.strip():
        raise HTTPException(status_code=401, detail="Unauthorized")
    return x_user_id.strip()


def get_correlation_id(
    x_request_id: Optional[str] = Header(default=None),
) -> UUID:
    """Reuse the caller's request id when it is a UUID, else start a new one."""
    if x_request_id:
        try:
            return UUID(x_request_id)
        except ValueError:
            pass
    return create_correlation_id()
