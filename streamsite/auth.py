# streamsite/auth.py
"""
Admin authentication.

The bearer token is the username itself and passwords are stored and compared
in plaintext. Both are known weaknesses kept for compatibility with existing
clients; see DESIGN.md before deploying publicly.
"""
from datetime import datetime, timezone
from typing import Any, Optional

from fastapi import BackgroundTasks, Depends, HTTPException, Request, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from streamsite.logger import logger
from streamsite.schemas import User
from streamsite.storage import Storage, StorageError

bearer_scheme = HTTPBearer(auto_error=False)


def get_storage(request: Request) -> Storage:
    return request.app.state.storage


async def authenticate_user(storage: Storage, username: str, password: str) -> Optional[User]:
    user = await storage.get_user_by_username(username)
    if not user or user.password != password:
        return None
    return user


class AdminSession:
    """The resolved admin plus a way to record what they did."""

    def __init__(self, user: User, storage: Storage, background_tasks: BackgroundTasks):
        self.user = user
        self.storage = storage
        self.background_tasks = background_tasks

    def log_action(self, action: str, data: Any) -> None:
        # Runs after the response is sent; delivery errors stay in the log.
        self.background_tasks.add_task(
            self.storage.send_audit_event,
            "Admin Action",
            {
                "action": action,
                "user": self.user.username,
                "data": data,
                "timestamp": datetime.now(timezone.utc).isoformat(),
            },
        )


async def require_admin(
    background_tasks: BackgroundTasks,
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
    storage: Storage = Depends(get_storage),
) -> AdminSession:
    if credentials is None or not credentials.credentials:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Authentication required")

    try:
        user = await storage.get_user_by_username(credentials.credentials)
    except StorageError as exc:
        logger.error("Auth error: %s", exc)
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid authentication")

    if not user or not user.is_admin:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Access denied")

    return AdminSession(user, storage, background_tasks)
