# services/current_user.py
from typing import Optional

from fastapi import Header, HTTPException, status

USER_HEADER = "X-User-Id"


def get_current_user_id(x_user_id: Optional[str] = Header(default=None, alias=USER_HEADER)) -> str:
    """Caller identity as forwarded by the gateway in front of this service."""
    user_id = (x_user_id or "").strip()
    if not user_id:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail=f"Missing {USER_HEADER} header")
    return user_id
