from fastapi import Header, HTTPException
from starlette import status

from arena.utils.id_types import UserId


async def user_authenticated(x_user_id: str | None = Header(default=None)) -> UserId:
    """
    Authentication happens in front of this service, which forwards the caller's id in the
    X-User-Id header.
    """
    if x_user_id is None or x_user_id.strip() == "":
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Missing X-User-Id header",
        )
    return UserId(x_user_id.strip())
