from fastapi import Depends, HTTPException
from fastapi.security import APIKeyHeader

from app.db import get_sessionmaker
from database.models import User

# The upstream auth layer verifies the access token, provisions the users row
# and forwards the owner id.
OWNER_HEADER = APIKeyHeader(name="X-User-Id", auto_error=False)


async def _owner_exists(owner_id: int) -> bool:
    # own short session so the request session has no open transaction
    async with get_sessionmaker()() as session:
        return await session.get(User, owner_id) is not None


async def get_owner_id(owner: str = Depends(OWNER_HEADER)) -> int:
    """Resolve the authenticated owner id or reject the request."""
    if not owner:
        raise HTTPException(status_code=401, detail="Authorization header missing")
    try:
        owner_id = int(owner.strip())
    except ValueError:
        raise HTTPException(status_code=401, detail="Invalid owner identity")
    if owner_id <= 0 or not await _owner_exists(owner_id):
        raise HTTPException(status_code=401, detail="Invalid owner identity")
    return owner_id
