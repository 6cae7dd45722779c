"""
Authentication dependencies for FastAPI.

SECURITY: Tenant-facing queries MUST filter on the user_id returned by
get_tenant_id. Failure to do so will result in data leakage between tenants.
"""
import hmac

from fastapi import Depends, Header, HTTPException, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from formhooks.config import settings
from formhooks.database import get_db
from formhooks.models.user_settings import UserSettings


# Security scheme
security = HTTPBearer(auto_error=False)


async def require_dispatcher_token(
    credentials: HTTPAuthorizationCredentials | None = Depends(security)
) -> None:
    """
    Dependency guarding the dispatcher trigger.
    
    When DISPATCHER_TOKEN is unset the hosting environment is expected to
    restrict access and the endpoint is open.
    """
    expected = settings.DISPATCHER_TOKEN
    if not expected:
        return

    if credentials is None or not hmac.compare_digest(credentials.credentials, expected):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid or missing dispatcher token",
            headers={"WWW-Authenticate": "Bearer"},
        )


async def get_tenant_id(
    x_api_key: str = Header(...),
    db: AsyncSession = Depends(get_db)
) -> str:
    """
    Dependency resolving the X-API-Key header to the owning user id.
    
    Usage:
        @router.get("/mine")
        async def mine(tenant_id: str = Depends(get_tenant_id)):
            ...
    """
    stmt = select(UserSettings.user_id).where(UserSettings.api_key == x_api_key)
    result = await db.execute(stmt)
    user_id = result.scalar_one_or_none()

    if user_id is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid API key"
        )

    return user_id
