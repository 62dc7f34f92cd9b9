# portfolio_newsletter/auth/dependencies.py
from fastapi import Depends, HTTPException, Cookie, Header, Request, status
from typing import Optional
from jose import jwt, JWTError
from pydantic import ValidationError
from portfolio_newsletter.auth.models import TokenData, UserRole
import logging

logger = logging.getLogger(__name__)

def _bearer_token(authorization: Optional[str]) -> Optional[str]:
    if authorization and authorization.lower().startswith("bearer "):
        return authorization[7:].strip()
    return None

async def get_current_user(
    request: Request,
    access_token: Optional[str] = Cookie(None),
    authorization: Optional[str] = Header(None)
) -> TokenData:
    """Decode the access token cookie (or bearer header) - REQUIRED authentication"""
    token = access_token or _bearer_token(authorization)
    if not token:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authenticated"
        )

    settings = request.app.state.settings
    try:
        payload = jwt.decode(token, settings.jwt_secret_key, algorithms=[settings.jwt_algorithm])
        return TokenData(**payload)
    except (JWTError, ValidationError) as e:
        logger.warning(f"Rejected access token: {e}")
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid authentication credentials"
        )

async def require_admin(user: TokenData = Depends(get_current_user)) -> TokenData:
    if user.role != UserRole.ADMIN:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Admin access required"
        )
    return user
