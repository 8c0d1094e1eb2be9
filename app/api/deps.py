# backend/app/api/deps.py

import logging
from fastapi import Depends, HTTPException, Request, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from jose import jwt
from jose.exceptions import JWTError, ExpiredSignatureError, JWTClaimsError
from app.core.config import settings
from app.db.repository import FormRepository
from app.db.session import get_repository
from app.schemas.form import Form
from app.schemas.user import User
from typing import Optional

logger = logging.getLogger(__name__)
security = HTTPBearer()


def _unauthorized(detail: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )


def get_current_user(credentials: HTTPAuthorizationCredentials = Depends(security)) -> User:
    """Resolve the author from a Supabase access token."""
    token = credentials.credentials
    try:
        logger.debug(f"Received bearer of length {len(token)}")
        payload = jwt.decode(
            token,
            settings.SUPABASE_JWT_SECRET,
            algorithms=[settings.ALGORITHM],
            audience="authenticated",
            issuer=f"{settings.SUPABASE_URL}/auth/v1",
        )
    except ExpiredSignatureError:
        logger.warning("Token has expired")
        raise _unauthorized("Token has expired")
    except JWTClaimsError as e:
        logger.error(f"JWT claims error: {e}")
        raise _unauthorized(f"Invalid claims: {e}")
    except JWTError as e:
        logger.error(f"JWT error: {e}")
        raise _unauthorized("Could not validate credentials")

    user_id: Optional[str] = payload.get("sub")
    email: Optional[str] = payload.get("email")
    if user_id is None:
        logger.warning("Invalid token payload")
        raise _unauthorized("Could not validate credentials")

    logger.info(f"User authenticated: {user_id}")
    return User(id=user_id, email=email)


def get_owned_form(
    form_id: str,
    current_user: User = Depends(get_current_user),
    repository: FormRepository = Depends(get_repository),
) -> Form:
    if not form_id or form_id == "undefined":
        raise HTTPException(status_code=400, detail="Invalid form ID")
    form = repository.get_form(form_id)
    if form is None:
        raise HTTPException(status_code=404, detail="Form not found")
    if form.user_id != current_user.id:
        logger.warning(f"User {current_user.id} attempted to access form owned by another user.")
        raise HTTPException(status_code=403, detail="Not authorized to access this form")
    return form


def get_client_ip(request: Request) -> str:
    forwarded = request.headers.get("x-forwarded-for")
    ip = request.headers.get("cf-connecting-ip") or (forwarded.split(",")[0].strip() if forwarded else None)
    if not ip and request.client is not None:
        ip = request.client.host
    return ip or "unknown"
