# app/api/deps.py
from typing import Generator
from fastapi import Depends, HTTPException, status, Security
from fastapi.security import OAuth2PasswordBearer, APIKeyHeader
from jose import JWTError, jwt
from sqlalchemy.orm import Session

from app import crud
from app.core.config import settings
from app.db.session import SessionLocal
from app.models.athlete import Athlete
from app.schemas.token import TokenPayload

# Roles allowed to trigger outreach sends
SENDER_ROLES = ("athlete", "coach", "admin", "super-admin")


def get_db() -> Generator:
    """Dependency to get database session."""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


# Tokens are issued by the platform's auth service; tokenUrl only feeds the docs.
oauth2_scheme = OAuth2PasswordBearer(tokenUrl="token")


def get_current_user(token: str = Depends(oauth2_scheme)) -> TokenPayload:
    credentials_exception = HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Could not validate credentials",
        headers={"WWW-Authenticate": "Bearer"},
    )
    try:
        payload = jwt.decode(token, settings.JWT_SECRET, algorithms=["HS256"])
        token_data = TokenPayload(**payload)
    except (JWTError, ValueError):
        raise credentials_exception

    if not token_data.org_id:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN, detail="Token is not bound to an organization"
        )
    return token_data


def get_outreach_sender(current_user: TokenPayload = Depends(get_current_user)) -> TokenPayload:
    if current_user.role not in SENDER_ROLES:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN, detail="Not allowed to send messages"
        )
    return current_user


def get_athlete_for_user(
    athlete_id: str,
    db: Session = Depends(get_db),
    current_user: TokenPayload = Depends(get_current_user),
) -> Athlete:
    """
    The athlete named in the path, as long as it belongs to the caller's
    organization. Athletes may only act on their own record.
    """
    athlete = crud.athlete.get(db, athlete_id)
    if not athlete:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Athlete not found")
    if athlete.organization_id != current_user.org_id:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Org mismatch")
    if current_user.role == "athlete" and current_user.sub != athlete.id:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Athletes can only act for themselves",
        )
    return athlete


api_key_header = APIKeyHeader(name="X-Internal-Api-Key", auto_error=False)


def get_internal_api_key(api_key: str = Security(api_key_header)) -> str:
    """Scheduler, reconciliation and rollup triggers are called service-to-service."""
    if settings.INTERNAL_API_KEY and api_key == settings.INTERNAL_API_KEY:
        return api_key
    raise HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Invalid or missing Internal API Key",
    )
