"""
ProofOfWork Trust Engine - Authentication Utilities
JWT tokens and auth dependencies. Participants have no passwords: the token
issued at registration is their credential.
"""
import os
from datetime import datetime, timedelta, timezone
from typing import Optional

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from jose import JWTError, jwt
from sqlalchemy.orm import Session

from .database import get_db
from .errors import InsufficientStanding
from .models.db_models import ParticipantDB, ParticipantRole

# Configuration
SECRET_KEY = os.getenv("JWT_SECRET_KEY", "proofwork-secret-key-change-in-production")
ALGORITHM = "HS256"
ACCESS_TOKEN_EXPIRE_HOURS = int(os.getenv("JWT_EXPIRE_HOURS", "720"))

# Bearer token security
security = HTTPBearer()


def create_access_token(participant_id: str, role: str = ParticipantRole.PARTICIPANT.value) -> str:
    """Create a JWT access token with role claim."""
    expire = datetime.now(timezone.utc) + timedelta(hours=ACCESS_TOKEN_EXPIRE_HOURS)
    to_encode = {
        "sub": participant_id,
        "role": role,
        "exp": expire,
    }
    return jwt.encode(to_encode, SECRET_KEY, algorithm=ALGORITHM)


def decode_token(token: str) -> Optional[dict]:
    """Decode and validate a JWT token. Expired or tampered tokens yield None."""
    try:
        return jwt.decode(token, SECRET_KEY, algorithms=[ALGORITHM])
    except JWTError:
        return None


async def get_current_participant(
    credentials: HTTPAuthorizationCredentials = Depends(security),
    db: Session = Depends(get_db),
) -> ParticipantDB:
    """
    Dependency to get the authenticated participant.
    Validates the JWT and fetches the participant from the database.
    """
    credentials_exception = HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Could not validate credentials",
        headers={"WWW-Authenticate": "Bearer"},
    )

    payload = decode_token(credentials.credentials)
    if payload is None:
        raise credentials_exception

    participant_id: str = payload.get("sub")
    if participant_id is None:
        raise credentials_exception

    participant = db.get(ParticipantDB, participant_id)
    if participant is None or not participant.is_active:
        raise credentials_exception

    return participant


async def require_admin(
    current_participant: ParticipantDB = Depends(get_current_participant),
) -> ParticipantDB:
    """
    Dependency to require admin role.
    Use this on slashing, rejection and flag review routes.
    """
    if current_participant.role != ParticipantRole.ADMIN:
        raise InsufficientStanding(current_participant.id)
    return current_participant
