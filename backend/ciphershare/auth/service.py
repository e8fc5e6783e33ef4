from datetime import datetime, timedelta, timezone
from typing import Annotated

from fastapi import Depends, HTTPException, status
from fastapi.security import OAuth2PasswordBearer
from jose import JWTError, jwt

from ..core.settings import settings

# Tokens are issued by the external auth service; only the subject is used here
oauth2_scheme = OAuth2PasswordBearer(tokenUrl="auth/login")

def decode_user_id(token: str) -> int:
    credentials_exception = HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Could not validate credentials",
        headers={"WWW-Authenticate": "Bearer"},
    )
    try:
        payload = jwt.decode(token, settings.SECRET_KEY, algorithms=[settings.ALGORITHM])
        subject = payload.get("sub")
        if subject is None:
            raise credentials_exception
        return int(subject)
    except (JWTError, ValueError):
        raise credentials_exception

async def get_current_user_id(token: Annotated[str, Depends(oauth2_scheme)]) -> int:
    return decode_user_id(token)

def create_access_token(user_id: int, expires_minutes: int = 15) -> str:
    """
    Mints a token the way the auth service does. Used by tests and local tooling.
    """
    expire = datetime.now(timezone.utc) + timedelta(minutes=expires_minutes)
    return jwt.encode({"sub": str(user_id), "exp": expire}, settings.SECRET_KEY, algorithm=settings.ALGORITHM)
