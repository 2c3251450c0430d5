# checklist_service/core/auth.py
from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from jose import jwt, JWTError
from checklist_service.config import settings
from checklist_service.core.roles import Caller, Role

reusable_oauth2 = HTTPBearer()


def caller_from_claims(payload: dict) -> Caller:
    """Build a Caller from decoded token claims. Raises ValueError on bad claims."""
    subject_id = payload.get("sub")
    if not subject_id:
        raise ValueError("Missing subject")
    role = Role.parse(payload.get("role", ""))
    stores = payload.get("stores") or []
    if isinstance(stores, str):
        stores = [stores]
    return Caller(role=role, subject_id=str(subject_id), store_ids=tuple(str(s) for s in stores))


async def get_current_caller(
    token: HTTPAuthorizationCredentials = Depends(reusable_oauth2)
) -> Caller:
    credentials_exception = HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Could not validate credentials",
        headers={"WWW-Authenticate": "Bearer"},
    )
    try:
        payload = jwt.decode(
            token.credentials,
            settings.SECRET_KEY,
            algorithms=[settings.ALGORITHM]
        )
        return caller_from_claims(payload)
    except (JWTError, ValueError):
        raise credentials_exception


async def get_current_asm(
    caller: Caller = Depends(get_current_caller)
) -> Caller:
    if caller.role != Role.ASM:
        raise HTTPException(403, "Area manager access required")
    return caller
