import uuid
from datetime import datetime, timedelta
from typing import Optional

from fastapi import Depends, HTTPException, Request
from jose import jwt, JWTError

from .config import JWT_SECRET, JWT_ALGORITHM, JWT_EXP_MINUTES


def create_jwt(user_id: int, role: str) -> str:
    payload = {
        "sub": str(user_id),
        "role": role,
        "exp": datetime.utcnow() + timedelta(minutes=JWT_EXP_MINUTES)
    }
    return jwt.encode(payload, JWT_SECRET, algorithm=JWT_ALGORITHM)


def decode_jwt(token: str) -> Optional[dict]:
    """Return {"id", "role"} for a valid token, else None."""
    try:
        payload = jwt.decode(token, JWT_SECRET, algorithms=[JWT_ALGORITHM])
    except JWTError:
        return None
    sub = payload.get("sub")
    if sub is None or not str(sub).isdigit():
        return None
    return {"id": int(sub), "role": payload.get("role")}


async def get_optional_user(request: Request):
    auth = request.headers.get("Authorization")
    trace_id = getattr(request.state, "trace_id", None) or str(uuid.uuid4())

    if not auth or not auth.lower().startswith("bearer "):
        return {"id": None, "role": None, "trace_id": trace_id}

    token = auth.split(" ", 1)[1].strip()
    claims = decode_jwt(token)
    if claims is None:
        return {"id": None, "role": None, "trace_id": trace_id}
    return {**claims, "trace_id": trace_id}


async def get_current_user(user=Depends(get_optional_user)):
    if user["id"] is None:
        raise HTTPException(status_code=401, detail="Not authenticated")
    return user


def require_role(*roles: str):
    allowed = set(roles)

    async def checker(user=Depends(get_current_user)):
        if user["role"] not in allowed:
            raise HTTPException(status_code=403, detail=f"Forbidden: {', '.join(sorted(allowed))} only")
        return user

    return checker


admin_required = require_role("admin")
customer_required = require_role("customer")
delivery_required = require_role("delivery")
refiller_required = require_role("refiller")
