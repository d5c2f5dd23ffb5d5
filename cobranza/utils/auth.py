# cobranza/utils/auth.py
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Optional

from fastapi import Depends, HTTPException, status
from fastapi.security import OAuth2PasswordBearer
from jose import JWTError, jwt

from cobranza.config import SECRET_KEY, JWT_ALGORITHM, JWT_EXPIRE_MINUTES
from cobranza.constants import ROLE_ADMIN

# El login lo hace el proveedor de identidad; acá sólo se valida el bearer
oauth2_scheme = OAuth2PasswordBearer(tokenUrl="login")


@dataclass(frozen=True)
class AuthContext:
    tenant_id: str
    role: str
    actor_id: Optional[str] = None

    @property
    def is_admin(self) -> bool:
        return self.role == ROLE_ADMIN


# ===== JWT =====
def create_access_token(tenant_id: str, actor_id: Optional[str], role: str, minutes: int = JWT_EXPIRE_MINUTES) -> str:
    exp = datetime.now(timezone.utc) + timedelta(minutes=minutes)
    payload = {
        "sub": actor_id or "",
        "tenant_id": tenant_id,
        "role": role,
        "scope": "access",
        "exp": exp,
    }
    return jwt.encode(payload, SECRET_KEY, algorithm=JWT_ALGORITHM)


def decode_token(token: str) -> dict:
    return jwt.decode(token, SECRET_KEY, algorithms=[JWT_ALGORITHM])


def context_from_token(token: Optional[str]) -> AuthContext:
    cred_exc = HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="No autorizado",
        headers={"WWW-Authenticate": "Bearer"},
    )
    if not token:
        raise cred_exc
    try:
        payload = decode_token(token)
    except JWTError:
        raise cred_exc

    if payload.get("scope") != "access":
        raise cred_exc
    tenant_id = payload.get("tenant_id")
    role = payload.get("role")
    if not tenant_id or not role:
        raise cred_exc
    return AuthContext(tenant_id=str(tenant_id), role=str(role), actor_id=payload.get("sub") or None)


def get_auth_context(token: str = Depends(oauth2_scheme)) -> AuthContext:
    return context_from_token(token)


def ensure_admin(ctx: AuthContext) -> None:
    if not ctx.is_admin:
        raise HTTPException(status_code=403, detail="Solo administradores")


def require_admin(ctx: AuthContext = Depends(get_auth_context)) -> AuthContext:
    ensure_admin(ctx)
    return ctx
