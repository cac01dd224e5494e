from fastapi import Depends, HTTPException
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from app.models.tenancy import Role
from app.services.auth import Actor, verify_token

bearer = HTTPBearer(auto_error=False)


def require_user_auth(
    creds: HTTPAuthorizationCredentials | None = Depends(bearer),
) -> Actor:
    if creds is None or not creds.credentials:
        raise HTTPException(
            status_code=401,
            detail="Missing bearer token",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return verify_token(creds.credentials)


def require_roles(*roles: Role):
    allowed = frozenset(roles)

    def dependency(actor: Actor = Depends(require_user_auth)) -> Actor:
        if actor.role not in allowed:
            raise HTTPException(
                status_code=403,
                detail="Role not permitted for this operation",
            )
        return actor

    return dependency
