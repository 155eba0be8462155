from typing import Optional, List

from fastapi import Depends, HTTPException, Request, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from jose import JWTError, jwt
from supabase import Client

from core.audit import get_user_agent
from core.config import settings
from core.logging_config import logger
from core.rate_limiter import get_client_ip
from core.scope import get_admin_mode_company_id, resolve_scope
from core.supabase_client import require_supabase_client
from models.auth import AuthContext, CurrentUser
from models.enums import Role


bearer_scheme = HTTPBearer(auto_error=False)


# ============================================================
# SESSION TOKEN (cookie first, then Authorization header)
# ============================================================
def get_session_token(
    request: Request,
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
) -> Optional[str]:
    token = request.cookies.get(settings.SESSION_COOKIE_NAME)
    if token:
        return token
    if credentials and credentials.credentials:
        return credentials.credentials
    return None


def _auth_user_id_from_token(client: Client, token: str) -> Optional[str]:
    """
    Supabase auth uid for a session token, or None if the token is not valid.

    Verified locally when SUPABASE_JWT_SECRET is set, otherwise through
    the Supabase auth API.
    """
    if settings.SUPABASE_JWT_SECRET:
        try:
            payload = jwt.decode(
                token,
                settings.SUPABASE_JWT_SECRET,
                algorithms=["HS256"],
                audience="authenticated",
            )
        except JWTError:
            return None
        return payload.get("sub")

    try:
        auth_resp = client.auth.get_user(token)
    except Exception as e:
        logger.info(f"Session token rejected: {type(e).__name__}")
        return None

    if not auth_resp or not auth_resp.user:
        return None
    return auth_resp.user.id


# ============================================================
# SESSION RESOLVER
# ============================================================
def resolve_session_user(client: Client, token: Optional[str]) -> Optional[CurrentUser]:
    """
    The users row behind a session token, or None when there is no
    valid session or no matching user.
    """
    if not token:
        return None

    user_id = _auth_user_id_from_token(client, token)
    if not user_id:
        return None

    try:
        rows = (
            client.table("users")
            .select("id, email, role, name, surname")
            .eq("id", user_id)
            .limit(1)
            .execute()
        ).data
    except Exception as e:
        logger.error(f"Failed to load user {user_id}: {e}")
        raise HTTPException(500, "Failed to load user")

    if not rows:
        logger.warning(f"Authenticated uid {user_id} has no users row")
        return None

    row = rows[0]
    role = row.get("role")
    if role not in Role.list():
        logger.warning(f"User {user_id} has unknown role {role!r}")
        raise HTTPException(status.HTTP_403_FORBIDDEN, "Forbidden: unknown role")

    return CurrentUser(
        id=row["id"],
        email=row.get("email") or "",
        role=Role(role),
        name=row.get("name"),
        surname=row.get("surname"),
    )


def get_db() -> Client:
    return require_supabase_client()


def get_optional_user(
    token: Optional[str] = Depends(get_session_token),
) -> Optional[CurrentUser]:
    """
    Current user if a valid session exists, None otherwise.
    Never raises 401.
    """
    if not token:
        return None
    return resolve_session_user(get_db(), token)


def get_current_user(
    user: Optional[CurrentUser] = Depends(get_optional_user),
) -> CurrentUser:
    if user is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Unauthorized",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return user


# ============================================================
# AUTH CONTEXT (scope + admin-mode + request metadata)
# ============================================================
def build_auth_context(request: Request, client: Client, user: CurrentUser) -> AuthContext:
    scope = resolve_scope(client, user.id, user.role)
    return AuthContext(
        user=user,
        scope=scope,
        admin_company_id=get_admin_mode_company_id(request, user.role),
        ip=get_client_ip(request),
        user_agent=get_user_agent(request),
    )


def get_auth_context(
    request: Request,
    user: CurrentUser = Depends(get_current_user),
) -> AuthContext:
    return build_auth_context(request, get_db(), user)


# ============================================================
# ACCESS GUARD (role list)
# ============================================================
def requires_role(allowed_roles: List[Role]):
    """
    Usage:
        ctx: AuthContext = Depends(requires_role([Role.admin, Role.owner]))

    401 without a valid session always wins over 403 for a role mismatch,
    because the session is resolved before the role is compared.
    """
    allowed = [Role(r) for r in allowed_roles]

    def checker(
        request: Request,
        user: CurrentUser = Depends(get_current_user),
    ) -> AuthContext:
        if user.role not in allowed:
            logger.warning(f"Role {user.role} denied; requires one of {[str(r) for r in allowed]}")
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail=f"Forbidden: requires one of {[str(r) for r in allowed]}",
            )
        return build_auth_context(request, get_db(), user)

    return checker
