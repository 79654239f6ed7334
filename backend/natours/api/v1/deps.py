# natours/api/v1/deps.py
from fastapi import Depends, Header, Request

from natours.config import settings
from natours.core.errors import ForbiddenError, UnauthorizedError
from natours.core.security import decode_access_token, password_changed_after
from natours.models.user import Role, User


def _extract_token(request: Request, authorization: str | None) -> str | None:
    # 1) Prioritize Authorization: Bearer xxx
    if authorization and authorization.lower().startswith("bearer "):
        token = authorization.split(" ", 1)[1].strip()
        if token:
            return token
    # 2) Secondly the HttpOnly session cookie
    return request.cookies.get(settings.jwt_cookie_name)


async def protect(
    request: Request,
    authorization: str | None = Header(default=None),
) -> User:
    """
    FastAPI dependency that gates a route behind a valid session token.

    The token is read from either:
    1. Authorization header (Bearer token) - preferred method
    2. HttpOnly cookie ("jwt") - fallback for the browser front end

    Raises:
        UnauthorizedError (401): no token, unknown/inactive user, or the
            password was changed after the token was issued
        jwt.InvalidTokenError / jwt.ExpiredSignatureError: bad token; the
            error normalizer turns these into 401 responses

    On success the user is returned and also stored on request.state.user
    so service hooks further down the chain can read it.
    """
    token = _extract_token(request, authorization)
    if not token:
        raise UnauthorizedError("You are not logged in! Please log in to get access")

    payload = decode_access_token(token)

    user = await User.get_or_none(id=payload.get("sub"), active=True)
    if not user:
        raise UnauthorizedError("The user belonging to this token no longer exists")

    if password_changed_after(user.password_changed_at, payload.get("iat", 0)):
        raise UnauthorizedError("User recently changed password! Please log in again")

    request.state.user = user
    return user


def restrict_to(*roles: Role):
    """
    Dependency factory: only users whose role is in `roles` may pass.

    Usage:
        @router.post("/", dependencies=[Depends(restrict_to(Role.ADMIN, Role.LEAD_GUIDE))])
    """

    async def role_dep(current: User = Depends(protect)) -> User:
        if not Role.allows(current.role, roles):
            raise ForbiddenError()
        return current

    return role_dep
