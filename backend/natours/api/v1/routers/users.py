import functools
import logging

from fastapi import APIRouter, Depends, Request, Response, status

from natours.api.v1.deps import protect, restrict_to
from natours.config import settings
from natours.core.errors import BadRequestError, InternalError, NotFoundError, UnauthorizedError
from natours.core.security import (
    create_access_token,
    create_password_reset_token,
    hash_password,
    password_changed_timestamp,
    sha256_hex,
    utc_now,
    verify_password,
)
from natours.models.user import Role, User
from natours.schemas.user import (
    ForgotPasswordIn,
    LoginIn,
    ResetPasswordIn,
    SignupIn,
    UpdateMeIn,
    UpdatePasswordIn,
)
from natours.services import email as email_service
from natours.services import handler_factory as factory
from natours.services.user_service import USERS, user_to_dict

logger = logging.getLogger("uvicorn.error")

router = APIRouter(prefix="/users", tags=["users"])


@functools.lru_cache(maxsize=1)
def _dummy_hash() -> str:
    # Verified against when the email is unknown so both login failures do the same work
    return hash_password("natours-login-placeholder")


def _send_token(user: User, response: Response) -> dict:
    """
    Issue a session token for `user`.

    The token is returned in the body and set as an HttpOnly cookie; the
    cookie is only marked Secure in production so it works over plain
    http during development.
    """
    token = create_access_token(str(user.id), Role(user.role).value)
    response.set_cookie(
        settings.jwt_cookie_name,
        token,
        max_age=settings.jwt_cookie_expires_in_days * 24 * 60 * 60,
        httponly=True,
        secure=settings.is_production,
        samesite="lax",
    )
    return {"status": "success", "token": token, "data": {"user": user_to_dict(user)}}


def _set_password(user: User, password: str) -> None:
    user.password_hash = hash_password(password)
    user.password_changed_at = password_changed_timestamp()


# ==============================================================================
# I. Authentication
# ==============================================================================
@router.post("/signup", status_code=status.HTTP_201_CREATED)
async def signup(body: SignupIn, response: Response):
    """
    Register a new user and log them in.

    Password confirmation and minimum length are enforced by SignupIn, a
    duplicate email surfaces as a duplicate-field error from the database.
    """
    user = await User.create(
        name=body.name.strip(),
        email=body.email,
        role=body.role,
        password_hash=hash_password(body.password),
    )
    return _send_token(user, response)


@router.post("/login")
async def login(body: LoginIn, response: Response):
    """
    Authenticate by email and password.

    An unknown email and a wrong password produce the same 401 so the
    response does not reveal which accounts exist.
    """
    if not body.email or not body.password:
        raise BadRequestError("Please provide email and password")

    user = await User.get_or_none(email=body.email.lower(), active=True)
    hashed = user.password_hash if user else _dummy_hash()
    if not verify_password(body.password, hashed) or user is None:
        raise UnauthorizedError("Incorrect email or password")
    return _send_token(user, response)


@router.get("/logout")
async def logout(response: Response):
    """Overwrite the session cookie with a short-lived placeholder."""
    response.set_cookie(settings.jwt_cookie_name, "loggedout", max_age=10, httponly=True)
    return {"status": "success"}


@router.post("/forgotPassword")
async def forgot_password(body: ForgotPasswordIn, request: Request):
    """
    Email a password reset link.

    Only the sha256 of the token is stored. If the mail cannot be sent the
    stored token and expiry are cleared again before failing.
    """
    user = await User.get_or_none(email=body.email.lower(), active=True)
    if not user:
        raise NotFoundError("There is no user with that email address")

    plain, hashed, expires = create_password_reset_token()
    user.password_reset_token = hashed
    user.password_reset_expires = expires
    await user.save(update_fields=["password_reset_token", "password_reset_expires"])

    reset_url = str(request.url_for("reset_password", token=plain))
    try:
        await email_service.send_password_reset(user.email, reset_url)
    except Exception as exc:
        logger.exception("[users] reset email to %s failed", user.email)
        user.password_reset_token = None
        user.password_reset_expires = None
        await user.save(update_fields=["password_reset_token", "password_reset_expires"])
        raise InternalError("There was an error sending the email. Please try again later!") from exc

    return {"status": "success", "message": "Token sent to email!"}


@router.patch("/resetPassword/{token}", name="reset_password")
async def reset_password(token: str, body: ResetPasswordIn, response: Response):
    user = await User.get_or_none(
        password_reset_token=sha256_hex(token),
        password_reset_expires__gt=utc_now(),
        active=True,
    )
    if not user:
        raise BadRequestError("Token is invalid or has expired")

    _set_password(user, body.password)
    user.password_reset_token = None
    user.password_reset_expires = None
    await user.save()
    return _send_token(user, response)


@router.patch("/updateMyPassword")
async def update_my_password(body: UpdatePasswordIn, response: Response, user: User = Depends(protect)):
    if not verify_password(body.passwordCurrent, user.password_hash):
        raise UnauthorizedError("Your current password is incorrect")
    _set_password(user, body.password)
    await user.save()
    return _send_token(user, response)


# ==============================================================================
# II. Current user
# ==============================================================================
@router.get("/me")
async def get_me(user: User = Depends(protect)):
    return {"status": "success", "data": {"data": user_to_dict(user)}}


@router.patch("/updateMe")
async def update_me(body: UpdateMeIn, user: User = Depends(protect)):
    if body.password is not None or body.passwordConfirm is not None:
        raise BadRequestError("This route is not for password updates. Please use /updateMyPassword.")

    changes = {
        k: v
        for k, v in body.model_dump(exclude_unset=True, include={"name", "email", "photo"}).items()
        if v is not None
    }
    if "email" in changes:
        changes["email"] = changes["email"].lower()
    user.update_from_dict(changes)
    await user.save()
    return {"status": "success", "data": {"user": user_to_dict(user)}}


@router.delete("/deleteMe", status_code=status.HTTP_204_NO_CONTENT)
async def delete_me(user: User = Depends(protect)):
    user.active = False
    await user.save(update_fields=["active"])
    return Response(status_code=status.HTTP_204_NO_CONTENT)


# ==============================================================================
# III. Administration (admin only)
# ==============================================================================
admin_only = [Depends(restrict_to(Role.ADMIN))]


@router.post("", dependencies=admin_only)
async def create_user():
    raise InternalError("This route is not defined! Please use /signup instead")


router.add_api_route("", factory.get_all(USERS), methods=["GET"], dependencies=admin_only)
router.add_api_route("/{id}", factory.get_one(USERS), methods=["GET"], dependencies=admin_only)
router.add_api_route("/{id}", factory.update_one(USERS), methods=["PATCH"], dependencies=admin_only)
router.add_api_route(
    "/{id}",
    factory.delete_one(USERS),
    methods=["DELETE"],
    status_code=status.HTTP_204_NO_CONTENT,
    dependencies=admin_only,
)
