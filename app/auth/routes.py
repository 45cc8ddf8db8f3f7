"""
Authentication routes for local accounts.

Provides endpoints for:
- First-user signup (becomes global admin; closed afterwards)
- Invite acceptance (creates the invited user as project member)
- Login (email/password → JWT)
- Password and profile updates for signed-in users
- Whoami (the resolved authentication context and its permissions)
"""

from typing import Optional

from fastapi import APIRouter, Body, Depends, Request
from pydantic import BaseModel, EmailStr, Field

from gatekit_core.auth.dependencies import authenticate
from gatekit_core.auth.jwt_service import JwtService
from gatekit_core.auth.user_service import UserRecord, UserService
from gatekit_core.config import settings
from gatekit_core.domain.auth import AuthContext, AuthType
from gatekit_core.infrastructure.rate_limiter import AUTH_LIMIT, limiter
from gatekit_core.runtime.errors import BadRequestError, ForbiddenError

router = APIRouter(prefix="/api/v1/auth", tags=["auth"])


# =============================================================================
# Request/Response Schemas
# =============================================================================


class SignupRequest(BaseModel):
    """First-user signup request."""

    email: EmailStr
    password: str = Field(..., min_length=8)
    name: Optional[str] = Field(None, max_length=255)


class LoginRequest(BaseModel):
    """Login request."""

    email: EmailStr
    password: str


class UserInfo(BaseModel):
    user_id: str
    email: str
    name: Optional[str] = None
    is_admin: bool = False


class AuthResponse(BaseModel):
    """Signup and login response."""

    access_token: str
    expires_in: int
    user: UserInfo


class AcceptInviteRequest(BaseModel):
    """Invite acceptance request; the invited email comes from the token."""

    token: str = Field(..., min_length=1)
    name: str = Field(..., min_length=1, max_length=255)
    password: str = Field(..., min_length=8)


class UpdatePasswordRequest(BaseModel):
    current_password: str
    new_password: str = Field(..., min_length=8)


class UpdateProfileRequest(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=100)


class MessageResponse(BaseModel):
    message: str


class ProfileResponse(BaseModel):
    message: str
    user: UserInfo


class ProjectInfo(BaseModel):
    id: str
    name: Optional[str] = None


class ApiKeyInfo(BaseModel):
    id: str
    name: Optional[str] = None


class WhoamiResponse(BaseModel):
    """Current authentication context."""

    auth_type: str
    permissions: list[str]
    project: Optional[ProjectInfo] = None
    api_key: Optional[ApiKeyInfo] = None
    user: Optional[UserInfo] = None


# =============================================================================
# Service Factories
# =============================================================================


def get_user_service() -> UserService:
    """Get user service instance."""
    return UserService()


def get_jwt_service() -> JwtService:
    """Get JWT service instance.

    Raises:
        BadRequestError: If no local signing secret is configured.
    """
    if not settings.JWT_SECRET:
        raise BadRequestError("Local authentication is not configured")
    return JwtService()


def _require_user(auth: AuthContext, action: str) -> str:
    if auth.auth_type != AuthType.JWT or auth.user is None:
        raise ForbiddenError(f"{action} only available for JWT authentication")
    return auth.user.user_id


def _token_response(user: UserRecord, jwt_service: JwtService) -> AuthResponse:
    access_token = jwt_service.create_access_token(
        user_id=user["user_id"],
        email=user["email"],
        is_admin=user["is_admin"],
    )
    return AuthResponse(
        access_token=access_token,
        expires_in=jwt_service.access_ttl,
        user=UserInfo(**user),
    )


# =============================================================================
# Routes
# =============================================================================


@router.post("/signup", response_model=AuthResponse, status_code=201)
@limiter.limit(AUTH_LIMIT)
def signup(
    request: Request,
    signup_request: SignupRequest = Body(...),
    _auth: None = Depends(authenticate("auth.signup")),
    user_service: UserService = Depends(get_user_service),
    jwt_service: JwtService = Depends(get_jwt_service),
):
    """Create the first user as global admin and return an access token.

    Once a local user exists, signup is closed and further accounts are
    added by invitation.
    """
    user = user_service.signup(
        email=signup_request.email,
        password=signup_request.password,
        name=signup_request.name,
    )
    return _token_response(user, jwt_service)


@router.post("/login", response_model=AuthResponse)
@limiter.limit(AUTH_LIMIT)
def login(
    request: Request,
    login_request: LoginRequest = Body(...),
    _auth: None = Depends(authenticate("auth.login")),
    user_service: UserService = Depends(get_user_service),
    jwt_service: JwtService = Depends(get_jwt_service),
):
    """Authenticate with email and password and return an access token."""
    user = user_service.authenticate(login_request.email, login_request.password)
    return _token_response(user, jwt_service)


@router.get("/whoami", response_model=WhoamiResponse, response_model_exclude_none=True)
def whoami(auth: AuthContext = Depends(authenticate("auth.whoami"))):
    """Describe the caller: API key and its project, or the signed-in user."""
    response = WhoamiResponse(auth_type=auth.auth_type.value, permissions=sorted(auth.scopes))

    if auth.auth_type == AuthType.API_KEY:
        response.project = ProjectInfo(id=auth.project.id, name=auth.project.name)
        response.api_key = ApiKeyInfo(id=auth.api_key_id, name=auth.api_key_name)
    else:
        response.user = UserInfo(
            user_id=auth.user.user_id,
            email=auth.user.email or "",
            name=auth.user.name,
            is_admin=auth.user.is_admin,
        )

    return response


@router.post("/accept-invite", response_model=AuthResponse, status_code=201)
@limiter.limit(AUTH_LIMIT)
def accept_invite(
    request: Request,
    invite_request: AcceptInviteRequest = Body(...),
    _auth: None = Depends(authenticate("auth.accept_invite")),
    user_service: UserService = Depends(get_user_service),
    jwt_service: JwtService = Depends(get_jwt_service),
):
    """Create an account from a project invitation and join the project as member."""
    user = user_service.accept_invite(
        invite_request.token,
        invite_request.name,
        invite_request.password,
    )
    return _token_response(user, jwt_service)


@router.patch("/password", response_model=MessageResponse)
def update_password(
    body: UpdatePasswordRequest = Body(...),
    auth: AuthContext = Depends(authenticate("auth.update_password")),
    user_service: UserService = Depends(get_user_service),
):
    user_id = _require_user(auth, "Password update")
    return user_service.update_password(user_id, body.current_password, body.new_password)


@router.patch("/profile", response_model=ProfileResponse)
def update_profile(
    body: UpdateProfileRequest = Body(...),
    auth: AuthContext = Depends(authenticate("auth.update_profile")),
    user_service: UserService = Depends(get_user_service),
):
    """Update the signed-in user's display name."""
    user_id = _require_user(auth, "Profile update")
    user = user_service.update_profile(user_id, body.name)
    return ProfileResponse(message="Profile updated successfully", user=UserInfo(**user))
