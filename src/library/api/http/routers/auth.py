"""Authentication endpoints: register, login, logout and session check."""

from fastapi import APIRouter, Depends, Response, status
from loguru import logger
from pydantic import BaseModel, Field

from src.library.api.http.deps import (
    get_current_actor,
    get_jwt_generation_service,
    get_optional_actor,
    get_user_management_service,
)
from src.library.core.models.actor import Actor, Role
from src.library.core.security import clear_session_cookie, set_session_cookie
from src.library.core.services import JwtGeneratorService, UserManagementService

router = APIRouter(tags=["auth"])


class RegisterRequest(BaseModel):
    username: str = Field(min_length=3, max_length=150)
    password: str = Field(min_length=6)
    role: Role = Role.USER


class LoginRequest(BaseModel):
    username: str
    password: str


class UserRead(BaseModel):
    id: str
    username: str
    role: Role


class SessionRead(BaseModel):
    user: UserRead


@router.post("/register", response_model=UserRead, status_code=status.HTTP_201_CREATED)
def register(
    payload: RegisterRequest,
    users: UserManagementService = Depends(get_user_management_service),
) -> UserRead:
    """Create a local account."""
    user = users.register(payload.username, payload.password, payload.role)
    return UserRead(id=user.id, username=user.username, role=user.role)


@router.post("/login", response_model=SessionRead)
def login(
    payload: LoginRequest,
    response: Response,
    users: UserManagementService = Depends(get_user_management_service),
    jwt_gen: JwtGeneratorService = Depends(get_jwt_generation_service),
) -> SessionRead:
    """Check credentials and set the session cookie."""
    user = users.authenticate(payload.username, payload.password)
    token = jwt_gen.generate_session_token(user.to_actor())
    set_session_cookie(response, token)
    return SessionRead(user=UserRead(id=user.id, username=user.username, role=user.role))


@router.post("/logout")
def logout(
    response: Response,
    actor: Actor | None = Depends(get_optional_actor),
) -> dict[str, str]:
    """Clear the session cookie."""
    clear_session_cookie(response)
    logger.bind(user_id=actor.id if actor else None).info("auth.logout")
    return {"message": "Logged out"}


@router.get("/check-session", response_model=SessionRead)
def check_session(actor: Actor = Depends(get_current_actor)) -> SessionRead:
    """Return the identity behind the current session."""
    return SessionRead(user=UserRead(id=actor.id, username=actor.username, role=actor.role))
