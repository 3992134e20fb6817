"""Password hashing and cookie helpers for the session flow."""

from fastapi import Response
from werkzeug.security import check_password_hash, generate_password_hash

from src.library.runtime.context import get_config

MIN_PASSWORD_LENGTH = 6


def hash_password(password: str) -> str:
    """Return a salted hash of ``password``.

    Raises:
        ValueError: if the password is shorter than ``MIN_PASSWORD_LENGTH``
    """
    if len(password) < MIN_PASSWORD_LENGTH:
        raise ValueError(
            f"Password must be at least {MIN_PASSWORD_LENGTH} characters long"
        )
    return generate_password_hash(password)


def verify_password(password_hash: str, password: str) -> bool:
    return check_password_hash(password_hash, password)


def _cookie_options() -> dict:
    config = get_config()
    return {
        "httponly": True,
        "secure": config.security.secure_cookies
        and config.app.environment == "production",
        "samesite": config.security.cookie_samesite,
        "path": "/",
    }


def set_session_cookie(response: Response, token: str) -> None:
    config = get_config()
    response.set_cookie(
        config.security.cookie_name,
        token,
        max_age=config.security.token_ttl_seconds,
        **_cookie_options(),
    )


def clear_session_cookie(response: Response) -> None:
    response.delete_cookie(get_config().security.cookie_name, **_cookie_options())
