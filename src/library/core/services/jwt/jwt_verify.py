"""JWT verification service."""

from authlib.jose import JoseError, jwt
from loguru import logger
from pydantic import ValidationError as PydanticValidationError

from src.library.core.exceptions import AuthenticationError
from src.library.core.models.actor import Actor
from src.library.runtime.context import get_config


class JwtVerificationService:
    """Verifies session tokens and turns them back into an ``Actor``."""

    def verify_jwt(self, token: str, *, key: str | None = None) -> Actor:
        cfg = get_config()
        verification_key = key or cfg.app.session_signing_secret
        if not verification_key:
            raise RuntimeError("JWT signing secret not configured")

        claims_options = {
            "sub": {"essential": True},
            "exp": {"essential": True},
        }
        try:
            claims = jwt.decode(token, verification_key, claims_options=claims_options)
            claims.validate()
        except JoseError as e:
            logger.bind(error=str(e)).warning("auth.invalid_token")
            raise AuthenticationError("Invalid or expired token") from e
        except ValueError as e:
            # Malformed input that never got as far as signature checking
            logger.bind(error=str(e)).warning("auth.malformed_token")
            raise AuthenticationError("Invalid or expired token") from e

        if claims.header.get("alg") != cfg.security.jwt_algorithm:
            raise AuthenticationError("Disallowed JWT algorithm")

        try:
            return Actor(
                id=claims["sub"],
                username=claims.get("username", ""),
                role=claims.get("role", "user"),
            )
        except PydanticValidationError as e:
            raise AuthenticationError("Token carries an invalid identity") from e
