import time
from typing import Any

from authlib.jose import JoseError, jwt
from loguru import logger

from src.library.core.models.actor import Actor
from src.library.runtime.config.config_data import ConfigData
from src.library.runtime.context import get_config


class JwtGeneratorService:
    """Service for generating session tokens."""

    def generate_jwt(
        self,
        subject: str,
        claims: dict[str, Any] | None = None,
        expires_in_seconds: int | None = None,
        secret: str | None = None,
    ) -> str:
        """Generate a signed JWT using authlib.

        Args:
            subject: Subject (sub) claim, the user id
            claims: Additional claims to include in the token
            expires_in_seconds: Token lifetime (defaults to the configured TTL)
            secret: Optional signing key. If None, the configured secret is used.

        Returns:
            Signed JWT token string

        Raises:
            RuntimeError: If no signing secret is configured or encoding fails
        """
        config: ConfigData = get_config()

        secret = secret or config.app.session_signing_secret
        if not secret:
            raise RuntimeError("JWT signing secret not configured")

        if expires_in_seconds is None:
            expires_in_seconds = config.security.token_ttl_seconds

        now = int(time.time())
        payload: dict[str, Any] = {
            "sub": subject,
            "iat": now,
            "exp": now + expires_in_seconds,
        }

        # Standard claims always win over custom ones
        if claims:
            payload.update(
                {k: v for k, v in claims.items() if k not in {"sub", "iat", "exp"}}
            )

        header = {"alg": config.security.jwt_algorithm, "typ": "JWT"}
        try:
            token = jwt.encode(header, payload, secret)
        except JoseError as e:
            logger.error("JWT encoding failed: {}", e)
            raise RuntimeError(f"JWT encoding failed: {e}") from e

        return token.decode() if isinstance(token, bytes) else token

    def generate_session_token(self, actor: Actor, **kwargs: Any) -> str:
        """Issue the session token carrying the actor's identity."""
        return self.generate_jwt(
            subject=actor.id,
            claims={"username": actor.username, "role": actor.role.value},
            **kwargs,
        )
