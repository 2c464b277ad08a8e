"""JWT Token Validation - resolve the acting user and role"""
import jwt
from typing import Any, Dict, Optional

from ..config.settings import settings
from ..domain.errors import AuthenticationError
from ..domain.models import ActorContext
from .logger import get_logger

logger = get_logger(__name__)


class JWTValidator:
    """Validates tokens issued by the auth service and extracts the actor"""

    def __init__(self, secret: Optional[str] = None, algorithm: Optional[str] = None):
        self._secret = secret or settings.jwt_secret
        self._algorithm = algorithm or settings.jwt_algorithm

    def validate_token(self, token: str) -> Dict[str, Any]:
        """
        Validate JWT token

        In DEVELOPMENT mode the signature is not verified so tokens minted by
        a local auth stub work; expiry is always checked.

        Args:
            token: Bearer token (with or without 'Bearer ' prefix)

        Returns:
            Decoded token claims

        Raises:
            AuthenticationError: If token is invalid
        """
        if not token:
            raise AuthenticationError("Token is missing")

        if token.startswith("Bearer "):
            token = token[7:]

        try:
            if settings.environment.lower() in ["development", "dev", "local"]:
                return jwt.decode(
                    token,
                    options={
                        "verify_signature": False,
                        "verify_exp": True,
                    }
                )

            return jwt.decode(
                token,
                self._secret,
                algorithms=[self._algorithm],
                options={"verify_exp": True}
            )

        except jwt.ExpiredSignatureError:
            logger.warning("Token expired")
            raise AuthenticationError("Token has expired")
        except jwt.PyJWTError as e:
            logger.error(f"JWT validation error: {e}")
            raise AuthenticationError(f"Invalid token: {str(e)}")

    def get_actor_context(self, token: str) -> ActorContext:
        """
        Extract actor context from validated token

        Args:
            token: Bearer token

        Returns:
            ActorContext with user id and role
        """
        claims = self.validate_token(token)

        user_id = claims.get("sub") or claims.get("user_id")
        role = claims.get("role")

        if not user_id or not role:
            logger.warning(f"Token missing subject or role. Available claims: {list(claims.keys())}")
            raise AuthenticationError("Unable to determine user or role from token")

        return ActorContext(
            user_id=str(user_id),
            role=str(role).upper(),
            email=claims.get("email"),
            display_name=claims.get("name")
        )


# Global validator instance
_jwt_validator: Optional[JWTValidator] = None


def get_jwt_validator() -> JWTValidator:
    """Get global JWT validator instance"""
    global _jwt_validator
    if _jwt_validator is None:
        _jwt_validator = JWTValidator()
    return _jwt_validator


def get_current_user(authorization: str) -> ActorContext:
    """
    Get current user from authorization header

    Args:
        authorization: Authorization header value

    Returns:
        ActorContext
    """
    if not authorization:
        raise AuthenticationError("Authorization header is missing")

    validator = get_jwt_validator()
    return validator.get_actor_context(authorization)
