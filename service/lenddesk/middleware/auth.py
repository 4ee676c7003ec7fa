from fastapi import HTTPException, Security
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import jwt, JWTError

from lenddesk.config import get_settings
from lenddesk.logging_config import get_logger

security = HTTPBearer()
logger = get_logger("auth")


async def verify_token(
    credentials: HTTPAuthorizationCredentials = Security(security)
) -> dict:
    """
    Validate the Supabase JWT from the Authorization header.

    Tokens are HS256-signed with the project's JWT secret.
    """
    settings = get_settings()
    token = credentials.credentials

    try:
        payload = jwt.decode(
            token,
            settings.supabase_jwt_secret,
            algorithms=["HS256"],
            options={"verify_aud": False}
        )
    except JWTError as e:
        logger.warning(f"JWT verification failed: {e}")
        raise HTTPException(
            status_code=401,
            detail="Invalid or expired authentication token"
        )

    if not payload.get("sub"):
        raise HTTPException(status_code=401, detail="Token has no subject")
    return payload


def get_user_id(token_payload: dict) -> str:
    """Extract user_id from verified token payload."""
    return token_payload.get("sub")


def get_organization_id(token_payload: dict) -> str | None:
    """Organization the user belongs to, from Supabase app_metadata."""
    app_metadata = token_payload.get("app_metadata") or {}
    return app_metadata.get("organization_id")
