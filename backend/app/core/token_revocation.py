"""
Token Revocation System using Redis.

Implements token blacklisting so a lost courier device or a removed
operator can be cut off before the JWT expires.
"""

from backend.app.core.redis_client import get_redis
from backend.app.core.config import settings
from backend.app.core.observability import get_logger

logger = get_logger("auth")

# Redis key prefix for blacklisted tokens
TOKEN_BLACKLIST_PREFIX = "blacklist:token:"
ACTOR_TOKENS_PREFIX = "actor:tokens:"


async def revoke_token(token: str, actor_ref: str) -> bool:
    """
    Revoke a specific JWT token by adding it to the blacklist.

    Args:
        token: The JWT token string to revoke
        actor_ref: Actor who owns the token

    Returns:
        True if successfully revoked, False otherwise
    """
    try:
        client = await get_redis()
        ttl_seconds = settings.access_token_expire_minutes * 60
        await client.set(f"{TOKEN_BLACKLIST_PREFIX}{token}", str(actor_ref), ex=ttl_seconds)
        return True
    except Exception as e:
        logger.error("Error revoking token", extra={"actor_ref": actor_ref, "error": str(e)})
        return False


async def is_token_revoked(token: str) -> bool:
    """
    Check if a token has been revoked.

    Fails open: if Redis is down the request is allowed.
    """
    try:
        client = await get_redis()
        exists = await client.exists(f"{TOKEN_BLACKLIST_PREFIX}{token}")
        return exists > 0
    except Exception as e:
        logger.warning("Error checking token revocation", extra={"error": str(e)})
        return False


async def revoke_all_actor_tokens(actor_ref: str) -> bool:
    """
    Revoke all active tokens for an actor.

    Any token validation checks this flag until the longest-lived
    token would have expired anyway.
    """
    try:
        client = await get_redis()
        ttl_seconds = settings.access_token_expire_minutes * 60
        await client.set(f"{ACTOR_TOKENS_PREFIX}{actor_ref}:revoked", "1", ex=ttl_seconds)
        return True
    except Exception as e:
        logger.error("Error revoking actor tokens", extra={"actor_ref": actor_ref, "error": str(e)})
        return False


async def are_actor_tokens_revoked(actor_ref: str) -> bool:
    """Check if all tokens for an actor have been revoked."""
    try:
        client = await get_redis()
        exists = await client.exists(f"{ACTOR_TOKENS_PREFIX}{actor_ref}:revoked")
        return exists > 0
    except Exception as e:
        logger.warning("Error checking actor token revocation", extra={"error": str(e)})
        return False


async def clear_actor_token_revocation(actor_ref: str) -> bool:
    """Lift an actor-wide revocation so newly issued tokens are accepted again."""
    try:
        client = await get_redis()
        await client.delete(f"{ACTOR_TOKENS_PREFIX}{actor_ref}:revoked")
        return True
    except Exception as e:
        logger.error("Error clearing actor token revocation", extra={"actor_ref": actor_ref, "error": str(e)})
        return False
