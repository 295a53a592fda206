import logging
import secrets
from datetime import datetime, timedelta
from typing import Any, Callable, Dict, Optional

from pydantic import BaseModel

from app.core.config import settings
from app.core.timeutils import parse_timestamp, utc_now

logger = logging.getLogger(__name__)

# 32 random bytes, URL-safe base64 encoded (43 characters)
TOKEN_BYTES = 32


class TokenState(BaseModel):
    token: str
    appointment_id: str
    expires_at: datetime
    used: bool
    is_expired: bool


class CancellationTokenService:
    """
    Single-use, time-limited tokens that let a customer cancel one appointment
    from a link without logging in.
    """
    def __init__(self, repository, clock: Callable[[], datetime] = utc_now):
        self.repository = repository
        self.clock = clock

    def cancellation_link(self, token: str) -> str:
        return f"{settings.public_app_url.rstrip('/')}/cancel-appointment?token={token}"

    def issue(self, appointment_id: str) -> str:
        """Creates and stores a new token for the appointment and returns it."""
        token = secrets.token_urlsafe(TOKEN_BYTES)
        now = self.clock()
        expires_at = now + timedelta(hours=settings.cancellation_token_ttl_hours)
        self.repository.create_cancellation_token({
            "token": token,
            "appointment_id": appointment_id,
            "expires_at": expires_at.isoformat(),
            "used": False,
            "created_at": now.isoformat(),
        })
        logger.info(f"Issued cancellation token for appointment {appointment_id}, expires {expires_at.isoformat()}")
        return token

    def inspect(self, token: str) -> Optional[TokenState]:
        """
        Reads a token and evaluates it against its stored expiry. Returns None
        for unknown tokens.
        """
        row: Optional[Dict[str, Any]] = self.repository.get_cancellation_token(token)
        if not row:
            return None
        expires_at = parse_timestamp(row["expires_at"])
        return TokenState(
            token=token,
            appointment_id=row["appointment_id"],
            expires_at=expires_at,
            used=bool(row.get("used")),
            is_expired=expires_at < self.clock(),
        )

    def claim(self, token: str) -> bool:
        """
        Marks the token used. The conditional update makes this the single
        point where two concurrent cancellations with the same token race;
        only one of them gets True.
        """
        claimed = self.repository.claim_cancellation_token(token, self.clock().isoformat())
        if not claimed:
            logger.warning("Cancellation token was claimed by another request")
        return claimed

    def release(self, token: str) -> None:
        """Makes a claimed token usable again after its cancellation failed to persist."""
        self.repository.release_cancellation_token(token)
        logger.info("Released cancellation token after a failed cancellation")
