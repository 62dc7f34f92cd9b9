# portfolio_newsletter/newsletter/signing.py
import hashlib
import hmac
import time
import logging
from typing import Dict, Mapping, Optional
from datetime import datetime, timedelta, timezone
from urllib.parse import urlencode

from portfolio_newsletter.newsletter.errors import InvalidSignatureError, ExpiredLinkError

logger = logging.getLogger(__name__)

SIGNATURE_PARAM = "signature"
EXPIRES_PARAM = "expires"

class UrlSigner:
    """Stateless signed links: HMAC-SHA256 over the path and sorted query string"""

    def __init__(self, secret_key: str, base_url: str):
        if not secret_key:
            raise ValueError("A secret key is required to sign links")
        self._key = secret_key.encode("utf-8")
        self.base_url = base_url.rstrip("/")

    def _canonical(self, path: str, params: Mapping[str, str]) -> str:
        items = sorted(
            (key, str(value)) for key, value in params.items()
            if key != SIGNATURE_PARAM
        )
        return f"{path}?{urlencode(items)}"

    def signature_for(self, path: str, params: Mapping[str, str]) -> str:
        message = self._canonical(path, params).encode("utf-8")
        return hmac.new(self._key, message, digestmod=hashlib.sha256).hexdigest()

    def sign(
        self,
        path: str,
        params: Mapping[str, str],
        expires_at: Optional[datetime] = None
    ) -> str:
        """Build an absolute signed URL, optionally bound to an expiry time"""
        signed: Dict[str, str] = {key: str(value) for key, value in params.items()}
        if expires_at is not None:
            signed[EXPIRES_PARAM] = str(int(expires_at.timestamp()))

        signed[SIGNATURE_PARAM] = self.signature_for(path, signed)
        return f"{self.base_url}{path}?{urlencode(signed)}"

    def temporary_url(self, path: str, params: Mapping[str, str], ttl: timedelta) -> str:
        return self.sign(path, params, expires_at=datetime.now(timezone.utc) + ttl)

    def permanent_url(self, path: str, params: Mapping[str, str]) -> str:
        return self.sign(path, params)

    def verify(
        self,
        path: str,
        params: Mapping[str, str],
        now: Optional[float] = None
    ) -> None:
        """Raise InvalidSignatureError or ExpiredLinkError unless the link is good"""
        provided = params.get(SIGNATURE_PARAM)
        if not provided:
            raise InvalidSignatureError("Missing signature")

        expected = self.signature_for(path, params)
        # Constant-time comparison; bytes so non-ASCII input cannot raise
        if not hmac.compare_digest(str(provided).encode("utf-8"), expected.encode("utf-8")):
            logger.warning(f"Rejected signed link for {path}: signature mismatch")
            raise InvalidSignatureError()

        raw_expires = params.get(EXPIRES_PARAM)
        if raw_expires is None:
            return

        try:
            expires = int(raw_expires)
        except (ValueError, TypeError):
            raise InvalidSignatureError("Malformed expiry")

        current = time.time() if now is None else now
        if current >= expires:
            logger.warning(f"Rejected signed link for {path}: expired at {expires}")
            raise ExpiredLinkError(expires)
