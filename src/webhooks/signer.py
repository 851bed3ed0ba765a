"""
Webhook Signer

HMAC-SHA256 over raw payload bytes, in the ``X-Hub-Signature-256`` format
(``sha256=<hex>``). Verification always runs over the bytes as received,
never over a re-serialization.
"""

import hashlib
import hmac
from typing import Optional

SIGNATURE_HEADER = "X-Hub-Signature-256"
SIGNATURE_PREFIX = "sha256="


class WebhookSigner:
    """Signs and verifies webhook payloads with a shared secret."""

    def __init__(self, secret: str):
        if not secret:
            raise ValueError("secret must not be empty")
        self._secret = secret.encode("utf-8")

    def sign(self, payload: bytes) -> str:
        """Return the hex HMAC-SHA256 digest of ``payload``."""
        return hmac.new(self._secret, payload, hashlib.sha256).hexdigest()

    def header(self, payload: bytes) -> str:
        """Return the signature header value for ``payload``."""
        return SIGNATURE_PREFIX + self.sign(payload)

    def verify(self, header_value: Optional[str], payload: bytes) -> bool:
        """
        Check a received signature header against ``payload``.

        An absent or empty header never verifies.
        """
        if not header_value:
            return False

        signature = header_value.strip()
        if signature.startswith(SIGNATURE_PREFIX):
            signature = signature[len(SIGNATURE_PREFIX):]
        if not signature:
            return False

        expected = self.sign(payload)
        return hmac.compare_digest(signature.encode("utf-8"), expected.encode("utf-8"))
