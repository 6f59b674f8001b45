"""Host password check for unlocking admin controls."""

from __future__ import annotations

import hmac
import logging
from typing import Any, Optional

from draftpod.exceptions import ConfigurationError

logger = logging.getLogger(__name__)


def verify_host_password(submitted: Any, secret: Optional[str]) -> bool:
    """
    Compare a submitted password with the configured secret in constant time.

    Raises:
        ConfigurationError: If no secret is configured. The check never
            falls back to accepting or rejecting everything.
    """
    if not secret:
        logger.error("HOST_PASS is not configured; cannot verify host password")
        raise ConfigurationError("Server configuration error")
    if not isinstance(submitted, str) or not submitted:
        return False
    return hmac.compare_digest(submitted.encode("utf-8"), secret.encode("utf-8"))
