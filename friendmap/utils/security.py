import base64
import hashlib
import json
import logging
from typing import Any, Dict, Optional

import bcrypt
from cryptography.fernet import Fernet, InvalidToken

from friendmap.core.config import settings


logger = logging.getLogger(__name__)


def hash_password(password: str) -> str:
    return bcrypt.hashpw(password.encode("utf-8"), bcrypt.gensalt(rounds=10)).decode("utf-8")


def verify_password(password: str, hashed_password: str) -> bool:
    if not hashed_password:
        return False
    try:
        return bcrypt.checkpw(password.encode("utf-8"), hashed_password.encode("utf-8"))
    except ValueError:
        # stored value is not a bcrypt hash
        return False


def _fernet(secret: str) -> Fernet:
    # Fernet wants 32 url-safe base64 bytes; derive them from the configured secret
    key = base64.urlsafe_b64encode(hashlib.sha256(secret.encode("utf-8")).digest())
    return Fernet(key)


_cipher = _fernet(settings.SECRET)


def create_login_token(user: Dict[str, Any]) -> str:
    """Encrypt the minimal identity payload ``{_id, fullName, isAdmin}``."""
    payload = {
        "_id": str(user.get("_id") or user.get("id") or ""),
        "fullName": user.get("fullName") or "",
        "isAdmin": bool(user.get("isAdmin", False)),
    }
    return _cipher.encrypt(json.dumps(payload).encode("utf-8")).decode("utf-8")


def decode_login_token(token: Optional[str]) -> Optional[Dict[str, Any]]:
    if not token:
        return None
    try:
        data = _cipher.decrypt(token.encode("utf-8"))
        payload = json.loads(data)
    except (InvalidToken, ValueError):
        logger.warning("Invalid login token received: %s...", token[:20])
        return None
    if not isinstance(payload, dict) or not payload.get("_id"):
        return None
    return payload
