from __future__ import annotations

import base64
import hashlib
import hmac
import json
import secrets
import time
import uuid
from dataclasses import dataclass

from fastapi import HTTPException, Request, status

from billify.core.config import settings

PBKDF2_ROUNDS = 120_000


@dataclass
class SessionUser:
    user_id: str
    email: str

    @property
    def uuid(self) -> uuid.UUID:
        return uuid.UUID(self.user_id)


class Credential:
    """
    Opaque password holder. Only a salted PBKDF2 digest is kept; plaintext is
    never stored and the digest is never handed out except for persistence.
    """

    __slots__ = ("_hash", "_salt")

    def __init__(self, password_hash: str | None = None, password_salt: str | None = None):
        self._hash = password_hash
        self._salt = password_salt

    @staticmethod
    def _digest(password: str, salt: str) -> str:
        return hashlib.pbkdf2_hmac("sha256", password.encode("utf-8"), salt.encode("utf-8"), PBKDF2_ROUNDS).hex()

    def set(self, plaintext: str) -> None:
        plaintext = (plaintext or "").strip()
        if not plaintext:
            raise ValueError("Password cannot be empty")
        self._salt = secrets.token_hex(16)
        self._hash = self._digest(plaintext, self._salt)

    def verify(self, plaintext: str) -> bool:
        if not self._hash or not self._salt or not plaintext:
            return False
        return hmac.compare_digest(self._digest(plaintext.strip(), self._salt), self._hash)

    def columns(self) -> tuple[str | None, str | None]:
        return self._hash, self._salt


def _b64url_encode(raw: bytes) -> str:
    return base64.urlsafe_b64encode(raw).rstrip(b"=").decode("ascii")


def _b64url_decode(token: str) -> bytes:
    padding = "=" * (-len(token) % 4)
    return base64.urlsafe_b64decode((token + padding).encode("ascii"))


def _sign(payload_b64: str) -> str:
    return hmac.new(settings.auth_secret.encode("utf-8"), payload_b64.encode("utf-8"), hashlib.sha256).hexdigest()


def create_session_token(*, user_id: str, email: str) -> str:
    now = int(time.time())
    payload = {
        "uid": user_id,
        "eml": email,
        "iat": now,
        "exp": now + int(settings.auth_session_hours * 3600),
    }
    payload_b64 = _b64url_encode(json.dumps(payload, separators=(",", ":")).encode("utf-8"))
    return payload_b64 + "." + _sign(payload_b64)


def parse_session_token(token: str | None) -> SessionUser | None:
    if not token or "." not in token:
        return None
    payload_b64, sig = token.split(".", 1)
    if not hmac.compare_digest(sig, _sign(payload_b64)):
        return None
    try:
        payload = json.loads(_b64url_decode(payload_b64).decode("utf-8"))
    except (ValueError, UnicodeDecodeError):
        return None
    if int(payload.get("exp", 0)) <= int(time.time()):
        return None
    uid = str(payload.get("uid", "")).strip()
    email = str(payload.get("eml", "")).strip()
    if not uid or not email:
        return None
    try:
        uuid.UUID(uid)
    except ValueError:
        return None
    return SessionUser(user_id=uid, email=email)


def get_current_user(request: Request) -> SessionUser:
    user = parse_session_token(request.cookies.get(settings.auth_cookie_name))
    if not user:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Authentication required")
    return user
