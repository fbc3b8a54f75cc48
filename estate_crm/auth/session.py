"""Signed session cookies and password hashing for the auth identity store."""

from __future__ import annotations

import base64
import binascii
import hashlib
import hmac
import json
import secrets
import time
from dataclasses import dataclass

from starlette.requests import Request
from starlette.responses import Response


@dataclass(frozen=True)
class SessionUser:
    auth_id: str
    email: str
    issued_at: int = 0
    expires_at: int = 0


class AuthError(Exception):
    """Sign-in/sign-out failure carrying a user-facing message."""

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


def hash_password(password: str, iterations: int = 200_000) -> str:
    """Hash a password using PBKDF2-SHA256."""
    if not password:
        raise ValueError("Password is required")
    salt = secrets.token_bytes(16)
    digest = hashlib.pbkdf2_hmac("sha256", password.encode("utf-8"), salt, iterations)
    return (
        f"pbkdf2_sha256${iterations}$"
        f"{binascii.hexlify(salt).decode('ascii')}$"
        f"{binascii.hexlify(digest).decode('ascii')}"
    )


def verify_password(password: str, stored_hash: str) -> bool:
    """Verify a PBKDF2-SHA256 password hash."""
    if not password or not stored_hash:
        return False
    try:
        scheme, iterations_raw, salt_hex, digest_hex = stored_hash.split("$", 3)
        if scheme != "pbkdf2_sha256":
            return False
        iterations = int(iterations_raw)
        salt = binascii.unhexlify(salt_hex.encode("ascii"))
        expected = binascii.unhexlify(digest_hex.encode("ascii"))
    except (ValueError, binascii.Error):
        return False

    actual = hashlib.pbkdf2_hmac("sha256", password.encode("utf-8"), salt, iterations)
    return hmac.compare_digest(actual, expected)


def _b64url_encode(raw: bytes) -> str:
    return base64.urlsafe_b64encode(raw).decode("utf-8").rstrip("=")


def _b64url_decode(data: str) -> bytes:
    padding = "=" * ((4 - (len(data) % 4)) % 4)
    return base64.urlsafe_b64decode((data + padding).encode("utf-8"))


def _secret(settings_obj) -> str:
    return str(getattr(settings_obj, "backend_anon_key", "") or "").strip()


def _ttl_seconds(settings_obj) -> int:
    return max(60, int(getattr(settings_obj, "session_ttl_seconds", 86400)))


def _sign(secret: str, body: str) -> str:
    return hmac.new(secret.encode("utf-8"), body.encode("utf-8"), hashlib.sha256).hexdigest()


def issue_session_token(settings_obj, auth_id: str, email: str, now: int | None = None) -> str:
    secret = _secret(settings_obj)
    if not secret:
        raise RuntimeError("backend_anon_key is required to issue sessions")

    issued = int(time.time()) if now is None else now
    payload = {
        "sub": str(auth_id),
        "email": (email or "").strip().lower(),
        "iat": issued,
        "exp": issued + _ttl_seconds(settings_obj),
    }
    body = _b64url_encode(json.dumps(payload, separators=(",", ":"), sort_keys=True).encode("utf-8"))
    return f"{body}.{_sign(secret, body)}"


def decode_session_token(settings_obj, token: str, now: int | None = None) -> SessionUser | None:
    secret = _secret(settings_obj)
    if not secret or not token:
        return None

    try:
        body, provided_sig = token.split(".", 1)
    except ValueError:
        return None

    if not hmac.compare_digest(provided_sig, _sign(secret, body)):
        return None

    try:
        payload = json.loads(_b64url_decode(body))
    except (ValueError, binascii.Error):
        return None

    if not isinstance(payload, dict):
        return None

    current = int(time.time()) if now is None else now
    exp = payload.get("exp")
    iat = payload.get("iat")
    sub = payload.get("sub")
    if not isinstance(exp, int) or exp <= current:
        return None
    if not isinstance(sub, str) or not sub.strip():
        return None
    return SessionUser(
        auth_id=sub.strip(),
        email=str(payload.get("email", "")),
        issued_at=iat if isinstance(iat, int) else 0,
        expires_at=exp,
    )


def needs_refresh(settings_obj, user: SessionUser, now: int | None = None) -> bool:
    """Sessions past half their lifetime get a fresh cookie."""
    current = int(time.time()) if now is None else now
    return current - user.issued_at >= _ttl_seconds(settings_obj) // 2


def session_from_request(request: Request, settings_obj) -> SessionUser | None:
    token = request.cookies.get(settings_obj.session_cookie_name, "")
    if not token:
        auth = request.headers.get("authorization", "")
        if auth.lower().startswith("bearer "):
            token = auth[7:].strip()
    return decode_session_token(settings_obj, token)


def set_session_cookie(response: Response, settings_obj, token: str) -> None:
    response.set_cookie(
        key=settings_obj.session_cookie_name,
        value=token,
        max_age=_ttl_seconds(settings_obj),
        httponly=True,
        secure=settings_obj.is_production,
        samesite="lax",
        path="/",
    )


def clear_session_cookie(response: Response, settings_obj) -> None:
    response.delete_cookie(settings_obj.session_cookie_name, path="/")


def is_demo_mode(request: Request, settings_obj) -> bool:
    return request.cookies.get(settings_obj.demo_cookie_name) == "true"


def set_demo_cookie(response: Response, settings_obj) -> None:
    response.set_cookie(
        key=settings_obj.demo_cookie_name,
        value="true",
        max_age=settings_obj.demo_ttl_seconds,
        httponly=False,
        secure=settings_obj.is_production,
        samesite="lax",
        path="/",
    )


def clear_demo_cookie(response: Response, settings_obj) -> None:
    response.set_cookie(
        key=settings_obj.demo_cookie_name,
        value="",
        max_age=0,
        httponly=True,
        secure=settings_obj.is_production,
        samesite="lax",
        path="/",
    )
