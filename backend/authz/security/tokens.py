"""Signed bearer tokens for the HTTP surface.

Design:
- HS256 JWT issued by `POST /v1/session/login`, verified on every request.
- The actor (id, role, branches) is embedded in the claims; permissions are
  never embedded and are always resolved against the current role store.
- Default deny: a missing, forged or expired token never yields an Actor.
"""

from __future__ import annotations

import base64
import hashlib
import hmac
import json
import time
from typing import Any, Optional

from pydantic import ValidationError

from authz.schemas.authz import Actor
from authz.security.errors import TokenError


_HEADER = {"alg": "HS256", "typ": "JWT"}


def _b64url_decode(data: str) -> bytes:
    padding = "=" * (-len(data) % 4)
    return base64.urlsafe_b64decode(data + padding)


def _b64url_encode(raw: bytes) -> str:
    return base64.urlsafe_b64encode(raw).decode("ascii").rstrip("=")


def _secret_bytes(secret: Optional[str]) -> bytes:
    if not secret:
        raise RuntimeError("Missing required env var AUTHZ_TOKEN_SECRET.")
    return secret.encode("utf-8")


def _sign(secret: bytes, signing_input: bytes) -> str:
    return _b64url_encode(hmac.new(secret, signing_input, hashlib.sha256).digest())


def _encode_json(obj: dict[str, Any]) -> str:
    return _b64url_encode(json.dumps(obj, separators=(",", ":")).encode("utf-8"))


def issue_token(actor: Actor, *, secret: Optional[str], ttl_seconds: int, now: Optional[int] = None) -> str:
    issued_at = int(time.time()) if now is None else now
    claims = {
        "sub": actor.id,
        "name": actor.name,
        "email": actor.email,
        "role": actor.role,
        "branchId": actor.branch_id,
        "branchIds": list(actor.branch_ids),
        "iat": issued_at,
        "exp": issued_at + ttl_seconds,
    }
    signing_input = f"{_encode_json(_HEADER)}.{_encode_json(claims)}"
    return f"{signing_input}.{_sign(_secret_bytes(secret), signing_input.encode('ascii'))}"


def decode_and_verify_token(token: str, *, secret: Optional[str]) -> dict[str, Any]:
    """Verify the HS256 signature and expiry; return the claims.

    Required claims: sub, role, exp.
    """
    try:
        header_b64, payload_b64, sig_b64 = token.split(".")
    except ValueError as e:
        raise TokenError("Invalid token format.") from e

    expected_sig = _sign(_secret_bytes(secret), f"{header_b64}.{payload_b64}".encode("utf-8"))
    if not hmac.compare_digest(expected_sig.encode("ascii"), sig_b64.encode("utf-8")):
        raise TokenError("Invalid token signature.")

    try:
        header = json.loads(_b64url_decode(header_b64))
        payload = json.loads(_b64url_decode(payload_b64))
    except Exception as e:  # noqa: BLE001
        raise TokenError("Invalid token encoding.") from e

    if not isinstance(header, dict) or header.get("alg") != "HS256" or header.get("typ") != "JWT":
        raise TokenError("Unsupported token header.")
    if not isinstance(payload, dict) or "sub" not in payload or "role" not in payload:
        raise TokenError("Missing required claims.")

    try:
        exp = int(payload["exp"])
    except (KeyError, TypeError, ValueError) as e:
        raise TokenError("Invalid exp claim.") from e
    if int(time.time()) >= exp:
        raise TokenError("Token expired.")

    return payload


def actor_from_token(token: str, *, secret: Optional[str]) -> Actor:
    claims = decode_and_verify_token(token, secret=secret)
    try:
        return Actor.model_validate(
            {
                "id": str(claims["sub"]),
                "name": claims.get("name") or "",
                "email": claims.get("email") or "",
                "role": claims["role"],
                "branchId": claims.get("branchId"),
                "branchIds": claims.get("branchIds") or [],
            }
        )
    except ValidationError as e:
        raise TokenError("Invalid actor claims.") from e


def token_fingerprint(token: str) -> str:
    """Non-reversible token fingerprint for audit logs."""
    return _b64url_encode(hashlib.sha256(token.encode("utf-8")).digest()[:18])
