from __future__ import annotations
import base64
import json
from dataclasses import dataclass, field
from datetime import datetime, timezone
from io import BytesIO
from typing import Any, Dict

import jwt
import qrcode

from .config import get_settings
from .errors import MalformedToken, WrongKind, UntrustedToken

settings = get_settings()

TOKEN_KIND = "bin_activation"
QR_AUD = "bin-activation"
QR_ISS = "ecoearn-admin"

def _now() -> datetime:
    return datetime.now(timezone.utc)

def _iso(dt: datetime) -> str:
    # same shape as a browser's Date.toISOString(): millisecond precision, Z suffix
    dt = dt.astimezone(timezone.utc)
    return dt.strftime("%Y-%m-%dT%H:%M:%S.") + f"{dt.microsecond // 1000:03d}Z"

def _parse_iso(value: Any) -> datetime | None:
    if not isinstance(value, str):
        return None
    try:
        return datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        return None


@dataclass(frozen=True)
class ActivationToken:
    bin_id: str
    kind: str = TOKEN_KIND
    issued_at: datetime | None = field(default=None, compare=False)
    signed: bool = field(default=False, compare=False)


def _sign(bin_id: str, issued_at: datetime, secret: str) -> str:
    payload: Dict[str, Any] = {
        "aud": QR_AUD,
        "iss": QR_ISS,
        "iat": int(issued_at.timestamp()),
        "scope": TOKEN_KIND,
        "bin_id": bin_id,
    }
    return jwt.encode(payload, secret, algorithm="HS256")

def _verify(sig: Any, bin_id: str, secret: str) -> None:
    if not isinstance(sig, str):
        raise UntrustedToken()
    try:
        claims = jwt.decode(
            sig,
            secret,
            algorithms=["HS256"],
            audience=QR_AUD,
            issuer=QR_ISS,
            options={"require": ["aud", "iss", "iat"]},
        )
    except jwt.InvalidTokenError:
        raise UntrustedToken()
    if claims.get("scope") != TOKEN_KIND or claims.get("bin_id") != bin_id:
        raise UntrustedToken()


def encode(bin_id: str, *, issued_at: datetime | None = None, secret: str | None = None) -> str:
    """Serialize the activation payload printed on a bin.

    The text is compact JSON ``{"binId", "type", "timestamp"}``; a ``sig`` field
    is appended when a signing secret is configured.
    """
    issued = issued_at or _now()
    payload: Dict[str, Any] = {
        "binId": bin_id,
        "type": TOKEN_KIND,
        "timestamp": _iso(issued),
    }
    key = secret if secret is not None else settings.qr_secret
    if key:
        payload["sig"] = _sign(bin_id, issued, key)
    return json.dumps(payload, separators=(",", ":"))


def decode(text: str, *, secret: str | None = None, require_signature: bool | None = None) -> ActivationToken:
    """Parse scanned text back into an :class:`ActivationToken`.

    Raises ``MalformedToken`` for anything that is not a JSON object with a
    string ``binId``, ``WrongKind`` when ``type`` is not ``bin_activation`` and
    ``UntrustedToken`` when a signature is required or present but invalid.
    """
    try:
        obj = json.loads(text)
    except (TypeError, ValueError):
        raise MalformedToken()
    if not isinstance(obj, dict):
        raise MalformedToken()
    if obj.get("type") != TOKEN_KIND:
        raise WrongKind()
    bin_id = obj.get("binId")
    if not isinstance(bin_id, str) or not bin_id.strip():
        raise MalformedToken()

    key = secret if secret is not None else settings.qr_secret
    required = settings.qr_require_signature if require_signature is None else require_signature
    sig = obj.get("sig")
    if required and not key:
        raise UntrustedToken("QR signature required but no signing secret is configured")
    # without a key a stray sig field carries no meaning
    if key and (required or sig is not None):
        _verify(sig, bin_id, key)

    return ActivationToken(
        bin_id=bin_id,
        issued_at=_parse_iso(obj.get("timestamp")),
        signed=sig is not None and bool(key),
    )


def render_png(text: str) -> bytes:
    qr = qrcode.QRCode(box_size=settings.qr_box_size, border=settings.qr_border)
    qr.add_data(text)
    qr.make(fit=True)
    img = qr.make_image(fill_color="black", back_color="white")
    b = BytesIO(); img.save(b, format="PNG")
    return b.getvalue()

def to_data_url(png: bytes) -> str:
    return "data:image/png;base64," + base64.b64encode(png).decode("ascii")

def from_data_url(data_url: str) -> bytes:
    _, _, b64 = data_url.partition(",")
    return base64.b64decode(b64)
