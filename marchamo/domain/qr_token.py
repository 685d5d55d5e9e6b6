from __future__ import annotations

import base64
import binascii
import hashlib
import hmac
from dataclasses import dataclass
from typing import Optional, Union

"""
Token QR firmado con HMAC (SIN expiracion).

    token = base64url(PLACA) + "." + base64url(HMAC-SHA256(secret, PLACA))

La placa va codificada, no cifrada: el token solo garantiza integridad. Cualquier
falla de verificacion (formato, base64, firma) devuelve el mismo INVALID, asi un
cliente no puede distinguir "mal formado" de "falsificado".
"""

SEPARATOR = "."


def normalize_plate(plate: Optional[str]) -> str:
    return (plate or "").strip().upper()


def b64url_encode(raw: bytes) -> str:
    return base64.urlsafe_b64encode(raw).decode("ascii").rstrip("=")


def b64url_decode(segment: str) -> Optional[bytes]:
    """Decodifica base64url sin padding. Solo acepta la forma canonica."""
    try:
        padded = (segment + "=" * (-len(segment) % 4)).encode("ascii")
        raw = base64.b64decode(padded, altchars=b"-_", validate=True)
    except (UnicodeEncodeError, binascii.Error, ValueError):
        return None
    # Los bits sobrantes del ultimo caracter permiten varias codificaciones
    # del mismo contenido; solo vale la que produce b64url_encode.
    if b64url_encode(raw) != segment:
        return None
    return raw


@dataclass(frozen=True)
class Valid:
    plate: str


@dataclass(frozen=True)
class Invalid:
    pass


INVALID = Invalid()

TokenResult = Union[Valid, Invalid]


class PlateTokenCodec:
    """Emite y verifica tokens de placa con un secreto fijo.

    Sin estado mutable: una misma instancia se puede usar desde cualquier
    cantidad de requests concurrentes.
    """

    def __init__(self, secret: Union[str, bytes]):
        self._secret = secret.encode("utf-8") if isinstance(secret, str) else bytes(secret)

    def __repr__(self) -> str:
        return "PlateTokenCodec(secret=***)"

    def _sign(self, payload: bytes) -> str:
        return b64url_encode(hmac.new(self._secret, payload, hashlib.sha256).digest())

    def issue(self, plate: str) -> str:
        payload = normalize_plate(plate).encode("utf-8")
        return f"{b64url_encode(payload)}{SEPARATOR}{self._sign(payload)}"

    def verify(self, token: str) -> TokenResult:
        parts = token.split(SEPARATOR) if isinstance(token, str) else []
        if len(parts) != 2:
            return INVALID
        payload_b64, sig = parts

        payload = b64url_decode(payload_b64)
        if not payload:
            return INVALID
        try:
            plate = payload.decode("utf-8")
        except UnicodeDecodeError:
            return INVALID

        expected = self._sign(payload)
        # compare_digest es de tiempo constante y tolera largos distintos
        if not hmac.compare_digest(sig.encode("utf-8"), expected.encode("ascii")):
            return INVALID

        return Valid(plate=normalize_plate(plate))
