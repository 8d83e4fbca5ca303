"""Signed ticket QR payloads.

A payload is base64 of ``{"d": {"ref": <reference>, "v": 1}, "s": <hex HMAC-SHA256 of JSON(d)>}``.
Older tickets carry the unsigned data object directly (``{"ref": ..., "tripGroupId": ...}``);
those decode as unauthenticated and are rejected unless explicitly accepted.
"""
import base64
import binascii
import hashlib
import hmac
import json
import logging
from dataclasses import dataclass
from typing import Optional

from travelhub.exceptions import QRCodeFormatError, QRSignatureError

logger = logging.getLogger(__name__)

QR_PAYLOAD_VERSION = 1


@dataclass
class DecodedTicket:
    reference: Optional[str]
    authenticated: bool
    trip_group_id: Optional[str] = None


def _canonical_json(data: dict) -> str:
    return json.dumps(data, separators=(",", ":"), ensure_ascii=False)


class QRCodeSigner:
    """Encodes booking references into signed QR payloads and verifies scanned ones"""

    def __init__(self, secret: str):
        self._key = secret.encode("utf-8")

    def sign(self, data: dict) -> str:
        """Hex HMAC-SHA256 over the compact JSON form of data"""
        return hmac.new(self._key, _canonical_json(data).encode("utf-8"), hashlib.sha256).hexdigest()

    def encode(self, reference: str) -> str:
        data = {"ref": reference, "v": QR_PAYLOAD_VERSION}
        signed = {"d": data, "s": self.sign(data)}
        return base64.b64encode(_canonical_json(signed).encode("utf-8")).decode("ascii")

    def decode(self, payload: str, accept_legacy: bool = False) -> DecodedTicket:
        """Decode a scanned payload; the signature is checked before the reference is returned"""
        try:
            raw = base64.b64decode(payload.strip(), validate=True)
            decoded = json.loads(raw.decode("utf-8"))
        except (binascii.Error, UnicodeDecodeError, ValueError):
            raise QRCodeFormatError("Invalid QR code format")

        if not isinstance(decoded, dict):
            raise QRCodeFormatError("Invalid QR code format")

        if "d" in decoded and "s" in decoded:
            return self._decode_signed(decoded["d"], decoded["s"])

        if not accept_legacy:
            logger.warning("Rejected unsigned ticket QR payload")
            raise QRSignatureError("Invalid QR code")

        reference = decoded.get("ref")
        trip_group_id = decoded.get("tripGroupId")
        if not isinstance(reference, str) and not isinstance(trip_group_id, str):
            raise QRCodeFormatError("Invalid QR code format")

        return DecodedTicket(
            reference=reference if isinstance(reference, str) else None,
            trip_group_id=trip_group_id if isinstance(trip_group_id, str) else None,
            authenticated=False
        )

    def _decode_signed(self, data, signature) -> DecodedTicket:
        if not isinstance(data, dict) or not isinstance(signature, str):
            raise QRCodeFormatError("Invalid QR code format")

        if not hmac.compare_digest(self.sign(data).encode("ascii"), signature.encode("utf-8")):
            logger.warning("Ticket QR signature mismatch")
            raise QRSignatureError("Invalid QR code")

        reference = data.get("ref")
        if data.get("v") != QR_PAYLOAD_VERSION or not isinstance(reference, str) or not reference:
            raise QRCodeFormatError("Invalid QR code format")

        return DecodedTicket(reference=reference, authenticated=True)
