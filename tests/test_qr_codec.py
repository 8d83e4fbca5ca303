import base64
import hashlib
import hmac
import json

import pytest

from travelhub.bookings.qr_codec import QRCodeSigner
from travelhub.exceptions import QRCodeFormatError, QRSignatureError


def b64_json(data):
    return base64.b64encode(json.dumps(data).encode("utf-8")).decode("ascii")


def test_encode_produces_signed_envelope(signer):
    payload = signer.encode("TRV1767000000000AB12C")

    envelope = json.loads(base64.b64decode(payload))
    assert envelope["d"] == {"ref": "TRV1767000000000AB12C", "v": 1}

    expected = hmac.new(
        b"test-qr-secret", b'{"ref":"TRV1767000000000AB12C","v":1}', hashlib.sha256
    ).hexdigest()
    assert envelope["s"] == expected


def test_decode_round_trip(signer):
    decoded = signer.decode(signer.encode("TRV1767000000000AB12C"))

    assert decoded.reference == "TRV1767000000000AB12C"
    assert decoded.authenticated is True
    assert decoded.trip_group_id is None


def test_decode_handles_non_ascii_reference(signer):
    assert signer.decode(signer.encode("TRV-Müller")).reference == "TRV-Müller"


def test_changed_reference_fails_signature(signer):
    envelope = json.loads(base64.b64decode(signer.encode("TRV1767000000000AB12C")))
    envelope["d"]["ref"] = "TRV1767000000000AB12D"

    with pytest.raises(QRSignatureError):
        signer.decode(b64_json(envelope))


def test_other_secret_fails_signature(signer):
    payload = QRCodeSigner("someone-else").encode("TRV1767000000000AB12C")

    with pytest.raises(QRSignatureError):
        signer.decode(payload)


def test_non_ascii_signature_is_rejected(signer):
    envelope = json.loads(base64.b64decode(signer.encode("TRV1")))
    envelope["s"] = "é" * 64

    with pytest.raises(QRSignatureError):
        signer.decode(b64_json(envelope))


@pytest.mark.parametrize("payload", [
    "not base64 at all!",
    base64.b64encode(b"\xff\xfe\x00").decode("ascii"),
    base64.b64encode(b"{not json").decode("ascii"),
    b64_json(["ref", "TRV1"]),
])
def test_malformed_payload(signer, payload):
    with pytest.raises(QRCodeFormatError, match="Invalid QR code format"):
        signer.decode(payload)


def test_signed_payload_with_unknown_version(signer):
    data = {"ref": "TRV1", "v": 2}
    payload = b64_json({"d": data, "s": signer.sign(data)})

    with pytest.raises(QRCodeFormatError):
        signer.decode(payload)


def test_legacy_payload_rejected_by_default(signer):
    with pytest.raises(QRSignatureError, match="Invalid QR code"):
        signer.decode(b64_json({"ref": "TRV1767000000000AB12C"}))


def test_legacy_payload_accepted_as_unauthenticated(signer):
    decoded = signer.decode(b64_json({"ref": "TRV1767000000000AB12C"}), accept_legacy=True)

    assert decoded.reference == "TRV1767000000000AB12C"
    assert decoded.authenticated is False


def test_legacy_trip_group_payload(signer):
    decoded = signer.decode(b64_json({"tripGroupId": "c0ffee00-0000-4000-8000-000000000001"}), accept_legacy=True)

    assert decoded.reference is None
    assert decoded.trip_group_id == "c0ffee00-0000-4000-8000-000000000001"


def test_legacy_payload_without_identifiers(signer):
    with pytest.raises(QRCodeFormatError):
        signer.decode(b64_json({"hello": "world"}), accept_legacy=True)
