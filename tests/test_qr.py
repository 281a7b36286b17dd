import json
from datetime import datetime, timezone

import pytest

from ecoearn_admin.core import qr
from ecoearn_admin.core.errors import MalformedToken, WrongKind, UntrustedToken

SECRET = "bin-label-signing-secret-0123456789abcdef"


def test_encode_writes_compact_activation_payload():
    issued = datetime(2024, 5, 1, 12, 30, 45, 123456, tzinfo=timezone.utc)
    text = qr.encode("b-42", issued_at=issued)
    assert text == '{"binId":"b-42","type":"bin_activation","timestamp":"2024-05-01T12:30:45.123Z"}'


def test_decode_reads_back_bin_id_and_issue_time():
    tok = qr.decode(qr.encode("b-42"))
    assert tok.bin_id == "b-42"
    assert tok.kind == qr.TOKEN_KIND
    assert tok.issued_at is not None
    assert tok.signed is False


def test_decode_accepts_labels_printed_by_the_web_dashboard():
    printed = '{"binId":"-NxYz123","type":"bin_activation","timestamp":"2024-01-01T00:00:00.000Z"}'
    tok = qr.decode(printed)
    assert tok.bin_id == "-NxYz123"
    assert tok.issued_at == datetime(2024, 1, 1, tzinfo=timezone.utc)


def test_decode_ignores_unknown_fields_and_bad_timestamp():
    tok = qr.decode('{"binId":"b1","type":"bin_activation","timestamp":"yesterday","extra":1}')
    assert tok.bin_id == "b1"
    assert tok.issued_at is None


@pytest.mark.parametrize("text", [
    "hello",
    "",
    "[1, 2]",
    '"bin_activation"',
    '{"type":"bin_activation"}',
    '{"type":"bin_activation","binId":123}',
    '{"type":"bin_activation","binId":"  "}',
])
def test_malformed_payloads(text):
    with pytest.raises(MalformedToken) as e:
        qr.decode(text)
    assert e.value.message == "Invalid QR code data"


@pytest.mark.parametrize("text", [
    '{"binId":"b1","type":"voucher"}',
    '{"binId":"b1"}',
    '{"type":"voucher"}',
])
def test_wrong_kind(text):
    with pytest.raises(WrongKind) as e:
        qr.decode(text)
    assert e.value.message == "Invalid QR code format"


def test_signed_payload_verifies():
    text = qr.encode("b7", secret=SECRET)
    assert "sig" in json.loads(text)
    tok = qr.decode(text, secret=SECRET, require_signature=True)
    assert tok.bin_id == "b7"
    assert tok.signed is True


def test_signature_bound_to_bin_id():
    obj = json.loads(qr.encode("b7", secret=SECRET))
    obj["binId"] = "b8"
    with pytest.raises(UntrustedToken):
        qr.decode(json.dumps(obj), secret=SECRET)


def test_signature_from_other_secret_rejected():
    text = qr.encode("b7", secret=SECRET)
    with pytest.raises(UntrustedToken):
        qr.decode(text, secret="another-secret-another-secret-0000")


def test_unsigned_payload_rejected_when_signature_required():
    with pytest.raises(UntrustedToken):
        qr.decode(qr.encode("b7"), secret=SECRET, require_signature=True)


def test_unsigned_payload_accepted_when_signature_optional():
    assert qr.decode(qr.encode("b7"), secret=SECRET).bin_id == "b7"


def test_required_signature_without_secret_is_refused():
    with pytest.raises(UntrustedToken):
        qr.decode(qr.encode("b7"), secret="", require_signature=True)


def test_render_png_and_data_url():
    png = qr.render_png(qr.encode("b1"))
    assert png.startswith(b"\x89PNG\r\n\x1a\n")
    url = qr.to_data_url(png)
    assert url.startswith("data:image/png;base64,")
    assert qr.from_data_url(url) == png
