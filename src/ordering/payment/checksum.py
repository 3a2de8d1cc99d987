"""Payment gateway checksums.

The gateway signs and verifies messages with a salted SHA-256 over the
base64-encoded JSON body, formatted as ``<hex digest>###<salt index>``:

    request:  sha256(base64(body) + endpoint_path + salt_key)
    response: sha256(base64(body) + salt_key)

The body is serialized the way the gateway does it: keys in insertion
order, no whitespace, non-ASCII left as is. Amounts travel as integers in
minor units, so no float formatting differences arise.
"""

import base64
import hashlib
import hmac
import json

PAY_ENDPOINT = "/pg/v1/pay"
REFUND_ENDPOINT = "/pg/v1/refund"
CHECKSUM_FIELD = "checksum"
_SEPARATOR = "###"


def encode_payload(payload: dict) -> str:
    body = json.dumps(payload, separators=(",", ":"), ensure_ascii=False)
    return base64.b64encode(body.encode("utf-8")).decode("ascii")


def _digest(text: str) -> str:
    return hashlib.sha256(text.encode("utf-8")).hexdigest()


def request_checksum(payload: dict, endpoint_path: str, salt_key: str, salt_index: int) -> str:
    """Checksum for a request we send to the gateway (the ``X-VERIFY`` header)."""
    return f"{_digest(encode_payload(payload) + endpoint_path + salt_key)}{_SEPARATOR}{salt_index}"


def response_checksum(payload: dict, salt_key: str, salt_index: int) -> str:
    """Checksum the gateway attaches to a callback body."""
    return f"{_digest(encode_payload(payload) + salt_key)}{_SEPARATOR}{salt_index}"


def strip_checksum(payload: dict) -> dict:
    return {key: value for key, value in payload.items() if key != CHECKSUM_FIELD}


def verify_checksum(payload: dict, checksum: str | None, salt_key: str, salt_index: int) -> bool:
    """Check a callback checksum in constant time.

    A ``checksum`` key inside ``payload`` is ignored when computing the
    expected value.
    """
    if not checksum:
        return False
    expected = response_checksum(strip_checksum(payload), salt_key, salt_index)
    return hmac.compare_digest(expected.encode("utf-8"), str(checksum).encode("utf-8"))


def path_checksum(path: str, salt_key: str, salt_index: int) -> str:
    """Checksum for a body-less GET request, signed over its path."""
    return f"{_digest(path + salt_key)}{_SEPARATOR}{salt_index}"
