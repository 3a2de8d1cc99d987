"""Tests for gateway request/response checksums."""

import base64
import hashlib
import json

import pytest
from ordering.payment.checksum import (
    encode_payload,
    path_checksum,
    request_checksum,
    response_checksum,
    verify_checksum,
)

SALT_KEY = "099eb0cd-02cf-4e2a-8aca-3e6c6aff0399"
PAYLOAD = {
    "merchantId": "MERCHANTUAT",
    "merchantTransactionId": "order-1",
    "amount": 131216,
    "paymentState": "COMPLETED",
}


class TestEncoding:
    def test_compact_json_in_insertion_order(self):
        decoded = base64.b64decode(encode_payload({"b": 1, "a": "x"})).decode("utf-8")
        assert decoded == '{"b":1,"a":"x"}'

    def test_non_ascii_is_kept(self):
        decoded = base64.b64decode(encode_payload({"name": "Asha ₹"})).decode("utf-8")
        assert "₹" in decoded


class TestChecksums:
    def test_request_checksum_format(self):
        body = base64.b64encode(json.dumps(PAYLOAD, separators=(",", ":")).encode()).decode()
        expected = hashlib.sha256((body + "/pg/v1/pay" + SALT_KEY).encode()).hexdigest() + "###1"

        assert request_checksum(PAYLOAD, "/pg/v1/pay", SALT_KEY, 1) == expected

    def test_response_checksum_has_salt_index(self):
        assert response_checksum(PAYLOAD, SALT_KEY, 2).endswith("###2")

    def test_path_checksum(self):
        path = "/pg/v1/status/MERCHANTUAT/order-1"
        expected = hashlib.sha256((path + SALT_KEY).encode()).hexdigest() + "###1"
        assert path_checksum(path, SALT_KEY, 1) == expected


class TestVerification:
    def test_round_trip(self):
        checksum = response_checksum(PAYLOAD, SALT_KEY, 1)
        assert verify_checksum(PAYLOAD, checksum, SALT_KEY, 1)

    def test_checksum_field_in_payload_is_ignored(self):
        checksum = response_checksum(PAYLOAD, SALT_KEY, 1)
        assert verify_checksum({**PAYLOAD, "checksum": checksum}, checksum, SALT_KEY, 1)

    def test_mutated_payload_fails(self):
        checksum = response_checksum(PAYLOAD, SALT_KEY, 1)
        assert not verify_checksum({**PAYLOAD, "amount": 131217}, checksum, SALT_KEY, 1)

    @pytest.mark.parametrize("position", [0, 10, 63, 64])
    def test_single_character_change_in_checksum_fails(self, position):
        checksum = response_checksum(PAYLOAD, SALT_KEY, 1)
        replacement = "0" if checksum[position] != "0" else "1"
        tampered = checksum[:position] + replacement + checksum[position + 1 :]

        assert not verify_checksum(PAYLOAD, tampered, SALT_KEY, 1)

    def test_wrong_salt_fails(self):
        checksum = response_checksum(PAYLOAD, "another-salt", 1)
        assert not verify_checksum(PAYLOAD, checksum, SALT_KEY, 1)

    def test_missing_checksum_fails(self):
        assert not verify_checksum(PAYLOAD, None, SALT_KEY, 1)
        assert not verify_checksum(PAYLOAD, "", SALT_KEY, 1)
