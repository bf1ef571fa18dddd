#!/usr/bin/env python3
"""Tests for the decryption oracle client and attestation checks."""

import asyncio
import base64
import json
import sys
from pathlib import Path

import httpx
import pytest

sys.path.insert(0, str(Path(__file__).parent.parent))

from cryptography.hazmat.primitives.asymmetric.ed25519 import Ed25519PrivateKey
from cryptography.hazmat.primitives.serialization import Encoding, PublicFormat
from solders.keypair import Keypair

from dake.exceptions import AttestationInvalid, DecryptionUnavailable
from dake.program.config import ED25519_PROGRAM_ID
from dake.services.oracle import (
    OracleAuthError,
    OracleClient,
    OracleConfig,
    SignatureInstruction,
    build_ed25519_instruction_data,
    verify_signature_instructions,
)
from dake.wallet import Wallet

from factories import b64, signature_instruction


def _oracle(handler, wallet=None, **config) -> OracleClient:
    return OracleClient(
        OracleConfig(base_url="http://oracle.test", **config),
        wallet=wallet or Wallet(Keypair()),
        transport=httpx.MockTransport(handler),
    )


def _attested_response(handle: str, plaintext: str, tag: bytes = b"") -> dict:
    ix = signature_instruction(f"{handle}:{plaintext}".encode() + tag)
    return {
        "plaintexts": [plaintext],
        "handles": [handle],
        "signature_instructions": [
            {"program_id": ix.program_id, "data": b64(ix.data), "accounts": []}
        ],
    }


def _record_sleeps(monkeypatch) -> list:
    sleeps = []

    async def fake_sleep(seconds: float) -> None:
        sleeps.append(seconds)

    monkeypatch.setattr(asyncio, "sleep", fake_sleep)
    return sleeps


def test_encrypt_returns_ciphertext() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        assert request.url.path == "/encrypt"
        assert json.loads(request.content) == {"value": "1"}
        return httpx.Response(200, json={"ciphertext": "0xabcd"})

    async def run() -> None:
        async with _oracle(handler) as oracle:
            assert await oracle.encrypt(1) == "0xabcd"

    asyncio.run(run())


def test_decrypt_request_is_signed_by_wallet() -> None:
    wallet = Wallet(Keypair())
    captured = {}

    def handler(request: httpx.Request) -> httpx.Response:
        captured.update(json.loads(request.content))
        return httpx.Response(200, json=_attested_response("12345", "1"))

    async def run() -> None:
        async with _oracle(handler, wallet=wallet) as oracle:
            await oracle.decrypt(["12345"])

    asyncio.run(run())
    assert captured["handles"] == ["12345"]
    assert captured["address"] == wallet.address
    message = f"dake-decrypt:{wallet.address}:{captured['timestamp']}:12345".encode()
    signature = base64.b64decode(captured["signature"])
    assert signature == wallet.sign_message(message)


def test_decrypt_handle_sleeps_before_each_attempt(monkeypatch) -> None:
    sleeps = _record_sleeps(monkeypatch)
    responses = [
        httpx.Response(404, json={"error": "not found"}),
        httpx.Response(425),
        _attested_response("12345", "1", tag=b"third"),
    ]
    calls = []

    def handler(request: httpx.Request) -> httpx.Response:
        calls.append(len(sleeps))
        response = responses.pop(0)
        if isinstance(response, dict):
            return httpx.Response(200, json=response)
        return response

    async def run():
        async with _oracle(handler) as oracle:
            return await oracle.decrypt_handle(12345)

    result = asyncio.run(run())
    assert sleeps == [3.0, 5.0, 8.0]
    # Each request follows its own sleep
    assert calls == [1, 2, 3]
    assert result.attempt == 3
    assert result.plaintext == "1"
    assert result.is_winner
    assert result.signature_instructions[0].data.endswith(b"12345:1third")


def test_decrypt_handle_gives_up_after_backoff(monkeypatch) -> None:
    sleeps = _record_sleeps(monkeypatch)

    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(503)

    async def run() -> None:
        async with _oracle(handler) as oracle:
            with pytest.raises(DecryptionUnavailable) as exc_info:
                await oracle.decrypt_handle(7)
            assert exc_info.value.attempts == 4

    asyncio.run(run())
    assert sleeps == [3.0, 5.0, 8.0, 12.0]


def test_decrypt_handle_does_not_retry_auth_failure(monkeypatch) -> None:
    _record_sleeps(monkeypatch)
    calls = []

    def handler(request: httpx.Request) -> httpx.Response:
        calls.append(request)
        return httpx.Response(403)

    async def run() -> None:
        async with _oracle(handler) as oracle:
            with pytest.raises(OracleAuthError):
                await oracle.decrypt_handle(7)

    asyncio.run(run())
    assert len(calls) == 1


def test_response_for_other_handle_is_retried(monkeypatch) -> None:
    _record_sleeps(monkeypatch)
    responses = [_attested_response("999", "1"), _attested_response("7", "0")]

    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json=responses.pop(0))

    async def run():
        async with _oracle(handler) as oracle:
            return await oracle.decrypt_handle(7)

    result = asyncio.run(run())
    assert result.attempt == 2
    assert result.is_winner is False


def test_tampered_attestation_is_rejected(monkeypatch) -> None:
    _record_sleeps(monkeypatch)
    body = _attested_response("7", "1")
    data = bytearray(base64.b64decode(body["signature_instructions"][0]["data"]))
    data[-1] ^= 0x01
    body["signature_instructions"][0]["data"] = b64(bytes(data))

    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json=body)

    async def run() -> None:
        async with _oracle(handler) as oracle:
            with pytest.raises(AttestationInvalid):
                await oracle.decrypt_handle(7)

    asyncio.run(run())


def test_verify_signature_instructions_with_cryptography_key() -> None:
    private_key = Ed25519PrivateKey.generate()
    public_key = private_key.public_key().public_bytes(Encoding.Raw, PublicFormat.Raw)
    message = b"12345:1"
    data = build_ed25519_instruction_data(public_key, private_key.sign(message), message)

    instructions = [SignatureInstruction(program_id=str(ED25519_PROGRAM_ID), data=data)]
    assert verify_signature_instructions(instructions) == 1

    forged = build_ed25519_instruction_data(public_key, private_key.sign(b"12345:0"), message)
    with pytest.raises(AttestationInvalid):
        verify_signature_instructions(
            [SignatureInstruction(program_id=str(ED25519_PROGRAM_ID), data=forged)]
        )


def test_verify_signature_instructions_requires_attestation() -> None:
    with pytest.raises(AttestationInvalid):
        verify_signature_instructions([])


def test_non_json_body_is_retried_then_unavailable(monkeypatch) -> None:
    sleeps = _record_sleeps(monkeypatch)

    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, text="<html>gateway</html>")

    async def run() -> None:
        async with _oracle(handler) as oracle:
            with pytest.raises(DecryptionUnavailable):
                await oracle.decrypt_handle(7)

    asyncio.run(run())
    assert sleeps == [3.0, 5.0, 8.0, 12.0]


@pytest.mark.parametrize("plaintext", ["-1", "0.0", "abc", str(2**128)])
def test_malformed_plaintext_fails_the_attempt(monkeypatch, plaintext: str) -> None:
    _record_sleeps(monkeypatch)
    responses = [_attested_response("7", plaintext), _attested_response("7", "1")]

    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json=responses.pop(0))

    async def run():
        async with _oracle(handler) as oracle:
            return await oracle.decrypt_handle(7)

    result = asyncio.run(run())
    assert result.attempt == 2
    assert result.plaintext == "1"
    assert result.is_winner


def test_persistently_malformed_plaintext_is_unavailable(monkeypatch) -> None:
    _record_sleeps(monkeypatch)

    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json=_attested_response("7", "-1"))

    async def run() -> None:
        async with _oracle(handler) as oracle:
            with pytest.raises(DecryptionUnavailable):
                await oracle.decrypt_handle(7)

    asyncio.run(run())
