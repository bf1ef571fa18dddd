#!/usr/bin/env python3
"""Tests for settings loading and wallet configuration."""

import json
import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent))

from solders.keypair import Keypair

from dake.config import Settings


def test_yaml_sections_merge_over_defaults(tmp_path: Path) -> None:
    (tmp_path / "config.yaml").write_text(
        "ledger:\n"
        "  rpc_url: http://127.0.0.1:8899\n"
        "oracle:\n"
        "  decrypt_backoff_seconds: [1, 2]\n"
    )
    settings = Settings(data_dir=tmp_path)
    settings.load_yaml_config()

    assert settings.ledger.rpc_url == "http://127.0.0.1:8899"
    assert settings.ledger.commitment == "confirmed"
    assert settings.oracle.decrypt_backoff_seconds == [1.0, 2.0]
    assert settings.oracle.verify_attestations is True
    assert settings.cluster == "localnet"


def test_missing_yaml_keeps_defaults(tmp_path: Path) -> None:
    settings = Settings(data_dir=tmp_path)
    settings.load_yaml_config()

    assert settings.oracle.decrypt_backoff_seconds == [3.0, 5.0, 8.0, 12.0]
    assert settings.cluster == "devnet"


def test_wallet_from_keypair_file(tmp_path: Path) -> None:
    keypair = Keypair()
    key_file = tmp_path / "id.json"
    key_file.write_text(json.dumps(list(bytes(keypair))))

    settings = Settings(data_dir=tmp_path, wallet_keypair="", wallet_keypair_path=str(key_file))
    wallet = settings.get_wallet()

    assert wallet is not None
    assert wallet.pubkey == keypair.pubkey()


def test_wallet_from_base58_secret(tmp_path: Path) -> None:
    keypair = Keypair()
    settings = Settings(data_dir=tmp_path, wallet_keypair=str(keypair))

    assert settings.get_wallet().address == str(keypair.pubkey())


def test_no_wallet_configured(tmp_path: Path) -> None:
    settings = Settings(data_dir=tmp_path, wallet_keypair="", wallet_keypair_path="")
    assert settings.get_wallet() is None
