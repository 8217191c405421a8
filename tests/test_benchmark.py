"""
Tests for the benchmark demo steps.
"""

from __future__ import annotations

import pytest

from mnemonic_keyring import KeyManager
from mnemonic_keyring.benchmark import demo_local_envelope, demo_remote_payload

PLAINTEXT = b"Sensitive data protected by hybrid encryption"


@pytest.fixture
async def ready_manager(manager: KeyManager, codec) -> KeyManager:
    assert await manager.recover_from_mnemonic(codec.encode(bytes(range(16))))
    return manager


class TestDemoSteps:
    def test_local_without_keypair(self, manager: KeyManager, capsys: pytest.CaptureFixture) -> None:
        assert demo_local_envelope(manager, manager, PLAINTEXT) is False
        assert "[ERROR] Local seal failed" in capsys.readouterr().out

    def test_remote_without_keypair(self, manager: KeyManager, capsys: pytest.CaptureFixture) -> None:
        assert demo_remote_payload(manager, manager, PLAINTEXT) is False
        assert "[ERROR] Remote seal failed" in capsys.readouterr().out

    async def test_opener_without_keypair(
        self, ready_manager: KeyManager, capsys: pytest.CaptureFixture
    ) -> None:
        empty = KeyManager(ready_manager._storage, ready_manager._random)
        assert demo_local_envelope(ready_manager, empty, PLAINTEXT) is False
        assert demo_remote_payload(ready_manager, empty, PLAINTEXT) is False
        out = capsys.readouterr().out
        assert "[ERROR] Envelope size" in out
        assert "[ERROR] Payload size" in out

    async def test_round_trip(self, ready_manager: KeyManager, capsys: pytest.CaptureFixture) -> None:
        assert demo_local_envelope(ready_manager, ready_manager, PLAINTEXT)
        assert demo_remote_payload(ready_manager, ready_manager, PLAINTEXT)
        out = capsys.readouterr().out
        assert "[OK] Envelope size" in out
        assert "[OK] Payload size" in out
