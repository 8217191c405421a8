"""
Mnemonic Keyring Benchmark CLI.

Usage:
    keyring-benchmark

Or run directly:
    python -m mnemonic_keyring.benchmark

Uses PostgreSQL storage when KEYRING_DATABASE_URL (or DATABASE_URL) is set in
the environment or a .env file, in-memory storage otherwise.
"""

from __future__ import annotations

import asyncio
import json
import sys
import time
from typing import Optional

import asyncpg

from mnemonic_keyring.config import KeyringConfig
from mnemonic_keyring.errors import ConfigError
from mnemonic_keyring.factory import create_key_manager
from mnemonic_keyring.key_manager import KeyManager
from mnemonic_keyring.postgres_storage import PostgresStorage


def _banner(title: str) -> None:
    print("+" + "-" * 68 + "+")
    print(f"|  {title}".ljust(69) + "|")
    print("+" + "-" * 68 + "+")


def _new_manager(config: KeyringConfig, pool: Optional[asyncpg.Pool]) -> KeyManager:
    if pool is None:
        return create_key_manager("memory", config=config)
    return create_key_manager("postgres", pool=pool, config=config)


def _rate(seconds: float) -> str:
    if seconds <= 0:
        return "0.000ms"
    return f"{seconds * 1000:.3f}ms ({1.0 / seconds:.2f} ops/sec)"


def demo_local_envelope(sealer: KeyManager, opener: KeyManager, plaintext: bytes) -> bool:
    """Seal with one manager, open with another; report timings."""
    seal_start = time.perf_counter()
    blob = sealer.encrypt_for_local_storage(plaintext)
    seal_time = time.perf_counter() - seal_start
    if blob is None:
        print("[ERROR] Local seal failed: no keypair held\n")
        return False

    open_start = time.perf_counter()
    opened = opener.decrypt_from_local_storage(blob)
    open_time = time.perf_counter() - open_start

    ok = opened == plaintext
    print(f"[{'OK' if ok else 'ERROR'}] Envelope size: {len(blob)} bytes")
    print(f"[PERF] Seal: {_rate(seal_time)}")
    print(f"[PERF] Open: {_rate(open_time)}\n")
    return ok


def demo_remote_payload(sealer: KeyManager, opener: KeyManager, plaintext: bytes) -> bool:
    """Build a transmission payload with one manager, open it with another."""
    remote_start = time.perf_counter()
    payload = sealer.prepare_for_remote_transmission(plaintext)
    remote_seal_time = time.perf_counter() - remote_start
    if payload is None:
        print("[ERROR] Remote seal failed: no keypair held\n")
        return False

    fields = json.loads(payload)
    remote_open_start = time.perf_counter()
    remote_opened = opener.decrypt_remote_transmission_data(
        fields["encrypted_key"], fields["encrypted_data"]
    )
    remote_open_time = time.perf_counter() - remote_open_start

    ok = remote_opened == plaintext
    print(f"[{'OK' if ok else 'ERROR'}] Payload size: {len(payload)} bytes")
    print(f"[PERF] Seal: {_rate(remote_seal_time)}")
    print(f"[PERF] Open: {_rate(remote_open_time)}\n")
    return ok


async def run_benchmark() -> None:
    """Run the keyring benchmark."""
    print("=== Mnemonic Keyring Benchmark ===\n")

    try:
        config = KeyringConfig.from_env()
    except ConfigError as e:
        print(f"ERROR: {e}")
        sys.exit(1)

    pool: Optional[asyncpg.Pool] = None
    if config.database_url:
        pool = await asyncpg.create_pool(config.database_url)
        if pool is None:
            print("ERROR: Failed to create connection pool")
            sys.exit(1)
        await PostgresStorage(pool, table=config.storage_table).ensure_schema()
        print(f"[STARTUP] Using PostgreSQL table {config.storage_table}")
    else:
        print("[STARTUP] Using in-memory storage")

    try:
        user_input = input(
            f"Enter key size in bits (default: {config.default_key_size}): "
        ).strip()
        key_size = int(user_input) if user_input else config.default_key_size
    except ValueError:
        key_size = config.default_key_size
    print(f"Testing with {key_size}-bit keys\n")

    # ========================================================================
    # Demo 1: Keypair generation
    # ========================================================================
    _banner(f"Demo 1: Generate {key_size}-bit Keypair")

    manager = _new_manager(config, pool)
    gen_start = time.perf_counter()
    ok = await manager.generate_keypair(key_size)
    gen_time = time.perf_counter() - gen_start
    if not ok:
        print(f"[ERROR] Key generation rejected for {key_size} bits\n")
        if pool is not None:
            await pool.close()
        sys.exit(1)

    word_count = len(manager.mnemonic_phrase.split())
    print(f"[OK] Keypair generated ({word_count}-word mnemonic)")
    print(f"[PERF] Time: {gen_time * 1000:.3f}ms\n")

    # ========================================================================
    # Demo 2: Mnemonic recovery
    # ========================================================================
    _banner("Demo 2: Recover Keypair From Mnemonic")

    recovered = _new_manager(config, pool)
    rec_start = time.perf_counter()
    rec_ok = await recovered.recover_from_mnemonic(manager.mnemonic_phrase, key_size)
    rec_time = time.perf_counter() - rec_start
    same_key = recovered.public_key_string == manager.public_key_string
    print(f"[{'OK' if rec_ok and same_key else 'ERROR'}] Recovered key matches: {same_key}")
    print(f"[PERF] Time: {rec_time * 1000:.3f}ms\n")

    # ========================================================================
    # Demo 3: Local envelope
    # ========================================================================
    _banner("Demo 3: Local Storage Seal/Open")

    plaintext = b"Sensitive data protected by hybrid encryption"
    demo_local_envelope(manager, recovered, plaintext)

    # ========================================================================
    # Demo 4: Remote transmission payload
    # ========================================================================
    _banner("Demo 4: Remote Transmission Seal/Open")

    demo_remote_payload(manager, recovered, plaintext)

    print("=" * 70)
    print("                    BENCHMARK COMPLETE")
    print("=" * 70 + "\n")

    await recovered.clear_keys()
    await manager.clear_keys()
    if pool is not None:
        await pool.close()


def main() -> None:
    """CLI entry point for keyring-benchmark command."""
    asyncio.run(run_benchmark())


if __name__ == "__main__":
    main()
