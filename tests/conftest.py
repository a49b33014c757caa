"""Shared fixtures: throwaway P-256 keys, signers and ASC_* environment."""

import pytest
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import ec

from asc_cli.client.auth import TokenSigner

ISSUER_ID = "57246542-96fe-1a63-e053-0824d011072a"
KEY_ID = "TESTKEY123"


def private_pem(key) -> bytes:
    return key.private_bytes(
        serialization.Encoding.PEM,
        serialization.PrivateFormat.PKCS8,
        serialization.NoEncryption(),
    )


class FakeClock:
    """Manually advanced stand-in for time.time."""

    def __init__(self, start=1_700_000_000.0):
        self.now = start

    def __call__(self):
        return self.now

    def advance(self, seconds):
        self.now += seconds


@pytest.fixture
def ec_key():
    return ec.generate_private_key(ec.SECP256R1())


@pytest.fixture
def key_pem(ec_key):
    return private_pem(ec_key)


@pytest.fixture
def key_file(tmp_path, key_pem):
    path = tmp_path / f"AuthKey_{KEY_ID}.p8"
    path.write_bytes(key_pem)
    return path


@pytest.fixture
def signer(key_pem):
    return TokenSigner(ISSUER_ID, KEY_ID, key_pem)


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def asc_env(monkeypatch, key_file):
    monkeypatch.setenv("ASC_ISSUER_ID", ISSUER_ID)
    monkeypatch.setenv("ASC_KEY_ID", KEY_ID)
    monkeypatch.setenv("ASC_PRIVATE_KEY_PATH", str(key_file))
    monkeypatch.delenv("ASC_BASE_URL", raising=False)
    monkeypatch.delenv("ASC_REQUEST_TIMEOUT", raising=False)
    return key_file
