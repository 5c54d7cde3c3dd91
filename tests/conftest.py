"""Pytest configuration and fixtures for Dripper tests."""

import os

import pytest

# Well-known development mnemonic (Alice's seed phrase on Substrate dev chains)
DEV_MNEMONIC = "bottom drive obey lake curtain smoke basket hold race lonely fit walk"


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    """Clear Dripper-related environment variables before each test."""
    env_prefixes = ("DRIPPER_", "SLACK_", "REDIS_", "RECAPTCHA_")
    for key in list(os.environ.keys()):
        if key.startswith(env_prefixes):
            monkeypatch.delenv(key, raising=False)


@pytest.fixture
def dev_mnemonic() -> str:
    """A valid mnemonic for building real keypairs."""
    return DEV_MNEMONIC
