from __future__ import annotations

import pytest

# Secrets and signing identities are blanked so a developer's .env never reaches a test.
_BLANK_ENV = (
    "OPENAI_API_KEY",
    "OPERATOR_ACCOUNT_ID",
    "OPERATOR_ADDRESS",
    "OPERATOR_KEY",
    "PAYER_ACCOUNT_ID",
    "PAYER_EVM_ADDRESS",
    "PAYER_PRIVATE_KEY",
)


@pytest.fixture(autouse=True)
def _test_settings(monkeypatch: pytest.MonkeyPatch) -> None:
    for name in _BLANK_ENV:
        monkeypatch.setenv(name, "")
    monkeypatch.setenv("DEFAULT_TOPIC_ID", "0.0.1001")
    monkeypatch.setenv("HEDERA_NETWORK", "testnet")
    monkeypatch.setenv("MIRROR_NODE_URL", "https://mirror.test")

    # Settings are cached via @lru_cache; clear so each test sees its own environment.
    from app.core.settings import get_settings

    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest.fixture
def client():
    from fastapi.testclient import TestClient

    from app.main import create_app

    app = create_app()
    with TestClient(app) as c:
        yield c
