from __future__ import annotations

from app.core.ledger.client import HieroLedgerClient, LedgerConfig, build_credentials
from app.core.ledger.mirror import MirrorNodeClient
from app.core.settings import Settings, get_settings


def ledger_config_from_settings(settings: Settings) -> LedgerConfig | None:
    """Build the signing configuration; None when no identity can sign."""

    operator = build_credentials(
        private_key=settings.operator_key,
        account_id=settings.operator_account_id,
        evm_address=settings.operator_address,
    )
    payer = build_credentials(
        private_key=settings.payer_private_key,
        account_id=settings.payer_account_id,
        evm_address=settings.payer_evm_address,
    )
    if operator is None and payer is None:
        return None
    return LedgerConfig(network=settings.hedera_network, operator=operator, payer=payer)


def mirror_client_from_settings(settings: Settings) -> MirrorNodeClient:
    return MirrorNodeClient(
        base_url=settings.mirror_node_url,
        timeout_seconds=float(settings.mirror_node_timeout_seconds),
    )


def get_mirror_client() -> MirrorNodeClient:
    return mirror_client_from_settings(get_settings())


def get_ledger_client() -> HieroLedgerClient | None:
    """
    Dependency provider for the write-side ledger client.

    Returns None when no credentials are configured so routes can answer 502
    instead of failing during dependency resolution.
    """

    settings = get_settings()
    config = ledger_config_from_settings(settings)
    if config is None:
        return None
    return HieroLedgerClient(config=config, mirror=mirror_client_from_settings(settings))
