from __future__ import annotations

import asyncio
from dataclasses import dataclass

from app.core.ledger.errors import LedgerError, LedgerSubmitError, LedgerUnavailableError
from app.core.ledger.mirror import MirrorNodeClient


@dataclass(frozen=True)
class LedgerCredentials:
    private_key: str
    account_id: str | None = None
    evm_address: str | None = None

    def __repr__(self) -> str:
        # Keep private keys out of tracebacks and debug output.
        return (
            f"LedgerCredentials(account_id={self.account_id!r}, "
            f"evm_address={self.evm_address!r}, private_key='***')"
        )


@dataclass(frozen=True)
class LedgerConfig:
    network: str
    operator: LedgerCredentials | None = None
    payer: LedgerCredentials | None = None


@dataclass(frozen=True)
class SubmitReceipt:
    status: str
    transaction_id: str
    topic_id: str


def build_credentials(
    *, private_key: str | None, account_id: str | None, evm_address: str | None
) -> LedgerCredentials | None:
    """Return credentials only when a key and some account reference are both present."""

    if not private_key or not (account_id or evm_address):
        return None
    return LedgerCredentials(
        private_key=private_key, account_id=account_id or None, evm_address=evm_address or None
    )


def select_signer(config: LedgerConfig, *, fee_workflow: bool = False) -> LedgerCredentials:
    """
    Pick the identity that signs and pays for a transaction.

    A dedicated payer wins when configured (topics with custom token fees charge the
    payer). The fee workflow requires it; otherwise the operator is the fallback.
    """

    if config.payer is not None:
        return config.payer
    if fee_workflow:
        raise LedgerUnavailableError("Fee workflow requires payer credentials")
    if config.operator is not None:
        return config.operator
    raise LedgerUnavailableError("Ledger operator credentials are not configured")


class HieroLedgerClient:
    """
    Write-side ledger adapter built on the Hiero (Hedera) Python SDK.

    The SDK is synchronous; every transaction runs in a worker thread with its own
    SDK client so concurrent requests never share gRPC state.
    """

    def __init__(self, *, config: LedgerConfig, mirror: MirrorNodeClient):
        self._config = config
        self._mirror = mirror

    async def _account_id_for(self, signer: LedgerCredentials) -> str:
        if signer.account_id:
            return signer.account_id
        # build_credentials guarantees an EVM address when account_id is absent.
        return await self._mirror.resolve_account_id(str(signer.evm_address))

    def _open_sdk_client(self, *, account_id: str, private_key: str):
        from hiero_sdk_python import AccountId, Client, Network, PrivateKey

        key = PrivateKey.from_string_ecdsa(private_key.removeprefix("0x"))
        client = Client(Network(network=self._config.network))
        client.set_operator(AccountId.from_string(account_id), key)
        return client, key

    def _submit_sync(
        self, *, account_id: str, private_key: str, topic_id: str, message: str
    ) -> SubmitReceipt:
        from hiero_sdk_python import TopicId, TopicMessageSubmitTransaction
        from hiero_sdk_python.response_code import ResponseCode

        client, key = self._open_sdk_client(account_id=account_id, private_key=private_key)
        try:
            tx = (
                TopicMessageSubmitTransaction(topic_id=TopicId.from_string(topic_id), message=message)
                .freeze_with(client)
                .sign(key)
            )
            receipt = tx.execute(client)
        finally:
            client.close()

        return SubmitReceipt(
            status=ResponseCode(receipt.status).name,
            transaction_id=str(tx.transaction_id),
            topic_id=topic_id,
        )

    def _create_topic_sync(self, *, account_id: str, private_key: str, memo: str) -> str:
        from hiero_sdk_python import TopicCreateTransaction

        client, key = self._open_sdk_client(account_id=account_id, private_key=private_key)
        try:
            tx = TopicCreateTransaction(memo=memo).freeze_with(client).sign(key)
            receipt = tx.execute(client)
        finally:
            client.close()

        if receipt.topic_id is None:
            raise LedgerSubmitError("Topic creation receipt did not include a topic id")
        return str(receipt.topic_id)

    async def submit_message(
        self, *, topic_id: str, message: str, fee_workflow: bool = False
    ) -> SubmitReceipt:
        signer = select_signer(self._config, fee_workflow=fee_workflow)
        account_id = await self._account_id_for(signer)
        try:
            return await asyncio.to_thread(
                self._submit_sync,
                account_id=account_id,
                private_key=signer.private_key,
                topic_id=topic_id,
                message=message,
            )
        except LedgerError:
            raise
        except Exception as exc:  # noqa: BLE001 - SDK raises a mix of gRPC/precheck errors
            raise LedgerSubmitError(f"Ledger submission failed: {exc}") from exc

    async def create_topic(self, *, memo: str = "") -> str:
        signer = select_signer(self._config)
        account_id = await self._account_id_for(signer)
        try:
            return await asyncio.to_thread(
                self._create_topic_sync,
                account_id=account_id,
                private_key=signer.private_key,
                memo=memo,
            )
        except LedgerError:
            raise
        except Exception as exc:  # noqa: BLE001
            raise LedgerSubmitError(f"Topic creation failed: {exc}") from exc
