from __future__ import annotations

from functools import lru_cache

from pydantic import AliasChoices, Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    app_name: str = "amoca-ledger-gateway"
    app_env: str = Field(
        default="production",
        validation_alias=AliasChoices("APP_ENV", "app_env"),
        description="Runtime environment: development|production.",
    )

    # LLM integration (OpenAI-compatible chat completions)
    # IMPORTANT (healthcare safety): prompts and replies may contain PHI; never log them.
    openai_api_key: str | None = Field(
        default=None,
        validation_alias=AliasChoices("OPENAI_API_KEY", "openai_api_key"),
        description="OpenAI API key (required for /submissions and the agent).",
    )
    openai_model: str = Field(
        default="gpt-4o-mini",
        validation_alias=AliasChoices("OPENAI_MODEL", "openai_model"),
        description="Chat model identifier.",
    )
    openai_base_url: str = Field(
        default="https://api.openai.com/v1",
        validation_alias=AliasChoices("OPENAI_BASE_URL", "openai_base_url"),
        description="Base URL for the OpenAI API (override for proxies/emulators).",
    )
    openai_timeout_seconds: float = Field(
        default=30.0,
        ge=1.0,
        validation_alias=AliasChoices("OPENAI_TIMEOUT_SECONDS", "openai_timeout_seconds"),
        description="Timeout for OpenAI API requests (seconds).",
    )

    # Hedera network + mirror node
    hedera_network: str = Field(
        default="testnet",
        validation_alias=AliasChoices("HEDERA_NETWORK", "hedera_network"),
        description="Hedera network name: testnet|previewnet|mainnet.",
    )
    mirror_node_url: str = Field(
        default="https://testnet.mirrornode.hedera.com",
        validation_alias=AliasChoices("MIRROR_NODE_URL", "mirror_node_url"),
        description="Mirror node REST base URL used for reads and EVM address lookups.",
    )
    mirror_node_timeout_seconds: float = Field(
        default=10.0,
        ge=1.0,
        validation_alias=AliasChoices("MIRROR_NODE_TIMEOUT_SECONDS", "mirror_node_timeout_seconds"),
    )
    default_topic_id: str | None = Field(
        default=None,
        validation_alias=AliasChoices(
            "DEFAULT_TOPIC_ID",
            "NEXT_PUBLIC_DEFAULT_TOPIC_ID",
            "default_topic_id",
        ),
        description="Topic used when a request does not name one (e.g. 0.0.6531943).",
    )

    # Signing identities. Keys are secrets: never log them.
    operator_account_id: str | None = Field(
        default=None,
        validation_alias=AliasChoices("OPERATOR_ACCOUNT_ID", "operator_account_id"),
    )
    operator_address: str | None = Field(
        default=None,
        validation_alias=AliasChoices("OPERATOR_ADDRESS", "operator_address"),
        description="Operator EVM address; resolved to an account id via the mirror node.",
    )
    operator_key: str | None = Field(
        default=None,
        validation_alias=AliasChoices("OPERATOR_KEY", "operator_key"),
    )
    payer_account_id: str | None = Field(
        default=None,
        validation_alias=AliasChoices("PAYER_ACCOUNT_ID", "payer_account_id"),
    )
    payer_evm_address: str | None = Field(
        default=None,
        validation_alias=AliasChoices("PAYER_EVM_ADDRESS", "payer_evm_address"),
    )
    payer_private_key: str | None = Field(
        default=None,
        validation_alias=AliasChoices("PAYER_PRIVATE_KEY", "payer_private_key"),
        description="Dedicated fee payer key (used for topics with custom token fees).",
    )

    # Topic streaming (SSE)
    stream_poll_seconds: float = Field(
        default=2.0,
        gt=0,
        validation_alias=AliasChoices("STREAM_POLL_SECONDS", "stream_poll_seconds"),
        description="Mirror node polling interval for topic streams and the agent.",
    )
    stream_heartbeat_seconds: float = Field(
        default=15.0,
        gt=0,
        validation_alias=AliasChoices("STREAM_HEARTBEAT_SECONDS", "stream_heartbeat_seconds"),
        description="Interval between SSE keep-alive comments.",
    )

    @property
    def is_development(self) -> bool:
        return str(self.app_env).strip().lower() == "development"


@lru_cache
def get_settings() -> Settings:
    return Settings()
