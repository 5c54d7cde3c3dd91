"""Configuration management for Dripper using Pydantic Settings."""

from pydantic import Field, SecretStr
from pydantic_settings import BaseSettings, SettingsConfigDict


class DripperConfig(BaseSettings):
    """Dripper service configuration loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        extra="ignore",
    )

    # Network
    network: str = Field(default="avail", alias="DRIPPER_NETWORK")
    rpc_endpoint: str | None = Field(default=None, alias="DRIPPER_RPC_ENDPOINT")

    # Faucet accounts
    faucet_mnemonic: SecretStr | None = Field(
        default=None, alias="DRIPPER_FAUCET_ACCOUNT_MNEMONIC"
    )
    faucet_mnemonic_file: str | None = Field(
        default=None, alias="DRIPPER_FAUCET_ACCOUNT_MNEMONIC_FILE"
    )
    backup_mnemonic: SecretStr | None = Field(
        default=None, alias="DRIPPER_FAUCET_BACKUP_ACCOUNT_MNEMONIC"
    )
    backup_mnemonic_file: str | None = Field(
        default=None, alias="DRIPPER_FAUCET_BACKUP_ACCOUNT_MNEMONIC_FILE"
    )

    # Drip policy
    drip_amount: float | None = Field(default=None, alias="DRIPPER_DRIP_AMOUNT", gt=0)
    privileged_requesters: str = Field(default="", alias="DRIPPER_PRIVILEGED_REQUESTERS")
    recaptcha_secret: SecretStr | None = Field(default=None, alias="RECAPTCHA_SECRET")
    bot_relay_secret: SecretStr | None = Field(default=None, alias="DRIPPER_BOT_RELAY_SECRET")

    # Transfer pacing
    balance_poll_seconds: float = Field(default=60.0, alias="DRIPPER_BALANCE_POLL_SECONDS", gt=0)
    settle_seconds: float = Field(default=20.0, alias="DRIPPER_SETTLE_SECONDS", ge=0)
    rpc_timeout_seconds: float = Field(default=50.0, alias="DRIPPER_RPC_TIMEOUT_SECONDS", gt=0)
    batch_threshold: int = Field(default=20, alias="DRIPPER_BATCH_THRESHOLD", gt=0)

    # Redis
    redis_url: str = Field(default="redis://localhost:6379", alias="REDIS_URL")

    # Slack
    slack_bot_token: SecretStr | None = Field(default=None, alias="SLACK_BOT_TOKEN")
    slack_app_token: SecretStr | None = Field(default=None, alias="SLACK_APP_TOKEN")

    # HTTP and observability
    http_host: str = Field(default="0.0.0.0", alias="DRIPPER_HTTP_HOST")  # noqa: S104
    http_port: int = Field(default=8080, alias="DRIPPER_HTTP_PORT", ge=1, le=65535)
    log_level: str = Field(default="INFO", alias="DRIPPER_LOG_LEVEL")
    log_format: str = Field(default="json", alias="DRIPPER_LOG_FORMAT")

    @property
    def privileged_requester_ids(self) -> frozenset[str]:
        """Requester IDs exempt from quota and balance-cap checks."""
        return frozenset(
            part.strip() for part in self.privileged_requesters.split(",") if part.strip()
        )

    @property
    def slack_enabled(self) -> bool:
        """Whether both Slack tokens are configured."""
        return self.slack_bot_token is not None and self.slack_app_token is not None
