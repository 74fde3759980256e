"""Config file."""
from urllib.parse import quote_plus

from pydantic import Field, SecretStr, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings."""

    # PROJECT
    project_name: str = Field("bancor-v3-indexer", alias="PROJECT_NAME")

    # DATABASE
    postgres_user: str = Field("postgres", alias="POSTGRES_USER")
    postgres_password: SecretStr = Field(SecretStr("postgres"), alias="POSTGRES_PASSWORD")
    postgres_server: str = Field("localhost", alias="POSTGRES_SERVER")
    postgres_port: int = Field(5432, alias="POSTGRES_PORT")
    postgres_db: str = Field("indexer", alias="POSTGRES_DB")
    database_url: str | None = None
    sync_database_url: str | None = None
    db_pool_size: int = Field(5, alias="DB_POOL_SIZE")
    sql_echo: bool = Field(False, alias="SQL_ECHO")

    # CHAIN
    rpc_url: str = Field("http://localhost:8545", alias="RPC_URL")
    rpc_timeout: int = Field(30, alias="RPC_TIMEOUT")
    event_batch_size: int = Field(10_000, alias="EVENT_BATCH_SIZE")

    # BANCOR V3 CONTRACTS (lowercase hex, matching entity ids)
    bancor_network_address: str = Field(
        "0xeef417e1d5cc832e619ae18d2f140de2999dd4fb", alias="BANCOR_NETWORK_ADDRESS"
    )
    bancor_network_info_address: str = Field(
        "0x8e303d296851b320e6a697bacb979d13c9d6e760", alias="BANCOR_NETWORK_INFO_ADDRESS"
    )
    # Required to build the pipeline; fixed-emitter logs are matched against them.
    network_settings_address: str | None = Field(None, alias="NETWORK_SETTINGS_ADDRESS")
    pool_token_factory_address: str | None = Field(None, alias="POOL_TOKEN_FACTORY_ADDRESS")
    standard_rewards_address: str | None = Field(None, alias="STANDARD_REWARDS_ADDRESS")
    bnt_pool_address: str | None = Field(None, alias="BNT_POOL_ADDRESS")
    bnt_address: str = Field("0x1f573d6fb3f13d689ff844b4ce37794d79a7ff1c", alias="BNT_ADDRESS")
    bnbnt_address: str = Field("0xab05cf7c6c3a288cd36326e4f7b8600e7268e344", alias="BNBNT_ADDRESS")
    dai_address: str = Field("0x6b175474e89094c44da98b954eedeac495271d0f", alias="DAI_ADDRESS")
    eth_address: str = Field("0xeeeeeeeeeeeeeeeeeeeeeeeeeeeeeeeeeeeeeeee", alias="ETH_ADDRESS")
    reference_decimals: int = Field(18, alias="REFERENCE_DECIMALS")

    @model_validator(mode="after")
    def assemble_db_urls(self) -> "Settings":
        user = quote_plus(self.postgres_user)
        password = quote_plus(self.postgres_password.get_secret_value())
        host = self.postgres_server
        port = self.postgres_port
        db = self.postgres_db

        if not self.database_url:
            self.database_url = f"postgresql+asyncpg://{user}:{password}@{host}:{port}/{db}"

        if not self.sync_database_url:
            self.sync_database_url = f"postgresql://{user}:{password}@{host}:{port}/{db}"

        return self

    @model_validator(mode="after")
    def normalize_addresses(self) -> "Settings":
        # Entity ids are lowercase hex; keep configured addresses comparable to them.
        for name in type(self).model_fields:
            value = getattr(self, name)
            if name.endswith("_address") and value is not None:
                setattr(self, name, value.lower())
        return self

    def missing_contract_addresses(self) -> list[str]:
        """Env names of the contract addresses that have not been configured."""
        return [
            field.alias or name.upper()
            for name, field in type(self).model_fields.items()
            if name.endswith("_address") and getattr(self, name) is None
        ]

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        populate_by_name=True,
    )


settings: Settings = Settings()
