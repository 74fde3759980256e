"""
Shared fakes and fixtures for the Bancor v3 aggregation tests.

The engine runs against an in-memory entity store and scripted chain-view
clients, so every scenario is deterministic and needs no database or RPC.
"""

from __future__ import annotations

from decimal import Decimal
from typing import Any

import pytest

from bancor_indexer.app.application.services.router import EventRouter, create_event_router
from bancor_indexer.app.domain.addresses import ProtocolAddresses
from bancor_indexer.app.domain.events import ChainEvent, PoolTokenCreated
from bancor_indexer.app.domain.ports.out import TokenMetadata
from bancor_indexer.app.domain.results import CallResult
from bancor_indexer.app.infrastructure.adapters.store.memory_entity_store import InMemoryEntityStore

WAD = 10**18

# 2022-04-15 00:00:00 UTC, start of day bucket 19097
DAY_START = 19_097 * 86_400
BLOCK = 14_590_000

ADDRESSES = ProtocolAddresses(
    bancor_network="0xeef417e1d5cc832e619ae18d2f140de2999dd4fb",
    bnt="0x1f573d6fb3f13d689ff844b4ce37794d79a7ff1c",
    bnbnt="0xab05cf7c6c3a288cd36326e4f7b8600e7268e344",
    dai="0x6b175474e89094c44da98b954eedeac495271d0f",
    eth="0xeeeeeeeeeeeeeeeeeeeeeeeeeeeeeeeeeeeeeeee",
    bnt_pool="0x02651e355d26f3506c1e644ba393fdd9ac95eaca",
    network_settings="0x83e1814ba31f7ea3dad5d0f0ab4e8b4b6cd48ce0",
    pool_token_factory="0x5ba4b2a4e6a6a5b9fc2ed6e6e0f1e28c3a58fb43",
    standard_rewards="0xb0b958398abb0b5db4ce4d7598fb868f5a00f372",
)

LINK = "0x514910771af9ca656af840dff83e8264ecf986ca"
BN_LINK = "0x516c164a879892a156920a215855c3416616c46e"
WBTC = "0x2260fac5e5542a773aa44fbcfedf7c193bc2c599"
BN_WBTC = "0x1bb1ba7a4ecb7d8f2f8f2a1d4f2d8f6c4b1c9b2e"
POOL_COLLECTION = "0xb67d563287d12b1f41579cb687b04988ad564c6c"
TRADER = "0x1111111111111111111111111111111111111111"
PROVIDER = "0x2222222222222222222222222222222222222222"


class FakeNetworkInfo:
    """
    Scripted BancorNetworkInfo.

    `rates[token]` is the DAI received per unit of `token` (same decimals);
    `underlying_rates[token]` is the reserve amount per pool-token unit.
    Tokens listed in `reverting` make both calls revert.
    """

    def __init__(self) -> None:
        self.rates: dict[str, Decimal] = {}
        self.underlying_rates: dict[str, Decimal] = {}
        self.reverting: set[str] = set()
        self.calls: list[tuple[str, str, int, int]] = []

    async def trade_output_by_source_amount(
        self,
        *,
        source_token: str,
        target_token: str,
        source_amount: int,
        block_number: int,
    ) -> CallResult[int]:
        self.calls.append(("tradeOutputBySourceAmount", source_token, source_amount, block_number))
        if source_token in self.reverting:
            return CallResult.failed()
        rate = self.rates.get(source_token, Decimal(1))
        return CallResult.ok(int(Decimal(source_amount) * rate))

    async def pool_token_to_underlying(
        self,
        *,
        pool: str,
        pool_token_amount: int,
        block_number: int,
    ) -> CallResult[int]:
        self.calls.append(("poolTokenToUnderlying", pool, pool_token_amount, block_number))
        if pool in self.reverting:
            return CallResult.failed()
        rate = self.underlying_rates.get(pool, Decimal(1))
        return CallResult.ok(int(Decimal(pool_token_amount) * rate))


class FakeMetadataFetcher:
    """ERC-20 metadata from a dict; unknown tokens get a symbol derived from the address."""

    def __init__(self) -> None:
        self.tokens: dict[str, TokenMetadata] = {}
        self.fetched: list[str] = []

    def register(self, address: str, name: str | None, symbol: str | None, decimals: int | None) -> None:
        def _field(value: Any) -> CallResult:
            return CallResult.failed() if value is None else CallResult.ok(value)

        self.tokens[address] = TokenMetadata(
            name=_field(name),
            symbol=_field(symbol),
            decimals=_field(decimals),
        )

    async def fetch(self, *, token_address: str) -> TokenMetadata:
        self.fetched.append(token_address)
        meta = self.tokens.get(token_address)
        if meta is not None:
            return meta
        tag = token_address[2:6].upper()
        return TokenMetadata(
            name=CallResult.ok(f"Token {tag}"),
            symbol=CallResult.ok(tag),
            decimals=CallResult.ok(18),
        )


class EventFactory:
    """Builds domain events with a realistic envelope and increasing log indexes."""

    def __init__(self) -> None:
        self._log_index = 0
        self.block_number = BLOCK
        self.block_timestamp = DAY_START + 2 * 3_600

    def at(self, *, block_number: int | None = None, block_timestamp: int | None = None) -> "EventFactory":
        if block_number is not None:
            self.block_number = block_number
        if block_timestamp is not None:
            self.block_timestamp = block_timestamp
        return self

    def __call__(self, cls: type[ChainEvent], *, contract_address: str = ADDRESSES.bancor_network, **fields: Any) -> Any:
        self._log_index += 1
        return cls(
            contract_address=contract_address,
            block_number=self.block_number,
            block_timestamp=self.block_timestamp,
            transaction_hash="0x" + f"{self.block_number:x}{self._log_index:04x}".rjust(64, "0"),
            log_index=self._log_index,
            **fields,
        )


@pytest.fixture
def store() -> InMemoryEntityStore:
    return InMemoryEntityStore()


@pytest.fixture
def network_info() -> FakeNetworkInfo:
    return FakeNetworkInfo()


@pytest.fixture
def metadata_fetcher() -> FakeMetadataFetcher:
    fetcher = FakeMetadataFetcher()
    fetcher.register(LINK, "ChainLink Token", "LINK", 18)
    fetcher.register(BN_LINK, "Bancor LINK Pool Token", "bnLINK", 18)
    fetcher.register(ADDRESSES.bnt, "Bancor Network Token", "BNT", 18)
    fetcher.register(ADDRESSES.bnbnt, "Bancor BNT Pool Token", "bnBNT", 18)
    return fetcher


@pytest.fixture
def router(
    store: InMemoryEntityStore,
    network_info: FakeNetworkInfo,
    metadata_fetcher: FakeMetadataFetcher,
) -> EventRouter:
    return create_event_router(
        store=store,
        metadata_fetcher=metadata_fetcher,
        network_info=network_info,
        addresses=ADDRESSES,
    )


@pytest.fixture
def events() -> EventFactory:
    return EventFactory()


async def create_pool(router: EventRouter, events: EventFactory, *, reserve: str, pool_token: str) -> None:
    await router.dispatch(
        events(
            PoolTokenCreated,
            contract_address=ADDRESSES.pool_token_factory,
            pool_token=pool_token,
            token=reserve,
        )
    )
