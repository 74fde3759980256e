import logging
from decimal import Decimal

import pytest

from bancor_indexer.app.application.services.token_registry import (
    UNKNOWN_NAME,
    UNKNOWN_SYMBOL,
    TokenRegistry,
)
from bancor_indexer.app.application.services.valuation import ValuationService
from bancor_indexer.app.domain.entities import DexAmmProtocol, LiquidityPool, PoolCollection, Token
from bancor_indexer.app.domain.events import (
    NetworkFeePPMUpdated,
    PoolCollectionAdded,
    WithdrawalFeePPMUpdated,
)

from conftest import (
    ADDRESSES,
    BN_LINK,
    BN_WBTC,
    LINK,
    POOL_COLLECTION,
    WAD,
    WBTC,
    create_pool,
)


class TestValuation:
    @pytest.fixture
    def valuation(self, network_info):
        return ValuationService(network_info, reference_token=ADDRESSES.dai)

    @pytest.mark.asyncio
    async def test_reference_token_is_converted_without_a_call(self, valuation, network_info):
        result = await valuation.quote(ADDRESSES.dai, 250 * WAD, 100)
        assert result.value == Decimal(250)
        assert network_info.calls == []

    @pytest.mark.asyncio
    async def test_quote_uses_network_info_at_event_block(self, valuation, network_info):
        network_info.rates[LINK] = Decimal(15)
        result = await valuation.quote(LINK, 2 * WAD, 14_590_000)
        assert result.value == Decimal(30)
        assert network_info.calls == [("tradeOutputBySourceAmount", LINK, 2 * WAD, 14_590_000)]

    @pytest.mark.asyncio
    async def test_reverted_quote_is_reported_and_falls_back_to_zero(self, valuation, network_info, caplog):
        network_info.reverting.add(LINK)
        result = await valuation.quote(LINK, WAD, 1)
        assert result.reverted

        with caplog.at_level(logging.WARNING):
            assert await valuation.value_in_reference(LINK, WAD, 1) == Decimal(0)
        assert "reverted" in caplog.text

    @pytest.mark.asyncio
    async def test_underlying_fallback(self, valuation, network_info):
        network_info.underlying_rates[LINK] = Decimal("1.05")
        assert await valuation.underlying_amount(LINK, WAD, 1) == 1_050_000_000_000_000_000

        network_info.reverting.add(LINK)
        assert (await valuation.underlying(LINK, WAD, 1)).reverted
        assert await valuation.underlying_amount(LINK, WAD, 1) == 0


class TestTokenRegistry:
    @pytest.fixture
    def registry(self, store, metadata_fetcher):
        return TokenRegistry(store, fetcher=metadata_fetcher, native_token=ADDRESSES.eth)

    @pytest.mark.asyncio
    async def test_native_token_is_hardcoded(self, registry, metadata_fetcher):
        token = await registry.build_token(ADDRESSES.eth)
        assert (token.name, token.symbol, token.decimals) == ("Ether", "ETH", 18)
        assert metadata_fetcher.fetched == []

    @pytest.mark.asyncio
    async def test_each_metadata_field_falls_back_independently(self, registry, metadata_fetcher):
        metadata_fetcher.register(WBTC, None, "WBTC", None)
        token = await registry.build_token(WBTC)
        assert token.name == UNKNOWN_NAME
        assert token.symbol == "WBTC"
        assert token.decimals == 0

        metadata_fetcher.register(BN_WBTC, "Bancor WBTC Pool Token", None, 8)
        token = await registry.build_token(BN_WBTC)
        assert token.name == "Bancor WBTC Pool Token"
        assert token.symbol == UNKNOWN_SYMBOL
        assert token.decimals == 8


class TestPoolTokenCreated:
    @pytest.mark.asyncio
    async def test_creates_tokens_pool_and_protocol(self, router, events, store):
        events.at(block_number=14_609_331, block_timestamp=1_650_000_000)
        await create_pool(router, events, reserve=LINK, pool_token=BN_LINK)

        reserve = await store.find(Token, LINK)
        pool_token = await store.find(Token, BN_LINK)
        assert reserve.symbol == "LINK"
        assert reserve.pool_token == BN_LINK
        assert pool_token.symbol == "bnLINK"
        assert pool_token.pool_token is None

        pool = await store.find(LiquidityPool, BN_LINK)
        assert pool.name == "Bancor LINK Pool Token"
        assert pool.symbol == "bnLINK"
        assert pool.input_tokens == [LINK]
        assert pool.output_token == BN_LINK
        assert pool.protocol == ADDRESSES.bancor_network
        assert pool.created_block_number == 14_609_331
        assert pool.created_timestamp == 1_650_000_000
        assert pool.total_value_locked_usd == Decimal(0)
        assert pool.input_token_balances == [0]
        assert pool.input_token_weights == [Decimal(1)]

        protocol = await store.find(DexAmmProtocol, ADDRESSES.bancor_network)
        assert protocol.name == "Bancor V3"
        assert protocol.pool_ids == [BN_LINK]

    @pytest.mark.asyncio
    async def test_second_creation_is_a_no_op(self, router, events, store, caplog):
        await create_pool(router, events, reserve=LINK, pool_token=BN_LINK)
        rows_before = store.count()

        with caplog.at_level(logging.WARNING):
            await create_pool(router, events, reserve=LINK, pool_token=BN_LINK)

        assert "already exists" in caplog.text
        assert store.count() == rows_before
        protocol = await store.find(DexAmmProtocol, ADDRESSES.bancor_network)
        assert protocol.pool_ids == [BN_LINK]

    @pytest.mark.asyncio
    async def test_existing_reserve_token_keeps_its_metadata(self, router, events, store, metadata_fetcher):
        await store.save(Token(id=LINK, name="ChainLink Token", symbol="LINK", decimals=18))
        await create_pool(router, events, reserve=LINK, pool_token=BN_LINK)

        assert LINK not in metadata_fetcher.fetched
        assert (await store.find(Token, LINK)).pool_token == BN_LINK

    @pytest.mark.asyncio
    async def test_native_reserve_token(self, router, events, store):
        bn_eth = "0x256ed1d83e3e4efdda977389a5389c3433137dda"
        await create_pool(router, events, reserve=ADDRESSES.eth, pool_token=bn_eth)

        eth = await store.find(Token, ADDRESSES.eth)
        assert (eth.name, eth.symbol, eth.decimals) == ("Ether", "ETH", 18)
        assert eth.pool_token == bn_eth


class TestConfigurationEvents:
    @pytest.mark.asyncio
    async def test_fee_ppm_updates_are_stored_as_rates(self, router, events, store):
        await router.dispatch(
            events(
                NetworkFeePPMUpdated,
                contract_address=ADDRESSES.network_settings,
                prev_fee_ppm=0,
                new_fee_ppm=200_000,
            )
        )
        await router.dispatch(
            events(
                WithdrawalFeePPMUpdated,
                contract_address=ADDRESSES.network_settings,
                prev_fee_ppm=0,
                new_fee_ppm=2_500,
            )
        )

        protocol = await store.find(DexAmmProtocol, ADDRESSES.bancor_network)
        assert protocol.network_fee_rate == Decimal("0.2")
        assert protocol.withdrawal_fee_rate == Decimal("0.0025")

    @pytest.mark.asyncio
    async def test_pool_collection_registered_once(self, router, events, store):
        added = events(PoolCollectionAdded, pool_type=1, pool_collection=POOL_COLLECTION)
        await router.dispatch(added)
        await router.dispatch(added)

        collection = await store.find(PoolCollection, POOL_COLLECTION)
        assert collection.pool_type == 1
        assert collection.created_block_number == added.block_number
        assert store.count(PoolCollection) == 1
