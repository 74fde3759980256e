from decimal import Decimal

import pytest
from pydantic import ValidationError

from bancor_indexer.app.domain.entities import (
    ActiveAccount,
    HourlyActiveAccount,
    LiquidityPool,
    Token,
)

from conftest import BN_LINK, LINK


class TestInMemoryEntityStore:
    @pytest.mark.asyncio
    async def test_loaded_entity_is_a_copy(self, store):
        await store.save(Token(id=LINK, name="ChainLink Token", symbol="LINK", decimals=18))

        token = await store.find(Token, LINK)
        token.pool_token = BN_LINK

        assert (await store.find(Token, LINK)).pool_token is None
        await store.save(token)
        assert (await store.find(Token, LINK)).pool_token == BN_LINK

    @pytest.mark.asyncio
    async def test_create_applies_defaults(self, store):
        pool = await store.create(
            LiquidityPool,
            BN_LINK,
            protocol="0xprotocol",
            name="Bancor LINK Pool Token",
            symbol="bnLINK",
            input_tokens=[LINK],
            output_token=BN_LINK,
            created_timestamp=1_650_000_000,
            created_block_number=14_609_331,
        )
        loaded = await store.find(LiquidityPool, BN_LINK)
        assert loaded == pool
        assert loaded.total_value_locked_usd == Decimal(0)

    def test_entity_type_is_the_class_name(self):
        assert Token.entity_type() == "Token"
        assert ActiveAccount.entity_type() == "ActiveAccount"
        assert HourlyActiveAccount.entity_type() == "HourlyActiveAccount"

    @pytest.mark.asyncio
    async def test_entity_types_are_separate_namespaces(self, store):
        await store.create(ActiveAccount, "0xabc-20")
        assert await store.find(HourlyActiveAccount, "0xabc-20") is None
        assert store.count(ActiveAccount) == 1
        assert store.count(HourlyActiveAccount) == 0

    @pytest.mark.asyncio
    async def test_decimals_survive_storage(self, store):
        pool = LiquidityPool(
            id=BN_LINK,
            protocol="0xprotocol",
            name="bnLINK",
            symbol="bnLINK",
            input_tokens=[LINK],
            output_token=BN_LINK,
            created_timestamp=0,
            created_block_number=0,
            total_value_locked_usd=Decimal("12345.678901234567890123"),
        )
        await store.save(pool)
        loaded = await store.find(LiquidityPool, BN_LINK)
        assert loaded.total_value_locked_usd == Decimal("12345.678901234567890123")

    @pytest.mark.asyncio
    async def test_all_lists_one_entity_type(self, store):
        await store.create(ActiveAccount, "0xabc-20")
        await store.create(ActiveAccount, "0xdef-20")
        await store.create(HourlyActiveAccount, "0xabc-480")

        assert sorted(account.id for account in store.all(ActiveAccount)) == ["0xabc-20", "0xdef-20"]
        assert [account.id for account in store.all(HourlyActiveAccount)] == ["0xabc-480"]

    def test_unknown_fields_rejected(self):
        with pytest.raises(ValidationError):
            Token(id=LINK, name="x", symbol="x", decimals=18, price=1)
