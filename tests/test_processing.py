import logging

import pytest

from bancor_indexer.app.application.services.block_bounds import parse_block_selector
from bancor_indexer.app.application.services.process_events_for_block_range import (
    BlockRange,
    process_events_for_block_range,
)
from bancor_indexer.app.domain.entities import Deposit
from bancor_indexer.app.domain.events import (
    ChainEvent,
    PoolCollectionAdded,
    TokensDeposited,
)

from conftest import BN_LINK, LINK, POOL_COLLECTION, PROVIDER, WAD, create_pool


class ListEventSource:
    """Yields a fixed list of events, ignoring the range arguments."""

    def __init__(self, events):
        self._events = list(events)
        self.requested = None

    async def iter_events(self, *, chain_id, from_block, to_block):
        self.requested = (chain_id, from_block, to_block)
        for event in self._events:
            yield event


class ExplodingRouter:
    def __init__(self, fail_on):
        self._fail_on = fail_on
        self.dispatched = []

    async def dispatch(self, event):
        if isinstance(event, self._fail_on):
            raise RuntimeError("boom")
        self.dispatched.append(event)
        return True


def _deposit(events, collection=POOL_COLLECTION):
    return events(
        TokensDeposited,
        contract_address=collection,
        provider=PROVIDER,
        token=LINK,
        token_amount=WAD,
        pool_token_amount=WAD,
    )


class TestBlockRange:
    def test_valid_range(self):
        BlockRange(from_block=10, to_block=10).validate()

    @pytest.mark.parametrize("from_block,to_block", [(-1, 5), (5, -1), (11, 10)])
    def test_invalid_ranges(self, from_block, to_block):
        with pytest.raises(ValueError):
            BlockRange(from_block=from_block, to_block=to_block).validate()

    @pytest.mark.parametrize(
        "raw,expected",
        [(" 14590000 ", 14_590_000), ("earliest", "earliest"), ("LATEST", "latest"), (7, 7)],
    )
    def test_block_selector_parsing(self, raw, expected):
        assert parse_block_selector(raw) == expected


class TestProcessEvents:
    @pytest.mark.asyncio
    async def test_pool_collection_events_need_registration(self, router, events, store):
        await create_pool(router, events, reserve=LINK, pool_token=BN_LINK)
        before = _deposit(events)
        registration = events(PoolCollectionAdded, pool_type=1, pool_collection=POOL_COLLECTION)
        after = _deposit(events)
        foreign = _deposit(events, collection="0x000000000000000000000000000000000000dead")

        source = ListEventSource([before, registration, after, foreign])
        stats = await process_events_for_block_range(
            source=source,
            router=router,
            store=store,
            chain_id=1,
            block_range=BlockRange(from_block=14_590_000, to_block=14_590_000),
        )

        assert source.requested == (1, 14_590_000, 14_590_000)
        assert stats.processed == 2
        assert stats.skipped == 2
        assert stats.failed == 0
        assert await store.find(Deposit, f"deposit-{before.transaction_hash}-{before.log_index}") is None
        assert await store.find(Deposit, f"deposit-{after.transaction_hash}-{after.log_index}") is not None
        assert store.count(Deposit) == 1

    @pytest.mark.asyncio
    async def test_failing_handler_does_not_stop_the_stream(self, events, store, caplog):
        registration = events(PoolCollectionAdded, pool_type=1, pool_collection=POOL_COLLECTION)
        router = ExplodingRouter(fail_on=PoolCollectionAdded)
        trailing = events(PoolCollectionAdded, pool_type=2, pool_collection=POOL_COLLECTION)

        with caplog.at_level(logging.ERROR):
            stats = await process_events_for_block_range(
                source=ListEventSource([registration, trailing]),
                router=router,
                store=store,
                chain_id=1,
                block_range=BlockRange(from_block=0, to_block=1),
            )

        assert stats.failed == 2
        assert stats.processed == 0
        assert "failed at block" in caplog.text

    @pytest.mark.asyncio
    async def test_invalid_range_rejected_before_reading(self, router, store):
        source = ListEventSource([])
        with pytest.raises(ValueError):
            await process_events_for_block_range(
                source=source,
                router=router,
                store=store,
                chain_id=1,
                block_range=BlockRange(from_block=5, to_block=4),
            )
        assert source.requested is None


class TestEventRouter:
    def test_all_event_kinds_registered(self, router):
        assert len(router.event_types) == 12

    @pytest.mark.asyncio
    async def test_unknown_event_is_logged_and_dropped(self, router, events, store, caplog):
        with caplog.at_level(logging.ERROR):
            handled = await router.dispatch(events(ChainEvent))

        assert handled is False
        assert "No handler registered" in caplog.text
        assert store.count() == 0
