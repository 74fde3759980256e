from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable
from typing import Any, Dict

from bancor_indexer.app.application.services.aggregators import ProtocolAggregator
from bancor_indexer.app.application.services.handlers import EventHandlers
from bancor_indexer.app.application.services.snapshots import Snapshotter
from bancor_indexer.app.application.services.token_registry import TokenRegistry
from bancor_indexer.app.application.services.usage import UsageTracker
from bancor_indexer.app.application.services.valuation import ValuationService
from bancor_indexer.app.domain.addresses import ProtocolAddresses
from bancor_indexer.app.domain.events import (
    BntTokensDeposited,
    BntTokensWithdrawn,
    BntTotalLiquidityUpdated,
    ChainEvent,
    NetworkFeePPMUpdated,
    PoolCollectionAdded,
    PoolTokenCreated,
    ProgramCreated,
    TokensDeposited,
    TokensTraded,
    TokensWithdrawn,
    TotalLiquidityUpdated,
    WithdrawalFeePPMUpdated,
)
from bancor_indexer.app.domain.ports.out import (
    EntityStore,
    NetworkInfoClient,
    TokenMetadataFetcher,
)

logger = logging.getLogger(__name__)

EventHandlerFn = Callable[[Any], Awaitable[None]]


class EventRouter:
    """
    Dispatches each event to its handler by event type.

    The set of event types is closed; an event without a registered handler is
    logged and dropped.
    """

    def __init__(self, handlers: EventHandlers) -> None:
        self._registry: Dict[type[ChainEvent], EventHandlerFn] = {
            PoolTokenCreated: handlers.handle_pool_token_created,
            PoolCollectionAdded: handlers.handle_pool_collection_added,
            NetworkFeePPMUpdated: handlers.handle_network_fee_ppm_updated,
            WithdrawalFeePPMUpdated: handlers.handle_withdrawal_fee_ppm_updated,
            TokensTraded: handlers.handle_tokens_traded,
            TokensDeposited: handlers.handle_tokens_deposited,
            BntTokensDeposited: handlers.handle_bnt_tokens_deposited,
            TokensWithdrawn: handlers.handle_tokens_withdrawn,
            BntTokensWithdrawn: handlers.handle_bnt_tokens_withdrawn,
            TotalLiquidityUpdated: handlers.handle_total_liquidity_updated,
            BntTotalLiquidityUpdated: handlers.handle_bnt_total_liquidity_updated,
            ProgramCreated: handlers.handle_program_created,
        }

    @property
    def event_types(self) -> tuple[type[ChainEvent], ...]:
        return tuple(self._registry)

    async def dispatch(self, event: ChainEvent) -> bool:
        """Run the handler for `event`. Returns False if no handler is registered."""
        try:
            handler = self._registry[type(event)]
        except KeyError:
            logger.error(
                "No handler registered for event %s",
                type(event).__name__,
                extra={"block_number": event.block_number, "log_index": event.log_index},
            )
            return False

        await handler(event)
        return True


def create_event_router(
    *,
    store: EntityStore,
    metadata_fetcher: TokenMetadataFetcher,
    network_info: NetworkInfoClient,
    addresses: ProtocolAddresses,
    reference_decimals: int = 18,
) -> EventRouter:
    """
    Wire the aggregation engine around the given ports.

    All components share the same store and hold no state of their own, so the
    router can be rebuilt at any point of the stream.
    """
    valuation = ValuationService(
        network_info,
        reference_token=addresses.dai,
        reference_decimals=reference_decimals,
    )
    tokens = TokenRegistry(store, fetcher=metadata_fetcher, native_token=addresses.eth)
    aggregator = ProtocolAggregator(store, protocol_id=addresses.bancor_network)
    usage = UsageTracker(store, protocol_id=addresses.bancor_network)
    snapshots = Snapshotter(
        store,
        valuation,
        protocol_id=addresses.bancor_network,
        bnt_address=addresses.bnt,
        bnbnt_address=addresses.bnbnt,
    )
    handlers = EventHandlers(
        store,
        addresses=addresses,
        tokens=tokens,
        valuation=valuation,
        aggregator=aggregator,
        usage=usage,
        snapshots=snapshots,
    )
    return EventRouter(handlers)
