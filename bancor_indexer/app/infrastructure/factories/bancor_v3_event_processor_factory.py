from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, Dict

from sqlalchemy.ext.asyncio import AsyncEngine
from web3 import AsyncHTTPProvider, AsyncWeb3

from bancor_indexer.app.application.services.router import EventRouter, create_event_router
from bancor_indexer.app.config import Settings, settings
from bancor_indexer.app.domain.addresses import ProtocolAddresses
from bancor_indexer.app.domain.ports.out import ChainEventSource, EntityStore
from bancor_indexer.app.infrastructure.adapters.events.evm_log_event_source import (
    SqlAlchemyEvmLogEventSource,
)
from bancor_indexer.app.infrastructure.adapters.store.memory_entity_store import InMemoryEntityStore
from bancor_indexer.app.infrastructure.adapters.store.sqlalchemy_entity_store import (
    SqlAlchemyEntityStore,
)
from bancor_indexer.app.infrastructure.decoders.bancor_v3.event_decoder import BancorV3EventDecoder
from bancor_indexer.app.infrastructure.fetchers.erc20_tokens_fetcher import (
    Web3Erc20TokenMetadataFetcher,
)
from bancor_indexer.app.infrastructure.fetchers.network_info_fetcher import (
    Web3BancorNetworkInfoClient,
)


@dataclass(frozen=True)
class BancorV3EventPipeline:
    source: ChainEventSource
    router: EventRouter
    store: EntityStore
    topic0s: list[bytes]


StoreFactory = Callable[[AsyncEngine], EntityStore]

_ENTITY_STORE_REGISTRY: Dict[str, StoreFactory] = {
    "sqlalchemy": lambda engine: SqlAlchemyEntityStore(engine),
    # Dry run: read logs from the database, keep derived entities in memory
    "memory": lambda engine: InMemoryEntityStore(),
}


def protocol_addresses_from_settings(app_settings: Settings = settings) -> ProtocolAddresses:
    missing = app_settings.missing_contract_addresses()
    if missing:
        raise ValueError(f"Bancor v3 contract addresses not configured: {', '.join(missing)}")

    return ProtocolAddresses(
        bancor_network=app_settings.bancor_network_address,
        bnt=app_settings.bnt_address,
        bnbnt=app_settings.bnbnt_address,
        dai=app_settings.dai_address,
        eth=app_settings.eth_address,
        bnt_pool=app_settings.bnt_pool_address,
        network_settings=app_settings.network_settings_address,
        pool_token_factory=app_settings.pool_token_factory_address,
        standard_rewards=app_settings.standard_rewards_address,
    )


def bancor_v3_event_pipeline_factory(
    *,
    backend: str,
    engine: AsyncEngine,
) -> BancorV3EventPipeline:
    """
    Create the Bancor v3 processing pipeline for the given entity-store backend.

    The factory wires:
    - ABI-based event decoder (inline Bancor v3 event fragments, topic0 set),
    - SQLAlchemy event source (filters analytics.evm_events by topic0 set),
    - AsyncWeb3 adapters for ERC-20 metadata and BancorNetworkInfo,
    - the event router around the selected entity store.
    """
    try:
        store_factory = _ENTITY_STORE_REGISTRY[backend]
    except KeyError:
        raise ValueError(f"Unsupported Bancor v3 entity store backend: {backend!r}")

    addresses = protocol_addresses_from_settings()
    decoder = BancorV3EventDecoder(addresses=addresses)

    w3 = AsyncWeb3(
        AsyncHTTPProvider(settings.rpc_url, request_kwargs={"timeout": settings.rpc_timeout})
    )

    store = store_factory(engine)
    router = create_event_router(
        store=store,
        metadata_fetcher=Web3Erc20TokenMetadataFetcher(w3=w3),
        network_info=Web3BancorNetworkInfoClient(
            w3=w3,
            network_info_address=settings.bancor_network_info_address,
        ),
        addresses=addresses,
        reference_decimals=settings.reference_decimals,
    )
    source = SqlAlchemyEvmLogEventSource(
        engine,
        decoder=decoder,
        topic0s_as_sql_filter=decoder.topic0s,
        batch_size=settings.event_batch_size,
    )

    return BancorV3EventPipeline(
        source=source,
        router=router,
        store=store,
        topic0s=decoder.topic0s,
    )
