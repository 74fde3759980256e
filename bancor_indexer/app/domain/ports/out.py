from __future__ import annotations

from collections.abc import AsyncIterator
from dataclasses import dataclass
from typing import Any, Protocol, TypeVar

from bancor_indexer.app.domain.entities import Entity
from bancor_indexer.app.domain.events import ChainEvent
from bancor_indexer.app.domain.results import CallResult

E = TypeVar("E", bound=Entity)


class EntityStore(Protocol):
    """
    Port for the persistent entity store.

    Behaves as a key-value store keyed by (entity type, id). Every call is an
    independent write/read; there is no multi-call transaction. Callers must
    re-fetch entities instead of holding them across events.
    """

    async def find(self, model: type[E], entity_id: str) -> E | None:
        ...

    async def create(self, model: type[E], entity_id: str, **defaults: Any) -> E:
        """Build an entity from `defaults`, persist it and return it."""
        ...

    async def save(self, entity: Entity) -> None:
        ...


@dataclass(frozen=True)
class TokenMetadata:
    name: CallResult[str]
    symbol: CallResult[str]
    decimals: CallResult[int]


class TokenMetadataFetcher(Protocol):
    """
    Reads ERC-20 metadata (name, symbol, decimals) from a token contract.

    Each field is reported independently; a reverted or undecodable call yields
    a failed CallResult for that field only.
    """

    async def fetch(self, *, token_address: str) -> TokenMetadata:
        ...


class NetworkInfoClient(Protocol):
    """
    Port for the BancorNetworkInfo view functions used for valuation.

    Implementations query the chain state as of `block_number` and never
    substitute fallback values.
    """

    async def trade_output_by_source_amount(
        self,
        *,
        source_token: str,
        target_token: str,
        source_amount: int,
        block_number: int,
    ) -> CallResult[int]:
        ...

    async def pool_token_to_underlying(
        self,
        *,
        pool: str,
        pool_token_amount: int,
        block_number: int,
    ) -> CallResult[int]:
        ...


class EvmEventDecoder(Protocol):
    def decode(
        self,
        *,
        contract_address: bytes,
        block_number: int,
        block_timestamp: int,
        transaction_hash: bytes,
        log_index: int,
        topic0: bytes | None,
        topic1: bytes | None,
        topic2: bytes | None,
        topic3: bytes | None,
        data: bytes,
    ) -> ChainEvent | None:
        """
        Decode an EVM log (topics + data) into a typed domain event.

        Return:
          - ChainEvent for a known Bancor v3 event
          - None if the log is not one of the expected events
        """
        ...


class ChainEventSource(Protocol):
    """
    Port for the ordered event stream.

    Implementations yield decoded events for a block range in
    (block_number, log_index) order, exactly once.
    """

    def iter_events(
        self,
        *,
        chain_id: int,
        from_block: int,
        to_block: int,
    ) -> AsyncIterator[ChainEvent]:
        ...
