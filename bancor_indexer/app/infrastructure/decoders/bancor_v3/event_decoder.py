from __future__ import annotations

import logging
from collections import Counter
from dataclasses import dataclass
from typing import Any, Callable, Mapping

from eth_abi import decode as abi_decode
from eth_abi.exceptions import DecodingError
from eth_utils import keccak

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
from bancor_indexer.app.domain.ports.out import EvmEventDecoder
from bancor_indexer.app.infrastructure.decoders.bancor_v3 import abi

logger = logging.getLogger(__name__)

ArgsToEvent = Callable[[dict[str, Any], dict[str, Any]], ChainEvent]


@dataclass(frozen=True)
class _EventSpec:
    event_abi: dict[str, Any]
    build: ArgsToEvent
    # Settings attribute naming the only contract allowed to emit this log;
    # None for pool-collection logs, which are gated by registration instead.
    emitter: str | None

    @property
    def signature(self) -> str:
        return abi.event_signature(self.event_abi)

    @property
    def topic0(self) -> bytes:
        return keccak(text=self.signature)


_SPECS: tuple[_EventSpec, ...] = (
    _EventSpec(
        abi.POOL_TOKEN_CREATED,
        lambda env, a: PoolTokenCreated(**env, pool_token=a["poolToken"], token=a["token"]),
        "pool_token_factory",
    ),
    _EventSpec(
        abi.POOL_COLLECTION_ADDED,
        lambda env, a: PoolCollectionAdded(
            **env, pool_type=a["poolType"], pool_collection=a["poolCollection"]
        ),
        "bancor_network",
    ),
    _EventSpec(
        abi.TOKENS_TRADED,
        lambda env, a: TokensTraded(
            **env,
            source_token=a["sourceToken"],
            target_token=a["targetToken"],
            trader=a["trader"],
            source_amount=a["sourceAmount"],
            target_amount=a["targetAmount"],
            target_fee_amount=a["targetFeeAmount"],
        ),
        "bancor_network",
    ),
    _EventSpec(
        abi.NETWORK_FEE_PPM_UPDATED,
        lambda env, a: NetworkFeePPMUpdated(
            **env, prev_fee_ppm=a["prevFeePPM"], new_fee_ppm=a["newFeePPM"]
        ),
        "network_settings",
    ),
    _EventSpec(
        abi.WITHDRAWAL_FEE_PPM_UPDATED,
        lambda env, a: WithdrawalFeePPMUpdated(
            **env, prev_fee_ppm=a["prevFeePPM"], new_fee_ppm=a["newFeePPM"]
        ),
        "network_settings",
    ),
    _EventSpec(
        abi.POOL_COLLECTION_TOKENS_DEPOSITED,
        lambda env, a: TokensDeposited(
            **env,
            provider=a["provider"],
            token=a["token"],
            token_amount=a["tokenAmount"],
            pool_token_amount=a["poolTokenAmount"],
        ),
        None,
    ),
    _EventSpec(
        abi.POOL_COLLECTION_TOKENS_WITHDRAWN,
        lambda env, a: TokensWithdrawn(
            **env,
            provider=a["provider"],
            token=a["token"],
            token_amount=a["tokenAmount"],
            pool_token_amount=a["poolTokenAmount"],
            withdrawal_fee_amount=a["withdrawalFeeAmount"],
        ),
        None,
    ),
    _EventSpec(
        abi.POOL_COLLECTION_TOTAL_LIQUIDITY_UPDATED,
        lambda env, a: TotalLiquidityUpdated(
            **env,
            pool=a["pool"],
            staked_balance=a["stakedBalance"],
            pool_token_supply=a["poolTokenSupply"],
        ),
        None,
    ),
    _EventSpec(
        abi.BNT_POOL_TOKENS_DEPOSITED,
        lambda env, a: BntTokensDeposited(
            **env,
            provider=a["provider"],
            bnt_amount=a["bntAmount"],
            pool_token_amount=a["poolTokenAmount"],
        ),
        "bnt_pool",
    ),
    _EventSpec(
        abi.BNT_POOL_TOKENS_WITHDRAWN,
        lambda env, a: BntTokensWithdrawn(
            **env,
            provider=a["provider"],
            bnt_amount=a["bntAmount"],
            pool_token_amount=a["poolTokenAmount"],
            withdrawal_fee_amount=a["withdrawalFeeAmount"],
        ),
        "bnt_pool",
    ),
    _EventSpec(
        abi.BNT_POOL_TOTAL_LIQUIDITY_UPDATED,
        lambda env, a: BntTotalLiquidityUpdated(
            **env,
            staked_balance=a["stakedBalance"],
            pool_token_supply=a["poolTokenSupply"],
        ),
        "bnt_pool",
    ),
    _EventSpec(
        abi.PROGRAM_CREATED,
        lambda env, a: ProgramCreated(
            **env,
            pool=a["pool"],
            program_id=a["id"],
            rewards_token=a["rewardsToken"],
            total_rewards=a["totalRewards"],
            start_time=a["startTime"],
            end_time=a["endTime"],
        ),
        "standard_rewards",
    ),
)


class BancorV3EventDecoder(EvmEventDecoder):
    """
    ABI-based decoder for every Bancor v3 log the indexer consumes.

    It:
    - computes topic0 = keccak("EventName(type1,type2,...)") for each event fragment,
    - decodes indexed args from topics (address/uint/bytes32),
    - decodes non-indexed args from `data` with eth_abi,
    - builds the typed domain event with lowercase 0x-hex addresses.

    When `addresses` is given, logs with a fixed emitter (BancorNetwork,
    NetworkSettings, PoolTokenFactory, StandardRewards, BNTPool) are only
    accepted from that contract.
    """

    def __init__(self, *, addresses: ProtocolAddresses | None = None) -> None:
        self._addresses = addresses
        self._specs: dict[bytes, _EventSpec] = {spec.topic0: spec for spec in _SPECS}
        # (event name, emitter) -> logs dropped because the emitter is not the configured one
        self._unexpected_emitters: Counter[tuple[str, str]] = Counter()

    @property
    def unexpected_emitters(self) -> Mapping[tuple[str, str], int]:
        return dict(self._unexpected_emitters)

    @property
    def topic0s(self) -> list[bytes]:
        return list(self._specs)

    @property
    def event_signatures(self) -> Mapping[bytes, str]:
        return {topic0: spec.signature for topic0, spec in self._specs.items()}

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
        if topic0 is None:
            return None

        spec = self._specs.get(bytes(topic0))
        if spec is None:
            return None

        emitter = _hex(contract_address)
        if not self._accepts_emitter(spec, emitter):
            key = (spec.event_abi["name"], emitter)
            if key not in self._unexpected_emitters:
                logger.warning(
                    "Ignoring %s emitted by unexpected contract %s (expected %s)",
                    spec.event_abi["name"],
                    emitter,
                    getattr(self._addresses, spec.emitter),
                    extra={"block_number": block_number, "log_index": log_index},
                )
            self._unexpected_emitters[key] += 1
            return None

        inputs: list[dict[str, Any]] = spec.event_abi["inputs"]
        indexed_inputs = [i for i in inputs if i.get("indexed")]
        non_indexed_inputs = [i for i in inputs if not i.get("indexed")]

        topics = (topic1, topic2, topic3)
        args: dict[str, Any] = {}

        for inp, topic in zip(indexed_inputs, topics):
            if topic is None:
                # Same topic0 but fewer indexed args (e.g. a foreign contract); not ours
                return None
            args[inp["name"]] = self._decode_topic(inp["type"], topic)

        if non_indexed_inputs:
            types = [i["type"] for i in non_indexed_inputs]
            try:
                values = abi_decode(types, bytes(data))
            except DecodingError:
                logger.warning(
                    "Undecodable %s payload at block %s log %s",
                    spec.event_abi["name"],
                    block_number,
                    log_index,
                )
                return None
            for inp, val in zip(non_indexed_inputs, values, strict=True):
                args[inp["name"]] = self._normalize_abi_value(inp["type"], val)

        envelope = {
            "contract_address": emitter,
            "block_number": int(block_number),
            "block_timestamp": int(block_timestamp),
            "transaction_hash": _hex(transaction_hash),
            "log_index": int(log_index),
        }
        return spec.build(envelope, args)

    # ---------------------------------------------------------------------
    # Helpers
    # ---------------------------------------------------------------------

    def _accepts_emitter(self, spec: _EventSpec, emitter: str) -> bool:
        if self._addresses is None or spec.emitter is None:
            return True
        return getattr(self._addresses, spec.emitter) == emitter

    @staticmethod
    def _decode_topic(typ: str, topic: bytes) -> Any:
        t = bytes(topic)
        if len(t) != 32:
            raise ValueError(f"Expected 32 bytes topic, got len={len(t)}")
        if typ == "address":
            # Indexed address is left-zero padded to 32 bytes
            return _hex(t[-20:])
        if typ.startswith("uint"):
            return int.from_bytes(t, byteorder="big", signed=False)
        return _hex(t)

    @staticmethod
    def _normalize_abi_value(typ: str, val: Any) -> Any:
        if typ == "address":
            # eth_abi returns checksummed str for addresses
            return str(val).lower()
        if typ.startswith("uint") or typ.startswith("int"):
            return int(val)
        if typ.startswith("bytes") and isinstance(val, (bytes, bytearray, memoryview)):
            return _hex(bytes(val))
        return val


def _hex(value: bytes | str) -> str:
    if isinstance(value, str):
        v = value.lower()
        return v if v.startswith("0x") else "0x" + v
    return "0x" + bytes(value).hex()
