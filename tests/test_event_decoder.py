import logging

import pytest
from eth_abi import encode as abi_encode
from eth_utils import keccak

from bancor_indexer.app.domain.events import (
    BntTokensWithdrawn,
    ProgramCreated,
    TokensTraded,
    TokensWithdrawn,
)
from bancor_indexer.app.infrastructure.decoders.bancor_v3.event_decoder import BancorV3EventDecoder

from conftest import ADDRESSES, BN_LINK, LINK, POOL_COLLECTION, PROVIDER, TRADER, WAD

TX_HASH = bytes.fromhex("ab" * 32)
CONTEXT_ID = b"\x01" * 32


def _addr(address: str) -> bytes:
    return bytes.fromhex(address[2:])


def _address_topic(address: str) -> bytes:
    return b"\x00" * 12 + _addr(address)


def _uint_topic(value: int) -> bytes:
    return value.to_bytes(32, "big")


def _log(*, emitter, signature, topics, data):
    padded = list(topics) + [None] * (3 - len(topics))
    return dict(
        contract_address=_addr(emitter),
        block_number=14_609_331,
        block_timestamp=1_650_000_000,
        transaction_hash=TX_HASH,
        log_index=42,
        topic0=keccak(text=signature),
        topic1=padded[0],
        topic2=padded[1],
        topic3=padded[2],
        data=data,
    )


@pytest.fixture
def decoder():
    return BancorV3EventDecoder(addresses=ADDRESSES)


class TestBancorV3EventDecoder:
    def test_tokens_traded(self, decoder):
        log = _log(
            emitter=ADDRESSES.bancor_network,
            signature="TokensTraded(bytes32,address,address,uint256,uint256,uint256,uint256,uint256,address)",
            topics=[CONTEXT_ID, _address_topic(LINK), _address_topic(ADDRESSES.bnt)],
            data=abi_encode(
                ["uint256", "uint256", "uint256", "uint256", "uint256", "address"],
                [1_000 * WAD, 990 * WAD, 0, 5 * WAD, 0, TRADER],
            ),
        )

        event = decoder.decode(**log)

        assert isinstance(event, TokensTraded)
        assert event.contract_address == ADDRESSES.bancor_network
        assert event.transaction_hash == "0x" + "ab" * 32
        assert event.block_number == 14_609_331
        assert event.block_timestamp == 1_650_000_000
        assert event.log_index == 42
        assert event.source_token == LINK
        assert event.target_token == ADDRESSES.bnt
        assert event.trader == TRADER
        assert event.source_amount == 1_000 * WAD
        assert event.target_amount == 990 * WAD
        assert event.target_fee_amount == 5 * WAD

    def test_same_event_name_different_emitters(self, decoder):
        collection_log = _log(
            emitter=POOL_COLLECTION,
            signature="TokensWithdrawn(bytes32,address,address,uint256,uint256,uint256,uint256,uint256)",
            topics=[CONTEXT_ID, _address_topic(PROVIDER), _address_topic(LINK)],
            data=abi_encode(["uint256"] * 5, [100 * WAD, 97 * WAD, 0, 0, 10 * WAD]),
        )
        bnt_pool_log = _log(
            emitter=ADDRESSES.bnt_pool,
            signature="TokensWithdrawn(bytes32,address,uint256,uint256,uint256,uint256)",
            topics=[CONTEXT_ID, _address_topic(PROVIDER)],
            data=abi_encode(["uint256"] * 4, [50 * WAD, 49 * WAD, 49 * WAD, WAD]),
        )

        withdrawn = decoder.decode(**collection_log)
        bnt_withdrawn = decoder.decode(**bnt_pool_log)

        assert isinstance(withdrawn, TokensWithdrawn)
        assert withdrawn.token == LINK
        assert withdrawn.withdrawal_fee_amount == 10 * WAD
        assert isinstance(bnt_withdrawn, BntTokensWithdrawn)
        assert bnt_withdrawn.bnt_amount == 50 * WAD
        assert bnt_withdrawn.withdrawal_fee_amount == WAD

    def test_program_created_indexed_uint(self, decoder):
        log = _log(
            emitter=ADDRESSES.standard_rewards,
            signature="ProgramCreated(address,uint256,address,uint256,uint32,uint32)",
            topics=[_address_topic(LINK), _uint_topic(7), _address_topic(ADDRESSES.bnt)],
            data=abi_encode(["uint256", "uint32", "uint32"], [864_000 * WAD, 1_650_000_000, 1_650_864_000]),
        )

        event = decoder.decode(**log)

        assert isinstance(event, ProgramCreated)
        assert event.program_id == 7
        assert event.pool == LINK
        assert event.rewards_token == ADDRESSES.bnt
        assert event.end_time - event.start_time == 864_000

    def test_unknown_topic0(self, decoder):
        log = _log(
            emitter=ADDRESSES.bancor_network,
            signature="Transfer(address,address,uint256)",
            topics=[_address_topic(TRADER), _address_topic(PROVIDER)],
            data=abi_encode(["uint256"], [1]),
        )
        assert decoder.decode(**log) is None

    def test_fixed_emitter_is_enforced(self, decoder):
        log = _log(
            emitter="0x000000000000000000000000000000000000dead",
            signature="NetworkFeePPMUpdated(uint32,uint32)",
            topics=[],
            data=abi_encode(["uint32", "uint32"], [0, 200_000]),
        )
        assert decoder.decode(**log) is None
        assert BancorV3EventDecoder().decode(**log).new_fee_ppm == 200_000

    def test_unexpected_emitter_is_reported_once_and_counted(self, decoder, caplog):
        other_factory = "0x000000000000000000000000000000000000beef"
        log = _log(
            emitter=other_factory,
            signature="PoolTokenCreated(address,address)",
            topics=[_address_topic(BN_LINK), _address_topic(LINK)],
            data=b"",
        )

        with caplog.at_level(logging.WARNING):
            assert decoder.decode(**log) is None
            assert decoder.decode(**log) is None

        warnings = [r for r in caplog.records if r.levelno == logging.WARNING]
        assert len(warnings) == 1
        assert other_factory in warnings[0].getMessage()
        assert ADDRESSES.pool_token_factory in warnings[0].getMessage()
        assert decoder.unexpected_emitters == {("PoolTokenCreated", other_factory): 2}

    def test_truncated_payload_is_dropped(self, decoder):
        log = _log(
            emitter=ADDRESSES.network_settings,
            signature="NetworkFeePPMUpdated(uint32,uint32)",
            topics=[],
            data=b"\x00" * 16,
        )
        assert decoder.decode(**log) is None

    def test_topic_set_covers_every_event(self, decoder):
        assert len(decoder.topic0s) == 12
        assert len(set(decoder.event_signatures.values())) == 12
