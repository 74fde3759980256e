from __future__ import annotations

import logging
from typing import Any

from web3 import AsyncWeb3
from web3.contract.async_contract import AsyncContract
from web3.exceptions import BadFunctionCallOutput, ContractLogicError

from bancor_indexer.app.domain.ports.out import NetworkInfoClient
from bancor_indexer.app.domain.results import CallResult

logger = logging.getLogger(__name__)

_NETWORK_INFO_ABI = [
    {
        "name": "tradeOutputBySourceAmount",
        "type": "function",
        "stateMutability": "view",
        "inputs": [
            {"name": "sourceToken", "type": "address"},
            {"name": "targetToken", "type": "address"},
            {"name": "sourceAmount", "type": "uint256"},
        ],
        "outputs": [{"name": "", "type": "uint256"}],
    },
    {
        "name": "poolTokenToUnderlying",
        "type": "function",
        "stateMutability": "view",
        "inputs": [
            {"name": "pool", "type": "address"},
            {"name": "poolTokenAmount", "type": "uint256"},
        ],
        "outputs": [{"name": "", "type": "uint256"}],
    },
]


class Web3BancorNetworkInfoClient(NetworkInfoClient):
    """
    BancorNetworkInfo view calls using AsyncWeb3, pinned to the event block.

    A revert, an empty response or a provider error is reported as a failed
    CallResult; no fallback value is substituted here.
    """

    def __init__(self, *, w3: AsyncWeb3, network_info_address: str) -> None:
        self._w3 = w3
        self._contract: AsyncContract = w3.eth.contract(
            address=w3.to_checksum_address(network_info_address),
            abi=_NETWORK_INFO_ABI,
        )

    async def trade_output_by_source_amount(
        self,
        *,
        source_token: str,
        target_token: str,
        source_amount: int,
        block_number: int,
    ) -> CallResult[int]:
        return await self._safe_call(
            "tradeOutputBySourceAmount",
            block_number,
            self._w3.to_checksum_address(source_token),
            self._w3.to_checksum_address(target_token),
            source_amount,
        )

    async def pool_token_to_underlying(
        self,
        *,
        pool: str,
        pool_token_amount: int,
        block_number: int,
    ) -> CallResult[int]:
        return await self._safe_call(
            "poolTokenToUnderlying",
            block_number,
            self._w3.to_checksum_address(pool),
            pool_token_amount,
        )

    async def _safe_call(self, fn_name: str, block_number: int, *args: Any) -> CallResult[int]:
        try:
            fn = getattr(self._contract.functions, fn_name)
            value = await fn(*args).call(block_identifier=block_number)
        except (BadFunctionCallOutput, ContractLogicError, ValueError):
            # Revert (e.g. pool disabled, no liquidity) or empty response
            return CallResult.failed()
        except Exception:
            # Network / timeout / provider error
            logger.warning(
                "%s call failed at block %s", fn_name, block_number, exc_info=True
            )
            return CallResult.failed()

        if not isinstance(value, int):
            return CallResult.failed()
        return CallResult.ok(int(value))
