from __future__ import annotations

import logging
from typing import Any

from web3 import AsyncWeb3
from web3.contract.async_contract import AsyncContract
from web3.exceptions import BadFunctionCallOutput, ContractLogicError

from bancor_indexer.app.domain.ports.out import TokenMetadata, TokenMetadataFetcher
from bancor_indexer.app.domain.results import CallResult

logger = logging.getLogger(__name__)

# Minimal ERC-20 ABI fragments
_ERC20_ABI_STD = [
    {"name": "symbol", "type": "function", "stateMutability": "view", "inputs": [], "outputs": [{"name": "", "type": "string"}]},
    {"name": "decimals", "type": "function", "stateMutability": "view", "inputs": [], "outputs": [{"name": "", "type": "uint8"}]},
    {"name": "name", "type": "function", "stateMutability": "view", "inputs": [], "outputs": [{"name": "", "type": "string"}]},
]

# MKR-style tokens return bytes32 name/symbol
_ERC20_ABI_LEGACY = [
    {"name": "symbol", "type": "function", "stateMutability": "view", "inputs": [], "outputs": [{"name": "", "type": "bytes32"}]},
    {"name": "decimals", "type": "function", "stateMutability": "view", "inputs": [], "outputs": [{"name": "", "type": "uint256"}]},
    {"name": "name", "type": "function", "stateMutability": "view", "inputs": [], "outputs": [{"name": "", "type": "bytes32"}]},
]


class Web3Erc20TokenMetadataFetcher(TokenMetadataFetcher):
    """
    ERC-20 metadata fetcher using AsyncWeb3.

    Each of name(), symbol(), decimals() is tried with the standard ABI first and
    with the legacy bytes32 ABI only if the standard call failed. A field that
    fails both ways comes back as a failed CallResult; the registry decides the
    placeholder.

    token_address is a lowercase 0x-prefixed hex string.
    """

    def __init__(self, *, w3: AsyncWeb3) -> None:
        self._w3 = w3

    async def fetch(self, *, token_address: str) -> TokenMetadata:
        # web3 expects checksum hex string
        addr_hex = self._w3.to_checksum_address(token_address)

        contract_std: AsyncContract = self._w3.eth.contract(address=addr_hex, abi=_ERC20_ABI_STD)
        contract_legacy: AsyncContract = self._w3.eth.contract(address=addr_hex, abi=_ERC20_ABI_LEGACY)

        name = await self._fetch_text(contract_std, contract_legacy, "name")
        symbol = await self._fetch_text(contract_std, contract_legacy, "symbol")
        decimals = await self._fetch_decimals(contract_std, contract_legacy)

        return TokenMetadata(name=name, symbol=symbol, decimals=decimals)

    async def _fetch_text(
        self,
        contract_std: AsyncContract,
        contract_legacy: AsyncContract,
        fn_name: str,
    ) -> CallResult[str]:
        value = self._normalize_symbol_name(await self._safe_call(contract_std, fn_name))
        if value is None:
            value = self._normalize_symbol_name(await self._safe_call(contract_legacy, fn_name))
        if value is None:
            return CallResult.failed()
        return CallResult.ok(value)

    async def _fetch_decimals(
        self,
        contract_std: AsyncContract,
        contract_legacy: AsyncContract,
    ) -> CallResult[int]:
        for contract in (contract_std, contract_legacy):
            raw = await self._safe_call(contract, "decimals")
            if isinstance(raw, int) and 0 <= raw <= 255:
                return CallResult.ok(int(raw))
        return CallResult.failed()

    @staticmethod
    def _normalize_symbol_name(val: Any) -> str | None:
        if val is None:
            return None

        if isinstance(val, str):
            return val.strip() or None

        if isinstance(val, (bytes, bytearray, memoryview)):
            try:
                return bytes(val).rstrip(b"\x00").decode("utf-8").strip() or None
            except UnicodeDecodeError:
                return None

        return None

    async def _safe_call(self, contract: AsyncContract, fn_name: str) -> Any | None:
        try:
            fn = getattr(contract.functions, fn_name)
            return await fn().call()
        except (BadFunctionCallOutput, ContractLogicError, ValueError):
            # Non-ERC20, proxy weirdness, revert, or empty response
            return None
        except Exception:
            # Network / timeout / provider error
            logger.warning("%s() call failed for %s", fn_name, contract.address, exc_info=True)
            return None
