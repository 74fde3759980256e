from __future__ import annotations

from typing import Any

# Minimal Bancor v3 event ABI fragments, keyed by the domain event they decode into.
# BNTPool emits TokensDeposited / TokensWithdrawn / TotalLiquidityUpdated under the same
# names as PoolCollection but with different inputs, hence different topic0.


def _inp(name: str, typ: str, indexed: bool = False) -> dict[str, Any]:
    return {"name": name, "type": typ, "indexed": indexed}


POOL_TOKEN_CREATED = {
    "type": "event",
    "name": "PoolTokenCreated",
    "anonymous": False,
    "inputs": [
        _inp("poolToken", "address", True),
        _inp("token", "address", True),
    ],
}

POOL_COLLECTION_ADDED = {
    "type": "event",
    "name": "PoolCollectionAdded",
    "anonymous": False,
    "inputs": [
        _inp("poolType", "uint16", True),
        _inp("poolCollection", "address", True),
    ],
}

TOKENS_TRADED = {
    "type": "event",
    "name": "TokensTraded",
    "anonymous": False,
    "inputs": [
        _inp("contextId", "bytes32", True),
        _inp("sourceToken", "address", True),
        _inp("targetToken", "address", True),
        _inp("sourceAmount", "uint256"),
        _inp("targetAmount", "uint256"),
        _inp("bntAmount", "uint256"),
        _inp("targetFeeAmount", "uint256"),
        _inp("bntFeeAmount", "uint256"),
        _inp("trader", "address"),
    ],
}

NETWORK_FEE_PPM_UPDATED = {
    "type": "event",
    "name": "NetworkFeePPMUpdated",
    "anonymous": False,
    "inputs": [
        _inp("prevFeePPM", "uint32"),
        _inp("newFeePPM", "uint32"),
    ],
}

WITHDRAWAL_FEE_PPM_UPDATED = {
    "type": "event",
    "name": "WithdrawalFeePPMUpdated",
    "anonymous": False,
    "inputs": [
        _inp("prevFeePPM", "uint32"),
        _inp("newFeePPM", "uint32"),
    ],
}

POOL_COLLECTION_TOKENS_DEPOSITED = {
    "type": "event",
    "name": "TokensDeposited",
    "anonymous": False,
    "inputs": [
        _inp("contextId", "bytes32", True),
        _inp("provider", "address", True),
        _inp("token", "address", True),
        _inp("tokenAmount", "uint256"),
        _inp("poolTokenAmount", "uint256"),
    ],
}

POOL_COLLECTION_TOKENS_WITHDRAWN = {
    "type": "event",
    "name": "TokensWithdrawn",
    "anonymous": False,
    "inputs": [
        _inp("contextId", "bytes32", True),
        _inp("provider", "address", True),
        _inp("token", "address", True),
        _inp("tokenAmount", "uint256"),
        _inp("poolTokenAmount", "uint256"),
        _inp("externalProtectionBaseTokenAmount", "uint256"),
        _inp("bntAmount", "uint256"),
        _inp("withdrawalFeeAmount", "uint256"),
    ],
}

POOL_COLLECTION_TOTAL_LIQUIDITY_UPDATED = {
    "type": "event",
    "name": "TotalLiquidityUpdated",
    "anonymous": False,
    "inputs": [
        _inp("contextId", "bytes32", True),
        _inp("pool", "address", True),
        _inp("liquidity", "uint256"),
        _inp("stakedBalance", "uint256"),
        _inp("poolTokenSupply", "uint256"),
    ],
}

BNT_POOL_TOKENS_DEPOSITED = {
    "type": "event",
    "name": "TokensDeposited",
    "anonymous": False,
    "inputs": [
        _inp("contextId", "bytes32", True),
        _inp("provider", "address", True),
        _inp("bntAmount", "uint256"),
        _inp("poolTokenAmount", "uint256"),
        _inp("vbntAmount", "uint256"),
    ],
}

BNT_POOL_TOKENS_WITHDRAWN = {
    "type": "event",
    "name": "TokensWithdrawn",
    "anonymous": False,
    "inputs": [
        _inp("contextId", "bytes32", True),
        _inp("provider", "address", True),
        _inp("bntAmount", "uint256"),
        _inp("poolTokenAmount", "uint256"),
        _inp("vbntAmount", "uint256"),
        _inp("withdrawalFeeAmount", "uint256"),
    ],
}

BNT_POOL_TOTAL_LIQUIDITY_UPDATED = {
    "type": "event",
    "name": "TotalLiquidityUpdated",
    "anonymous": False,
    "inputs": [
        _inp("contextId", "bytes32", True),
        _inp("liquidity", "uint256"),
        _inp("stakedBalance", "uint256"),
        _inp("poolTokenSupply", "uint256"),
    ],
}

PROGRAM_CREATED = {
    "type": "event",
    "name": "ProgramCreated",
    "anonymous": False,
    "inputs": [
        _inp("pool", "address", True),
        _inp("id", "uint256", True),
        _inp("rewardsToken", "address", True),
        _inp("totalRewards", "uint256"),
        _inp("startTime", "uint32"),
        _inp("endTime", "uint32"),
    ],
}

ALL_EVENT_ABIS: tuple[dict[str, Any], ...] = (
    POOL_TOKEN_CREATED,
    POOL_COLLECTION_ADDED,
    TOKENS_TRADED,
    NETWORK_FEE_PPM_UPDATED,
    WITHDRAWAL_FEE_PPM_UPDATED,
    POOL_COLLECTION_TOKENS_DEPOSITED,
    POOL_COLLECTION_TOKENS_WITHDRAWN,
    POOL_COLLECTION_TOTAL_LIQUIDITY_UPDATED,
    BNT_POOL_TOKENS_DEPOSITED,
    BNT_POOL_TOKENS_WITHDRAWN,
    BNT_POOL_TOTAL_LIQUIDITY_UPDATED,
    PROGRAM_CREATED,
)


def event_signature(event_abi: dict[str, Any]) -> str:
    types = ",".join(i["type"] for i in event_abi["inputs"])
    return f"{event_abi['name']}({types})"
