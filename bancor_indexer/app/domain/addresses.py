from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class ProtocolAddresses:
    """Well-known Bancor v3 addresses, lowercase hex (same form as entity ids)."""

    bancor_network: str
    bnt: str
    bnbnt: str
    dai: str
    eth: str
    bnt_pool: str
    network_settings: str
    pool_token_factory: str
    standard_rewards: str
