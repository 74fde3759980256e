from __future__ import annotations

import enum
from dataclasses import dataclass
from decimal import Decimal

ZERO = Decimal(0)


class EventType(enum.Enum):
    SWAP = "swap"
    DEPOSIT = "deposit"
    WITHDRAW = "withdraw"


@dataclass(frozen=True)
class RevenueSplit:
    total: Decimal
    protocol_side: Decimal
    supply_side: Decimal


def attribute_revenue(
    event_type: EventType,
    amount_usd: Decimal,
    network_fee_rate: Decimal = ZERO,
) -> RevenueSplit:
    """
    Split a collected fee between the protocol treasury and liquidity providers.

    Trading fees are shared according to the network fee rate; withdrawal fees
    go to the protocol in full. Deposits carry no fee.
    """
    if event_type is EventType.SWAP:
        protocol_side = amount_usd * network_fee_rate
        return RevenueSplit(
            total=amount_usd,
            protocol_side=protocol_side,
            supply_side=amount_usd - protocol_side,
        )

    if event_type is EventType.WITHDRAW:
        return RevenueSplit(total=amount_usd, protocol_side=amount_usd, supply_side=ZERO)

    return RevenueSplit(total=ZERO, protocol_side=ZERO, supply_side=ZERO)
