from __future__ import annotations

import logging
from decimal import Decimal

from bancor_indexer.app.domain.ports.out import NetworkInfoClient
from bancor_indexer.app.domain.results import CallResult

logger = logging.getLogger(__name__)

ZERO_BD = Decimal(0)


class ValuationService:
    """
    Converts token amounts into the reference currency (DAI).

    `quote` / `underlying` expose the raw CallResult so callers and tests can tell
    a genuine zero from a failed lookup. `value_in_reference` /
    `underlying_amount` apply the documented fallback: a reverted lookup is
    logged and counted as zero. A zero coming out of those two therefore means
    "valuation unavailable" as often as it means "worth nothing".
    """

    def __init__(
        self,
        client: NetworkInfoClient,
        *,
        reference_token: str,
        reference_decimals: int = 18,
    ) -> None:
        self._client = client
        self._reference_token = reference_token.lower()
        self._scale = Decimal(10) ** reference_decimals

    async def quote(self, token_id: str, amount: int, block_number: int) -> CallResult[Decimal]:
        if token_id.lower() == self._reference_token:
            return CallResult.ok(Decimal(amount) / self._scale)

        result = await self._client.trade_output_by_source_amount(
            source_token=token_id,
            target_token=self._reference_token,
            source_amount=amount,
            block_number=block_number,
        )
        if result.reverted or result.value is None:
            return CallResult.failed()
        return CallResult.ok(Decimal(result.value) / self._scale)

    async def underlying(self, token_id: str, pool_token_amount: int, block_number: int) -> CallResult[int]:
        return await self._client.pool_token_to_underlying(
            pool=token_id,
            pool_token_amount=pool_token_amount,
            block_number=block_number,
        )

    async def value_in_reference(self, token_id: str, amount: int, block_number: int) -> Decimal:
        result = await self.quote(token_id, amount, block_number)
        if result.reverted:
            logger.warning(
                "[value_in_reference] #%s tradeOutputBySourceAmount(%s, %s, %s) reverted",
                block_number,
                token_id,
                self._reference_token,
                amount,
            )
        return result.unwrap_or(ZERO_BD)

    async def underlying_amount(self, token_id: str, pool_token_amount: int, block_number: int) -> int:
        result = await self.underlying(token_id, pool_token_amount, block_number)
        if result.reverted:
            logger.warning(
                "[underlying_amount] #%s poolTokenToUnderlying(%s, %s) reverted",
                block_number,
                token_id,
                pool_token_amount,
            )
        return result.unwrap_or(0)
