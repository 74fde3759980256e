from __future__ import annotations

import logging

from bancor_indexer.app.domain.entities import LiquidityPool, Token
from bancor_indexer.app.domain.ports.out import EntityStore, TokenMetadataFetcher

logger = logging.getLogger(__name__)

UNKNOWN_NAME = "unknown name"
UNKNOWN_SYMBOL = "unknown symbol"


class TokenRegistry:
    """
    Token metadata and the reserve-token -> pool-token association.

    Tokens are created once per address. The only field that changes later is
    `Token.pool_token`, which is set once, when the pool for a reserve token is
    created.
    """

    def __init__(
        self,
        store: EntityStore,
        *,
        fetcher: TokenMetadataFetcher,
        native_token: str,
    ) -> None:
        self._store = store
        self._fetcher = fetcher
        self._native_token = native_token.lower()

    async def find(self, token_id: str) -> Token | None:
        return await self._store.find(Token, token_id)

    async def build_token(self, token_id: str) -> Token:
        """Fetch metadata for a new token. Never fails; unknown fields get sentinels."""
        if token_id == self._native_token:
            return Token(id=token_id, name="Ether", symbol="ETH", decimals=18)

        meta = await self._fetcher.fetch(token_address=token_id)

        if meta.name.reverted:
            logger.warning("[build_token] name() on %s reverted", token_id)
        if meta.symbol.reverted:
            logger.warning("[build_token] symbol() on %s reverted", token_id)
        if meta.decimals.reverted:
            logger.warning("[build_token] decimals() on %s reverted", token_id)

        return Token(
            id=token_id,
            name=meta.name.unwrap_or(UNKNOWN_NAME),
            symbol=meta.symbol.unwrap_or(UNKNOWN_SYMBOL),
            decimals=meta.decimals.unwrap_or(0),
        )

    async def resolve_pool(
        self,
        reserve_token_id: str,
        *,
        caller: str,
    ) -> tuple[Token, Token, LiquidityPool] | None:
        """
        Look up (reserve token, pool token, pool) for a reserve token.

        Logs a warning naming `caller` and returns None when any link is missing.
        """
        reserve_token = await self.find(reserve_token_id)
        if reserve_token is None:
            logger.warning("[%s] reserve token %s not found", caller, reserve_token_id)
            return None

        if reserve_token.pool_token is None:
            logger.warning("[%s] reserve token %s has no pool token", caller, reserve_token_id)
            return None

        pool_token = await self.find(reserve_token.pool_token)
        if pool_token is None:
            logger.warning("[%s] pool token %s not found", caller, reserve_token.pool_token)
            return None

        pool = await self._store.find(LiquidityPool, pool_token.id)
        if pool is None:
            logger.warning("[%s] liquidity pool %s not found", caller, pool_token.id)
            return None

        return reserve_token, pool_token, pool

    async def resolve_pool_by_pool_token(
        self,
        reserve_token_id: str,
        pool_token_id: str,
        *,
        caller: str,
    ) -> tuple[Token, Token, LiquidityPool] | None:
        """Same as resolve_pool, for pools whose tokens are known by address (BNT / bnBNT)."""
        reserve_token = await self.find(reserve_token_id)
        if reserve_token is None:
            logger.warning("[%s] reserve token %s not found", caller, reserve_token_id)
            return None

        pool_token = await self.find(pool_token_id)
        if pool_token is None:
            logger.warning("[%s] pool token %s not found", caller, pool_token_id)
            return None

        pool = await self._store.find(LiquidityPool, pool_token_id)
        if pool is None:
            logger.warning("[%s] liquidity pool %s not found", caller, pool_token_id)
            return None

        return reserve_token, pool_token, pool
