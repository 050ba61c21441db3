"""Order book cache for the YES/NO tokens of subscribed markets."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Any, Callable, Optional, TypeVar

from polyarb.discoverer import MarketInfo

log = logging.getLogger(__name__)

T = TypeVar("T")


def short_b256(value: Any) -> str:
    """Shorten a 32-byte hex id for logs: ``0x`` plus 8 hex digits and ``..``."""
    text = str(value)
    return f"{text[:10]}.." if len(text) > 12 else text


def short_u256(value: Any) -> str:
    """Shorten a large token id for logs: ``..`` plus its last 8 digits."""
    text = str(value)
    return f"..{text[-8:]}" if len(text) > 12 else text


@dataclass(frozen=True)
class PriceLevel:
    """One price level of an order book."""

    price: Decimal
    size: Decimal


@dataclass
class BookUpdate:
    """A full snapshot of one token's order book.

    Asks are ordered so that the last entry is the best (lowest) ask, and bids
    so that the last entry is the best (highest) bid.
    """

    asset_id: int
    bids: list[PriceLevel] = field(default_factory=list)
    asks: list[PriceLevel] = field(default_factory=list)


@dataclass
class OrderBookPair:
    """The YES and NO books of one market."""

    yes_book: BookUpdate
    no_book: BookUpdate
    market_id: str


def _levels_text(levels: list[PriceLevel]) -> str:
    return ", ".join(f"{level.size}@{level.price}" for level in levels[:5])


class OrderBookMonitor:
    """Keeps the latest book per token and pairs YES/NO books by market."""

    def __init__(self) -> None:
        self.books: dict[int, BookUpdate] = {}
        self.market_map: dict[str, tuple[int, int]] = {}

    def subscribe_market(self, market: MarketInfo) -> None:
        """Record a market so its two tokens are tracked."""
        self.market_map[market.market_id] = (market.yes_token_id, market.no_token_id)
        log.info(
            "subscribing market order books market_id=%s yes=%s no=%s",
            short_b256(market.market_id),
            short_u256(market.yes_token_id),
            short_u256(market.no_token_id),
        )

    def token_ids(self) -> list[int]:
        """All token ids of the subscribed markets, YES before NO."""
        return [token for pair in self.market_map.values() for token in pair]

    def create_orderbook_stream(self, subscribe: Callable[[list[int]], T]) -> T:
        """Start a book subscription for every tracked token via ``subscribe``."""
        tokens = self.token_ids()
        if not tokens:
            raise ValueError("no markets to subscribe")
        log.info("creating order book stream token_count=%d", len(tokens))
        return subscribe(tokens)

    def handle_book_update(self, book: BookUpdate) -> Optional[OrderBookPair]:
        """Cache ``book``; on a YES update with a known NO book, return the pair."""
        if book.bids:
            log.debug("asset %s top bids: %s", book.asset_id, _levels_text(book.bids))
        if book.asks:
            log.debug(
                "asset %s top asks: %s", short_u256(book.asset_id), _levels_text(book.asks)
            )

        self.books[book.asset_id] = book

        for market_id, (yes_token, no_token) in self.market_map.items():
            if book.asset_id == yes_token:
                no_book = self.books.get(no_token)
                if no_book is not None:
                    return OrderBookPair(yes_book=book, no_book=no_book, market_id=market_id)
        return None

    def get_book(self, token_id: int) -> Optional[BookUpdate]:
        """The latest cached book of ``token_id``, if any."""
        return self.books.get(token_id)

    def clear(self) -> None:
        """Forget all books and markets."""
        self.books.clear()
        self.market_map.clear()