"""
Quote and selection types shared by the consensus builder and edge calculator.
"""
import math
from dataclasses import dataclass
from typing import Iterable, List, Optional


def _normalize(value: Optional[str]) -> Optional[str]:
    return value.strip().lower() if value is not None else None


def market_kind(market: str) -> str:
    """Classify a market key as spread, total, moneyline or prop"""
    key = market.lower()
    if key in ('h2h', 'moneyline'):
        return 'moneyline'
    if key.startswith('player_'):
        return 'prop'
    if 'spread' in key:
        return 'spread'
    if 'total' in key:
        return 'total'
    return 'prop'


@dataclass(frozen=True)
class Quote:
    """One bookmaker's price for one outcome of one market"""
    bookmaker: str
    market: str  # spreads, totals, h2h, player_points, ...
    outcome: str  # Over/Under or team name
    price: int  # American odds
    line: Optional[float] = None  # absent for moneyline
    subject: Optional[str] = None  # player name for props

    def __post_init__(self) -> None:
        """Validate odds data"""
        if self.price == 0:
            raise ValueError(f"Invalid American odds 0 from {self.bookmaker}")
        if self.line is not None and not math.isfinite(self.line):
            raise ValueError(f"Line must be finite, got {self.line}")

    @property
    def book_key(self) -> str:
        return self.bookmaker.lower()

    def is_opposing(self, other: 'Quote') -> bool:
        """Whether other is the other side of this quote's market at the same book and line"""
        if other.book_key != self.book_key:
            return False
        if other.market.lower() != self.market.lower():
            return False
        if _normalize(other.subject) != _normalize(self.subject):
            return False
        if _normalize(other.outcome) == _normalize(self.outcome):
            return False
        if self.line is None or other.line is None:
            return self.line is None and other.line is None
        # Spreads quote the opposing side at the negated line
        return other.line == self.line or other.line == -self.line


@dataclass(frozen=True)
class Selection:
    """The bettor's target, used as the key to filter quotes"""
    market: str
    outcome: str
    line: Optional[float] = None
    subject: Optional[str] = None
    sport: str = 'NBA'
    odds: Optional[int] = None  # bettor's price, None or 0 = evaluate market only
    bookmaker: Optional[str] = None

    def __post_init__(self) -> None:
        """Validate selection data"""
        if self.line is not None and not math.isfinite(self.line):
            raise ValueError(f"Line must be finite, got {self.line}")

    @property
    def has_price(self) -> bool:
        return self.odds is not None and self.odds != 0

    @property
    def kind(self) -> str:
        return market_kind(self.market)

    @property
    def is_player_prop(self) -> bool:
        return self.subject is not None or self.kind == 'prop'

    @property
    def side(self) -> Optional[str]:
        """over, under or spread; None when line movement does not apply"""
        outcome = self.outcome.lower()
        if outcome in ('over', 'under'):
            return outcome
        if self.kind == 'spread':
            return 'spread'
        return None

    def matches(self, quote: Quote) -> bool:
        """Same market, outcome and subject, regardless of line"""
        return (
            quote.market.lower() == self.market.lower()
            and _normalize(quote.outcome) == _normalize(self.outcome)
            and _normalize(quote.subject) == _normalize(self.subject)
        )


def matching_quotes(selection: Selection, quotes: Iterable[Quote]) -> List[Quote]:
    """Quotes for the selection's outcome at any line"""
    return [q for q in quotes if selection.matches(q)]


def find_opposing(quote: Quote, quotes: Iterable[Quote]) -> Optional[Quote]:
    """Other side of the quote's market from the same bookmaker"""
    for candidate in quotes:
        if quote.is_opposing(candidate):
            return candidate
    return None


def line_distance(quote: Quote, requested_line: Optional[float]) -> float:
    if quote.line is None or requested_line is None:
        return 0.0
    return abs(quote.line - requested_line)
