"""
Sharp consensus module for deriving fair probabilities from sharp book odds.
"""
import logging
from collections import Counter
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple, Union

import numpy as np

from fairline.config import BookmakerClassification
from fairline.core.odds_math import clamp, expected_value, implied_probability, remove_vig
from fairline.core.quotes import Quote, Selection, find_opposing, line_distance

logger = logging.getLogger(__name__)

GAME_LINE_TOLERANCE = 2.0
PROP_LINE_TOLERANCE = 0.5

PROBABILITY_FLOOR = 0.01
PROBABILITY_CEILING = 0.99

# Confidence lost when the opposing side is missing and vig cannot be removed
MISSING_OPPOSING_PENALTY = 5

PROP_BASE_CONFIDENCE = 85
PROP_AGREEMENT_CONFIDENCE = 15
PROP_DISAGREEMENT_SCALE = 20

NATURAL_LINE_CONFIDENCE = {'sharp': 90, 'soft': 60}


@dataclass(frozen=True)
class Consensus:
    """Fair probability for one selection derived from one or more books"""
    probability: float
    line: Optional[float]
    line_distance: float
    confidence: float  # 0-100
    bookmakers: List[str]
    source: str = 'sharp'  # sharp or soft
    vig_removed: bool = True

    def __post_init__(self) -> None:
        """Validate probability bounds"""
        if not 0 < self.probability < 1:
            raise ValueError(f"Consensus probability must be in (0, 1), got {self.probability}")

    @property
    def opposing_probability(self) -> float:
        return 1 - self.probability


@dataclass(frozen=True)
class NoConsensus:
    """No usable consensus, with the reason the lookup failed"""
    reason: str
    bookmakers: List[str] = field(default_factory=list)


ConsensusResult = Union[Consensus, NoConsensus]


def _clamp_probability(prob: float) -> float:
    return clamp(prob, PROBABILITY_FLOOR, PROBABILITY_CEILING)


def _distance_penalty(distance: float) -> int:
    if distance == 0:
        return 0
    if distance <= 1:
        return 3
    return 5


class SharpConsensusBuilder:
    """Builds consensus fair probabilities from a snapshot of quotes"""

    def __init__(self, classification: Optional[BookmakerClassification] = None) -> None:
        self.classification = classification or BookmakerClassification.default()

    def build_game_line(self, selection: Selection, quotes: List[Quote]) -> ConsensusResult:
        """Consensus from the single best sharp book quoting near the requested line.

        Args:
            selection: Bettor's target
            quotes: All quotes across all bookmakers

        Returns:
            Consensus, or NoConsensus when no sharp book quotes within tolerance
        """
        candidates = [
            q for q in quotes
            if self.classification.is_sharp(q.bookmaker)
            and selection.matches(q)
            and line_distance(q, selection.line) <= GAME_LINE_TOLERANCE
        ]
        if not candidates:
            return NoConsensus(f"No sharp quotes within {GAME_LINE_TOLERANCE} of the requested line")

        reference = self.classification.reference_book.lower()
        _, chosen = min(
            enumerate(candidates),
            key=lambda item: (
                line_distance(item[1], selection.line) != 0,
                item[1].book_key != reference,
                item[0],
            )
        )
        distance = line_distance(chosen, selection.line)

        opposing = find_opposing(chosen, quotes)
        if opposing is not None:
            prob, _ = remove_vig(chosen.price, opposing.price)
            vig_removed = True
        else:
            logger.warning(
                f"No opposing side from {chosen.bookmaker} for {selection.outcome}, "
                f"using raw implied probability"
            )
            prob = implied_probability(chosen.price)
            vig_removed = False

        confidence = 100 - _distance_penalty(distance)
        if not vig_removed:
            confidence -= MISSING_OPPOSING_PENALTY

        return Consensus(
            probability=_clamp_probability(prob),
            line=chosen.line,
            line_distance=distance,
            confidence=confidence,
            bookmakers=[chosen.bookmaker],
            source='sharp',
            vig_removed=vig_removed,
        )

    def _prop_lines_in_order(
        self,
        groups: Dict[float, List[Quote]],
        requested_line: Optional[float]
    ) -> List[float]:
        if requested_line is None:
            return sorted(groups, key=lambda line: -len(groups[line]))
        eligible = [
            line for line in groups
            if abs(line - requested_line) <= PROP_LINE_TOLERANCE
        ]
        return sorted(eligible, key=lambda line: (abs(line - requested_line), -len(groups[line])))

    def _devigged_by_book(
        self,
        line_quotes: List[Quote],
        quotes: List[Quote]
    ) -> List[Tuple[str, float, float]]:
        """(bookmaker, no-vig probability, weight) for each book quoting both sides"""
        seen = set()
        rows = []
        for quote in line_quotes:
            if quote.book_key in seen:
                continue
            opposing = find_opposing(quote, quotes)
            if opposing is None:
                continue
            weight = self.classification.prop_weight(quote.bookmaker)
            if weight is None:
                continue
            prob, _ = remove_vig(quote.price, opposing.price)
            rows.append((quote.bookmaker, prob, weight))
            seen.add(quote.book_key)
        return rows

    def build_player_prop(self, selection: Selection, quotes: List[Quote]) -> ConsensusResult:
        """Weighted blend of no-vig probabilities across sharp-ish prop books.

        Confidence is 85 + 15 * agreement where agreement falls from 1 to 0 as
        the standard deviation of book probabilities grows to 0.05.
        """
        groups: Dict[float, List[Quote]] = {}
        for quote in quotes:
            if quote.line is None or not selection.matches(quote):
                continue
            if self.classification.prop_weight(quote.bookmaker) is None:
                continue
            groups.setdefault(quote.line, []).append(quote)

        if not groups:
            return NoConsensus("No sharp prop books quote this selection")

        for line in self._prop_lines_in_order(groups, selection.line):
            rows = self._devigged_by_book(groups[line], quotes)
            if not rows:
                continue

            books = [book for book, _, _ in rows]
            probs = np.array([prob for _, prob, _ in rows])
            weights = np.array([weight for _, _, weight in rows])

            consensus_prob = float(np.average(probs, weights=weights))
            std = float(np.std(probs))
            agreement = max(0.0, 1 - PROP_DISAGREEMENT_SCALE * std)
            confidence = PROP_BASE_CONFIDENCE + PROP_AGREEMENT_CONFIDENCE * agreement

            logger.info(
                f"Prop consensus for {selection.subject} {selection.market} {selection.outcome} "
                f"{line}: {consensus_prob:.4f} from {len(books)} books"
            )
            return Consensus(
                probability=_clamp_probability(consensus_prob),
                line=line,
                line_distance=line_distance(groups[line][0], selection.line),
                confidence=confidence,
                bookmakers=books,
                source='sharp',
            )

        return NoConsensus(
            f"No two-sided sharp prop quotes within {PROP_LINE_TOLERANCE} of the requested line",
            bookmakers=sorted({q.bookmaker for qs in groups.values() for q in qs}),
        )

    def _is_natural_sharp(self, bookmaker: str, player_prop: bool) -> bool:
        if self.classification.is_sharp(bookmaker):
            return True
        return player_prop and self.classification.prop_weight(bookmaker) is not None

    def build_natural_line(self, selection: Selection, quotes: List[Quote]) -> ConsensusResult:
        """Consensus at the market's most common line, sharp books first, then soft books.

        Used for alternate lines that sit outside the tolerance windows of the
        other two modes.
        """
        for source in ('sharp', 'soft'):
            pool = [
                q for q in quotes
                if q.line is not None
                and selection.matches(q)
                and self._is_natural_sharp(q.bookmaker, selection.is_player_prop) == (source == 'sharp')
            ]
            priced: List[Tuple[Quote, float]] = []
            for quote in pool:
                opposing = find_opposing(quote, quotes)
                if opposing is not None:
                    priced.append((quote, remove_vig(quote.price, opposing.price)[0]))
            if not priced:
                continue

            frequency = Counter(quote.line for quote, _ in priced)
            common_line = max(
                frequency,
                key=lambda line: (
                    frequency[line],
                    -abs(line - selection.line) if selection.line is not None else 0,
                )
            )
            at_line = [(q, p) for q, p in priced if q.line == common_line]
            prob = float(np.mean([p for _, p in at_line]))

            if source == 'soft':
                logger.warning("No sharp odds available - using soft book consensus")
            return Consensus(
                probability=_clamp_probability(prob),
                line=common_line,
                line_distance=line_distance(at_line[0][0], selection.line),
                confidence=NATURAL_LINE_CONFIDENCE[source],
                bookmakers=[q.bookmaker for q, _ in at_line],
                source=source,
            )

        return NoConsensus("No two-sided quotes for this selection at any line")


def calculate_prop_edge(
    soft_over_odds: int,
    soft_under_odds: int,
    consensus_over_prob: float,
    min_edge: float = 0.02
) -> Dict[str, Any]:
    """Edge and EV of a soft book's over/under prices against a prop consensus.

    Args:
        soft_over_odds: Soft book's over price
        soft_under_odds: Soft book's under price
        consensus_over_prob: Consensus fair probability of the over
        min_edge: Minimum edge required to recommend a side

    Returns:
        Dictionary with edges, EVs and the recommended side
    """
    soft_over_prob, soft_under_prob = remove_vig(soft_over_odds, soft_under_odds)
    consensus_under_prob = 1 - consensus_over_prob

    over_edge = consensus_over_prob - soft_over_prob
    under_edge = consensus_under_prob - soft_under_prob
    over_ev = expected_value(consensus_over_prob, soft_over_odds)
    under_ev = expected_value(consensus_under_prob, soft_under_odds)

    recommendation = 'none'
    if over_ev > 0 and over_edge > min_edge:
        recommendation = 'over'
    elif under_ev > 0 and under_edge > min_edge:
        recommendation = 'under'

    return {
        'over_edge': over_edge,
        'under_edge': under_edge,
        'over_ev': over_ev,
        'under_ev': under_ev,
        'recommendation': recommendation
    }
