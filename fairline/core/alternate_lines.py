"""
Alternate line module for moving a consensus probability to a different line.
"""
import logging
from dataclasses import dataclass
from typing import Optional

from fairline.config import SensitivityTable
from fairline.core.consensus import Consensus
from fairline.core.monte_carlo import canonical_stat
from fairline.core.odds_math import clamp
from fairline.core.quotes import Selection, market_kind

logger = logging.getLogger(__name__)

MIN_PROBABILITY = 0.05
MAX_PROBABILITY = 0.95

CONFIDENCE_PER_UNIT = 2
SOFT_SOURCE_PENALTY = 10
MIN_CONFIDENCE = 20
MAX_CONFIDENCE = 100

# Lines closer than this to the consensus line are treated as the same line
SAME_LINE_THRESHOLD = 0.1


@dataclass(frozen=True)
class LineAdjustment:
    """Consensus probability carried over to the bettor's line"""
    probability: float
    confidence: float
    consensus_line: float
    line_difference: float
    source: str
    probability_adjustment: float


def stat_for_selection(selection: Selection) -> str:
    """Name used to look up the line sensitivity of a selection's market"""
    kind = selection.kind
    if kind in ('spread', 'total'):
        return kind
    market = selection.market.lower()
    if market.startswith('player_'):
        market = market[len('player_'):]
    return canonical_stat(selection.market) or market


class AlternateLineAdjuster:
    """Linear extrapolation of probabilities across lines"""

    def __init__(self, sensitivity: Optional[SensitivityTable] = None) -> None:
        self.sensitivity = sensitivity or SensitivityTable.default()

    def adjust_probability(
        self,
        sport: str,
        stat: str,
        base_line: float,
        base_prob: float,
        target_line: float,
        side: Optional[str]
    ) -> float:
        """Adjust a probability for a different line.

        Args:
            sport: Sport tag used to pick the rate table
            stat: Canonical stat or market kind
            base_line: Line the probability was priced at
            base_prob: Probability at base_line
            target_line: Line to move to
            side: over, under or spread; other sides are not adjusted

        Returns:
            Adjusted probability clamped to [0.05, 0.95]
        """
        line_diff = target_line - base_line
        if line_diff == 0:
            return base_prob

        rate = self.sensitivity.rate_for(sport, stat)
        if side == 'over':
            # Higher line is harder to clear
            adjustment = -line_diff * rate
        elif side == 'under':
            adjustment = line_diff * rate
        elif side == 'spread':
            adjustment = -abs(line_diff) * rate
        else:
            adjustment = 0.0

        return clamp(base_prob + adjustment, MIN_PROBABILITY, MAX_PROBABILITY)

    def adjust_confidence(self, base_confidence: float, line_diff: float, source: str) -> float:
        """Reduce confidence by distance from the consensus line and for soft sources"""
        confidence = base_confidence - abs(line_diff) * CONFIDENCE_PER_UNIT
        if source == 'soft':
            confidence -= SOFT_SOURCE_PENALTY
        return clamp(confidence, MIN_CONFIDENCE, MAX_CONFIDENCE)

    def adjust(self, selection: Selection, consensus: Consensus) -> LineAdjustment:
        """Carry a consensus over to the selection's line"""
        if selection.line is None or consensus.line is None:
            raise ValueError("Alternate line adjustment requires a line on both selection and consensus")

        line_diff = selection.line - consensus.line
        if abs(line_diff) < SAME_LINE_THRESHOLD:
            return LineAdjustment(
                probability=consensus.probability,
                confidence=consensus.confidence,
                consensus_line=consensus.line,
                line_difference=0.0,
                source=consensus.source,
                probability_adjustment=0.0,
            )

        stat = stat_for_selection(selection)
        probability = self.adjust_probability(
            selection.sport,
            stat,
            consensus.line,
            consensus.probability,
            selection.line,
            selection.side
        )
        confidence = self.adjust_confidence(consensus.confidence, line_diff, consensus.source)

        logger.info(
            f"Alternate line {selection.line} vs consensus {consensus.line} ({market_kind(selection.market)}): "
            f"{consensus.probability:.3f} -> {probability:.3f}, confidence {confidence:.0f}"
        )
        return LineAdjustment(
            probability=probability,
            confidence=confidence,
            consensus_line=consensus.line,
            line_difference=line_diff,
            source=consensus.source,
            probability_adjustment=probability - consensus.probability,
        )
