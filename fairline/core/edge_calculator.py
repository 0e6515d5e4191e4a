"""Calculate betting edges by comparing fair probabilities to the bettor's price."""

import logging
from dataclasses import asdict, dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional

import numpy as np

from fairline.config import BookmakerClassification, SensitivityTable
from fairline.core.alternate_lines import SAME_LINE_THRESHOLD, AlternateLineAdjuster
from fairline.core.consensus import Consensus, SharpConsensusBuilder
from fairline.core.monte_carlo import SimulationResult
from fairline.core.odds_math import clamp, expected_value, implied_probability, price_in_cents
from fairline.core.quotes import Quote, Selection, matching_quotes

logger = logging.getLogger(__name__)

# Blend of simulation edge and market edge for props with a simulation.
# Fixed regardless of sample size; tune here.
STATS_EDGE_WEIGHT = 0.7
MARKET_EDGE_WEIGHT = 0.3

SOFT_FALLBACK_CONFIDENCE = 40
MIN_CONFIDENCE = 10
MAX_CONFIDENCE = 95
EDGE_CONFIDENCE_NUDGE = 3

LOW_SAMPLE_GAMES = 5
DEFAULT_PROP_ODDS = -110


class Recommendation(str, Enum):
    STRONG_BET = 'strong_bet'
    BET = 'bet'
    CONSIDER = 'consider'
    AVOID = 'avoid'
    NO_EDGE = 'no_edge'


class MarketEfficiency(str, Enum):
    EFFICIENT = 'efficient'
    INEFFICIENT = 'inefficient'
    HIGHLY_INEFFICIENT = 'highly_inefficient'


class SharpAgreement(str, Enum):
    AGREE = 'agree'
    MIXED = 'mixed'
    DISAGREE = 'disagree'
    UNAVAILABLE = 'unavailable'


class ResolutionSource(str, Enum):
    PROP_CONSENSUS = 'prop_consensus'
    SHARP_CONSENSUS = 'sharp_consensus'
    ALTERNATE_LINE = 'alternate_line'
    SOFT_FALLBACK = 'soft_fallback'
    NONE = 'none'


# Escalation order for strong simulation/market agreement
_TIERS = [Recommendation.AVOID, Recommendation.CONSIDER, Recommendation.BET, Recommendation.STRONG_BET]


def recommend(edge: int, confidence: float, has_sharp_data: bool) -> Recommendation:
    """Map edge and confidence to a recommendation tier.

    Args:
        edge: Edge in whole percentage points
        confidence: Confidence 0-100
        has_sharp_data: Whether sharp books contributed to the fair probability

    Returns:
        Recommendation tier
    """
    if edge <= 0:
        return Recommendation.NO_EDGE
    if not has_sharp_data:
        if edge >= 4 and confidence >= 55:
            return Recommendation.CONSIDER
        return Recommendation.AVOID
    if edge >= 3 and confidence >= 65:
        return Recommendation.STRONG_BET
    if edge >= 2 and confidence >= 55:
        return Recommendation.BET
    if edge >= 1 and confidence >= 45:
        return Recommendation.CONSIDER
    return Recommendation.AVOID


def simulation_recommendation(edge: float, hit_rate: float) -> str:
    """Simulation's own verdict from its edge and hit rate (both in percent)"""
    if edge > 5 and hit_rate >= 60:
        return 'bet'
    if edge > 2 and hit_rate >= 50:
        return 'lean_bet'
    if edge < -5 or hit_rate <= 30:
        return 'pass'
    if edge < -2 or hit_rate <= 40:
        return 'lean_pass'
    return 'pass'


def classify_efficiency(odds_range: int) -> MarketEfficiency:
    if odds_range <= 15:
        return MarketEfficiency.EFFICIENT
    if odds_range <= 30:
        return MarketEfficiency.INEFFICIENT
    return MarketEfficiency.HIGHLY_INEFFICIENT


def classify_agreement(best_odds: int, sharp_odds: List[int]) -> SharpAgreement:
    """Compare the best price to the sharp books' average price"""
    if not sharp_odds:
        return SharpAgreement.UNAVAILABLE
    sharp_average = float(np.mean([price_in_cents(o) for o in sharp_odds]))
    difference = abs(price_in_cents(best_odds) - sharp_average)
    if difference <= 10:
        return SharpAgreement.AGREE
    if difference <= 25:
        return SharpAgreement.MIXED
    return SharpAgreement.DISAGREE


@dataclass
class StatisticalSignal:
    """Simulation evidence blended into a prop's edge"""
    simulated_probability: float
    stats_edge: float
    hit_rate: Optional[float]  # percent of logged games clearing the line
    games: int
    simulation_recommendation: str
    blended_edge: int
    mean: float
    median: float


@dataclass
class AnalysisResult:
    """Outcome of analyzing one selection against the market"""
    best_odds: int = 0
    best_bookmaker: Optional[str] = None
    worst_odds: int = 0
    worst_bookmaker: Optional[str] = None
    odds_range: int = 0
    edge: int = 0
    expected_value: float = 0.0
    confidence: float = 0.0
    market_efficiency: MarketEfficiency = MarketEfficiency.EFFICIENT
    sharp_agreement: SharpAgreement = SharpAgreement.UNAVAILABLE
    fair_probability: Optional[float] = None
    recommendation: Recommendation = Recommendation.NO_EDGE
    source: ResolutionSource = ResolutionSource.NONE
    consensus_line: Optional[float] = None
    line_distance: float = 0.0
    bookmakers: List[str] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)
    statistical: Optional[StatisticalSignal] = None

    @classmethod
    def empty(cls, warning: str) -> 'AnalysisResult':
        return cls(warnings=[warning])

    def to_dict(self) -> Dict[str, Any]:
        result = asdict(self)
        for key, value in result.items():
            if isinstance(value, Enum):
                result[key] = value.value
        return result


@dataclass
class _Resolution:
    probability: float
    confidence: float
    source: ResolutionSource
    has_sharp_data: bool
    consensus_line: Optional[float] = None
    line_distance: float = 0.0
    bookmakers: List[str] = field(default_factory=list)


class EdgeCalculator:
    """Synthesizes consensus, alternate-line and simulation signals into a recommendation."""

    def __init__(
        self,
        classification: Optional[BookmakerClassification] = None,
        sensitivity: Optional[SensitivityTable] = None
    ) -> None:
        """Initialize the edge calculator.

        Args:
            classification: Sharp and weighted prop bookmakers
            sensitivity: Line sensitivity rates for alternate lines
        """
        self.classification = classification or BookmakerClassification.default()
        self.builder = SharpConsensusBuilder(self.classification)
        self.adjuster = AlternateLineAdjuster(sensitivity)

    def _is_sharp(self, bookmaker: str, selection: Selection) -> bool:
        return self.classification.is_sharp_for(bookmaker, selection.is_player_prop)

    def _from_consensus(self, consensus: Consensus, source: ResolutionSource) -> _Resolution:
        return _Resolution(
            probability=consensus.probability,
            confidence=consensus.confidence,
            source=source,
            has_sharp_data=consensus.source == 'sharp',
            consensus_line=consensus.line,
            line_distance=consensus.line_distance,
            bookmakers=list(consensus.bookmakers),
        )

    def _soft_fallback(self, selection: Selection, relevant: List[Quote]) -> _Resolution:
        soft = [q for q in relevant if not self._is_sharp(q.bookmaker, selection)]
        best = max(soft or relevant, key=lambda q: price_in_cents(q.price))
        return _Resolution(
            probability=implied_probability(best.price),
            confidence=SOFT_FALLBACK_CONFIDENCE,
            source=ResolutionSource.SOFT_FALLBACK,
            has_sharp_data=False,
            consensus_line=best.line,
            bookmakers=[best.bookmaker],
        )

    def resolve_fair_probability(
        self,
        selection: Selection,
        quotes: List[Quote],
        relevant: List[Quote]
    ) -> _Resolution:
        """Walk the resolution chain: prop consensus, game-line consensus, alternate line, soft fallback"""
        if selection.is_player_prop:
            prop = self.builder.build_player_prop(selection, quotes)
            if isinstance(prop, Consensus):
                logger.info(f"Using prop consensus for {selection.subject} {selection.market}")
                return self._from_consensus(prop, ResolutionSource.PROP_CONSENSUS)
            logger.debug(f"Prop consensus unavailable: {prop.reason}")

        game = self.builder.build_game_line(selection, quotes)
        if isinstance(game, Consensus):
            logger.info(f"Using sharp consensus from {game.bookmakers[0]} at {game.line}")
            return self._from_consensus(game, ResolutionSource.SHARP_CONSENSUS)
        logger.debug(f"Game line consensus unavailable: {game.reason}")

        if selection.line is not None:
            natural = self.builder.build_natural_line(selection, quotes)
            if isinstance(natural, Consensus) and abs(selection.line - natural.line) >= SAME_LINE_THRESHOLD:
                adjusted = self.adjuster.adjust(selection, natural)
                return _Resolution(
                    probability=adjusted.probability,
                    confidence=adjusted.confidence,
                    source=ResolutionSource.ALTERNATE_LINE,
                    has_sharp_data=natural.source == 'sharp',
                    consensus_line=adjusted.consensus_line,
                    line_distance=abs(adjusted.line_difference),
                    bookmakers=list(natural.bookmakers),
                )

        logger.warning(f"No consensus for {selection.outcome} {selection.market}, using soft fallback")
        return self._soft_fallback(selection, relevant)

    def _market_metadata(self, selection: Selection, relevant: List[Quote]) -> Dict[str, Any]:
        at_line = [q for q in relevant if selection.line is None or q.line == selection.line]
        pool = at_line or relevant

        best = max(pool, key=lambda q: price_in_cents(q.price))
        worst = min(pool, key=lambda q: price_in_cents(q.price))
        odds_range = price_in_cents(best.price) - price_in_cents(worst.price)
        sharp_odds = [q.price for q in pool if self._is_sharp(q.bookmaker, selection)]

        return {
            'best_odds': best.price,
            'best_bookmaker': best.bookmaker,
            'worst_odds': worst.price,
            'worst_bookmaker': worst.bookmaker,
            'odds_range': odds_range,
            'market_efficiency': classify_efficiency(odds_range),
            'sharp_agreement': classify_agreement(best.price, sharp_odds),
        }

    def _statistical_signal(
        self,
        selection: Selection,
        simulation: SimulationResult,
        market_edge: float
    ) -> Optional[StatisticalSignal]:
        if selection.side not in ('over', 'under') or selection.line is None:
            return None

        simulated = simulation.hit_probability(selection.line, selection.side)
        stats_edge = (simulated - implied_probability(selection.odds)) * 100
        hit_rate = simulation.hit_rate(selection.line, selection.side)
        hit_pct = hit_rate * 100 if hit_rate is not None else simulated * 100

        return StatisticalSignal(
            simulated_probability=simulated,
            stats_edge=stats_edge,
            hit_rate=hit_rate * 100 if hit_rate is not None else None,
            games=len(simulation.historical_values),
            simulation_recommendation=simulation_recommendation(stats_edge, hit_pct),
            blended_edge=round(stats_edge * STATS_EDGE_WEIGHT + market_edge * MARKET_EDGE_WEIGHT),
            mean=simulation.mean,
            median=simulation.median,
        )

    def analyze(
        self,
        selection: Selection,
        quotes: List[Quote],
        simulation: Optional[SimulationResult] = None
    ) -> AnalysisResult:
        """Analyze a selection against every bookmaker's quotes.

        Args:
            selection: Bettor's target, optionally with the bettor's price
            quotes: Snapshot of quotes for the event
            simulation: Simulation of the prop's stat, player props only

        Returns:
            AnalysisResult; never raises for missing market data
        """
        warnings: List[str] = []
        quotes = list(quotes)
        relevant = matching_quotes(selection, quotes)

        if not relevant:
            if not selection.is_player_prop:
                logger.warning(f"No odds data for {selection.outcome} {selection.market}")
                return AnalysisResult.empty("No odds data available")
            fallback = Quote(
                bookmaker=selection.bookmaker or 'user',
                market=selection.market,
                outcome=selection.outcome,
                price=selection.odds if selection.has_price else DEFAULT_PROP_ODDS,
                line=selection.line,
                subject=selection.subject,
            )
            relevant = [fallback]
            quotes.append(fallback)
            warnings.append("No market odds found for this prop, using the bettor's price")

        metadata = self._market_metadata(selection, relevant)
        resolution = self.resolve_fair_probability(selection, quotes, relevant)
        if resolution.source == ResolutionSource.SOFT_FALLBACK:
            warnings.append("No sharp consensus available, fair probability from soft book prices")
        elif resolution.source == ResolutionSource.ALTERNATE_LINE:
            warnings.append(
                f"Probability extrapolated from consensus line {resolution.consensus_line}"
            )

        result = AnalysisResult(
            fair_probability=resolution.probability,
            source=resolution.source,
            consensus_line=resolution.consensus_line,
            line_distance=resolution.line_distance,
            bookmakers=resolution.bookmakers,
            warnings=warnings,
            **metadata
        )

        if not selection.has_price:
            warnings.append("No bettor odds supplied, reporting market only")
            return result

        market_edge = (resolution.probability - implied_probability(selection.odds)) * 100
        edge = round(market_edge)
        confidence = resolution.confidence + clamp(
            edge * 0.1, -EDGE_CONFIDENCE_NUDGE, EDGE_CONFIDENCE_NUDGE
        )
        confidence = clamp(confidence, MIN_CONFIDENCE, MAX_CONFIDENCE)

        result.expected_value = expected_value(resolution.probability, selection.odds) * 100
        result.edge = edge
        result.confidence = confidence
        result.recommendation = recommend(edge, confidence, resolution.has_sharp_data)

        if simulation is not None and selection.is_player_prop and selection.subject and selection.sport:
            self._blend_simulation(result, selection, simulation, market_edge, resolution.has_sharp_data)

        logger.info(
            f"{selection.subject or selection.outcome} {selection.market} {selection.line}: "
            f"edge {result.edge}%, confidence {result.confidence:.1f}, {result.recommendation.value}"
        )
        return result

    def _blend_simulation(
        self,
        result: AnalysisResult,
        selection: Selection,
        simulation: SimulationResult,
        market_edge: float,
        has_sharp_data: bool
    ) -> None:
        signal = self._statistical_signal(selection, simulation, market_edge)
        if signal is None:
            result.warnings.append("Simulation ignored, selection has no over/under line")
            return
        if signal.games < LOW_SAMPLE_GAMES:
            result.warnings.append(f"Only {signal.games} games in log, statistical signal is low confidence")

        sim_rec = signal.simulation_recommendation
        market_positive = market_edge > 0
        strong_agree = (sim_rec == 'bet' and market_positive) or (sim_rec == 'pass' and not market_positive)
        lean_agree = (sim_rec == 'lean_bet' and market_positive) or (sim_rec == 'lean_pass' and not market_positive)
        strong_disagree = (sim_rec == 'bet' and not market_positive) or (sim_rec == 'pass' and market_positive)

        if strong_agree:
            nudge = 3.0
        elif lean_agree:
            nudge = 1.5
        elif strong_disagree:
            nudge = -3.0
        else:
            nudge = -1.5

        result.statistical = signal
        result.edge = signal.blended_edge
        result.confidence = clamp(result.confidence + nudge, MIN_CONFIDENCE, MAX_CONFIDENCE)
        recommendation = recommend(result.edge, result.confidence, has_sharp_data)

        if recommendation != Recommendation.NO_EDGE:
            if sim_rec == 'bet' and market_positive:
                tier = _TIERS.index(recommendation)
                recommendation = _TIERS[min(tier + 1, len(_TIERS) - 1)]
            elif sim_rec in ('pass', 'lean_pass'):
                recommendation = Recommendation.AVOID

        result.recommendation = recommendation
