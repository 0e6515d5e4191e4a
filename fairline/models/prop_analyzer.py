"""Batch prop analysis combining market consensus with game log simulation."""

import logging
import threading
from concurrent.futures import ThreadPoolExecutor, as_completed
from concurrent.futures import TimeoutError as FuturesTimeoutError
from dataclasses import dataclass, field
from typing import Dict, List, Optional

import numpy as np
import pandas as pd
from pandas import DataFrame

from fairline.config import BookmakerClassification, EngineSettings, SensitivityTable
from fairline.core.edge_calculator import AnalysisResult, EdgeCalculator
from fairline.core.monte_carlo import (
    GameLogEntry,
    MonteCarloSimulator,
    SeasonAverages,
    SimulationAdjustments,
    SimulationParams,
    SimulationResult,
)
from fairline.core.odds_math import price_in_cents
from fairline.core.quotes import Quote, Selection
from fairline.data.game_logs import entries_from_frame, season_averages_from_frame

logger = logging.getLogger(__name__)


@dataclass
class PropRequest:
    """One selection to analyze with the data needed to simulate it"""
    selection: Selection
    quotes: List[Quote]
    season: Optional[SeasonAverages] = None
    game_log: List[GameLogEntry] = field(default_factory=list)
    adjustments: Optional[SimulationAdjustments] = None


class PropAnalyzer:
    """Runs simulations and edge analysis for single props or batches"""

    def __init__(
        self,
        settings: Optional[EngineSettings] = None,
        calculator: Optional[EdgeCalculator] = None,
        seed: Optional[int] = None
    ) -> None:
        """Initialize the analyzer.

        Args:
            settings: Iterations, worker count and batch timeout
            calculator: Edge calculator, built from default tables if omitted
            seed: Seed for reproducible simulations
        """
        self.settings = settings or EngineSettings.from_env()
        self.calculator = calculator or EdgeCalculator(
            BookmakerClassification.default(self.settings.reference_book),
            SensitivityTable.default()
        )
        self.params = SimulationParams(iterations=self.settings.sim_iterations)
        self._seed = np.random.SeedSequence(seed)
        self._seed_lock = threading.Lock()

    def _new_rng(self) -> np.random.Generator:
        with self._seed_lock:
            child = self._seed.spawn(1)[0]
        return np.random.default_rng(child)

    def simulate(
        self,
        request: PropRequest,
        rng: Optional[np.random.Generator] = None
    ) -> SimulationResult:
        """Simulate the request's stat; raises ValueError without usable data"""
        if request.season is None:
            raise ValueError("Season averages required for simulation")
        simulator = MonteCarloSimulator(self.params, rng or self._new_rng())
        return simulator.run_simulation(
            request.season,
            request.game_log,
            request.selection.market,
            request.adjustments
        )

    def analyze(
        self,
        request: PropRequest,
        rng: Optional[np.random.Generator] = None
    ) -> AnalysisResult:
        """Analyze one request, falling back to market-only analysis when simulation fails"""
        selection = request.selection
        simulation = None
        notes: List[str] = []

        if selection.is_player_prop:
            if request.game_log and request.season is not None:
                try:
                    simulation = self.simulate(request, rng)
                except ValueError as e:
                    logger.warning(f"Simulation failed for {selection.subject} {selection.market}: {e}")
                    notes.append(f"Simulation unavailable: {e}")
            else:
                notes.append("No game log available, market-only analysis")

        result = self.calculator.analyze(selection, request.quotes, simulation)
        result.warnings.extend(notes)
        return result

    def analyze_many(self, requests: List[PropRequest]) -> List[AnalysisResult]:
        """Analyze requests in parallel, preserving input order.

        Failed or timed out units get an empty result carrying the error as a warning.
        """
        if not requests:
            return []

        results: List[Optional[AnalysisResult]] = [None] * len(requests)
        executor = ThreadPoolExecutor(max_workers=self.settings.max_workers)
        futures = {
            executor.submit(self.analyze, request, self._new_rng()): i
            for i, request in enumerate(requests)
        }
        logger.info(f"Analyzing {len(requests)} props with {self.settings.max_workers} workers")

        try:
            for future in as_completed(futures, timeout=self.settings.batch_timeout):
                i = futures[future]
                try:
                    results[i] = future.result()
                except Exception as e:
                    selection = requests[i].selection
                    logger.error(f"Error analyzing {selection.subject} {selection.market}: {str(e)}")
                    results[i] = AnalysisResult.empty(f"Analysis failed: {e}")
        except FuturesTimeoutError:
            logger.error(f"Batch timed out after {self.settings.batch_timeout}s")
        finally:
            executor.shutdown(wait=False, cancel_futures=True)

        return [
            result if result is not None else AnalysisResult.empty("Analysis timed out")
            for result in results
        ]

    def find_edges(self, requests: List[PropRequest], min_edge: int = 1) -> DataFrame:
        """Analyze requests and report those with at least min_edge, best edge first.

        Returns:
            DataFrame with edge opportunities
        """
        rows = []
        for request, result in zip(requests, self.analyze_many(requests)):
            if result.edge < min_edge:
                continue
            selection = request.selection
            classification = self.calculator.classification
            rows.append({
                'player': selection.subject,
                'market': selection.market,
                'side': selection.outcome,
                'line': selection.line,
                'odds': selection.odds,
                'book': classification.display_name(selection.bookmaker or ''),
                'best_odds': result.best_odds,
                'best_book': classification.display_name(result.best_bookmaker or ''),
                'fair_prob': result.fair_probability,
                'edge': result.edge,
                'ev': result.expected_value,
                'confidence': result.confidence,
                'recommendation': result.recommendation.value,
                'source': result.source.value,
                'sim_mean': result.statistical.mean if result.statistical else None,
                'warnings': '; '.join(result.warnings),
            })

        if not rows:
            logger.info("No edges found")
            return pd.DataFrame()

        df = pd.DataFrame(rows)
        return df.sort_values('edge', ascending=False).reset_index(drop=True)


def requests_from_quotes(
    quotes: List[Quote],
    game_logs: Optional[Dict[str, DataFrame]] = None,
    sport: str = 'NBA',
    bookmaker: Optional[str] = None,
    recent_games: int = 10
) -> List[PropRequest]:
    """Build one request per player prop outcome and line in a snapshot.

    The bettor's price is the given bookmaker's price, or the best price
    across books when no bookmaker is given.

    Args:
        quotes: Snapshot quotes for an event
        game_logs: Game log DataFrames keyed by lowercase player name
        sport: Sport tag for the selections
        bookmaker: Bookmaker the bettor is betting at
        recent_games: Number of recent games used for simulation

    Returns:
        List of PropRequest
    """
    game_logs = {name.lower(): df for name, df in (game_logs or {}).items()}
    grouped: Dict[tuple, List[Quote]] = {}
    for quote in quotes:
        if quote.subject is None or quote.line is None:
            continue
        key = (quote.market, quote.subject, quote.outcome, quote.line)
        grouped.setdefault(key, []).append(quote)

    requests: List[PropRequest] = []
    season_cache: Dict[str, tuple] = {}
    for (market, subject, outcome, line), group in grouped.items():
        if bookmaker is not None:
            offered = [q for q in group if q.book_key == bookmaker.lower()]
            if not offered:
                continue
            chosen = offered[0]
        else:
            chosen = max(group, key=lambda q: price_in_cents(q.price))

        name = subject.lower()
        if name not in season_cache:
            df = game_logs.get(name)
            if df is None or df.empty:
                season_cache[name] = (None, [])
            else:
                season_cache[name] = (season_averages_from_frame(df), entries_from_frame(df, recent_games))
        season, log = season_cache[name]

        requests.append(PropRequest(
            selection=Selection(
                market=market,
                outcome=outcome,
                line=line,
                subject=subject,
                sport=sport,
                odds=chosen.price,
                bookmaker=chosen.bookmaker,
            ),
            quotes=quotes,
            season=season,
            game_log=log,
        ))
    return requests
