"""
Monte Carlo simulation module for player props.
"""
import logging
import math
from dataclasses import dataclass, field
from datetime import date
from typing import Dict, List, Optional, Tuple

import numpy as np
from scipy import stats as scipy_stats

from fairline.core.odds_math import clamp, probability_to_american_odds

logger = logging.getLogger(__name__)

MAX_MINUTES = 48.0
BACK_TO_BACK_MINUTES = 0.95
LEAGUE_AVG_DEFENSE = 112.0
LEAGUE_AVG_PACE = 100.0

FG_PCT_STD = 0.08
FG3_PCT_STD = 0.12
FT_PCT_STD = 0.05
FG_PCT_BOUNDS = (0.20, 0.70)
FG3_PCT_BOUNDS = (0.15, 0.55)
FT_PCT_BOUNDS = (0.50, 1.00)

# Shooting percentages used when the log has no attempts
DEFAULT_FG_PCT = 0.45
DEFAULT_FG3_PCT = 0.35
DEFAULT_FT_PCT = 0.75

# Combo props are sums of independently simulated components
COMBO_STATS: Dict[str, Tuple[str, ...]] = {
    'points_rebounds_assists': ('points', 'rebounds', 'assists'),
    'points_rebounds': ('points', 'rebounds'),
    'points_assists': ('points', 'assists'),
    'rebounds_assists': ('rebounds', 'assists'),
}

BASE_STATS = ('points', 'rebounds', 'assists', 'steals', 'blocks', 'turnovers', 'threes')

STAT_ALIASES: Dict[str, str] = {
    'pts': 'points',
    'reb': 'rebounds',
    'rebs': 'rebounds',
    'ast': 'assists',
    'asts': 'assists',
    'stl': 'steals',
    'blk': 'blocks',
    'tov': 'turnovers',
    'to': 'turnovers',
    '3pm': 'threes',
    'fg3m': 'threes',
    'three_pointers': 'threes',
    'three_pointers_made': 'threes',
    'threes_made': 'threes',
    'pra': 'points_rebounds_assists',
    'pts+reb+ast': 'points_rebounds_assists',
    'points+rebounds+assists': 'points_rebounds_assists',
    'pr': 'points_rebounds',
    'pts+reb': 'points_rebounds',
    'points+rebounds': 'points_rebounds',
    'pa': 'points_assists',
    'pts+ast': 'points_assists',
    'points+assists': 'points_assists',
    'ra': 'rebounds_assists',
    'reb+ast': 'rebounds_assists',
    'rebounds+assists': 'rebounds_assists',
}


def canonical_stat(name: str) -> Optional[str]:
    """Resolve a stat name or Odds API market key to a canonical stat.

    Args:
        name: Stat name ('points', 'PRA', 'pts+reb') or market key ('player_points')

    Returns:
        Canonical stat name, or None if the stat cannot be simulated
    """
    key = name.strip().lower().replace(' ', '_')
    if key.startswith('player_'):
        key = key[len('player_'):]
    if key in BASE_STATS or key in COMBO_STATS:
        return key
    return STAT_ALIASES.get(key)


@dataclass(frozen=True)
class GameLogEntry:
    """One historical game for a player"""
    game_date: date
    opponent: str
    minutes: float
    points: float
    rebounds: float
    assists: float
    steals: float = 0.0
    blocks: float = 0.0
    turnovers: float = 0.0
    fgm: float = 0.0
    fga: float = 0.0
    fg3m: float = 0.0
    fg3a: float = 0.0
    ftm: float = 0.0
    fta: float = 0.0

    def __post_init__(self) -> None:
        """Validate game data"""
        counts = (
            self.minutes, self.points, self.rebounds, self.assists, self.steals,
            self.blocks, self.turnovers, self.fgm, self.fga, self.fg3m, self.fg3a,
            self.ftm, self.fta
        )
        if not all(math.isfinite(v) and v >= 0 for v in counts):
            raise ValueError(f"Game log values must be finite and non-negative ({self.game_date})")
        if self.fgm > self.fga or self.fg3m > self.fg3a or self.ftm > self.fta:
            raise ValueError(f"Makes cannot exceed attempts ({self.game_date})")

    def stat(self, name: str) -> float:
        """Value of a canonical stat in this game"""
        if name in COMBO_STATS:
            return sum(self.stat(part) for part in COMBO_STATS[name])
        if name == 'threes':
            return self.fg3m
        return getattr(self, name)


@dataclass(frozen=True)
class SeasonAverages:
    """Per-game season averages"""
    games_played: int
    minutes: float
    points: float
    rebounds: float
    assists: float
    steals: float = 0.0
    blocks: float = 0.0
    turnovers: float = 0.0

    def __post_init__(self) -> None:
        """Validate averages"""
        if self.games_played < 0:
            raise ValueError("Games played cannot be negative")
        values = (self.minutes, self.points, self.rebounds, self.assists,
                  self.steals, self.blocks, self.turnovers)
        if not all(math.isfinite(v) and v >= 0 for v in values):
            raise ValueError("Season averages must be finite and non-negative")


@dataclass(frozen=True)
class SimulationAdjustments:
    """Game context applied on top of the player's baseline"""
    opponent_defense_rating: Optional[float] = None  # points allowed per 100, ~100-120
    pace: Optional[float] = None  # possessions per game
    back_to_back: bool = False
    minutes_delta: float = 0.0

    def __post_init__(self) -> None:
        """Validate adjustments"""
        if self.opponent_defense_rating is not None and self.opponent_defense_rating <= 0:
            raise ValueError("Opponent defense rating must be positive")
        if self.pace is not None and self.pace <= 0:
            raise ValueError("Pace must be positive")


@dataclass
class SimulationParams:
    """Parameters for Monte Carlo simulation"""
    iterations: int = 10000
    confidence_level: float = 0.90  # For confidence intervals

    def __post_init__(self) -> None:
        if self.iterations < 1:
            raise ValueError("Iterations must be at least 1")
        if not 0 < self.confidence_level < 1:
            raise ValueError("Confidence level must be between 0 and 1")


@dataclass
class SimulationResult:
    """Sample of simulated outcomes for one stat with summary statistics"""
    stat: str
    samples: np.ndarray  # sorted ascending
    mean: float
    median: float
    std: float
    p10: float
    p25: float
    p75: float
    p90: float
    histogram: List[Tuple[int, int]]  # (bucket start, count), unit width
    historical_values: List[float] = field(default_factory=list)
    confidence_level: float = 0.90

    @classmethod
    def from_samples(
        cls,
        stat: str,
        samples: np.ndarray,
        historical_values: Optional[List[float]] = None,
        confidence_level: float = 0.90
    ) -> 'SimulationResult':
        ordered = np.sort(samples)
        n = len(ordered)
        low = math.floor(ordered[0])
        high = math.ceil(ordered[-1])
        counts, edges = np.histogram(ordered, bins=np.arange(low, high + 2))
        return cls(
            stat=stat,
            samples=ordered,
            mean=float(np.mean(ordered)),
            median=float(ordered[n // 2]),
            std=float(np.std(ordered)),
            p10=float(ordered[int(n * 0.10)]),
            p25=float(ordered[int(n * 0.25)]),
            p75=float(ordered[int(n * 0.75)]),
            p90=float(ordered[int(n * 0.90)]),
            histogram=[(int(edge), int(count)) for edge, count in zip(edges[:-1], counts)],
            historical_values=list(historical_values or []),
            confidence_level=confidence_level,
        )

    @property
    def iterations(self) -> int:
        return len(self.samples)

    def hit_probability(self, line: float, side: str = 'over') -> float:
        """Fraction of samples strictly over or strictly under the line"""
        side = side.lower()
        if side == 'over':
            return float(np.mean(self.samples > line))
        if side == 'under':
            return float(np.mean(self.samples < line))
        raise ValueError(f"Side must be 'over' or 'under', got {side}")

    def hit_rate(self, line: float, side: str = 'over') -> Optional[float]:
        """Fraction of historical games that cleared the line, None without history"""
        if not self.historical_values:
            return None
        values = np.array(self.historical_values)
        hits = values > line if side.lower() == 'over' else values < line
        return float(np.mean(hits))

    def fair_odds(self, line: float) -> Dict[str, int]:
        """No-vig American odds for both sides of the line"""
        return {
            side: probability_to_american_odds(clamp(self.hit_probability(line, side), 0.001, 0.999))
            for side in ('over', 'under')
        }

    def prop_probability(self, line: float) -> Dict[str, object]:
        over = self.hit_probability(line, 'over')
        under = self.hit_probability(line, 'under')
        return {
            'line': line,
            'over_probability': over,
            'under_probability': under,
            'push_probability': max(0.0, 1 - over - under),
            'expected_value': self.median,
            'fair_odds': self.fair_odds(line),
        }

    def confidence_interval(self, level: Optional[float] = None) -> Tuple[float, float]:
        """Confidence interval for the simulated mean using the t-distribution"""
        level = level or self.confidence_level
        if self.iterations < 2 or self.std == 0:
            return self.mean, self.mean
        low, high = scipy_stats.t.interval(
            level,
            self.iterations - 1,
            loc=self.mean,
            scale=scipy_stats.sem(self.samples)
        )
        return float(low), float(high)


def _mean_std(values: np.ndarray) -> Tuple[float, float]:
    return float(np.mean(values)), float(np.std(values))


def _success_rate(makes: np.ndarray, attempts: np.ndarray, default: float) -> float:
    total = float(np.sum(attempts))
    if total == 0:
        return default
    return float(np.sum(makes)) / total


class MonteCarloSimulator:
    """Handles Monte Carlo simulations for player props"""

    def __init__(
        self,
        params: Optional[SimulationParams] = None,
        rng: Optional[np.random.Generator] = None
    ) -> None:
        self.params = params or SimulationParams()
        self.rng = rng if rng is not None else np.random.default_rng()

    def _column(self, games: List[GameLogEntry], name: str) -> np.ndarray:
        return np.array([getattr(g, name) for g in games], dtype=float)

    def _generate_minutes(
        self,
        season: SeasonAverages,
        games: List[GameLogEntry],
        adjustments: SimulationAdjustments,
        n: int
    ) -> np.ndarray:
        """Sampled minutes factor (sampled minutes / season minutes)"""
        mean, std = _mean_std(self._column(games, 'minutes'))
        minutes = self.rng.normal(mean, std, n) + adjustments.minutes_delta
        if adjustments.back_to_back:
            minutes *= BACK_TO_BACK_MINUTES
        minutes = np.clip(minutes, 0, MAX_MINUTES)

        baseline = season.minutes or mean
        if baseline == 0:
            return np.ones(n)
        return minutes / baseline

    def _pace_factor(self, adjustments: SimulationAdjustments) -> float:
        if adjustments.pace is None:
            return 1.0
        return adjustments.pace / LEAGUE_AVG_PACE

    def _simulate_points(
        self,
        season: SeasonAverages,
        games: List[GameLogEntry],
        adjustments: SimulationAdjustments,
        n: int
    ) -> np.ndarray:
        factor = self._generate_minutes(season, games, adjustments, n)

        fga = self.rng.normal(*_mean_std(self._column(games, 'fga')), n) * factor
        fg_pct = np.clip(
            self.rng.normal(_success_rate(self._column(games, 'fgm'), self._column(games, 'fga'),
                                          DEFAULT_FG_PCT), FG_PCT_STD, n),
            *FG_PCT_BOUNDS
        )
        if adjustments.opponent_defense_rating is not None:
            defense = LEAGUE_AVG_DEFENSE / adjustments.opponent_defense_rating
            fg_pct = fg_pct * defense
            # Weak defenses concede more shots as well as better ones
            fga = fga * (1 + (defense - 1) * 0.5)
        fgm = np.clip(fga, 0, None) * fg_pct

        fg3a = np.clip(self.rng.normal(*_mean_std(self._column(games, 'fg3a')), n) * factor, 0, None)
        fg3_pct = np.clip(
            self.rng.normal(_success_rate(self._column(games, 'fg3m'), self._column(games, 'fg3a'),
                                          DEFAULT_FG3_PCT), FG3_PCT_STD, n),
            *FG3_PCT_BOUNDS
        )
        fg3m = fg3a * fg3_pct

        fta = np.clip(self.rng.normal(*_mean_std(self._column(games, 'fta')), n) * factor, 0, None)
        ft_pct = np.clip(
            self.rng.normal(_success_rate(self._column(games, 'ftm'), self._column(games, 'fta'),
                                          DEFAULT_FT_PCT), FT_PCT_STD, n),
            *FT_PCT_BOUNDS
        )
        ftm = fta * ft_pct

        return (fgm - fg3m) * 2 + fg3m * 3 + ftm

    def _simulate_counting(
        self,
        stat: str,
        season: SeasonAverages,
        games: List[GameLogEntry],
        adjustments: SimulationAdjustments,
        n: int
    ) -> np.ndarray:
        factor = self._generate_minutes(season, games, adjustments, n)
        recent = np.array([g.stat(stat) for g in games], dtype=float)
        recent_mean, std = _mean_std(recent)
        # Season averages carry no 3PM figure
        mean = recent_mean if stat == 'threes' else getattr(season, stat)
        return self.rng.normal(mean, std, n) * factor * self._pace_factor(adjustments)

    def _simulate_component(
        self,
        stat: str,
        season: SeasonAverages,
        games: List[GameLogEntry],
        adjustments: SimulationAdjustments,
        n: int
    ) -> np.ndarray:
        if stat == 'points':
            values = self._simulate_points(season, games, adjustments, n)
        else:
            values = self._simulate_counting(stat, season, games, adjustments, n)
        return np.round(np.clip(values, 0, None), 1)

    def run_simulation(
        self,
        season: SeasonAverages,
        game_log: List[GameLogEntry],
        stat: str,
        adjustments: Optional[SimulationAdjustments] = None,
        iterations: Optional[int] = None
    ) -> SimulationResult:
        """Run Monte Carlo simulation for a player stat.

        Args:
            season: Season averages for the player
            game_log: Recent games, at least one
            stat: Stat name or market key (points, PRA, player_rebounds, ...)
            adjustments: Opponent, pace, rest and minutes adjustments
            iterations: Overrides the configured iteration count

        Returns:
            SimulationResult with the sorted sample and summary statistics
        """
        if not game_log:
            raise ValueError("Must provide at least one game of historical data")
        canonical = canonical_stat(stat)
        if canonical is None:
            raise ValueError(f"Cannot simulate stat: {stat}")

        adjustments = adjustments or SimulationAdjustments()
        n = iterations or self.params.iterations
        components = COMBO_STATS.get(canonical, (canonical,))

        total = np.zeros(n)
        for component in components:
            total += self._simulate_component(component, season, game_log, adjustments, n)

        logger.debug(f"Simulated {n} iterations of {canonical} over {len(game_log)} games")
        return SimulationResult.from_samples(
            canonical,
            np.round(total, 1),
            historical_values=[g.stat(canonical) for g in game_log],
            confidence_level=self.params.confidence_level,
        )
