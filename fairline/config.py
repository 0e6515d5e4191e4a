"""Engine configuration: bookmaker classification, line sensitivity and runtime settings."""

import os
import logging
from dataclasses import dataclass, field
from typing import Dict, FrozenSet, Mapping, Optional
from dotenv import load_dotenv

load_dotenv()

logger = logging.getLogger(__name__)

# Market makers for two-way game markets
DEFAULT_SHARP_BOOKS: FrozenSet[str] = frozenset({
    'pinnacle',
    'circasports',
    'bookmaker',
    'betonlineag',
})

# Sharp-ish books used for player prop consensus (higher = sharper)
DEFAULT_PROP_BOOK_WEIGHTS: Dict[str, float] = {
    'fanduel': 1.0,
    'betonlineag': 0.9,
    'lowvig': 0.85,
    'draftkings': 0.75,
}

DEFAULT_DISPLAY_NAMES: Dict[str, str] = {
    'pinnacle': 'Pinnacle',
    'circasports': 'Circa Sports',
    'bookmaker': 'Bookmaker.eu',
    'betonlineag': 'BetOnline',
    'lowvig': 'LowVig',
    'draftkings': 'DraftKings',
    'fanduel': 'FanDuel',
    'betmgm': 'BetMGM',
    'williamhill_us': 'Caesars',
    'espnbet': 'ESPN BET',
    'fanatics': 'Fanatics',
    'betrivers': 'BetRivers',
}

# Probability moved per unit of line, keyed by sport then stat
DEFAULT_LINE_ADJUSTMENT_RATES: Dict[str, Dict[str, float]] = {
    'NFL': {
        'passing_yards': 0.01,
        'passing_touchdowns': 0.08,
        'pass_completions': 0.02,
        'rushing_yards': 0.015,
        'rush_attempts': 0.025,
        'receptions': 0.03,
        'receiving_yards': 0.015,
        'interceptions': 0.10,
        'spread': 0.03,
        'total': 0.02,
    },
    'NBA': {
        'points': 0.02,
        'rebounds': 0.04,
        'assists': 0.04,
        'threes': 0.08,
        'blocks': 0.10,
        'steals': 0.10,
        'turnovers': 0.08,
        'points_rebounds_assists': 0.015,
        'points_rebounds': 0.02,
        'points_assists': 0.02,
        'rebounds_assists': 0.03,
        'spread': 0.025,
        'total': 0.015,
    },
    'MLB': {
        'home_runs': 0.15,
        'hits': 0.06,
        'total_bases': 0.04,
        'rbis': 0.08,
        'runs_scored': 0.08,
        'strikeouts': 0.05,
        'pitcher_strikeouts': 0.04,
        'hits_allowed': 0.05,
        'earned_runs': 0.10,
        'spread': 0.04,
        'total': 0.03,
    },
    'NCAAF': {
        'passing_yards': 0.01,
        'passing_touchdowns': 0.08,
        'rushing_yards': 0.015,
        'receptions': 0.03,
        'receiving_yards': 0.015,
        'spread': 0.03,
        'total': 0.02,
    },
}

DEFAULT_ADJUSTMENT_RATE = 0.02


@dataclass(frozen=True)
class BookmakerClassification:
    """Static partition of bookmakers into sharp and weighted sharp-ish books"""
    sharp_books: FrozenSet[str]
    prop_book_weights: Mapping[str, float]
    reference_book: str = 'pinnacle'
    display_names: Mapping[str, str] = field(default_factory=dict)

    def __post_init__(self) -> None:
        """Validate prop weights"""
        if not all(0 < w <= 1 for w in self.prop_book_weights.values()):
            raise ValueError("Prop book weights must be between 0 and 1")

    @classmethod
    def default(cls, reference_book: Optional[str] = None) -> 'BookmakerClassification':
        return cls(
            sharp_books=DEFAULT_SHARP_BOOKS,
            prop_book_weights=dict(DEFAULT_PROP_BOOK_WEIGHTS),
            reference_book=reference_book or 'pinnacle',
            display_names=dict(DEFAULT_DISPLAY_NAMES),
        )

    def is_sharp(self, bookmaker: str) -> bool:
        return bookmaker.lower() in self.sharp_books

    def prop_weight(self, bookmaker: str) -> Optional[float]:
        """Weight of a sharp-ish prop book, None when the book is unweighted"""
        return self.prop_book_weights.get(bookmaker.lower())

    def is_sharp_for(self, bookmaker: str, player_prop: bool) -> bool:
        """Sharpness relative to the market type being priced"""
        if player_prop:
            return self.prop_weight(bookmaker) is not None
        return self.is_sharp(bookmaker)

    def display_name(self, bookmaker: str) -> str:
        return self.display_names.get(bookmaker.lower(), bookmaker)


@dataclass(frozen=True)
class SensitivityTable:
    """Per-sport, per-stat linear line sensitivity rates"""
    rates: Mapping[str, Mapping[str, float]]
    default_rate: float = DEFAULT_ADJUSTMENT_RATE

    @classmethod
    def default(cls) -> 'SensitivityTable':
        return cls(rates={sport: dict(r) for sport, r in DEFAULT_LINE_ADJUSTMENT_RATES.items()})

    def rate_for(self, sport: str, stat: str) -> float:
        """Look up the rate for a stat, falling back to the sport's generic rate.

        Args:
            sport: Sport tag (NBA, NFL, ...)
            stat: Canonical stat or market name (points, spread, total, ...)

        Returns:
            Probability moved per unit of line
        """
        sport_rates = self.rates.get(sport.upper())
        if not sport_rates:
            logger.debug(f"No adjustment rates for sport {sport}, using default")
            return self.default_rate
        if stat in sport_rates:
            return sport_rates[stat]
        return sport_rates.get('spread', self.default_rate)


@dataclass(frozen=True)
class EngineSettings:
    """Runtime settings read from the environment"""
    sim_iterations: int = 10000
    max_workers: int = os.cpu_count() or 1
    batch_timeout: float = 20.0
    reference_book: str = 'pinnacle'

    @classmethod
    def from_env(cls) -> 'EngineSettings':
        return cls(
            sim_iterations=int(os.getenv('FAIRLINE_SIM_ITERATIONS', '10000')),
            max_workers=int(os.getenv('FAIRLINE_MAX_WORKERS', str(os.cpu_count() or 1))),
            batch_timeout=float(os.getenv('FAIRLINE_BATCH_TIMEOUT', '20')),
            reference_book=os.getenv('FAIRLINE_REFERENCE_BOOK', 'pinnacle'),
        )
