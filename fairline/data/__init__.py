"""Odds snapshot and game log ingestion."""

from .odds_feed import OddsAPIClient, load_event, quotes_from_event
from .game_logs import entries_from_frame, season_averages_from_frame

__all__ = [
    "OddsAPIClient",
    "load_event",
    "quotes_from_event",
    "entries_from_frame",
    "season_averages_from_frame"
]
