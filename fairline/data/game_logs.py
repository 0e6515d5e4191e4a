"""Player game logs from nba_api shaped DataFrames."""

import os
import logging
from typing import Any, List, Optional, Union

import pandas as pd
from pandas import DataFrame
from nba_api.stats.endpoints import playergamelog  # type: ignore

from fairline.core.monte_carlo import GameLogEntry, SeasonAverages

logger = logging.getLogger(__name__)

NBA_API_TIMEOUT = int(os.getenv('NBA_API_TIMEOUT', '60'))

REQUIRED_COLUMNS = ['GAME_DATE', 'MATCHUP', 'MIN', 'PTS', 'REB', 'AST']
OPTIONAL_COLUMNS = ['STL', 'BLK', 'TOV', 'FGM', 'FGA', 'FG3M', 'FG3A', 'FTM', 'FTA']


def _parse_minutes(value: Union[str, float, int]) -> float:
    """Minutes as a float; accepts 'MM:SS' strings"""
    if isinstance(value, str) and ':' in value:
        mins, secs = value.split(':', 1)
        return int(mins) + int(secs) / 60
    return float(value)


def _opponent(matchup: str) -> str:
    """Opponent abbreviation from 'LAL vs. BOS' or 'LAL @ BOS'"""
    return matchup.replace('vs.', '@').split('@')[-1].strip()


def prepare_frame(df: DataFrame) -> DataFrame:
    """Validate columns, parse dates and minutes, sort most recent first"""
    missing = [c for c in REQUIRED_COLUMNS if c not in df.columns]
    if missing:
        raise ValueError(f"Game log is missing columns: {missing}")

    frame = df.copy()
    frame['GAME_DATE'] = pd.to_datetime(frame['GAME_DATE'], format='mixed')
    frame['MIN'] = frame['MIN'].apply(_parse_minutes)
    for col in OPTIONAL_COLUMNS:
        if col not in frame.columns:
            frame[col] = 0
    frame[OPTIONAL_COLUMNS] = frame[OPTIONAL_COLUMNS].fillna(0)
    return frame.sort_values('GAME_DATE', ascending=False).reset_index(drop=True)


def entries_from_frame(df: DataFrame, limit: Optional[int] = None) -> List[GameLogEntry]:
    """Convert a game log DataFrame into entries, most recent game first.

    Args:
        df: DataFrame with nba_api PlayerGameLog columns
        limit: Keep only the most recent games

    Returns:
        List of GameLogEntry
    """
    if df.empty:
        return []
    frame = prepare_frame(df)
    if limit is not None:
        frame = frame.head(limit)

    return [
        GameLogEntry(
            game_date=row.GAME_DATE.date(),
            opponent=_opponent(str(row.MATCHUP)),
            minutes=float(row.MIN),
            points=float(row.PTS),
            rebounds=float(row.REB),
            assists=float(row.AST),
            steals=float(row.STL),
            blocks=float(row.BLK),
            turnovers=float(row.TOV),
            fgm=float(row.FGM),
            fga=float(row.FGA),
            fg3m=float(row.FG3M),
            fg3a=float(row.FG3A),
            ftm=float(row.FTM),
            fta=float(row.FTA),
        )
        for row in frame.itertuples(index=False)
    ]


def season_averages_from_frame(df: DataFrame) -> SeasonAverages:
    """Per-game averages over every game in the frame"""
    if df.empty:
        raise ValueError("Cannot compute season averages from an empty game log")
    frame = prepare_frame(df)
    means = frame[['MIN', 'PTS', 'REB', 'AST', 'STL', 'BLK', 'TOV']].mean()
    return SeasonAverages(
        games_played=len(frame),
        minutes=float(means['MIN']),
        points=float(means['PTS']),
        rebounds=float(means['REB']),
        assists=float(means['AST']),
        steals=float(means['STL']),
        blocks=float(means['BLK']),
        turnovers=float(means['TOV']),
    )


def load_game_log_csv(path: str, player: Optional[str] = None) -> DataFrame:
    """Read a game log CSV, optionally filtered to one player by PLAYER_NAME"""
    df = pd.read_csv(path)
    if player is not None and 'PLAYER_NAME' in df.columns:
        df = df[df['PLAYER_NAME'].str.lower() == player.lower()]
    return df


def fetch_player_game_log(player_id: int, season: str) -> DataFrame:
    """Fetch a player's game log from nba_api.

    Args:
        player_id: NBA player ID
        season: Season string, e.g. '2024-25'

    Returns:
        Game log DataFrame, empty if the request fails
    """
    try:
        frames: List[Any] = playergamelog.PlayerGameLog(
            player_id=player_id,
            season=season,
            timeout=NBA_API_TIMEOUT
        ).get_data_frames()
        if not frames or len(frames[0]) == 0:
            return DataFrame()
        return DataFrame(frames[0].copy())
    except Exception as e:
        logger.error(f"Error getting game log for player {player_id}: {str(e)}")
        return DataFrame()
