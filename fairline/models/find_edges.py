"""Find edges in an odds snapshot and generate a report."""

import logging
import argparse
from datetime import datetime
from pathlib import Path
from typing import Dict, List, Optional

from pandas import DataFrame

from fairline.config import EngineSettings
from fairline.data.game_logs import load_game_log_csv
from fairline.data.odds_feed import load_event, quotes_from_event
from fairline.models.prop_analyzer import PropAnalyzer, requests_from_quotes

logger = logging.getLogger(__name__)


def _split_logs(df: DataFrame) -> Dict[str, DataFrame]:
    if df.empty or 'PLAYER_NAME' not in df.columns:
        return {}
    return {str(name): group for name, group in df.groupby('PLAYER_NAME')}


def save_report(edges: DataFrame, reports_dir: Path) -> Path:
    """Save the edge report as a timestamped CSV"""
    reports_dir.mkdir(parents=True, exist_ok=True)
    now = datetime.now().strftime('%Y%m%d_%H%M')
    filename = reports_dir / f'prop_edges_{now}.csv'
    edges.to_csv(filename, index=False)
    logger.info(f"Edge report saved to {filename}")
    return filename


def main(argv: Optional[List[str]] = None) -> int:
    """Find prop betting edges and generate report.

    Returns:
        0 for success, 1 for failure
    """
    parser = argparse.ArgumentParser(description='Find prop betting edges')
    parser.add_argument('--odds', required=True, help='Event odds snapshot (JSON)')
    parser.add_argument('--game-logs', help='Game log CSV with a PLAYER_NAME column')
    parser.add_argument('--sport', default='NBA', help='Sport tag')
    parser.add_argument('--bookmaker', help='Bookmaker you are betting at (default: best price)')
    parser.add_argument('--min-edge', type=int, default=1, help='Minimum edge percentage to report')
    parser.add_argument('--recent-games', type=int, default=10, help='Recent games used for simulation')
    parser.add_argument('--seed', type=int, help='Seed for reproducible simulations')
    parser.add_argument('--save', action='store_true', help='Save report to data/reports')
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.INFO,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    )

    try:
        quotes = quotes_from_event(load_event(args.odds))
        game_logs = _split_logs(load_game_log_csv(args.game_logs)) if args.game_logs else {}

        requests = requests_from_quotes(
            quotes,
            game_logs,
            sport=args.sport,
            bookmaker=args.bookmaker,
            recent_games=args.recent_games
        )
        logger.info(f"Built {len(requests)} prop selections from {len(quotes)} quotes")

        analyzer = PropAnalyzer(EngineSettings.from_env(), seed=args.seed)
        edges = analyzer.find_edges(requests, min_edge=args.min_edge)

        if edges.empty:
            logger.info("No edges found meeting criteria")
            return 0

        for _, row in edges.head(10).iterrows():
            logger.info(
                f"{row['player']} {row['market']} {row['side']} {row['line']} "
                f"({row['odds']} @ {row['book']}) - {row['edge']}% edge, {row['recommendation']}"
            )

        if args.save:
            save_report(edges, Path('data/reports'))
        return 0

    except Exception as e:
        logger.error(f"Error finding edges: {str(e)}")
        return 1


if __name__ == '__main__':
    raise SystemExit(main())
