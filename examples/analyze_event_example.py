"""Example usage of OddsAPIClient with the edge calculator."""

import os
import sys
import logging
from typing import Any, List

from tabulate import tabulate

from fairline.core.edge_calculator import EdgeCalculator
from fairline.core.quotes import Selection
from fairline.data.odds_feed import OddsAPIClient, quotes_from_event

logger = logging.getLogger(__name__)


def format_odds(odds: int) -> str:
    """Format American odds for display."""
    if odds > 0:
        return f"+{odds}"
    return str(odds)


def main() -> None:
    """Analyze every player points line in one NBA event."""
    logging.basicConfig(
        level=logging.INFO,
        format='%(asctime)s - %(levelname)s - %(message)s'
    )

    if len(sys.argv) < 2:
        logger.error("Usage: analyze_event_example.py EVENT_ID")
        return

    try:
        client = OddsAPIClient(api_key=os.getenv('ODDS_API_KEY'))
        event = client.get_event_odds('basketball_nba', sys.argv[1], ['player_points'])
        quotes = quotes_from_event(event)

        calculator = EdgeCalculator()
        seen = set()
        rows: List[List[Any]] = []
        for quote in quotes:
            key = (quote.subject, quote.outcome, quote.line)
            if quote.subject is None or key in seen:
                continue
            seen.add(key)

            selection = Selection(
                market=quote.market,
                outcome=quote.outcome,
                line=quote.line,
                subject=quote.subject,
                odds=quote.price,
                bookmaker=quote.bookmaker
            )
            result = calculator.analyze(selection, quotes)
            rows.append([
                quote.subject,
                quote.line,
                quote.outcome,
                format_odds(result.best_odds),
                calculator.classification.display_name(result.best_bookmaker or ''),
                f"{result.edge}%",
                result.recommendation.value
            ])

        rows.sort(key=lambda x: (x[0], x[1]))
        headers = ['Player', 'Line', 'Side', 'Best', 'Book', 'Edge', 'Recommendation']
        print(tabulate(rows, headers=headers, tablefmt='grid'))

    except Exception as e:
        logger.error(f"Error: {str(e)}")


if __name__ == "__main__":
    main()
