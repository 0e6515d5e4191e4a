"""Odds snapshots from The Odds API and their conversion to quotes."""

import os
import json
import logging
from pathlib import Path
from typing import Any, Dict, List, Optional, TypedDict, Union, cast

import requests

from fairline.core.quotes import Quote

logger = logging.getLogger(__name__)


class OutcomeDict(TypedDict, total=False):
    """Type definition for a market outcome."""
    name: str  # Over/Under or team name
    description: str  # player name for props
    price: Union[int, str]
    point: float


class MarketDict(TypedDict):
    """Type definition for a market."""
    key: str
    outcomes: List[OutcomeDict]


class BookmakerDict(TypedDict):
    """Type definition for bookmaker data."""
    key: str
    title: str
    markets: List[MarketDict]


class EventOddsDict(TypedDict, total=False):
    """Type definition for an event odds response."""
    id: str
    sport_key: str
    home_team: str
    away_team: str
    commence_time: str
    bookmakers: List[BookmakerDict]


def quotes_from_event(event: EventOddsDict) -> List[Quote]:
    """Flatten an event's bookmakers, markets and outcomes into quotes.

    Outcomes with unparseable or zero prices are skipped with a warning.

    Args:
        event: Event odds payload

    Returns:
        List of quotes
    """
    quotes: List[Quote] = []
    for book in event.get('bookmakers', []):
        for market in book.get('markets', []):
            for outcome in market.get('outcomes', []):
                try:
                    point = outcome.get('point')
                    quotes.append(Quote(
                        bookmaker=book['key'],
                        market=market['key'],
                        outcome=outcome['name'],
                        price=int(outcome['price']),
                        line=float(point) if point is not None else None,
                        subject=outcome.get('description'),
                    ))
                except (KeyError, TypeError, ValueError) as e:
                    logger.warning(f"Skipping outcome from {book.get('key')} {market.get('key')}: {e}")
    logger.debug(f"Converted event {event.get('id')} into {len(quotes)} quotes")
    return quotes


def load_event(path: Union[str, Path]) -> EventOddsDict:
    """Read an event odds snapshot saved as JSON"""
    with open(path) as f:
        data = json.load(f)
    if not isinstance(data, dict):
        raise ValueError(f"Expected an event object in {path}")
    return cast(EventOddsDict, data)


class OddsAPIClient:
    """Client for fetching a single odds snapshot from The Odds API."""

    BASE_URL = "https://api.the-odds-api.com/v4"

    def __init__(self, api_key: Optional[str] = None, timeout: float = 20.0) -> None:
        """Initialize the client.

        Args:
            api_key: API key for The Odds API. If not provided, will look for
                    ODDS_API_KEY environment variable.
            timeout: Request timeout in seconds
        """
        self.api_key = api_key or os.getenv('ODDS_API_KEY')
        if not self.api_key:
            raise ValueError("API key required. Set ODDS_API_KEY environment variable.")
        self.timeout = timeout

    def _make_request(self, url: str, params: Dict[str, Any]) -> Any:
        """Make API request with rate limit handling.

        Raises:
            RuntimeError: If the rate limit is exceeded
            requests.exceptions.RequestException: If request fails
        """
        try:
            response = requests.get(url, params=params, timeout=self.timeout)
            response.raise_for_status()

            remaining = response.headers.get('x-requests-remaining')
            if remaining:
                if int(remaining) < 10:
                    logger.warning(f"Low on API requests: {remaining} remaining")
                else:
                    logger.info(f"API requests remaining: {remaining}")

            return response.json()

        except requests.exceptions.HTTPError as e:
            if e.response is not None and e.response.status_code == 429:
                logger.error("API rate limit exceeded")
                raise RuntimeError("API rate limit exceeded") from e
            raise

    def get_event_odds(
        self,
        sport: str,
        event_id: str,
        markets: List[str],
        regions: str = 'us'
    ) -> EventOddsDict:
        """Get odds for one event.

        Args:
            sport: Odds API sport key (e.g. basketball_nba)
            event_id: Event ID
            markets: Market keys (spreads, totals, player_points, ...)
            regions: Bookmaker regions

        Returns:
            Event odds payload
        """
        url = f"{self.BASE_URL}/sports/{sport}/events/{event_id}/odds"
        params = {
            'apiKey': self.api_key,
            'regions': regions,
            'markets': ','.join(markets),
            'oddsFormat': 'american'
        }
        response = self._make_request(url, params)
        if not isinstance(response, dict):
            raise ValueError(f"Unexpected response format for event {event_id}")
        return cast(EventOddsDict, response)
