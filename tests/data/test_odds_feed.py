"""Tests for odds snapshot parsing and the Odds API client."""

import json
from unittest.mock import MagicMock

import pytest
import requests
from pytest import MonkeyPatch

from fairline.data import odds_feed
from fairline.data.odds_feed import OddsAPIClient, load_event, quotes_from_event


@pytest.fixture
def event():
    return {
        'id': 'abc123',
        'sport_key': 'basketball_nba',
        'home_team': 'Los Angeles Lakers',
        'away_team': 'Boston Celtics',
        'bookmakers': [
            {
                'key': 'pinnacle',
                'title': 'Pinnacle',
                'markets': [
                    {
                        'key': 'spreads',
                        'outcomes': [
                            {'name': 'Los Angeles Lakers', 'price': -105, 'point': -3.5},
                            {'name': 'Boston Celtics', 'price': -115, 'point': 3.5},
                        ]
                    },
                    {
                        'key': 'h2h',
                        'outcomes': [
                            {'name': 'Los Angeles Lakers', 'price': -160},
                            {'name': 'Boston Celtics', 'price': 140},
                        ]
                    },
                ]
            },
            {
                'key': 'fanduel',
                'title': 'FanDuel',
                'markets': [
                    {
                        'key': 'player_points',
                        'outcomes': [
                            {'name': 'Over', 'description': 'LeBron James', 'price': '-115', 'point': 24.5},
                            {'name': 'Under', 'description': 'LeBron James', 'price': '-105', 'point': 24.5},
                            {'name': 'Over', 'description': 'Anthony Davis', 'price': 0, 'point': 26.5},
                            {'name': 'Under', 'description': 'Anthony Davis', 'price': 'n/a', 'point': 26.5},
                        ]
                    }
                ]
            }
        ]
    }


def test_quotes_from_event(event):
    quotes = quotes_from_event(event)

    assert len(quotes) == 6
    spread = quotes[0]
    assert spread.bookmaker == 'pinnacle'
    assert spread.market == 'spreads'
    assert spread.line == -3.5
    assert spread.subject is None

    moneyline = quotes[2]
    assert moneyline.line is None
    assert moneyline.price == -160

    prop = quotes[4]
    assert prop.subject == 'LeBron James'
    assert prop.price == -115
    assert prop.line == 24.5


def test_quotes_from_empty_event():
    assert quotes_from_event({'id': 'x'}) == []


def test_load_event(tmp_path, event):
    path = tmp_path / 'event.json'
    path.write_text(json.dumps(event))
    assert load_event(path)['id'] == 'abc123'

    bad = tmp_path / 'list.json'
    bad.write_text('[]')
    with pytest.raises(ValueError):
        load_event(bad)


def test_init_without_api_key(monkeypatch: MonkeyPatch) -> None:
    monkeypatch.delenv('ODDS_API_KEY', raising=False)
    with pytest.raises(ValueError):
        OddsAPIClient()


def test_get_event_odds(monkeypatch: MonkeyPatch, event) -> None:
    response = MagicMock()
    response.json.return_value = event
    response.headers = {'x-requests-remaining': '450'}
    get = MagicMock(return_value=response)
    monkeypatch.setattr(odds_feed.requests, 'get', get)

    client = OddsAPIClient(api_key='test-key')
    result = client.get_event_odds('basketball_nba', 'abc123', ['spreads', 'player_points'])

    assert result['id'] == 'abc123'
    url = get.call_args.args[0]
    params = get.call_args.kwargs['params']
    assert url.endswith('/sports/basketball_nba/events/abc123/odds')
    assert params['markets'] == 'spreads,player_points'
    assert params['oddsFormat'] == 'american'
    assert params['apiKey'] == 'test-key'


def test_rate_limit(monkeypatch: MonkeyPatch) -> None:
    limited = MagicMock()
    limited.status_code = 429
    response = MagicMock()
    response.raise_for_status.side_effect = requests.exceptions.HTTPError(response=limited)
    monkeypatch.setattr(odds_feed.requests, 'get', MagicMock(return_value=response))

    client = OddsAPIClient(api_key='test-key')
    with pytest.raises(RuntimeError):
        client.get_event_odds('basketball_nba', 'abc123', ['h2h'])


def test_unexpected_response(monkeypatch: MonkeyPatch) -> None:
    response = MagicMock()
    response.json.return_value = []
    response.headers = {}
    monkeypatch.setattr(odds_feed.requests, 'get', MagicMock(return_value=response))

    client = OddsAPIClient(api_key='test-key')
    with pytest.raises(ValueError):
        client.get_event_odds('basketball_nba', 'abc123', ['h2h'])
