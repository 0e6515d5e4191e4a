"""
Tests for edge synthesis and recommendations
"""
import pytest
import numpy as np
from fairline.core.edge_calculator import (
    AnalysisResult,
    EdgeCalculator,
    MarketEfficiency,
    Recommendation,
    ResolutionSource,
    SharpAgreement,
    classify_agreement,
    classify_efficiency,
    recommend,
    simulation_recommendation,
)
from fairline.core.monte_carlo import SimulationResult
from fairline.core.odds_math import expected_value, implied_probability, remove_vig
from fairline.core.quotes import Quote, Selection

PLAYER = 'LeBron James'


def prop_pair(book, over, under, line=24.5):
    return [
        Quote(book, 'player_points', 'Over', over, line, PLAYER),
        Quote(book, 'player_points', 'Under', under, line, PLAYER),
    ]


def points_over(odds=None, bookmaker='betmgm'):
    return Selection(
        market='player_points',
        outcome='Over',
        line=24.5,
        subject=PLAYER,
        sport='NBA',
        odds=odds,
        bookmaker=bookmaker
    )


def simulation(over_share: float, historical):
    """Two-point sample with the given share of draws over 24.5"""
    overs = int(round(over_share * 1000))
    samples = np.array([30.0] * overs + [20.0] * (1000 - overs))
    return SimulationResult.from_samples('points', samples, historical)


@pytest.fixture
def calculator():
    return EdgeCalculator()


@pytest.fixture
def spread_quotes():
    return [
        Quote('pinnacle', 'spreads', 'Lakers', -105, -3.5),
        Quote('pinnacle', 'spreads', 'Celtics', -115, 3.5),
        Quote('draftkings', 'spreads', 'Lakers', 115, -3.5),
        Quote('draftkings', 'spreads', 'Celtics', -135, 3.5),
    ]


@pytest.mark.parametrize("edge,confidence,expected", [
    (0, 90, Recommendation.NO_EDGE),
    (-3, 90, Recommendation.NO_EDGE),
    (4, 65, Recommendation.STRONG_BET),
    (3, 65, Recommendation.STRONG_BET),
    (3, 64.9, Recommendation.BET),
    (2, 65, Recommendation.BET),
    (2, 55, Recommendation.BET),
    (2, 54.9, Recommendation.CONSIDER),
    (1, 65, Recommendation.CONSIDER),
    (1, 45, Recommendation.CONSIDER),
    (1, 44.9, Recommendation.AVOID),
])
def test_recommend_with_sharp_data(edge, confidence, expected):
    assert recommend(edge, confidence, True) == expected


@pytest.mark.parametrize("edge,confidence,expected", [
    (0, 90, Recommendation.NO_EDGE),
    (4, 55, Recommendation.CONSIDER),
    (4, 54.9, Recommendation.AVOID),
    (3, 90, Recommendation.AVOID),
    (1, 45, Recommendation.AVOID),
])
def test_recommend_without_sharp_data(edge, confidence, expected):
    assert recommend(edge, confidence, False) == expected


def test_simulation_recommendation():
    assert simulation_recommendation(6, 60) == 'bet'
    assert simulation_recommendation(3, 50) == 'lean_bet'
    assert simulation_recommendation(-6, 50) == 'pass'
    assert simulation_recommendation(0, 30) == 'pass'
    assert simulation_recommendation(-3, 50) == 'lean_pass'
    assert simulation_recommendation(0, 40) == 'lean_pass'
    assert simulation_recommendation(0, 50) == 'pass'


def test_market_classification():
    assert classify_efficiency(15) == MarketEfficiency.EFFICIENT
    assert classify_efficiency(16) == MarketEfficiency.INEFFICIENT
    assert classify_efficiency(30) == MarketEfficiency.INEFFICIENT
    assert classify_efficiency(31) == MarketEfficiency.HIGHLY_INEFFICIENT

    assert classify_agreement(-105, [-110]) == SharpAgreement.AGREE
    assert classify_agreement(-105, [-120]) == SharpAgreement.MIXED
    assert classify_agreement(-105, [-140]) == SharpAgreement.DISAGREE
    assert classify_agreement(-105, []) == SharpAgreement.UNAVAILABLE
    # Prices on either side of even money compare by payout
    assert classify_agreement(105, [-105]) == SharpAgreement.AGREE


def test_efficient_market_has_no_edge(calculator):
    quotes = [
        Quote('pinnacle', 'spreads', 'Lakers', -110, -3.5),
        Quote('pinnacle', 'spreads', 'Celtics', -110, 3.5),
    ]
    result = calculator.analyze(Selection(market='spreads', outcome='Lakers', line=-3.5, odds=-110), quotes)

    assert result.fair_probability == 0.5
    assert result.source == ResolutionSource.SHARP_CONSENSUS
    assert result.recommendation == Recommendation.NO_EDGE
    assert result.market_efficiency == MarketEfficiency.EFFICIENT
    assert result.sharp_agreement == SharpAgreement.AGREE
    assert result.expected_value == pytest.approx(expected_value(0.5, -110) * 100)


def test_game_line_edge(calculator, spread_quotes):
    selection = Selection(market='spreads', outcome='Lakers', line=-3.5, odds=115, bookmaker='draftkings')
    result = calculator.analyze(selection, spread_quotes)

    fair = remove_vig(-105, -115)[0]
    assert result.fair_probability == pytest.approx(fair)
    assert result.edge == 2
    assert result.expected_value == pytest.approx(expected_value(fair, 115) * 100)
    assert result.confidence == 95
    assert result.recommendation == Recommendation.BET
    assert result.best_odds == 115
    assert result.best_bookmaker == 'draftkings'
    assert result.worst_odds == -105
    assert result.worst_bookmaker == 'pinnacle'
    assert result.odds_range == 20
    assert result.market_efficiency == MarketEfficiency.INEFFICIENT
    assert result.sharp_agreement == SharpAgreement.MIXED
    assert result.bookmakers == ['pinnacle']


def test_no_bettor_price(calculator, spread_quotes):
    result = calculator.analyze(Selection(market='spreads', outcome='Lakers', line=-3.5), spread_quotes)

    assert result.edge == 0
    assert result.expected_value == 0.0
    assert result.confidence == 0
    assert result.recommendation == Recommendation.NO_EDGE
    assert result.fair_probability == pytest.approx(remove_vig(-105, -115)[0])
    assert result.best_odds == 115
    assert any('No bettor odds' in w for w in result.warnings)


def test_no_quotes_for_game_line(calculator):
    result = calculator.analyze(Selection(market='totals', outcome='Over', line=220.5, odds=-110), [])

    assert result.edge == 0
    assert result.confidence == 0
    assert result.odds_range == 0
    assert result.fair_probability is None
    assert result.recommendation == Recommendation.NO_EDGE
    assert result.market_efficiency == MarketEfficiency.EFFICIENT
    assert result.sharp_agreement == SharpAgreement.UNAVAILABLE
    assert result.warnings == ['No odds data available']


def test_no_quotes_for_prop_uses_bettor_price(calculator):
    result = calculator.analyze(points_over(odds=-110, bookmaker=None), [])

    assert result.source == ResolutionSource.SOFT_FALLBACK
    assert result.best_odds == -110
    assert result.best_bookmaker == 'user'
    assert result.fair_probability == pytest.approx(implied_probability(-110))
    assert result.recommendation == Recommendation.NO_EDGE
    assert result.warnings


def test_prop_consensus_from_identical_sharp_books(calculator):
    quotes = prop_pair('fanduel', -135, 115) + prop_pair('betonlineag', -135, 115) + prop_pair('draftkings', -135, 115)
    result = calculator.analyze(points_over(odds=-105), quotes)

    assert result.source == ResolutionSource.PROP_CONSENSUS
    assert result.fair_probability == pytest.approx(remove_vig(-135, 115)[0])
    assert result.sharp_agreement == SharpAgreement.AGREE
    assert result.market_efficiency == MarketEfficiency.EFFICIENT
    assert result.odds_range == 0
    assert result.edge == 4
    assert result.confidence == 95
    assert result.recommendation == Recommendation.STRONG_BET
    assert len(result.bookmakers) == 3


def test_alternate_line_resolution(calculator):
    quotes = [
        Quote('pinnacle', 'totals', 'Over', -110, 220.5),
        Quote('pinnacle', 'totals', 'Under', -110, 220.5),
        Quote('draftkings', 'totals', 'Over', 160, 225.5),
        Quote('draftkings', 'totals', 'Under', -200, 225.5),
    ]
    selection = Selection(market='totals', outcome='Over', line=225.5, odds=160, bookmaker='draftkings')
    result = calculator.analyze(selection, quotes)

    # 5 points above the market at 1.5% per point
    assert result.source == ResolutionSource.ALTERNATE_LINE
    assert result.fair_probability == pytest.approx(0.425)
    assert result.consensus_line == 220.5
    assert result.line_distance == 5.0
    assert result.edge == 4
    assert result.confidence == pytest.approx(80.4)
    assert result.recommendation == Recommendation.STRONG_BET
    assert result.best_odds == 160
    assert result.sharp_agreement == SharpAgreement.UNAVAILABLE


def test_soft_fallback(calculator):
    quotes = [
        Quote('draftkings', 'spreads', 'Lakers', -110, -3.5),
        Quote('draftkings', 'spreads', 'Celtics', -110, 3.5),
        Quote('fanduel', 'spreads', 'Lakers', -105, -3.5),
        Quote('fanduel', 'spreads', 'Celtics', -115, 3.5),
    ]
    result = calculator.analyze(Selection(market='spreads', outcome='Lakers', line=-3.5, odds=100), quotes)

    assert result.source == ResolutionSource.SOFT_FALLBACK
    assert result.fair_probability == pytest.approx(implied_probability(-105))
    assert result.edge == 1
    assert result.confidence == pytest.approx(40.1)
    assert result.recommendation == Recommendation.AVOID
    assert result.sharp_agreement == SharpAgreement.UNAVAILABLE


def test_simulation_agreement_blends_edge(calculator):
    quotes = prop_pair('fanduel', -110, -110) + prop_pair('draftkings', -110, -110)
    sim = simulation(0.7, [30.0] * 7 + [20.0] * 3)
    result = calculator.analyze(points_over(odds=105), quotes, sim)

    assert result.statistical is not None
    assert result.statistical.simulation_recommendation == 'bet'
    assert result.statistical.hit_rate == pytest.approx(70.0)
    assert result.statistical.games == 10
    assert result.edge == 15
    assert result.confidence == 95
    assert result.recommendation == Recommendation.STRONG_BET


def test_simulation_agreement_escalates(calculator):
    # No sharp books: soft fallback at the betmgm price
    quotes = prop_pair('betmgm', -110, -110)
    sim = simulation(0.7, [30.0, 30.0, 30.0, 20.0])
    result = calculator.analyze(points_over(odds=105, bookmaker='caesars'), quotes, sim)

    assert result.source == ResolutionSource.SOFT_FALLBACK
    assert result.edge == 16
    assert result.confidence == pytest.approx(43.4)
    # avoid escalated one tier
    assert result.recommendation == Recommendation.CONSIDER
    assert any('Only 4 games' in w for w in result.warnings)


def test_simulation_disagreement_downgrades(calculator):
    quotes = prop_pair('fanduel', -150, 150) + prop_pair('draftkings', -150, 150)
    sim = simulation(0.47, [30.0] * 5 + [20.0] * 5)
    result = calculator.analyze(points_over(odds=100), quotes, sim)

    assert result.statistical.simulation_recommendation == 'lean_pass'
    assert result.edge == 1
    assert result.confidence == pytest.approx(93.5)
    assert result.recommendation == Recommendation.AVOID


@pytest.mark.parametrize('quotes', [
    prop_pair('betmgm', -110, -110),
    prop_pair('fanduel', -110, -110) + prop_pair('draftkings', -110, -110),
])
def test_simulation_pass_never_escalates_negative_market(calculator, quotes):
    selection = points_over(odds=-130, bookmaker='caesars')
    market_only = calculator.analyze(selection, quotes)
    assert market_only.edge < 0
    assert market_only.recommendation == Recommendation.NO_EDGE

    # Draws favour the over but only 2 of 10 games cleared the line
    sim = simulation(0.9, [30.0] * 2 + [20.0] * 8)
    result = calculator.analyze(selection, quotes, sim)

    assert result.statistical.simulation_recommendation == 'pass'
    assert result.statistical.blended_edge > 0
    assert result.recommendation == Recommendation.AVOID


def test_result_to_dict(calculator, spread_quotes):
    selection = Selection(market='spreads', outcome='Lakers', line=-3.5, odds=115)
    data = calculator.analyze(selection, spread_quotes).to_dict()

    assert data['recommendation'] == 'bet'
    assert data['source'] == 'sharp_consensus'
    assert data['market_efficiency'] == 'inefficient'
    assert data['statistical'] is None

    empty = AnalysisResult.empty('No odds data available').to_dict()
    assert empty['recommendation'] == 'no_edge'
    assert empty['sharp_agreement'] == 'unavailable'
