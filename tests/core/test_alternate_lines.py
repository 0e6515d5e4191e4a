"""
Tests for alternate line probability adjustment
"""
import pytest
from fairline.config import SensitivityTable
from fairline.core.alternate_lines import AlternateLineAdjuster, stat_for_selection
from fairline.core.consensus import Consensus
from fairline.core.quotes import Selection


@pytest.fixture
def adjuster():
    return AlternateLineAdjuster(SensitivityTable.default())


def make_consensus(line, probability=0.6, confidence=90, source='sharp'):
    return Consensus(
        probability=probability,
        line=line,
        line_distance=0.0,
        confidence=confidence,
        bookmakers=['pinnacle'],
        source=source
    )


def test_rate_lookup():
    table = SensitivityTable.default()
    assert table.rate_for('NBA', 'points') == 0.02
    assert table.rate_for('NBA', 'blocks') == 0.10
    assert table.rate_for('nba', 'rebounds') == 0.04
    # Unconfigured stat falls back to the sport's spread rate
    assert table.rate_for('NFL', 'kicking_points') == 0.03
    # Unconfigured sport falls back to the generic rate
    assert table.rate_for('NHL', 'goals') == 0.02


def test_stat_for_selection():
    assert stat_for_selection(Selection(market='spreads', outcome='Lakers')) == 'spread'
    assert stat_for_selection(Selection(market='totals', outcome='Over')) == 'total'
    assert stat_for_selection(
        Selection(market='player_points_rebounds_assists', outcome='Over', subject='X')
    ) == 'points_rebounds_assists'


def test_over_three_points_away(adjuster):
    # NFL receptions move 3% per unit
    selection = Selection(market='player_receptions', outcome='Over', line=8.5, subject='X', sport='NFL')
    result = adjuster.adjust(selection, make_consensus(5.5))

    assert result.probability_adjustment == pytest.approx(-0.09)
    assert result.probability == pytest.approx(0.51)
    assert result.line_difference == 3.0
    assert result.consensus_line == 5.5


def test_under_and_spread_directions(adjuster):
    assert adjuster.adjust_probability('NBA', 'points', 24.5, 0.5, 26.5, 'under') == pytest.approx(0.54)
    assert adjuster.adjust_probability('NBA', 'points', 24.5, 0.5, 26.5, 'over') == pytest.approx(0.46)
    assert adjuster.adjust_probability('NBA', 'spread', -3.5, 0.5, -5.5, 'spread') == pytest.approx(0.45)
    assert adjuster.adjust_probability('NBA', 'spread', -3.5, 0.5, -1.5, 'spread') == pytest.approx(0.45)
    # Moneyline has no line to move
    assert adjuster.adjust_probability('NBA', 'h2h', 1.0, 0.5, 3.0, None) == 0.5


def test_probability_clamped(adjuster):
    assert adjuster.adjust_probability('NBA', 'rebounds', 5.5, 0.9, 10.5, 'under') == 0.95
    assert adjuster.adjust_probability('NBA', 'rebounds', 5.5, 0.1, 10.5, 'over') == 0.05


def test_unknown_sport_uses_default_rate(adjuster):
    assert adjuster.adjust_probability('CRICKET', 'runs', 10.0, 0.5, 12.0, 'over') == pytest.approx(0.46)


def test_confidence_decay(adjuster):
    assert adjuster.adjust_confidence(90, 3.0, 'sharp') == 84
    assert adjuster.adjust_confidence(90, -3.0, 'sharp') == 84
    assert adjuster.adjust_confidence(60, 3.0, 'soft') == 44
    assert adjuster.adjust_confidence(60, 40.0, 'soft') == 20


def test_same_line_is_not_adjusted(adjuster):
    selection = Selection(market='totals', outcome='Over', line=220.55)
    result = adjuster.adjust(selection, make_consensus(220.5, confidence=90))

    assert result.probability == 0.6
    assert result.confidence == 90
    assert result.line_difference == 0
    assert result.probability_adjustment == 0


def test_soft_consensus_adjustment(adjuster):
    selection = Selection(market='totals', outcome='Over', line=224.5)
    result = adjuster.adjust(selection, make_consensus(220.5, probability=0.5, confidence=60, source='soft'))

    # NBA totals move 1.5% per point
    assert result.probability == pytest.approx(0.44)
    assert result.confidence == 42
    assert result.source == 'soft'


def test_adjust_requires_lines(adjuster):
    with pytest.raises(ValueError):
        adjuster.adjust(Selection(market='h2h', outcome='Lakers'), make_consensus(None))
