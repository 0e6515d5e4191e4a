"""American odds conversions, vig removal and expected value."""

from typing import Tuple


def implied_probability(american_odds: int) -> float:
    """Convert American odds to implied probability.

    Args:
        american_odds: Odds in American format (e.g. -110, +150)

    Returns:
        Implied probability as decimal (0-1), vig included
    """
    if american_odds > 0:
        return 100 / (american_odds + 100)
    else:
        return abs(american_odds) / (abs(american_odds) + 100)


def decimal_odds(american_odds: int) -> float:
    """Convert American odds to decimal odds.

    Args:
        american_odds: Odds in American format

    Returns:
        Decimal odds (e.g. 1.91)
    """
    return payout(american_odds) + 1


def payout(american_odds: int) -> float:
    """Amount won on a $1 stake"""
    if american_odds > 0:
        return american_odds / 100
    else:
        return 100 / abs(american_odds)


def price_in_cents(american_odds: int) -> int:
    """Map American odds onto a continuous scale where +100 and -100 meet at 0.

    Ordering on this scale matches ordering by payout, so differences between
    prices can be read as cents of juice.
    """
    if american_odds > 0:
        return american_odds - 100
    return american_odds + 100


def remove_vig(odds_a: int, odds_b: int) -> Tuple[float, float]:
    """Remove the bookmaker margin from a two-way market.

    Both prices must be opposite sides of the same market at the same line.

    Args:
        odds_a: American odds for side A
        odds_b: American odds for side B

    Returns:
        True (no-vig) probabilities for A and B summing to 1
    """
    implied_a = implied_probability(odds_a)
    implied_b = implied_probability(odds_b)
    total = implied_a + implied_b
    return implied_a / total, implied_b / total


def expected_value(true_prob: float, american_odds: int) -> float:
    """Expected value of a $1 stake.

    EV = (true_prob * payout) - ((1 - true_prob) * 1)
    """
    return (true_prob * payout(american_odds)) - ((1 - true_prob) * 1)


def probability_to_american_odds(prob: float) -> int:
    """Convert a probability to the nearest American odds.

    Args:
        prob: Probability strictly between 0 and 1

    Returns:
        Negative odds for favourites (prob >= 0.5), positive otherwise
    """
    if not 0 < prob < 1:
        raise ValueError(f"Probability must be strictly between 0 and 1, got {prob}")
    if prob >= 0.5:
        return round(-100 * prob / (1 - prob))
    return round(100 * (1 - prob) / prob)


def clamp(value: float, low: float, high: float) -> float:
    return max(low, min(high, value))
