"""
Fairline - multi-book odds analysis

Fair-value probabilities, edge, confidence and bet recommendations for
game lines and NBA player props, built from sharp-book consensus and
Monte Carlo simulation of player performance.
"""

__version__ = "0.1.0"
