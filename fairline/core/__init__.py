"""Odds math, consensus building, simulation and edge synthesis."""
