"""Batch prop analysis and edge reports."""

from .prop_analyzer import PropAnalyzer, PropRequest, requests_from_quotes

__all__ = ["PropAnalyzer", "PropRequest", "requests_from_quotes"]
