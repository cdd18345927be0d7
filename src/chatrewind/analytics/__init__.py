"""Aggregation of classified conversations into rewind statistics."""

from chatrewind.analytics.aggregator import RewindAggregator

__all__ = ["RewindAggregator"]
