"""Deflex aggregator client."""

from deflex_swap.features.aggregator.service import AggregatorClient

__all__ = ["AggregatorClient"]
