"""Quote feature."""

from deflex_swap.features.quote.service import QuoteFetcher, parse_base_units

__all__ = ["QuoteFetcher", "parse_base_units"]
