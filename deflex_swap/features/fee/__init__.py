from deflex_swap.features.fee.service import FeeBuilder

__all__ = ["FeeBuilder"]
