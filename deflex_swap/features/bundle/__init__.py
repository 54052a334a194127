"""Transaction bundle decoding."""

from deflex_swap.features.bundle.service import BundleDecoder, DecodedTransaction

__all__ = ["BundleDecoder", "DecodedTransaction"]
