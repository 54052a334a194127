"""Deflex swap core - atomic token swaps on Algorand routed through Deflex.

This package is organized into feature-based modules:
- features.aggregator: Deflex order-router HTTP client
- features.quote: Quote fetching and normalization
- features.bundle: Decoding of the aggregator transaction bundle
- features.group: Fee injection, group assembly and signing
- features.optin: Destination asset opt-in
- features.submission: Broadcast and confirmation
- shared: Shared utilities (network, logging, validation, etc.)
"""

from deflex_swap.config import FeePolicy, SwapConfig
from deflex_swap.errors import SwapError
from deflex_swap.ledger import LedgerClient
from deflex_swap.models import Quote, SwapOutcome, SwapRequest
from deflex_swap.pipeline import SwapPipeline

__version__ = "0.1.0"
__all__ = [
    "SwapPipeline",
    "SwapConfig",
    "FeePolicy",
    "LedgerClient",
    "SwapRequest",
    "Quote",
    "SwapOutcome",
    "SwapError",
]
