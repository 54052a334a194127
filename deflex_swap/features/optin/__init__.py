"""Asset opt-in preflight."""

from deflex_swap.features.optin.service import OptInService

__all__ = ["OptInService"]
