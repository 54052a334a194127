"""Quote fetching with base-unit validation and decimal normalization."""

from __future__ import annotations

import logging
from typing import Any, Protocol

from deflex_swap.errors import QuoteUnavailableError
from deflex_swap.models import Quote

logger = logging.getLogger(__name__)


class QuoteSourceProtocol(Protocol):
    def request_quote(
        self, from_asset_id: int, to_asset_id: int, amount: int
    ) -> dict[str, Any]: ...


class AssetMetadataProtocol(Protocol):
    def get_asset_decimals(self, asset_id: int) -> int: ...


def parse_base_units(amount: int | str | None) -> int | None:
    """Return a positive base-unit amount, or None when there is nothing to quote."""
    if amount is None or isinstance(amount, bool):
        return None
    if isinstance(amount, int):
        return amount if amount > 0 else None

    value = str(amount).strip()
    if not value:
        return None
    try:
        parsed = int(value)
    except ValueError as e:
        raise ValueError(
            f"Amount must be an integer number of base units, got {amount!r}"
        ) from e
    return parsed if parsed > 0 else None


def _optional_float(value: Any) -> float | None:
    if value is None or value == "":
        return None
    try:
        return float(value)
    except (TypeError, ValueError):
        return None


class QuoteFetcher:
    def __init__(self, source: QuoteSourceProtocol, assets: AssetMetadataProtocol):
        self.source = source
        self.assets = assets

    def fetch_quote(
        self,
        from_asset_id: int,
        to_asset_id: int,
        amount: int | str | None,
    ) -> Quote:
        base_units = parse_base_units(amount)
        if base_units is None:
            logger.debug("No amount to quote; returning an empty quote")
            return Quote.empty()

        data = self.source.request_quote(from_asset_id, to_asset_id, base_units)

        raw_quote = data.get("quote")
        route_payload = data.get("txnPayload")
        if raw_quote in (None, "") or not route_payload:
            reason = data.get("error") or data.get("message")
            detail = f": {reason}" if reason else ""
            raise QuoteUnavailableError(
                f"Aggregator returned no usable route for {from_asset_id} -> {to_asset_id}{detail}"
            )

        try:
            quoted_amount = int(raw_quote)
        except (TypeError, ValueError) as e:
            raise QuoteUnavailableError(
                f"Aggregator returned no usable route: bad quote amount {raw_quote!r}"
            ) from e

        decimals = self.assets.get_asset_decimals(to_asset_id)

        quote = Quote(
            quoted_amount=quoted_amount,
            route_payload=route_payload,
            price_impact_percent=_optional_float(data.get("userPriceImpact")),
            usd_in=_optional_float(data.get("usdIn")),
            usd_out=_optional_float(data.get("usdOut")),
            to_asset_decimals=decimals,
        )
        logger.info(
            "Quote received: %s units of asset %s (%d base units, price impact %s%%)",
            quote.normalized_amount,
            to_asset_id,
            quoted_amount,
            quote.price_impact_percent,
        )
        return quote
