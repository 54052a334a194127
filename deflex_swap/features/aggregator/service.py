"""HTTP client for the Deflex order-router API."""

from __future__ import annotations

import logging
from decimal import Decimal
from typing import Any

from deflex_swap.config import SwapConfig
from deflex_swap.errors import DecodeError, QuoteUnavailableError
from deflex_swap.models import (
    PreSigned,
    PreSignedBlob,
    RawBundleEntry,
    RequiresUserSignature,
    SigningMode,
)
from deflex_swap.shared.network import NO_RETRY_CONFIG, NetworkClient, TimeoutConfig

logger = logging.getLogger(__name__)

SWAP_TYPE_FIXED_INPUT = "fixed-input"


class AggregatorClient:
    """Fetches quotes and executable transaction bundles.

    Requests are never retried here; retry policy belongs to the caller.
    """

    def __init__(
        self,
        api_base: str,
        api_key: str,
        algod_uri: str,
        algod_token: str = "",
        algod_port: int | None = None,
        chain: str = "mainnet",
        max_group_size: int = 13,
        atomic_only: bool = False,
        referrer: str = "",
        timeout_config: TimeoutConfig | None = None,
    ):
        self.api_key = api_key
        self.algod_uri = algod_uri
        self.algod_token = algod_token
        self.algod_port = algod_port
        self.chain = chain
        self.max_group_size = max_group_size
        self.atomic_only = atomic_only
        self.referrer = referrer
        self._network_client = NetworkClient(
            base_url=api_base,
            timeout_config=timeout_config,
            retry_config=NO_RETRY_CONFIG,
        )

    @classmethod
    def from_config(cls, config: SwapConfig) -> "AggregatorClient":
        return cls(
            api_base=config.deflex_api_base,
            api_key=config.api_key,
            algod_uri=config.algod_server,
            algod_token=config.algod_token,
            algod_port=config.algod_port,
            chain=config.chain,
            max_group_size=config.aggregator_max_group_size,
            atomic_only=config.atomic_only,
            referrer=config.referrer,
            timeout_config=config.timeout_config,
        )

    def request_quote(
        self, from_asset_id: int, to_asset_id: int, amount: int
    ) -> dict[str, Any]:
        params = {
            "chain": self.chain,
            "algodUri": self.algod_uri,
            "algodToken": self.algod_token,
            "algodPort": str(self.algod_port or ""),
            "amount": str(amount),
            "type": SWAP_TYPE_FIXED_INPUT,
            "fromASAID": str(from_asset_id),
            "toASAID": str(to_asset_id),
            "apiKey": self.api_key,
            "maxGroupSize": str(self.max_group_size),
            "atomicOnly": "true" if self.atomic_only else "false",
            "referrer": self.referrer,
        }
        logger.debug(
            "Requesting quote %s -> %s for %d base units",
            from_asset_id,
            to_asset_id,
            amount,
        )
        data = self._network_client.get(
            "/fetchQuote", context="Fetch quote", params=params
        )
        if not isinstance(data, dict):
            raise QuoteUnavailableError("Quote response has no usable route")
        return data

    def request_swap_transactions(
        self,
        address: str,
        route_payload: Any,
        slippage_percent: Decimal,
    ) -> list[RawBundleEntry]:
        body = {
            "address": address,
            "txnPayloadJSON": route_payload,
            "slippage": float(slippage_percent),
            "apiKey": self.api_key,
        }
        data = self._network_client.post(
            "/fetchExecuteSwapTxns",
            context="Fetch swap transactions",
            json=body,
        )

        txns = data.get("txns") if isinstance(data, dict) else None
        if not isinstance(txns, list) or not txns:
            raise QuoteUnavailableError(
                "Swap transaction response has no usable route"
            )

        entries = [self._parse_entry(index, item) for index, item in enumerate(txns)]
        logger.info(
            "Received %d swap transactions (%d need the user signature)",
            len(entries),
            sum(1 for entry in entries if entry.needs_user_signature),
        )
        return entries

    @staticmethod
    def _parse_entry(index: int, item: Any) -> RawBundleEntry:
        if not isinstance(item, dict) or not item.get("data"):
            raise DecodeError(index, "missing transaction data")

        blob = item.get("logicSigBlob", False)
        signing_mode: SigningMode
        if blob is False or blob is None:
            signing_mode = RequiresUserSignature()
        else:
            signing_mode = PreSigned(PreSignedBlob.parse(blob, index))

        return RawBundleEntry(
            index=index,
            encoded_transaction=item["data"],
            signing_mode=signing_mode,
        )
