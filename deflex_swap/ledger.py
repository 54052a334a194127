"""Ledger client adapter over the algod v2 REST API."""

from __future__ import annotations

import logging
from typing import Any

from deflex_swap.config import SwapConfig
from deflex_swap.errors import NotConfirmedError, TransactionRejectedError
from deflex_swap.models import ALGO_ASSET_ID, ALGO_DECIMALS, NetworkParams
from deflex_swap.shared.extraction import extract_confirmed_round
from deflex_swap.shared.network import (
    NetworkClient,
    NetworkError,
    NetworkErrorType,
    RetryConfig,
    TimeoutConfig,
)

logger = logging.getLogger(__name__)

API_TOKEN_HEADER = "X-Algo-API-Token"


class LedgerClient:
    DEFAULT_VALIDITY_ROUNDS = 500

    def __init__(
        self,
        node_url: str,
        api_token: str = "",
        validity_rounds: int = DEFAULT_VALIDITY_ROUNDS,
        timeout_config: TimeoutConfig | None = None,
        retry_config: RetryConfig | None = None,
    ):
        self.node_url = node_url
        self.validity_rounds = validity_rounds
        self._network_client = NetworkClient(
            base_url=node_url,
            timeout_config=timeout_config,
            retry_config=retry_config,
            headers={API_TOKEN_HEADER: api_token} if api_token else None,
        )

    @classmethod
    def from_config(cls, config: SwapConfig) -> "LedgerClient":
        return cls(
            node_url=config.algod_url,
            api_token=config.algod_token,
            validity_rounds=config.validity_rounds,
            timeout_config=config.timeout_config,
            retry_config=config.retry_config,
        )

    def get_account_assets(self, address: str) -> set[int]:
        account = self._network_client.get(
            f"/v2/accounts/{address}",
            context="Fetch account information",
        )
        holdings = {ALGO_ASSET_ID}
        for asset in account.get("assets", []) or []:
            asset_id = asset.get("asset-id", asset.get("assetId"))
            if asset_id is not None:
                holdings.add(int(asset_id))
        return holdings

    def get_suggested_params(self) -> NetworkParams:
        data = self._network_client.get(
            "/v2/transactions/params",
            context="Fetch suggested params",
        )
        first_valid = int(data["last-round"])
        return NetworkParams(
            fee=int(data.get("fee", 0)),
            min_fee=int(data.get("min-fee", 1000)),
            first_valid=first_valid,
            last_valid=first_valid + self.validity_rounds,
            genesis_id=data["genesis-id"],
            genesis_hash=data["genesis-hash"],
        )

    def get_asset_decimals(self, asset_id: int) -> int:
        if asset_id == ALGO_ASSET_ID:
            return ALGO_DECIMALS
        asset = self._network_client.get(
            f"/v2/assets/{asset_id}",
            context="Fetch asset information",
        )
        return int(asset.get("params", {}).get("decimals", 0))

    def submit(self, signed_txns: list[bytes]) -> dict[str, Any]:
        """Broadcast signed transactions as one atomic unit. Never retried."""
        try:
            return self._network_client.post(
                "/v2/transactions",
                context="Submit transactions",
                allow_retry=False,
                data=b"".join(signed_txns),
                headers={"Content-Type": "application/x-binary"},
            )
        except NetworkError as e:
            # Without a response we cannot tell whether the node accepted it.
            if e.error_type in (NetworkErrorType.TIMEOUT, NetworkErrorType.UNKNOWN):
                e.broadcast = True
            raise

    def get_current_round(self) -> int:
        status = self._network_client.get("/v2/status", context="Fetch node status")
        return int(status["last-round"])

    def get_pending_transaction(self, transaction_id: str) -> dict[str, Any] | None:
        return self._network_client.get_optional(
            f"/v2/transactions/pending/{transaction_id}",
            context="Fetch pending transaction",
        )

    def wait_for_block_after(self, round_number: int) -> None:
        self._network_client.get(
            f"/v2/status/wait-for-block-after/{round_number}",
            context="Wait for block",
        )

    def await_confirmation(
        self, transaction_id: str, timeout_rounds: int
    ) -> dict[str, Any]:
        start_round = self.get_current_round()
        current_round = start_round + 1

        while current_round < start_round + 1 + timeout_rounds:
            try:
                pending = self.get_pending_transaction(transaction_id)
            except NetworkError as e:
                logger.warning(
                    "Pending lookup for %s failed at round %d: %s",
                    transaction_id,
                    current_round,
                    e.message,
                )
                pending = None

            if pending:
                confirmed_round = extract_confirmed_round(pending)
                if confirmed_round:
                    logger.info(
                        "Transaction %s confirmed in round %d",
                        transaction_id,
                        confirmed_round,
                    )
                    return pending
                pool_error = pending.get("pool-error")
                if pool_error:
                    raise TransactionRejectedError(transaction_id, pool_error)

            try:
                self.wait_for_block_after(current_round)
            except NetworkError as e:
                logger.warning("Waiting for round %d failed: %s", current_round, e.message)
            current_round += 1

        raise NotConfirmedError(transaction_id, timeout_rounds)
