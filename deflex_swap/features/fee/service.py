"""Fee-collection transaction construction."""

from __future__ import annotations

import logging
from decimal import ROUND_FLOOR, Decimal

from algosdk import transaction

from deflex_swap.config import SwapConfig
from deflex_swap.models import ALGO_ASSET_ID, NetworkParams, SwapRequest

logger = logging.getLogger(__name__)


class FeeBuilder:
    """Builds the transfer that pays the integrator fee out of the sold asset."""

    NOTE_TEMPLATE = "Deflex swap fee: {percent}%"

    def __init__(self, fee_recipient: str, fee_percent: Decimal):
        self.fee_recipient = fee_recipient
        self.fee_percent = Decimal(fee_percent)

    @classmethod
    def from_config(cls, config: SwapConfig) -> "FeeBuilder":
        return cls(fee_recipient=config.fee_recipient, fee_percent=config.fee_percent)

    @property
    def enabled(self) -> bool:
        return self.fee_percent > 0 and bool(self.fee_recipient)

    def compute_fee_amount(self, amount: int) -> int:
        fee = Decimal(amount) * self.fee_percent / Decimal(100)
        return int(fee.to_integral_value(rounding=ROUND_FLOOR))

    def build(
        self, request: SwapRequest, params: NetworkParams
    ) -> transaction.Transaction | None:
        if not self.enabled:
            return None

        fee_amount = self.compute_fee_amount(request.amount)
        if fee_amount <= 0:
            logger.info("Fee rounds to zero for amount %d; skipping", request.amount)
            return None

        note = self.NOTE_TEMPLATE.format(percent=self.fee_percent).encode()
        sp = params.to_suggested_params()

        if request.from_asset_id == ALGO_ASSET_ID:
            fee_txn: transaction.Transaction = transaction.PaymentTxn(
                sender=request.sender_address,
                sp=sp,
                receiver=self.fee_recipient,
                amt=fee_amount,
                note=note,
            )
        else:
            fee_txn = transaction.AssetTransferTxn(
                sender=request.sender_address,
                sp=sp,
                receiver=self.fee_recipient,
                amt=fee_amount,
                index=request.from_asset_id,
                note=note,
            )

        logger.info(
            "Fee transaction built: %d base units of asset %s to %s",
            fee_amount,
            request.from_asset_id,
            self.fee_recipient,
        )
        return fee_txn
