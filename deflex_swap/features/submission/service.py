"""Broadcast of a signed group and confirmation tracking."""

from __future__ import annotations

import logging
from typing import Any, Protocol

from deflex_swap.errors import MissingTransactionIdError, NotConfirmedError
from deflex_swap.models import SwapOutcome
from deflex_swap.shared.extraction import extract_confirmed_round, extract_transaction_id

logger = logging.getLogger(__name__)


class LedgerProtocol(Protocol):
    def submit(self, signed_txns: list[bytes]) -> dict[str, Any]: ...
    def await_confirmation(
        self, transaction_id: str, timeout_rounds: int
    ) -> dict[str, Any]: ...


class SubmissionPipeline:
    """Submits a signed group exactly once and waits for it to confirm."""

    def __init__(self, ledger: LedgerProtocol, confirmation_rounds: int = 4):
        self.ledger = ledger
        self.confirmation_rounds = confirmation_rounds

    def submit(self, signed_group: list[bytes]) -> str:
        if not signed_group:
            raise ValueError("Cannot submit an empty transaction group")

        response = self.ledger.submit(signed_group)
        transaction_id = extract_transaction_id(response)
        if not transaction_id:
            raise MissingTransactionIdError(response)

        logger.info(
            "Submitted group of %d transactions: %s", len(signed_group), transaction_id
        )
        return transaction_id

    def submit_and_confirm(self, signed_group: list[bytes]) -> SwapOutcome:
        transaction_id = self.submit(signed_group)

        pending = self.ledger.await_confirmation(transaction_id, self.confirmation_rounds)
        confirmed_round = extract_confirmed_round(pending)
        if not confirmed_round:
            raise NotConfirmedError(transaction_id, self.confirmation_rounds)

        return SwapOutcome(
            transaction_id=transaction_id,
            confirmed_round=confirmed_round,
            signed_count=len(signed_group),
        )
