"""End-to-end swap: quote, bundle, opt-in, group, sign, submit, confirm."""

from __future__ import annotations

import logging

from algosdk import account
from algosdk.atomic_transaction_composer import AccountTransactionSigner

from deflex_swap.config import FeePolicy, SwapConfig
from deflex_swap.errors import QuoteUnavailableError
from deflex_swap.features.aggregator.service import AggregatorClient
from deflex_swap.features.bundle.service import BundleDecoder
from deflex_swap.features.fee.service import FeeBuilder
from deflex_swap.features.group.service import GroupAssembler
from deflex_swap.features.group.signing import (
    GroupSigner,
    TransactionSigner,
    sign_standalone,
)
from deflex_swap.features.optin.service import OptInService
from deflex_swap.features.quote.service import QuoteFetcher
from deflex_swap.features.submission.service import SubmissionPipeline
from deflex_swap.ledger import LedgerClient
from deflex_swap.models import Quote, SwapOutcome, SwapRequest
from deflex_swap.shared.logging import ContextAdapter

logger = logging.getLogger(__name__)


class SwapPipeline:
    """Runs one swap attempt as a linear sequence of blocking stages.

    Every check that can fail without touching the ledger runs before the
    first submission. Once the swap group is submitted it is never resent.
    """

    def __init__(
        self,
        aggregator: AggregatorClient,
        ledger: LedgerClient,
        signer: TransactionSigner,
        fee_builder: FeeBuilder,
        fee_policy: FeePolicy = FeePolicy.SAME_GROUP,
        confirmation_rounds: int = 4,
        rebind_presigned: bool = False,
    ):
        self.aggregator = aggregator
        self.ledger = ledger
        self.signer = signer
        self.fee_builder = fee_builder
        self.fee_policy = fee_policy
        self.quote_fetcher = QuoteFetcher(aggregator, ledger)
        self.decoder = BundleDecoder()
        self.assembler = GroupAssembler(fee_policy=fee_policy)
        self.group_signer = GroupSigner(signer, rebind_presigned=rebind_presigned)
        self.opt_in_service = OptInService(ledger, signer, confirmation_rounds)
        self.submission = SubmissionPipeline(ledger, confirmation_rounds)

    @classmethod
    def from_config(cls, config: SwapConfig) -> "SwapPipeline":
        return cls(
            aggregator=AggregatorClient.from_config(config),
            ledger=LedgerClient.from_config(config),
            signer=AccountTransactionSigner(config.private_key),
            fee_builder=FeeBuilder.from_config(config),
            fee_policy=config.fee_policy,
            confirmation_rounds=config.confirmation_rounds,
            rebind_presigned=config.rebind_presigned,
        )

    @staticmethod
    def sender_address(config: SwapConfig) -> str:
        return account.address_from_private_key(config.private_key)

    def quote(self, request: SwapRequest) -> Quote:
        return self.quote_fetcher.fetch_quote(
            request.from_asset_id, request.to_asset_id, request.amount
        )

    def execute(self, request: SwapRequest) -> SwapOutcome:
        log = ContextAdapter(
            logger,
            {"from_asset": request.from_asset_id, "to_asset": request.to_asset_id},
        )
        log.info(
            "Starting swap of %d base units: %s -> %s (slippage %s%%)",
            request.amount,
            request.from_asset_id,
            request.to_asset_id,
            request.slippage_percent,
        )

        quote = self.quote(request)
        if not quote.has_route:
            raise QuoteUnavailableError(
                f"Aggregator returned no usable route for "
                f"{request.from_asset_id} -> {request.to_asset_id}"
            )

        entries = self.aggregator.request_swap_transactions(
            request.sender_address, quote.route_payload, request.slippage_percent
        )
        params = self.ledger.get_suggested_params()
        decoded = self.decoder.decode(entries, params)
        log.debug("Decoded %d aggregator transactions", len(decoded))
        fee_txn = self.fee_builder.build(request, params)

        self.assembler.check_capacity(len(decoded), has_fee=fee_txn is not None)

        opt_in_transaction_id = self.opt_in_service.opt_in(
            request.sender_address, request.to_asset_id
        )

        fee_transaction_id = None
        if fee_txn is not None and self.fee_policy is FeePolicy.STANDALONE:
            fee_outcome = self.submission.submit_and_confirm(
                [sign_standalone(self.signer, fee_txn)]
            )
            fee_transaction_id = fee_outcome.transaction_id
            fee_txn = None
            log.info("Standalone fee confirmed: %s", fee_transaction_id)

        group = self.assembler.assemble(decoded, fee_txn)
        signed_group = self.group_signer.sign(group)

        outcome = self.submission.submit_and_confirm(signed_group)
        if fee_txn is not None:
            fee_transaction_id = fee_txn.get_txid()
        outcome.fee_transaction_id = fee_transaction_id
        outcome.opt_in_transaction_id = opt_in_transaction_id

        log.info(
            "Swap confirmed in round %d: %s", outcome.confirmed_round, outcome.transaction_id
        )
        return outcome
