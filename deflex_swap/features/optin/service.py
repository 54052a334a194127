"""Asset opt-in preflight for the destination asset."""

from __future__ import annotations

import logging
from typing import Any, Protocol

from algosdk import transaction

from deflex_swap.errors import OptInFailedError, SwapError
from deflex_swap.features.group.signing import TransactionSigner, sign_standalone
from deflex_swap.models import ALGO_ASSET_ID, NetworkParams
from deflex_swap.shared.extraction import extract_transaction_id

logger = logging.getLogger(__name__)


class LedgerProtocol(Protocol):
    """Ledger operations needed to opt an account into an asset."""

    def get_account_assets(self, address: str) -> set[int]: ...
    def get_suggested_params(self) -> NetworkParams: ...
    def submit(self, signed_txns: list[bytes]) -> dict[str, Any]: ...
    def await_confirmation(
        self, transaction_id: str, timeout_rounds: int
    ) -> dict[str, Any]: ...


class OptInService:
    """Makes sure the swapping account can receive the asset it is buying.

    The opt-in is its own zero-amount self-transfer, confirmed before the swap
    group is signed. It never joins the swap group.
    """

    def __init__(
        self,
        ledger: LedgerProtocol,
        signer: TransactionSigner,
        confirmation_rounds: int = 4,
    ):
        self.ledger = ledger
        self.signer = signer
        self.confirmation_rounds = confirmation_rounds

    def is_opted_in(self, address: str, asset_id: int) -> bool:
        if asset_id == ALGO_ASSET_ID:
            return True
        return asset_id in self.ledger.get_account_assets(address)

    def ensure_opted_in(self, address: str, asset_id: int) -> bool:
        """Opt ``address`` into ``asset_id`` unless it already holds it.

        Returns True once the account can receive the asset. Any failure is
        raised as OptInFailedError.
        """
        self.opt_in(address, asset_id)
        return True

    def opt_in(self, address: str, asset_id: int) -> str | None:
        """Like :meth:`ensure_opted_in` but returns the confirmed opt-in id.

        ``None`` means the account could already receive the asset.
        """
        try:
            if self.is_opted_in(address, asset_id):
                logger.debug("Account already opted into asset %s", asset_id)
                return None
            return self._submit_opt_in(address, asset_id)
        except OptInFailedError:
            raise
        except SwapError as e:
            failure = OptInFailedError(asset_id, e.message)
            failure.broadcast = e.broadcast
            raise failure from e
        except Exception as e:
            raise OptInFailedError(asset_id, str(e)) from e

    def _submit_opt_in(self, address: str, asset_id: int) -> str:
        logger.info("Opting %s into asset %s", address, asset_id)
        params = self.ledger.get_suggested_params()
        opt_in_txn = transaction.AssetOptInTxn(
            sender=address,
            sp=params.to_suggested_params(),
            index=asset_id,
        )
        signed = sign_standalone(self.signer, opt_in_txn)

        response = self.ledger.submit([signed])
        transaction_id = extract_transaction_id(response)
        if not transaction_id:
            failure = OptInFailedError(asset_id, "submission returned no transaction id")
            failure.broadcast = True
            raise failure

        self.ledger.await_confirmation(transaction_id, self.confirmation_rounds)
        logger.info("Opt-in to asset %s confirmed (%s)", asset_id, transaction_id)
        return transaction_id
