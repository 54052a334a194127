"""Decoding of the aggregator's transaction bundle into mutable transactions."""

from __future__ import annotations

import base64
import logging
from dataclasses import dataclass
from typing import Any

import msgpack
from algosdk import constants, transaction

from deflex_swap.errors import DecodeError
from deflex_swap.models import NetworkParams, RawBundleEntry, SigningMode

logger = logging.getLogger(__name__)

APP_ARGS_FIELD = "apaa"
GROUP_FIELD = "grp"


@dataclass
class DecodedTransaction:
    index: int
    transaction: transaction.Transaction
    signing_mode: SigningMode


class BundleDecoder:
    """Turns aggregator entries into transactions stamped with current params.

    Application-call arguments and any stale group id are dropped. A single
    malformed entry fails the whole bundle.
    """

    def decode(
        self, entries: list[RawBundleEntry], params: NetworkParams
    ) -> list[DecodedTransaction]:
        decoded = [self._decode_entry(entry, params) for entry in entries]
        logger.info("Decoded %d bundle transactions", len(decoded))
        return decoded

    def _decode_entry(
        self, entry: RawBundleEntry, params: NetworkParams
    ) -> DecodedTransaction:
        try:
            fields = self._unpack(entry.encoded_transaction)
            self._clean(fields)
            self._stamp(fields, params)
            txn = transaction.Transaction.undictify(fields)
        except Exception as e:
            raise DecodeError(entry.index, str(e)) from e

        logger.debug("Decoded transaction %d of type %s", entry.index, txn.type)
        return DecodedTransaction(
            index=entry.index,
            transaction=txn,
            signing_mode=entry.signing_mode,
        )

    @staticmethod
    def _unpack(encoded: str) -> dict[str, Any]:
        raw = base64.b64decode(encoded, validate=True)
        fields = msgpack.unpackb(raw, raw=False)
        if not isinstance(fields, dict) or "type" not in fields:
            raise ValueError("payload is not an unsigned transaction")
        return fields

    @staticmethod
    def _clean(fields: dict[str, Any]) -> None:
        if fields["type"] == constants.appcall_txn:
            fields.pop(APP_ARGS_FIELD, None)
        fields.pop(GROUP_FIELD, None)

    @staticmethod
    def _stamp(fields: dict[str, Any], params: NetworkParams) -> None:
        fields["fv"] = params.first_valid
        fields["lv"] = params.last_valid
        fields["gh"] = base64.b64decode(params.genesis_hash)
        fields["gen"] = params.genesis_id
