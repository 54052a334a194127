"""Signature resolution for an assembled atomic group."""

from __future__ import annotations

import base64
import logging
from typing import Any, Protocol

from algosdk import encoding, transaction

from deflex_swap.errors import UngroupedSigningError, UnrecognizedSignatureFormatError
from deflex_swap.features.group.service import AtomicGroup, GroupMember
from deflex_swap.models import PreSigned, PreSignedBlob, RequiresUserSignature

logger = logging.getLogger(__name__)

SIGNED_TRANSACTION_TYPES = (
    transaction.SignedTransaction,
    transaction.LogicSigTransaction,
    transaction.MultisigTransaction,
)


class TransactionSigner(Protocol):
    """Signs the transactions at ``indexes`` of ``txn_group``.

    Matches the SDK's ``AccountTransactionSigner``. Delegated wallet signers
    may return SDK signed objects, raw bytes or base64 text.
    """

    def sign_transactions(
        self, txn_group: list[transaction.Transaction], indexes: list[int]
    ) -> list[Any]: ...


def encode_signed(signed: Any, index: int) -> bytes:
    """Normalize one signer result to canonical signed-transaction bytes."""
    if isinstance(signed, SIGNED_TRANSACTION_TYPES):
        return base64.b64decode(encoding.msgpack_encode(signed))
    return PreSignedBlob.parse(signed, index).to_bytes()


def sign_standalone(signer: TransactionSigner, txn: transaction.Transaction) -> bytes:
    signed = signer.sign_transactions([txn], [0])
    if len(signed) != 1:
        raise UnrecognizedSignatureFormatError(
            0, f"signer returned {len(signed)} results for 1 transaction"
        )
    return encode_signed(signed[0], 0)


class GroupSigner:
    def __init__(self, signer: TransactionSigner, rebind_presigned: bool = False):
        self.signer = signer
        self.rebind_presigned = rebind_presigned

    def sign(self, group: AtomicGroup) -> list[bytes]:
        user_positions = [
            member.position
            for member in group.members
            if isinstance(member.signing_mode, RequiresUserSignature)
        ]
        for position in user_positions:
            if group.members[position].transaction.group != group.group_id:
                raise UngroupedSigningError(position)

        user_signed = self._sign_user_transactions(group, user_positions)

        signed_group: list[bytes] = []
        for member in group.members:
            if member.position in user_signed:
                signed = user_signed[member.position]
            else:
                signed = self._resolve_presigned(member)

            if not isinstance(signed, bytes) or not signed:
                raise UnrecognizedSignatureFormatError(
                    member.position, "signed transaction is empty"
                )
            logger.debug(
                "Transaction %d: %d signed bytes (%s)",
                member.position,
                len(signed),
                "user" if member.position in user_signed else "pre-signed",
            )
            signed_group.append(signed)

        logger.info(
            "Signed group of %d transactions (%d by the user)",
            len(signed_group),
            len(user_positions),
        )
        return signed_group

    def _sign_user_transactions(
        self, group: AtomicGroup, positions: list[int]
    ) -> dict[int, bytes]:
        if not positions:
            return {}

        results = self.signer.sign_transactions(group.transactions, positions)
        if len(results) != len(positions):
            raise UnrecognizedSignatureFormatError(
                positions[0],
                f"signer returned {len(results)} results for {len(positions)} transactions",
            )
        return {
            position: encode_signed(result, position)
            for position, result in zip(positions, results)
        }

    def _resolve_presigned(self, member: GroupMember) -> bytes:
        mode = member.signing_mode
        if not isinstance(mode, PreSigned):
            raise UnrecognizedSignatureFormatError(
                member.position, "no signature source"
            )

        blob = mode.blob.to_bytes()
        if not self.rebind_presigned:
            return blob
        return self._rebind(member, blob)

    @staticmethod
    def _rebind(member: GroupMember, blob: bytes) -> bytes:
        """Re-wrap a logic-sig around the regrouped transaction."""
        try:
            original = encoding.msgpack_decode(base64.b64encode(blob).decode())
        except Exception as e:
            raise UnrecognizedSignatureFormatError(
                member.position, "pre-signed blob is not a signed transaction"
            ) from e

        if not isinstance(original, transaction.LogicSigTransaction):
            return blob

        rebound = transaction.LogicSigTransaction(member.transaction, original.lsig)
        return base64.b64decode(encoding.msgpack_encode(rebound))
