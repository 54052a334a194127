"""Atomic group assembly: fee injection, size ceiling and group id stamping."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field

from algosdk import constants, transaction

from deflex_swap.config import FeePolicy
from deflex_swap.errors import GroupSizeExceededError
from deflex_swap.features.bundle.service import DecodedTransaction
from deflex_swap.models import RequiresUserSignature, SigningMode

logger = logging.getLogger(__name__)

MAX_GROUP_SIZE = constants.tx_group_limit


@dataclass
class GroupMember:
    position: int
    transaction: transaction.Transaction
    signing_mode: SigningMode
    is_fee: bool = False


@dataclass
class AtomicGroup:
    group_id: bytes
    members: list[GroupMember] = field(default_factory=list)

    def __len__(self) -> int:
        return len(self.members)

    @property
    def transactions(self) -> list[transaction.Transaction]:
        return [member.transaction for member in self.members]


class GroupAssembler:
    def __init__(
        self,
        fee_policy: FeePolicy = FeePolicy.SAME_GROUP,
        max_group_size: int = MAX_GROUP_SIZE,
    ):
        self.fee_policy = fee_policy
        self.max_group_size = max_group_size

    def group_size_for(self, route_leg_count: int, has_fee: bool) -> int:
        fee_members = 1 if has_fee and self.fee_policy is FeePolicy.SAME_GROUP else 0
        return route_leg_count + fee_members

    def check_capacity(self, route_leg_count: int, has_fee: bool = True) -> None:
        size = self.group_size_for(route_leg_count, has_fee)
        if size > self.max_group_size:
            raise GroupSizeExceededError(size, self.max_group_size)

    def assemble(
        self,
        decoded: list[DecodedTransaction],
        fee_transaction: transaction.Transaction | None = None,
    ) -> AtomicGroup:
        if fee_transaction is not None and self.fee_policy is FeePolicy.STANDALONE:
            raise ValueError(
                "Fee transaction must be submitted on its own under the standalone fee policy"
            )

        self.check_capacity(len(decoded), has_fee=fee_transaction is not None)

        members = [
            GroupMember(
                position=position,
                transaction=item.transaction,
                signing_mode=item.signing_mode,
            )
            for position, item in enumerate(decoded)
        ]
        if fee_transaction is not None:
            members.append(
                GroupMember(
                    position=len(members),
                    transaction=fee_transaction,
                    signing_mode=RequiresUserSignature(),
                    is_fee=True,
                )
            )

        for member in members:
            member.transaction.group = None

        group_id = transaction.calculate_group_id([m.transaction for m in members])
        for member in members:
            member.transaction.group = group_id

        logger.info(
            "Assembled atomic group of %d transactions (fee included: %s)",
            len(members),
            fee_transaction is not None,
        )
        return AtomicGroup(group_id=group_id, members=members)
