"""Atomic group assembly and signing."""

from deflex_swap.features.group.service import (
    MAX_GROUP_SIZE,
    AtomicGroup,
    GroupAssembler,
    GroupMember,
)
from deflex_swap.features.group.signing import (
    GroupSigner,
    TransactionSigner,
    encode_signed,
    sign_standalone,
)

__all__ = [
    "AtomicGroup",
    "GroupAssembler",
    "GroupMember",
    "GroupSigner",
    "MAX_GROUP_SIZE",
    "TransactionSigner",
    "encode_signed",
    "sign_standalone",
]
