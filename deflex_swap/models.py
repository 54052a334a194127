"""Data model shared by the swap pipeline stages."""

from __future__ import annotations

import base64
import binascii
from dataclasses import dataclass
from decimal import Decimal
from enum import Enum
from typing import Any, Union

from algosdk import transaction

from deflex_swap.errors import UnrecognizedSignatureFormatError
from deflex_swap.shared.validation import (
    AddressValidator,
    AssetIdValidator,
    SlippageValidator,
)

ALGO_ASSET_ID = 0
ALGO_DECIMALS = 6


@dataclass(frozen=True)
class SwapRequest:
    from_asset_id: int
    to_asset_id: int
    amount: int
    slippage_percent: Decimal
    sender_address: str

    def __post_init__(self):
        for name in ("from_asset_id", "to_asset_id"):
            result = AssetIdValidator.validate(getattr(self, name))
            if not result.is_valid:
                raise ValueError(f"{name}: {result.error_message}")
            object.__setattr__(self, name, result.normalized_value)

        if self.from_asset_id == self.to_asset_id:
            raise ValueError("Sell and buy assets must differ")

        if isinstance(self.amount, bool) or not isinstance(self.amount, int):
            raise ValueError("Amount must be an integer number of base units")
        if self.amount <= 0:
            raise ValueError("Amount must be greater than zero")

        slippage = SlippageValidator.validate(self.slippage_percent)
        if not slippage.is_valid:
            raise ValueError(slippage.error_message)
        object.__setattr__(self, "slippage_percent", slippage.normalized_value)

        address = AddressValidator.validate(self.sender_address)
        if not address.is_valid:
            raise ValueError(f"Invalid sender address: {address.error_message}")
        object.__setattr__(self, "sender_address", address.normalized_value)


@dataclass(frozen=True)
class Quote:
    quoted_amount: int
    route_payload: Any = None
    price_impact_percent: float | None = None
    usd_in: float | None = None
    usd_out: float | None = None
    to_asset_decimals: int = ALGO_DECIMALS

    @classmethod
    def empty(cls) -> "Quote":
        return cls(quoted_amount=0)

    @property
    def has_route(self) -> bool:
        return self.route_payload is not None and self.quoted_amount > 0

    @property
    def normalized_amount(self) -> Decimal:
        return Decimal(self.quoted_amount) / (Decimal(10) ** self.to_asset_decimals)


@dataclass(frozen=True)
class NetworkParams:
    """Current ledger parameters stamped onto every transaction of an attempt."""

    fee: int
    min_fee: int
    first_valid: int
    last_valid: int
    genesis_id: str
    genesis_hash: str

    def to_suggested_params(self) -> transaction.SuggestedParams:
        return transaction.SuggestedParams(
            fee=self.fee,
            first=self.first_valid,
            last=self.last_valid,
            gh=self.genesis_hash,
            gen=self.genesis_id,
            flat_fee=False,
            min_fee=self.min_fee,
        )


class BlobEncoding(Enum):
    BASE64 = "base64"
    RAW = "raw"
    BYTE_LIST = "byte_list"
    NUMERIC_KEYED = "numeric_keyed"
    BUFFER_WRAPPER = "buffer_wrapper"


def _byte_values(values: list[Any], index: int) -> bytes:
    for value in values:
        if isinstance(value, bool) or not isinstance(value, int) or not 0 <= value <= 255:
            raise UnrecognizedSignatureFormatError(
                index, f"non-byte value {value!r} in blob"
            )
    return bytes(values)


@dataclass(frozen=True)
class PreSignedBlob:
    """A signed transaction supplied by the aggregator, tagged with its wire shape."""

    encoding: BlobEncoding
    data: bytes

    @classmethod
    def parse(cls, value: Any, index: int) -> "PreSignedBlob":
        if isinstance(value, str):
            try:
                data = base64.b64decode(value, validate=True)
            except (binascii.Error, ValueError) as e:
                raise UnrecognizedSignatureFormatError(index, "invalid base64") from e
            blob = cls(BlobEncoding.BASE64, data)
        elif isinstance(value, (bytes, bytearray, memoryview)):
            blob = cls(BlobEncoding.RAW, bytes(value))
        elif isinstance(value, list):
            blob = cls(BlobEncoding.BYTE_LIST, _byte_values(value, index))
        elif (
            isinstance(value, dict)
            and value.get("type") == "Buffer"
            and isinstance(value.get("data"), list)
        ):
            blob = cls(BlobEncoding.BUFFER_WRAPPER, _byte_values(value["data"], index))
        elif (
            isinstance(value, dict)
            and value
            and all(isinstance(k, str) and k.isdigit() for k in value)
        ):
            ordered = [value[k] for k in sorted(value, key=int)]
            blob = cls(BlobEncoding.NUMERIC_KEYED, _byte_values(ordered, index))
        else:
            raise UnrecognizedSignatureFormatError(
                index, f"unsupported blob type {type(value).__name__}"
            )

        if not blob.data:
            raise UnrecognizedSignatureFormatError(index, "blob is empty")
        return blob

    def to_bytes(self) -> bytes:
        return self.data


@dataclass(frozen=True)
class PreSigned:
    blob: PreSignedBlob


@dataclass(frozen=True)
class RequiresUserSignature:
    pass


SigningMode = Union[PreSigned, RequiresUserSignature]


@dataclass(frozen=True)
class RawBundleEntry:
    index: int
    encoded_transaction: str
    signing_mode: SigningMode

    @property
    def needs_user_signature(self) -> bool:
        return isinstance(self.signing_mode, RequiresUserSignature)


@dataclass
class SwapOutcome:
    transaction_id: str
    confirmed_round: int
    fee_transaction_id: str | None = None
    opt_in_transaction_id: str | None = None
    signed_count: int = 0
