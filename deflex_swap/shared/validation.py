"""Input validation utilities for swap amounts, asset ids and addresses."""

from dataclasses import dataclass
from decimal import Decimal, InvalidOperation
from typing import Any

from algosdk import encoding


@dataclass
class ValidationResult:
    is_valid: bool
    error_message: str | None = None
    normalized_value: Any = None

    @classmethod
    def ok(cls, value: Any = None) -> "ValidationResult":
        return cls(is_valid=True, normalized_value=value)

    @classmethod
    def fail(cls, message: str) -> "ValidationResult":
        return cls(is_valid=False, error_message=message)


class AmountValidator:
    """Turns a whole-unit amount such as ``"1,250.5"`` into ASA base units."""

    # Asset amounts are uint64 on the ledger.
    MAX_AMOUNT = 2**64 - 1

    @staticmethod
    def parse_human_amount(value: str) -> ValidationResult:
        if not value or not value.strip():
            return ValidationResult.fail("Amount is required")

        raw_amount = "".join(value.split()).replace(",", "")
        if raw_amount[0] in "+-":
            return ValidationResult.fail("Amount must be a positive number")

        try:
            amount = Decimal(raw_amount)
        except InvalidOperation:
            return ValidationResult.fail("Amount must be a valid number")

        if not amount.is_finite():
            return ValidationResult.fail("Invalid numeric format (special value detected)")
        if amount == 0:
            return ValidationResult.fail("Amount must be greater than zero")
        return ValidationResult.ok(amount)

    @staticmethod
    def validate_decimal_places(amount: Decimal, decimals: int) -> ValidationResult:
        exponent = amount.as_tuple().exponent
        if not isinstance(exponent, int):
            return ValidationResult.fail("Invalid numeric format")

        if -exponent <= decimals:
            return ValidationResult.ok()
        if decimals == 0:
            return ValidationResult.fail(
                "This asset does not support decimal amounts (decimals: 0)"
            )
        return ValidationResult.fail(
            f"Too many decimal places. Maximum {decimals} allowed for this asset"
        )

    @classmethod
    def convert_to_base_units(cls, amount: Decimal, decimals: int) -> ValidationResult:
        base_units = int(amount.scaleb(decimals))
        if base_units <= 0:
            return ValidationResult.fail("Amount must be greater than zero")
        if base_units > cls.MAX_AMOUNT:
            return ValidationResult.fail("Amount exceeds maximum allowed value")
        return ValidationResult.ok(base_units)

    @classmethod
    def validate_full(cls, value: str, decimals: int) -> ValidationResult:
        parsed = cls.parse_human_amount(value)
        if not parsed.is_valid:
            return parsed

        places = cls.validate_decimal_places(parsed.normalized_value, decimals)
        if not places.is_valid:
            return places

        return cls.convert_to_base_units(parsed.normalized_value, decimals)


class AddressValidator:
    ADDRESS_LENGTH = 58

    @staticmethod
    def validate(value: str | None) -> ValidationResult:
        if not value or not value.strip():
            return ValidationResult.fail("Address is required")

        normalized = value.strip().upper()

        if len(normalized) != AddressValidator.ADDRESS_LENGTH:
            return ValidationResult.fail(
                f"Address must be {AddressValidator.ADDRESS_LENGTH} characters"
            )

        if not encoding.is_valid_address(normalized):
            return ValidationResult.fail("Address checksum is invalid")

        return ValidationResult.ok(normalized)


class AssetIdValidator:
    @staticmethod
    def validate(value: str | int | None) -> ValidationResult:
        if isinstance(value, bool):
            return ValidationResult.fail("Asset ID must be an integer")

        if isinstance(value, int):
            if value < 0:
                return ValidationResult.fail("Asset ID cannot be negative")
            return ValidationResult.ok(value)

        if value is None or not value.strip():
            return ValidationResult.fail("Asset ID is required")

        normalized = value.strip()
        if normalized.upper() == "ALGO":
            return ValidationResult.ok(0)

        if not normalized.isdigit():
            return ValidationResult.fail("Asset ID must be a non-negative integer")

        return ValidationResult.ok(int(normalized))


class SlippageValidator:
    MAX_SLIPPAGE = Decimal(100)

    @staticmethod
    def validate(value: str | float | int | Decimal) -> ValidationResult:
        try:
            slippage = Decimal(str(value).strip())
        except (InvalidOperation, ValueError):
            return ValidationResult.fail("Slippage must be a number")

        if not slippage.is_finite() or slippage < 0:
            return ValidationResult.fail("Slippage must be a non-negative number")

        if slippage > SlippageValidator.MAX_SLIPPAGE:
            return ValidationResult.fail("Slippage cannot exceed 100%")

        return ValidationResult.ok(slippage)
