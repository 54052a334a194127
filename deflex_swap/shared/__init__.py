"""Shared utilities for the swap pipeline."""

from deflex_swap.shared.extraction import (
    FieldAccessor,
    extract_confirmed_round,
    extract_transaction_id,
)
from deflex_swap.shared.logging import (
    ContextAdapter,
    LoggingConfig,
    LogLevel,
    format_error_for_user,
    get_user_friendly_error,
    sanitize_dict,
    sanitize_message,
    setup_logging,
)
from deflex_swap.shared.network import (
    NetworkClient,
    NetworkError,
    NetworkErrorType,
    RetryConfig,
    TimeoutConfig,
)
from deflex_swap.shared.validation import (
    AddressValidator,
    AmountValidator,
    AssetIdValidator,
    SlippageValidator,
    ValidationResult,
)

__all__ = [
    "NetworkClient",
    "NetworkError",
    "NetworkErrorType",
    "RetryConfig",
    "TimeoutConfig",
    "AddressValidator",
    "AmountValidator",
    "AssetIdValidator",
    "SlippageValidator",
    "ValidationResult",
    "FieldAccessor",
    "extract_confirmed_round",
    "extract_transaction_id",
    "ContextAdapter",
    "LoggingConfig",
    "LogLevel",
    "format_error_for_user",
    "get_user_friendly_error",
    "sanitize_dict",
    "sanitize_message",
    "setup_logging",
]
