"""Logging setup for the swap pipeline.

Log lines never carry signing secrets: mnemonics, private keys, the Deflex
API key and the algod token are masked by every formatter. The same module
maps pipeline errors to short user-facing text.
"""

from __future__ import annotations

import json
import logging
import os
import re
import sys
from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from pathlib import Path
from typing import Any, Callable, Mapping

from algosdk import mnemonic

_TRUTHY = ("1", "true", "yes")


class LogLevel(Enum):
    DEBUG = "DEBUG"
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"
    CRITICAL = "CRITICAL"


@dataclass
class LoggingConfig:
    log_level: LogLevel = LogLevel.INFO
    log_format: str = "human"
    log_to_file: bool = True
    log_to_stdout: bool = False
    log_dir: Path | None = None
    log_filename: str = "swap.log"
    sanitize_sensitive: bool = True
    include_context: bool = True

    @classmethod
    def from_environment(cls, env: Mapping[str, str] | None = None) -> "LoggingConfig":
        env = os.environ if env is None else env
        try:
            log_level = LogLevel(env.get("DEFLEX_SWAP_LOG_LEVEL", "INFO").upper())
        except ValueError:
            log_level = LogLevel.INFO

        log_format = env.get("DEFLEX_SWAP_LOG_FORMAT", "human").lower()
        return cls(
            log_level=log_level,
            log_format="json" if log_format == "json" else "human",
            log_to_stdout=env.get("DEFLEX_SWAP_LOG_STDOUT", "").lower() in _TRUTHY,
        )

    @property
    def resolved_log_dir(self) -> Path:
        return self.log_dir or Path.home() / ".deflex-swap"


MNEMONIC_WORDS = 25
MNEMONIC_REDACTION = "[MNEMONIC_REDACTED]"
WORD_RUN_PATTERN = re.compile(
    rf"\b[a-z]{{3,8}}(?:\s+[a-z]{{3,8}}){{{MNEMONIC_WORDS - 1},}}\b"
)
WORD_PATTERN = re.compile(r"[a-z]+")


def _is_mnemonic(words: list[str]) -> bool:
    try:
        mnemonic.to_private_key(" ".join(words))
    except Exception:
        return False
    return True


def _redact_mnemonics(match: re.Match[str]) -> str:
    """Mask every checksum-valid 25-word window inside a run of short words.

    A run with no valid window is masked whole, since it may be a mistyped
    passphrase.
    """
    text = match.group(0)
    spans = [word.span() for word in WORD_PATTERN.finditer(text)]
    words = [text[start:end] for start, end in spans]

    pieces = []
    cursor = 0
    index = 0
    while index + MNEMONIC_WORDS <= len(words):
        window = words[index : index + MNEMONIC_WORDS]
        if _is_mnemonic(window):
            pieces.append(text[cursor : spans[index][0]])
            pieces.append(MNEMONIC_REDACTION)
            cursor = spans[index + MNEMONIC_WORDS - 1][1]
            index += MNEMONIC_WORDS
        else:
            index += 1

    if not pieces:
        return MNEMONIC_REDACTION
    pieces.append(text[cursor:])
    return "".join(pieces)


SENSITIVE_PATTERNS: list[tuple[re.Pattern[str], str | Callable[[re.Match[str]], str]]] = [
    (
        re.compile(
            r"(mnemonic['\"]?\s*[:=]\s*['\"]?)([a-z]+(?:\s+[a-z]+){11,24})",
            re.IGNORECASE,
        ),
        r"\1[REDACTED]",
    ),
    (
        re.compile(
            r"(api[_-]?key['\"]?\s*[:=]\s*['\"]?)([^\s&'\",}]+)",
            re.IGNORECASE,
        ),
        r"\1[REDACTED]",
    ),
    (
        re.compile(
            r"((?:algod[_-]?token|x-algo-api-token)['\"]?\s*[:=]\s*['\"]?)([^\s&'\",}]+)",
            re.IGNORECASE,
        ),
        r"\1[REDACTED]",
    ),
    (
        re.compile(
            r"(password['\"]?\s*[:=]\s*['\"]?)([^\s'\"]+)",
            re.IGNORECASE,
        ),
        r"\1[REDACTED]",
    ),
    (WORD_RUN_PATTERN, _redact_mnemonics),
    (
        re.compile(r"(?<![A-Za-z0-9+/])[A-Za-z0-9+/]{86}==(?![A-Za-z0-9+/=])"),
        "[KEY_REDACTED]",
    ),
    (
        re.compile(r"\b[A-Fa-f0-9]{64}\b"),
        "[KEY_REDACTED]",
    ),
]

ADDRESS_PATTERN = re.compile(r"\b[A-Z2-7]{58}\b")


def sanitize_message(message: str, preserve_addresses: bool = True) -> str:
    if not message:
        return message

    for pattern, replacement in SENSITIVE_PATTERNS:
        message = pattern.sub(replacement, message)
    if not preserve_addresses:
        message = ADDRESS_PATTERN.sub("[ADDRESS_REDACTED]", message)
    return message


SENSITIVE_KEYS = (
    "mnemonic",
    "private_key",
    "privatekey",
    "password",
    "secret",
    "apikey",
    "api_key",
    "token",
)


def _sanitize_value(value: Any, preserve_addresses: bool) -> Any:
    if isinstance(value, str):
        return sanitize_message(value, preserve_addresses)
    if isinstance(value, dict):
        return sanitize_dict(value, preserve_addresses)
    if isinstance(value, list):
        return [_sanitize_value(item, preserve_addresses) for item in value]
    return value


def sanitize_dict(
    data: dict[str, Any], preserve_addresses: bool = True
) -> dict[str, Any]:
    """Mask values under secret-looking keys and scrub everything else."""
    return {
        key: "[REDACTED]"
        if any(marker in key.lower() for marker in SENSITIVE_KEYS)
        else _sanitize_value(value, preserve_addresses)
        for key, value in data.items()
    }


@dataclass
class ErrorMapping:
    error_pattern: str
    user_message: str
    log_level: LogLevel = LogLevel.ERROR
    suggest_action: str | None = None


ERROR_MAPPINGS: list[ErrorMapping] = [
    ErrorMapping(
        error_pattern=r"not confirmed after",
        user_message="The swap was broadcast but has not confirmed yet.",
        log_level=LogLevel.WARNING,
        suggest_action="Look the transaction up before trying again; do not resubmit.",
    ),
    ErrorMapping(
        error_pattern=r"submitted but no id",
        user_message="The swap was broadcast but the node returned no transaction id.",
        log_level=LogLevel.WARNING,
        suggest_action="Check the account history before trying again; do not resubmit.",
    ),
    ErrorMapping(
        error_pattern="timeout|timed out",
        user_message="A request to the node or aggregator timed out.",
        log_level=LogLevel.WARNING,
        suggest_action="Check ALGOD_SERVER and your connection, then request a fresh quote.",
    ),
    ErrorMapping(
        error_pattern="connection refused|cannot connect|connection error",
        user_message="Could not reach the Algorand node or the Deflex API.",
        log_level=LogLevel.WARNING,
        suggest_action="Check ALGOD_SERVER, DEFLEX_API_BASE and your connection.",
    ),
    ErrorMapping(
        error_pattern="overspend|insufficient funds|below min",
        user_message="Insufficient balance for this swap.",
        log_level=LogLevel.WARNING,
        suggest_action="Ensure you hold enough of the sell asset plus ALGO for fees.",
    ),
    ErrorMapping(
        error_pattern=r"opt into asset|asset \d+ missing from",
        user_message="The account could not be opted into the target asset.",
        log_level=LogLevel.WARNING,
        suggest_action="Make sure the account holds enough ALGO for the asset minimum balance.",
    ),
    ErrorMapping(
        error_pattern="no usable route",
        user_message="No swap route is available for this pair and amount.",
        log_level=LogLevel.WARNING,
        suggest_action="Try a different amount or asset pair.",
    ),
    ErrorMapping(
        error_pattern="failed to decode transaction",
        user_message="The aggregator returned a transaction that could not be read.",
        log_level=LogLevel.ERROR,
        suggest_action="Request a fresh quote and try again.",
    ),
    ErrorMapping(
        error_pattern="signature format unrecognized",
        user_message="The aggregator returned a signature in an unknown format.",
        log_level=LogLevel.ERROR,
        suggest_action="Request a fresh quote and try again.",
    ),
    ErrorMapping(
        error_pattern="atomic group would hold",
        user_message="The swap route is too long to execute atomically.",
        log_level=LogLevel.WARNING,
        suggest_action="Lower the aggregator maximum group size or switch the fee policy.",
    ),
    ErrorMapping(
        error_pattern="txn dead|round .* outside",
        user_message="Transaction validity window has expired.",
        log_level=LogLevel.WARNING,
        suggest_action="Request a fresh quote so the transactions get a new window.",
    ),
    ErrorMapping(
        error_pattern="logic eval error|rejected by logic",
        user_message="The swap was rejected by the routing program.",
        log_level=LogLevel.WARNING,
        suggest_action="Prices may have moved; raise the slippage tolerance or retry.",
    ),
    ErrorMapping(
        error_pattern="invalid.*address|address.*invalid",
        user_message="An Algorand address is malformed or fails its checksum.",
        log_level=LogLevel.WARNING,
        suggest_action="Please check the address format.",
    ),
    ErrorMapping(
        error_pattern="missing required configuration",
        user_message="The swap is not configured.",
        log_level=LogLevel.ERROR,
        suggest_action="Set the missing environment variables and try again.",
    ),
    ErrorMapping(
        error_pattern="unauthorized|forbidden|401|403",
        user_message="The node or aggregator rejected the credentials.",
        log_level=LogLevel.WARNING,
        suggest_action="Check your API key and node token.",
    ),
    ErrorMapping(
        error_pattern="rate limit|too many requests|429",
        user_message="The node or aggregator is rate limiting requests.",
        log_level=LogLevel.WARNING,
        suggest_action="Wait a few seconds before requesting a new quote.",
    ),
    ErrorMapping(
        error_pattern="network.*error|networkerror",
        user_message="A network error interrupted the swap.",
        log_level=LogLevel.WARNING,
        suggest_action="Check ALGOD_SERVER and DEFLEX_API_BASE.",
    ),
]


def get_user_friendly_error(error: Exception | str) -> tuple[str, str | None]:
    error_message = str(error) if isinstance(error, Exception) else error
    error_lower = error_message.lower()

    for mapping in ERROR_MAPPINGS:
        if re.search(mapping.error_pattern, error_lower):
            return mapping.user_message, mapping.suggest_action

    return "An unexpected error occurred.", None


class StructuredFormatter(logging.Formatter):
    """One JSON object per record. A ``context`` extra is attached sanitised."""

    def __init__(
        self,
        sanitize: bool = True,
        include_context: bool = True,
        preserve_addresses: bool = True,
    ):
        super().__init__()
        self.sanitize = sanitize
        self.include_context = include_context
        self.preserve_addresses = preserve_addresses

    def _clean(self, text: str) -> str:
        if not self.sanitize:
            return text
        return sanitize_message(text, self.preserve_addresses)

    def format(self, record: logging.LogRecord) -> str:
        log_data: dict[str, Any] = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": self._clean(record.getMessage()),
        }
        if self.include_context:
            log_data.update(
                module=record.module, function=record.funcName, line=record.lineno
            )

        context = getattr(record, "context", None)
        if isinstance(context, dict):
            log_data["context"] = (
                sanitize_dict(context, self.preserve_addresses)
                if self.sanitize
                else context
            )

        if record.exc_info:
            log_data["exception"] = self._clean(self.formatException(record.exc_info))

        return json.dumps(log_data, default=str)


class HumanReadableFormatter(logging.Formatter):
    def __init__(self, sanitize: bool = True, preserve_addresses: bool = True):
        super().__init__(
            fmt="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )
        self.sanitize = sanitize
        self.preserve_addresses = preserve_addresses

    def format(self, record: logging.LogRecord) -> str:
        # Scrub the rendered line so the record stays untouched for other handlers.
        text = super().format(record)
        if not self.sanitize:
            return text
        return sanitize_message(text, self.preserve_addresses)


class ContextAdapter(logging.LoggerAdapter):
    """Adapter that carries fields such as asset ids into every record."""

    def __init__(self, logger: logging.Logger, context: dict[str, Any] | None = None):
        super().__init__(logger, context or {})

    def process(
        self, msg: str, kwargs: dict[str, Any]
    ) -> tuple[str, dict[str, Any]]:
        extra = dict(kwargs.get("extra") or {})
        if self.extra:
            extra["context"] = {**self.extra, **extra.get("context", {})}
        kwargs["extra"] = extra
        return msg, kwargs

    def with_context(self, **context: Any) -> "ContextAdapter":
        return ContextAdapter(self.logger, {**self.extra, **context})


_logging_initialized = False


def _make_formatter(config: LoggingConfig) -> logging.Formatter:
    if config.log_format == "json":
        return StructuredFormatter(
            sanitize=config.sanitize_sensitive,
            include_context=config.include_context,
        )
    return HumanReadableFormatter(sanitize=config.sanitize_sensitive)


def _make_handlers(config: LoggingConfig) -> list[logging.Handler]:
    handlers: list[logging.Handler] = []
    if config.log_to_file:
        log_dir = config.resolved_log_dir
        log_dir.mkdir(parents=True, exist_ok=True)
        handlers.append(
            logging.FileHandler(log_dir / config.log_filename, mode="a", encoding="utf-8")
        )
    if config.log_to_stdout:
        handlers.append(logging.StreamHandler(sys.stdout))
    return handlers


def setup_logging(config: LoggingConfig | None = None, force: bool = False) -> None:
    """Install sanitising handlers on the root logger once per process."""
    global _logging_initialized

    if _logging_initialized and not force:
        return

    config = config or LoggingConfig.from_environment()
    root_logger = logging.getLogger()
    root_logger.setLevel(config.log_level.value)
    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    formatter = _make_formatter(config)
    for handler in _make_handlers(config):
        handler.setFormatter(formatter)
        root_logger.addHandler(handler)

    _logging_initialized = True


def format_error_for_user(error: Exception | str) -> str:
    user_message, suggestion = get_user_friendly_error(error)
    message = f"{user_message} {suggestion}" if suggestion else user_message
    if isinstance(error, Exception) and not getattr(error, "broadcast", True):
        message = f"{message} Nothing was sent to the network."
    return message


__all__ = [
    "LogLevel",
    "LoggingConfig",
    "ContextAdapter",
    "StructuredFormatter",
    "HumanReadableFormatter",
    "sanitize_message",
    "sanitize_dict",
    "get_user_friendly_error",
    "setup_logging",
    "format_error_for_user",
]
