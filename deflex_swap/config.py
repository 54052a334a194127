"""Process-wide configuration for the swap pipeline.

Built once at start-up from the environment (optionally overlaid with a JSON
file for timeouts and retries) and passed explicitly to every stage.
"""

from __future__ import annotations

import base64
import json
import logging
import os
from dataclasses import dataclass, field
from decimal import Decimal, InvalidOperation
from enum import Enum
from pathlib import Path
from typing import Any, Mapping

from algosdk import constants, mnemonic
from cryptography.fernet import Fernet, InvalidToken
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.kdf.pbkdf2 import PBKDF2HMAC

from deflex_swap.errors import ConfigurationError
from deflex_swap.shared.network import RetryConfig, TimeoutConfig
from deflex_swap.shared.validation import AddressValidator

logger = logging.getLogger(__name__)

DEFAULT_ALGOD_SERVER = "https://mainnet-api.algonode.cloud"
DEFAULT_ALGOD_PORT = 443
DEFAULT_DEFLEX_API_BASE = "https://deflex.txnlab.dev/api"


class FeePolicy(Enum):
    """Where the fee-collection transaction goes.

    SAME_GROUP makes the fee atomic with the swap. STANDALONE sends and
    confirms it first, leaving the whole ledger group for route legs.
    """

    SAME_GROUP = "same_group"
    STANDALONE = "standalone"


SALT_BYTES = 16
KDF_ITERATIONS = 480_000


def _password_key(password: str, salt: bytes) -> bytes:
    kdf = PBKDF2HMAC(
        algorithm=hashes.SHA256(),
        length=32,
        salt=salt,
        iterations=KDF_ITERATIONS,
    )
    return base64.urlsafe_b64encode(kdf.derive(password.encode()))


def encrypt_mnemonic(passphrase: str, password: str) -> str:
    """Encrypt ``passphrase`` as ``<salt>:<fernet token>``, both urlsafe base64."""
    salt = os.urandom(SALT_BYTES)
    cipher = Fernet(_password_key(password, salt))
    token = cipher.encrypt(passphrase.encode()).decode()
    return f"{base64.urlsafe_b64encode(salt).decode()}:{token}"


def decrypt_mnemonic(encrypted: str, password: str) -> str:
    salt_text, _, token = encrypted.partition(":")
    try:
        salt = base64.urlsafe_b64decode(salt_text.encode())
    except ValueError as e:
        raise ConfigurationError(message="Encrypted mnemonic is malformed") from e
    if not token or len(salt) != SALT_BYTES:
        raise ConfigurationError(message="Encrypted mnemonic is malformed")

    cipher = Fernet(_password_key(password, salt))
    try:
        return cipher.decrypt(token.encode()).decode()
    except InvalidToken as e:
        raise ConfigurationError(
            message="Failed to decrypt signing mnemonic: wrong password or corrupt data"
        ) from e


@dataclass
class SwapConfig:
    api_key: str = ""
    algod_server: str = DEFAULT_ALGOD_SERVER
    algod_token: str = ""
    algod_port: int | None = DEFAULT_ALGOD_PORT
    signing_mnemonic: str = field(default="", repr=False)
    fee_recipient: str = ""
    fee_percent: Decimal = Decimal("1.0")
    fee_policy: FeePolicy = FeePolicy.SAME_GROUP
    referrer: str = ""
    chain: str = "mainnet"
    deflex_api_base: str = DEFAULT_DEFLEX_API_BASE
    aggregator_max_group_size: int = 13
    atomic_only: bool = False
    validity_rounds: int = 500
    confirmation_rounds: int = 4
    rebind_presigned: bool = False
    timeout_config: TimeoutConfig = field(default_factory=TimeoutConfig)
    retry_config: RetryConfig = field(default_factory=RetryConfig)

    @property
    def algod_url(self) -> str:
        server = self.algod_server.rstrip("/")
        if not self.algod_port:
            return server
        host = server.split("://", 1)[-1]
        if ":" in host:
            return server
        return f"{server}:{self.algod_port}"

    @property
    def private_key(self) -> str:
        if not self.signing_mnemonic:
            raise ConfigurationError(["SWAP_MNEMONIC"])
        try:
            return mnemonic.to_private_key(self.signing_mnemonic)
        except Exception as e:
            raise ConfigurationError(
                message=f"Signing mnemonic is invalid: {e}"
            ) from e

    def missing_settings(self) -> list[str]:
        missing = []
        if not self.api_key:
            missing.append("DEFLEX_API_KEY")
        if not self.algod_server:
            missing.append("ALGOD_SERVER")
        if not self.signing_mnemonic:
            missing.append("SWAP_MNEMONIC")
        if self.fee_percent > 0 and not self.fee_recipient:
            missing.append("FEE_RECIPIENT_ADDRESS")
        return missing

    def validate(self) -> None:
        missing = self.missing_settings()
        if missing:
            raise ConfigurationError(missing)

        if self.fee_recipient:
            result = AddressValidator.validate(self.fee_recipient)
            if not result.is_valid:
                raise ConfigurationError(
                    message=f"FEE_RECIPIENT_ADDRESS is invalid: {result.error_message}"
                )

        if not Decimal(0) <= self.fee_percent < Decimal(100):
            raise ConfigurationError(
                message="FEE_PERCENTAGE must be between 0 and 100"
            )

        limit = constants.tx_group_limit
        if not 1 <= self.aggregator_max_group_size <= limit:
            raise ConfigurationError(
                message=f"Aggregator group size must be between 1 and {limit}"
            )

        if self.confirmation_rounds <= 0 or self.validity_rounds <= 0:
            raise ConfigurationError(
                message="Round counts must be positive integers"
            )

        # Fails early on a malformed mnemonic.
        self.private_key

    @classmethod
    def from_environment(cls, env: Mapping[str, str] | None = None) -> "SwapConfig":
        env = os.environ if env is None else env

        signing_mnemonic = env.get("SWAP_MNEMONIC", "").strip()
        encrypted = env.get("SWAP_ENCRYPTED_MNEMONIC", "").strip()
        if not signing_mnemonic and encrypted:
            password = env.get("SWAP_MNEMONIC_PASSWORD", "")
            if not password:
                raise ConfigurationError(["SWAP_MNEMONIC_PASSWORD"])
            signing_mnemonic = decrypt_mnemonic(encrypted, password)

        port_value = env.get("ALGOD_PORT", "").strip()
        try:
            algod_port = int(port_value) if port_value else DEFAULT_ALGOD_PORT
        except ValueError as e:
            raise ConfigurationError(message="ALGOD_PORT must be an integer") from e

        try:
            fee_percent = Decimal(env.get("FEE_PERCENTAGE", "1.0").strip() or "0")
        except InvalidOperation as e:
            raise ConfigurationError(message="FEE_PERCENTAGE must be a number") from e

        policy_value = env.get("FEE_POLICY", FeePolicy.SAME_GROUP.value).strip().lower()
        try:
            fee_policy = FeePolicy(policy_value)
        except ValueError as e:
            raise ConfigurationError(
                message=f"FEE_POLICY must be one of: {', '.join(p.value for p in FeePolicy)}"
            ) from e

        return cls(
            api_key=env.get("DEFLEX_API_KEY", "").strip(),
            algod_server=env.get("ALGOD_SERVER", DEFAULT_ALGOD_SERVER).strip(),
            algod_token=env.get("ALGOD_TOKEN", "").strip(),
            algod_port=algod_port,
            signing_mnemonic=signing_mnemonic,
            fee_recipient=env.get("FEE_RECIPIENT_ADDRESS", "").strip(),
            fee_percent=fee_percent,
            fee_policy=fee_policy,
            referrer=env.get("REFERRER_ADDRESS", "").strip(),
            chain=env.get("DEFLEX_CHAIN", "mainnet").strip() or "mainnet",
            deflex_api_base=env.get("DEFLEX_API_BASE", DEFAULT_DEFLEX_API_BASE).strip(),
            rebind_presigned=env.get("REBIND_PRESIGNED", "").strip().lower()
            in ("1", "true", "yes"),
        )

    def apply_overrides(self, overrides: dict[str, Any]) -> "SwapConfig":
        """Overlay timeout, retry and round settings from a parsed JSON document."""
        timeout_cfg = overrides.get("timeout", {})
        if timeout_cfg:
            self.timeout_config = TimeoutConfig(
                connect_timeout=timeout_cfg.get("connect_timeout", 5.0),
                read_timeout=timeout_cfg.get("read_timeout", 15.0),
            )
        retry_cfg = overrides.get("retry", {})
        if retry_cfg:
            self.retry_config = RetryConfig(
                max_retries=retry_cfg.get("max_retries", 3),
                base_delay=retry_cfg.get("base_delay", 1.0),
                max_delay=retry_cfg.get("max_delay", 30.0),
            )
        for key in ("aggregator_max_group_size", "validity_rounds", "confirmation_rounds"):
            if key in overrides:
                setattr(self, key, int(overrides[key]))
        if "atomic_only" in overrides:
            self.atomic_only = bool(overrides["atomic_only"])
        if "rebind_presigned" in overrides:
            self.rebind_presigned = bool(overrides["rebind_presigned"])
        return self

    @classmethod
    def load(
        cls,
        config_file: Path | None = None,
        env: Mapping[str, str] | None = None,
        validate: bool = True,
    ) -> "SwapConfig":
        config = cls.from_environment(env)
        if config_file is not None and config_file.exists():
            with open(config_file, "r") as f:
                config.apply_overrides(json.load(f))
            logger.info("Loaded configuration overrides from %s", config_file)
        if validate:
            config.validate()
        return config
