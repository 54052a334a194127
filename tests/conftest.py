import base64

import pytest
from algosdk import account, encoding, transaction
from algosdk.atomic_transaction_composer import AccountTransactionSigner

from deflex_swap.models import (
    NetworkParams,
    PreSigned,
    PreSignedBlob,
    RawBundleEntry,
    RequiresUserSignature,
)

TESTNET_GENESIS_ID = "testnet-v1.0"
TESTNET_GENESIS_HASH = "SGO1GKSzyE7IEPItTxCByw9x8FmnrCDexi9/cOUJOiI="

# pragma version 6; int 1
ALWAYS_APPROVE_PROGRAM = bytes([0x06, 0x81, 0x01])


@pytest.fixture
def user_account():
    """Fixture providing a fresh (private_key, address) pair"""
    return account.generate_account()


@pytest.fixture
def user_address(user_account):
    return user_account[1]


@pytest.fixture
def user_signer(user_account):
    return AccountTransactionSigner(user_account[0])


@pytest.fixture
def fee_recipient():
    return account.generate_account()[1]


@pytest.fixture
def network_params():
    """Fixture providing current-looking testnet parameters"""
    return NetworkParams(
        fee=0,
        min_fee=1000,
        first_valid=40_000_000,
        last_valid=40_000_500,
        genesis_id=TESTNET_GENESIS_ID,
        genesis_hash=TESTNET_GENESIS_HASH,
    )


@pytest.fixture
def stale_params():
    """Parameters the aggregator might have used when it built the bundle"""
    return transaction.SuggestedParams(
        fee=1000,
        first=39_000_000,
        last=39_001_000,
        gh="wGHE2Pwdvd7S12BL5FaOP20EGYesN73ktiC1qzkkit8=",
        gen="mainnet-v1.0",
        flat_fee=True,
    )


@pytest.fixture
def logic_sig_account():
    return transaction.LogicSigAccount(ALWAYS_APPROVE_PROGRAM)


@pytest.fixture
def make_user_entry(user_address, stale_params):
    """Build an aggregator entry for a payment the user must sign."""

    def _make(index: int, amount: int = 1000) -> RawBundleEntry:
        txn = transaction.PaymentTxn(
            sender=user_address,
            sp=stale_params,
            receiver=user_address,
            amt=amount,
        )
        return RawBundleEntry(
            index=index,
            encoded_transaction=encoding.msgpack_encode(txn),
            signing_mode=RequiresUserSignature(),
        )

    return _make


@pytest.fixture
def make_presigned_entry(user_address, stale_params, logic_sig_account):
    """Build an aggregator entry that arrives with a logic-sig blob."""

    def _make(index: int, amount: int = 500) -> RawBundleEntry:
        txn = transaction.PaymentTxn(
            sender=logic_sig_account.address(),
            sp=stale_params,
            receiver=user_address,
            amt=amount,
        )
        signed = transaction.LogicSigTransaction(txn, logic_sig_account)
        blob = base64.b64decode(encoding.msgpack_encode(signed))
        return RawBundleEntry(
            index=index,
            encoded_transaction=encoding.msgpack_encode(txn),
            signing_mode=PreSigned(PreSignedBlob.parse(blob, index)),
        )

    return _make
