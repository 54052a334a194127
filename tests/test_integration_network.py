"""Integration tests for LedgerClient against a public Algorand testnet node.

These tests hit a real algod endpoint and only read from it. Nothing is
signed or submitted.
"""

import pytest

from deflex_swap.ledger import LedgerClient
from deflex_swap.shared.network import RetryConfig, TimeoutConfig

TESTNET_NODE = "https://testnet-api.algonode.cloud"
TESTNET_GENESIS_ID = "testnet-v1.0"
TESTNET_USDC = 10458941
TESTNET_DISPENSER = "GD64YIY3TWGDMCNPP553DZPPR6LDUSFQOIJVFDPPXWEG3FVOJCCDBBHU5A"
UNKNOWN_TXID = "A" * 52


@pytest.fixture
def ledger_client():
    return LedgerClient(
        node_url=TESTNET_NODE,
        timeout_config=TimeoutConfig(connect_timeout=10.0, read_timeout=30.0),
        retry_config=RetryConfig(max_retries=2, base_delay=1.0),
    )


@pytest.mark.integration
class TestLedgerClientReads:
    def test_suggested_params(self, ledger_client):
        params = ledger_client.get_suggested_params()
        assert params.genesis_id == TESTNET_GENESIS_ID
        assert params.first_valid > 0
        assert params.last_valid == params.first_valid + 500
        assert params.min_fee >= 1000

    def test_current_round(self, ledger_client):
        assert ledger_client.get_current_round() > 0

    def test_algo_decimals_need_no_request(self, ledger_client):
        assert ledger_client.get_asset_decimals(0) == 6

    def test_asset_decimals(self, ledger_client):
        assert ledger_client.get_asset_decimals(TESTNET_USDC) == 6

    def test_account_assets_always_include_algo(self, ledger_client):
        assert 0 in ledger_client.get_account_assets(TESTNET_DISPENSER)

    def test_unknown_pending_transaction(self, ledger_client):
        assert ledger_client.get_pending_transaction(UNKNOWN_TXID) is None


@pytest.mark.integration
@pytest.mark.slow
class TestLedgerClientRounds:
    def test_wait_for_block_after(self, ledger_client):
        current = ledger_client.get_current_round()
        ledger_client.wait_for_block_after(current)
        assert ledger_client.get_current_round() > current
