"""Unit tests for the algod ledger client."""

from unittest.mock import MagicMock, Mock, patch

import pytest

from deflex_swap.config import SwapConfig
from deflex_swap.errors import NotConfirmedError, TransactionRejectedError
from deflex_swap.ledger import API_TOKEN_HEADER, LedgerClient
from deflex_swap.shared.network import NetworkError, NetworkErrorType, TimeoutConfig


@pytest.fixture
def ledger():
    client = LedgerClient("https://testnet-api.algonode.cloud", validity_rounds=500)
    client._network_client = MagicMock()
    return client


def _network_error(error_type):
    return NetworkError(error_type=error_type, message=f"{error_type.value} failure")


class TestConstruction:
    def test_token_header_only_when_token_given(self):
        assert LedgerClient("http://node")._network_client.headers == {}
        assert LedgerClient("http://node", api_token="abc")._network_client.headers == {
            API_TOKEN_HEADER: "abc"
        }

    def test_from_config(self):
        config = SwapConfig(
            algod_server="http://localhost",
            algod_port=4001,
            algod_token="a" * 64,
            validity_rounds=100,
            timeout_config=TimeoutConfig(connect_timeout=1.0, read_timeout=2.0),
        )
        client = LedgerClient.from_config(config)
        assert client.node_url == "http://localhost:4001"
        assert client.validity_rounds == 100
        assert client._network_client.timeout_config.request_timeout == (1.0, 2.0)


class TestAccountAssets:
    def test_includes_algo_and_holdings(self, ledger):
        ledger._network_client.get.return_value = {
            "assets": [{"asset-id": 31566704, "amount": 0}, {"assetId": 312769}]
        }
        assert ledger.get_account_assets("ADDR") == {0, 31566704, 312769}

    def test_account_without_assets(self, ledger):
        ledger._network_client.get.return_value = {"amount": 100000}
        assert ledger.get_account_assets("ADDR") == {0}

    def test_requests_account_endpoint(self, ledger):
        ledger._network_client.get.return_value = {}
        ledger.get_account_assets("ADDR")
        assert ledger._network_client.get.call_args[0][0] == "/v2/accounts/ADDR"

    def test_sends_no_exclude_filter(self, ledger):
        ledger._network_client.get.return_value = {}
        ledger.get_account_assets("ADDR")
        assert "params" not in ledger._network_client.get.call_args[1]


class TestSuggestedParams:
    def test_window_from_last_round(self, ledger):
        ledger._network_client.get.return_value = {
            "last-round": 1000,
            "fee": 0,
            "min-fee": 1000,
            "genesis-id": "testnet-v1.0",
            "genesis-hash": "SGO1GKSzyE7IEPItTxCByw9x8FmnrCDexi9/cOUJOiI=",
        }
        params = ledger.get_suggested_params()
        assert params.first_valid == 1000
        assert params.last_valid == 1500
        assert params.genesis_id == "testnet-v1.0"
        assert params.min_fee == 1000


class TestAssetDecimals:
    def test_algo_needs_no_lookup(self, ledger):
        assert ledger.get_asset_decimals(0) == 6
        ledger._network_client.get.assert_not_called()

    def test_asa_lookup(self, ledger):
        ledger._network_client.get.return_value = {"params": {"decimals": 2}}
        assert ledger.get_asset_decimals(31566704) == 2


class TestSubmit:
    def test_posts_concatenated_bytes_without_retry(self, ledger):
        ledger._network_client.post.return_value = {"txId": "TX"}

        assert ledger.submit([b"\x01", b"\x02\x03"]) == {"txId": "TX"}

        args, kwargs = ledger._network_client.post.call_args
        assert args[0] == "/v2/transactions"
        assert kwargs["data"] == b"\x01\x02\x03"
        assert kwargs["allow_retry"] is False
        assert kwargs["headers"]["Content-Type"] == "application/x-binary"

    def test_timeout_marks_error_as_broadcast(self, ledger):
        ledger._network_client.post.side_effect = _network_error(NetworkErrorType.TIMEOUT)
        with pytest.raises(NetworkError) as exc_info:
            ledger.submit([b"\x01"])
        assert exc_info.value.broadcast is True

    def test_http_rejection_is_not_broadcast(self, ledger):
        ledger._network_client.post.side_effect = _network_error(
            NetworkErrorType.HTTP_ERROR
        )
        with pytest.raises(NetworkError) as exc_info:
            ledger.submit([b"\x01"])
        assert exc_info.value.broadcast is False

    def test_real_http_call_sends_once(self):
        client = LedgerClient("http://node")
        with patch("requests.request") as mock_request:
            response = Mock()
            response.status_code = 200
            response.content = b'{"txId": "TX"}'
            response.json.return_value = {"txId": "TX"}
            mock_request.return_value = response

            assert client.submit([b"\x01"]) == {"txId": "TX"}
            assert mock_request.call_count == 1
            assert mock_request.call_args[0] == ("POST", "http://node/v2/transactions")


class TestAwaitConfirmation:
    def test_confirmed_on_first_lookup(self, ledger):
        ledger._network_client.get.return_value = {"last-round": 100}
        ledger._network_client.get_optional.return_value = {"confirmed-round": 101}

        pending = ledger.await_confirmation("TX", 4)
        assert pending == {"confirmed-round": 101}

    def test_confirms_after_waiting(self, ledger):
        ledger._network_client.get.return_value = {"last-round": 100}
        ledger._network_client.get_optional.side_effect = [
            {"confirmed-round": 0, "pool-error": ""},
            {"confirmed-round": 102},
        ]

        pending = ledger.await_confirmation("TX", 4)
        assert pending["confirmed-round"] == 102

        endpoints = [c[0][0] for c in ledger._network_client.get.call_args_list]
        assert endpoints == ["/v2/status", "/v2/status/wait-for-block-after/101"]

    def test_times_out_after_rounds(self, ledger):
        ledger._network_client.get.return_value = {"last-round": 100}
        ledger._network_client.get_optional.return_value = {"confirmed-round": 0}

        with pytest.raises(NotConfirmedError) as exc_info:
            ledger.await_confirmation("TX", 4)

        assert exc_info.value.rounds == 4
        assert exc_info.value.broadcast is True
        assert ledger._network_client.get_optional.call_count == 4
        ledger._network_client.post.assert_not_called()

    def test_pool_error_rejects(self, ledger):
        ledger._network_client.get.return_value = {"last-round": 100}
        ledger._network_client.get_optional.return_value = {
            "confirmed-round": 0,
            "pool-error": "overspend",
        }
        with pytest.raises(TransactionRejectedError, match="overspend"):
            ledger.await_confirmation("TX", 4)

    def test_lookup_failures_keep_polling(self, ledger):
        ledger._network_client.get.return_value = {"last-round": 100}
        ledger._network_client.get_optional.side_effect = [
            _network_error(NetworkErrorType.CONNECTION_ERROR),
            None,
            {"confirmedRound": 103},
        ]

        pending = ledger.await_confirmation("TX", 4)
        assert pending == {"confirmedRound": 103}
