"""Unit tests for the shared HTTP client."""

import json
from unittest.mock import Mock, patch

import pytest
from requests.exceptions import ConnectionError, ConnectTimeout, HTTPError, Timeout

from deflex_swap.errors import SwapError
from deflex_swap.shared.network import (
    DEFAULT_RETRY_CONFIG,
    DEFAULT_TIMEOUT_CONFIG,
    NO_RETRY_CONFIG,
    NetworkClient,
    NetworkError,
    NetworkErrorType,
    RetryConfig,
    TimeoutConfig,
    classify_error,
    create_network_error,
    response_detail,
    should_retry,
)

pytestmark = pytest.mark.unit

NODE = "https://testnet-api.algonode.cloud"
FAST_RETRY = RetryConfig(max_retries=2, base_delay=0.0)


def _response(status=200, body=None, text=None):
    response = Mock()
    response.status_code = status
    if body is not None:
        response.content = json.dumps(body).encode()
        response.json.return_value = body
        response.text = json.dumps(body)
    else:
        response.content = (text or "").encode()
        response.json.side_effect = ValueError("not json")
        response.text = text or ""
    if status >= 400:
        response.raise_for_status.side_effect = HTTPError(response=response)
    return response


def _http_error(status, body=None, text=None):
    return HTTPError(response=_response(status, body, text))


class TestConfigs:
    def test_timeout_tuple(self):
        assert TimeoutConfig(connect_timeout=3.0, read_timeout=10.0).request_timeout == (
            3.0,
            10.0,
        )

    def test_backoff_grows_and_caps(self):
        config = RetryConfig(base_delay=1.0, exponential_base=2.0, max_delay=5.0)
        assert [config.calculate_delay(n) for n in range(5)] == [1.0, 2.0, 4.0, 5.0, 5.0]

    def test_no_retry_config(self):
        assert NO_RETRY_CONFIG.max_retries == 0


class TestClassification:
    @pytest.mark.parametrize(
        "error, expected",
        [
            (Timeout("slow"), NetworkErrorType.TIMEOUT),
            (ConnectTimeout("slow connect"), NetworkErrorType.TIMEOUT),
            (ConnectionError("refused"), NetworkErrorType.CONNECTION_ERROR),
            (_http_error(500), NetworkErrorType.HTTP_ERROR),
            (ValueError("odd"), NetworkErrorType.UNKNOWN),
        ],
    )
    def test_classify(self, error, expected):
        assert classify_error(error) == expected

    @pytest.mark.parametrize("status", [408, 429, 500, 502, 503, 504])
    def test_transient_statuses_are_retried(self, status):
        assert should_retry(_http_error(status), DEFAULT_RETRY_CONFIG) is True

    @pytest.mark.parametrize("status", [400, 401, 403, 404])
    def test_client_errors_are_not_retried(self, status):
        assert should_retry(_http_error(status), DEFAULT_RETRY_CONFIG) is False

    def test_transport_failures_are_retried(self):
        assert should_retry(Timeout(), DEFAULT_RETRY_CONFIG) is True
        assert should_retry(ConnectionError(), DEFAULT_RETRY_CONFIG) is True
        assert should_retry(ValueError(), DEFAULT_RETRY_CONFIG) is False


class TestErrorMessages:
    def test_algod_message_is_lifted_into_error(self):
        error = _http_error(400, body={"message": "TransactionPool.Remember: txn dead"})
        network_error = create_network_error(error, NODE, "Submit transactions")

        assert network_error.error_type == NetworkErrorType.HTTP_ERROR
        assert network_error.status_code == 400
        assert network_error.message == (
            "Submit transactions: HTTP error 400: TransactionPool.Remember: txn dead"
        )

    def test_deflex_error_field(self):
        error = _http_error(422, body={"error": "Invalid ASA id"})
        assert "Invalid ASA id" in create_network_error(error, NODE).message

    def test_plain_text_body(self):
        assert response_detail(_response(502, text="Bad Gateway")) == "Bad Gateway"

    def test_empty_body(self):
        assert "Unknown error" in create_network_error(_http_error(500), NODE).message

    def test_timeout_names_the_service(self):
        network_error = create_network_error(Timeout(), NODE, "Fetch quote")
        assert network_error.message.startswith("Fetch quote: Connection timeout")
        assert NODE in network_error.message

    def test_connection_error(self):
        network_error = create_network_error(ConnectionError(), NODE)
        assert network_error.message.startswith(f"Cannot connect to {NODE}")

    def test_network_error_is_a_swap_error_not_broadcast(self):
        error = NetworkError(error_type=NetworkErrorType.TIMEOUT, message="slow")
        assert isinstance(error, SwapError)
        assert str(error) == "slow"
        assert error.broadcast is False


class TestNetworkClient:
    def test_defaults(self):
        client = NetworkClient(NODE + "/")
        assert client.base_url == NODE
        assert client.timeout_config == DEFAULT_TIMEOUT_CONFIG
        assert client.retry_config == DEFAULT_RETRY_CONFIG

    def test_get_sends_timeout_and_headers(self):
        client = NetworkClient(
            NODE,
            timeout_config=TimeoutConfig(connect_timeout=2.0, read_timeout=4.0),
            headers={"X-Algo-API-Token": "secret"},
        )
        with patch("requests.request", return_value=_response(body={"last-round": 7})) as req:
            assert client.get("/v2/status") == {"last-round": 7}

        args, kwargs = req.call_args
        assert args == ("GET", f"{NODE}/v2/status")
        assert kwargs["timeout"] == (2.0, 4.0)
        assert kwargs["headers"] == {"X-Algo-API-Token": "secret"}

    def test_request_headers_extend_defaults(self):
        client = NetworkClient(NODE, headers={"X-Algo-API-Token": "secret"})
        with patch("requests.request", return_value=_response(body={})) as req:
            client.post("/v2/transactions", headers={"Content-Type": "application/x-binary"})

        assert req.call_args[1]["headers"] == {
            "X-Algo-API-Token": "secret",
            "Content-Type": "application/x-binary",
        }

    def test_get_404_is_an_error(self):
        client = NetworkClient(NODE, retry_config=FAST_RETRY)
        with patch("requests.request", return_value=_response(404, text="no such asset")) as req:
            with pytest.raises(NetworkError) as exc_info:
                client.get("/v2/assets/1")

        assert exc_info.value.status_code == 404
        assert req.call_count == 1

    def test_get_optional_404_is_none(self):
        client = NetworkClient(NODE)
        with patch("requests.request", return_value=_response(404)):
            assert client.get_optional("/v2/transactions/pending/TX") is None

    def test_get_retries_transient_failures(self):
        client = NetworkClient(NODE, retry_config=FAST_RETRY)
        with patch(
            "requests.request",
            side_effect=[Timeout(), _response(503), _response(body={"ok": True})],
        ) as req, patch("time.sleep"):
            assert client.get("/v2/status") == {"ok": True}
        assert req.call_count == 3

    def test_retries_exhausted(self):
        retries = []
        client = NetworkClient(
            NODE,
            retry_config=FAST_RETRY,
            on_retry=lambda attempt, error, delay: retries.append(attempt),
        )
        with patch("requests.request", side_effect=ConnectionError("refused")) as req, patch(
            "time.sleep"
        ):
            with pytest.raises(NetworkError) as exc_info:
                client.get("/v2/status", context="Fetch node status")

        assert req.call_count == 3
        assert retries == [1, 2]
        assert exc_info.value.error_type == NetworkErrorType.CONNECTION_ERROR
        assert exc_info.value.message.startswith("Fetch node status:")

    def test_post_without_retry_sends_once(self):
        client = NetworkClient(NODE, retry_config=FAST_RETRY)
        with patch("requests.request", side_effect=Timeout()) as req:
            with pytest.raises(NetworkError) as exc_info:
                client.post("/v2/transactions", allow_retry=False, data=b"\x01")

        assert req.call_count == 1
        assert exc_info.value.error_type == NetworkErrorType.TIMEOUT

    def test_no_retry_config_sends_once(self):
        client = NetworkClient(NODE, retry_config=NO_RETRY_CONFIG)
        with patch("requests.request", side_effect=Timeout()) as req:
            with pytest.raises(NetworkError):
                client.get("/fetchQuote")
        assert req.call_count == 1

    @pytest.mark.parametrize(
        "response, expected",
        [
            (_response(body={"txId": "TX"}), {"txId": "TX"}),
            (_response(text="OK"), {"message": "OK"}),
            (_response(text=""), {"message": ""}),
        ],
    )
    def test_post_body_shapes(self, response, expected):
        client = NetworkClient(NODE)
        with patch("requests.request", return_value=response):
            assert client.post("/v2/transactions") == expected
