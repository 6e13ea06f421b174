"""
Tests for the web3 node connections.
"""

from unittest.mock import MagicMock, PropertyMock, patch

import pytest

from amm_arbitrage.chain import Web3ChainSource, build_http_web3, header_from_message
from amm_arbitrage.exceptions import NetworkError, SubscriptionError

HTTP_URL = "https://eth-mainnet.example.com/v2/0123456789abcdef"
WS_URL = "wss://eth-mainnet.example.com/v2/0123456789abcdef"


class TestHeaderFromMessage:
    def test_formatted_header(self):
        header = header_from_message(
            {"number": 19_000_000, "hash": b"\xab" * 32, "timestamp": 1_700_000_000}
        )
        assert header.number == 19_000_000
        assert header.hash == "0x" + "ab" * 32
        assert header.timestamp == 1_700_000_000

    def test_raw_hex_header(self):
        header = header_from_message(
            {"number": "0x121eac0", "hash": "0xdead", "timestamp": "0x6553f100"}
        )
        assert header.number == 19_000_000
        assert header.hash == "0xdead"
        assert header.timestamp == 1_700_000_000

    def test_optional_fields(self):
        header = header_from_message({"number": 5})
        assert header.hash is None
        assert header.timestamp is None

    @pytest.mark.parametrize("payload", [{}, None, {"number": "soon"}])
    def test_malformed_header(self, payload):
        with pytest.raises(SubscriptionError):
            header_from_message(payload)


class TestBuildHttpWeb3:
    def test_connects(self):
        with patch("amm_arbitrage.chain.Web3") as web3_cls:
            w3 = web3_cls.return_value
            w3.eth.chain_id = 1
            w3.eth.block_number = 19_000_000

            assert build_http_web3(HTTP_URL, timeout=3) is w3

        web3_cls.HTTPProvider.assert_called_once_with(
            HTTP_URL, request_kwargs={"timeout": 3}
        )

    def test_unreachable_endpoint(self):
        with patch("amm_arbitrage.chain.Web3") as web3_cls:
            w3 = web3_cls.return_value
            type(w3.eth).chain_id = PropertyMock(side_effect=ConnectionError("refused"))

            with pytest.raises(NetworkError) as exc_info:
                build_http_web3(HTTP_URL)

        assert HTTP_URL not in str(exc_info.value.endpoint)
        assert isinstance(exc_info.value.__cause__, ConnectionError)


class TestWeb3ChainSource:
    def test_endpoint_is_masked(self):
        source = Web3ChainSource(WS_URL)
        assert source.endpoint != WS_URL
        assert "***" in source.endpoint

    @pytest.mark.asyncio
    async def test_requires_connection(self):
        source = Web3ChainSource(WS_URL)
        with pytest.raises(NetworkError):
            await source.block_number()
        with pytest.raises(NetworkError):
            await source.gas_price()

    @pytest.mark.asyncio
    async def test_close_is_idempotent(self):
        source = Web3ChainSource(WS_URL)
        await source.close()
        await source.close()
        assert source.w3 is None

    @pytest.mark.asyncio
    async def test_gas_price_over_http(self):
        http_web3 = MagicMock()
        http_web3.eth.gas_price = 20 * 10**9
        source = Web3ChainSource(WS_URL, http_web3=http_web3)

        assert await source.gas_price() == 20 * 10**9
