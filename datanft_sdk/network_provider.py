# Copyright © Data NFT SDK Contributors
# SPDX-License-Identifier: Apache-2.0

"""
Asynchronous client for the chain API.

:class:`ApiNetworkProvider` is the transport used by every contract client in
this package. It covers three concerns:

- **Contract queries**: ``POST /vm-values/query`` with the contract address,
  function name and hex encoded arguments. The response carries a return
  code and a list of base64 encoded return parts.
- **Transaction submission**: ``POST /transactions`` with a transaction that
  the caller has already signed.
- **Public API records**: plain ``GET`` requests for token and account
  listings (``/nfts``, ``/accounts/{address}/nfts``).

The provider applies no retry policy. Failed queries and submissions raise
:class:`ApiError` with the response status code, failed record fetches raise
:class:`FetchError`. A query that reaches the contract but fails there is
returned with its return code, and the contract client decides how to report
it.

Examples:
    Querying the marketplace pause flag::

        from datanft_sdk.network_provider import ApiNetworkProvider, ContractQuery

        provider = ApiNetworkProvider("https://devnet-api.multiversx.com")
        response = await provider.query_contract(
            ContractQuery(marketplace_address, "getIsPaused", [])
        )
        response.is_success()        # True
        response.return_data_parts   # [b"\\x01"]
        await provider.close()

    Using the provider with a custom transport in tests::

        transport = httpx.MockTransport(handler)
        provider = ApiNetworkProvider(base_url, transport=transport)
"""

import base64
import logging
import unittest
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

import httpx

from .address import Address
from .codec import TopEncoder
from .config import NetworkConfig
from .errors import FetchError
from .metadata import Metadata
from .transactions import ContractCallPayload, Transaction, TransactionArgument

logger = logging.getLogger(__name__)

RETURN_CODE_OK = "ok"


@dataclass
class ContractQuery:
    """A read-only call against a contract.

    Attributes:
        address: The contract being queried.
        function: Endpoint name, e.g. ``viewRequirements``.
        arguments: Top-level encoded arguments, in endpoint order.
        caller: Optional account the query is made on behalf of.
    """

    address: Address
    function: str
    arguments: List[TransactionArgument] = field(default_factory=list)
    caller: Optional[Address] = None

    def to_dict(self) -> Dict[str, Any]:
        body: Dict[str, Any] = {
            "scAddress": self.address.bech32(),
            "funcName": self.function,
            "args": [arg.encode().hex() for arg in self.arguments],
        }
        if self.caller is not None:
            body["caller"] = self.caller.bech32()
        return body


@dataclass
class ContractQueryResponse:
    return_code: str
    return_message: str = ""
    return_data_parts: List[bytes] = field(default_factory=list)

    def is_success(self) -> bool:
        return self.return_code == RETURN_CODE_OK

    @staticmethod
    def from_json(body: Dict[str, Any]) -> "ContractQueryResponse":
        # The gateway nests the payload twice, the public API does not.
        payload = body.get("data", {}).get("data", body) if "data" in body else body
        return ContractQueryResponse(
            return_code=payload.get("returnCode", ""),
            return_message=payload.get("returnMessage", "") or "",
            return_data_parts=[
                base64.b64decode(part or "") for part in payload.get("returnData") or []
            ],
        )


class ApiNetworkProvider:
    """Thin async wrapper around the chain API."""

    base_url: str
    client: httpx.AsyncClient

    def __init__(
        self,
        base_url: str,
        timeout: float = 10.0,
        http2: bool = True,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        """
        :param base_url: Base URL of the API, without a trailing slash.
        :param timeout: Request timeout in seconds.
        :param http2: Enable HTTP/2.
        :param transport: Optional transport, e.g. ``httpx.MockTransport``.
        """
        self.base_url = base_url.rstrip("/")
        headers = {Metadata.CLIENT_HEADER: Metadata.get_client_header_val()}
        self.client = httpx.AsyncClient(
            http2=http2,
            limits=httpx.Limits(),
            timeout=httpx.Timeout(timeout),
            headers=headers,
            transport=transport,
        )

    @staticmethod
    def from_config(
        config: NetworkConfig, transport: Optional[httpx.AsyncBaseTransport] = None
    ) -> "ApiNetworkProvider":
        """Provider for the chain API of ``config``."""
        return ApiNetworkProvider(
            config.network_provider_url,
            timeout=config.timeout,
            http2=config.http2,
            transport=transport,
        )

    async def close(self):
        await self.client.aclose()

    async def query_contract(self, query: ContractQuery) -> ContractQueryResponse:
        """
        Run a contract query.

        :raises ApiError: If the API answers with a status code >= 400.
        """
        logger.debug("Querying %s on %s", query.function, query.address)
        response = await self._post(endpoint="vm-values/query", data=query.to_dict())
        if response.status_code >= 400:
            raise ApiError(f"{response.text} - {query.function}", response.status_code)
        return ContractQueryResponse.from_json(response.json())

    async def send_transaction(self, transaction: Transaction, signature: str) -> str:
        """
        Broadcast a signed transaction and return its hash.

        :param signature: Hex encoded signature produced by the caller's wallet.
        """
        body = transaction.to_dict()
        body["signature"] = signature
        logger.debug("Sending transaction from %s", transaction.sender)
        response = await self._post(endpoint="transactions", data=body)
        if response.status_code >= 400:
            raise ApiError(response.text, response.status_code)
        content = response.json()
        return content.get("data", content).get("txHash", "")

    async def get_json(
        self, endpoint: str, params: Optional[Dict[str, Any]] = None
    ) -> Any:
        """
        GET ``{base_url}/{endpoint}`` and return the decoded JSON body.

        :raises FetchError: If the response status is outside the 2xx range.
        """
        logger.debug("Fetching %s", endpoint)
        response = await self._get(endpoint=endpoint, params=params)
        check_status(response)
        return response.json()

    async def _post(
        self,
        endpoint: str,
        params: Optional[Dict[str, Any]] = None,
        data: Optional[Dict[str, Any]] = None,
    ) -> httpx.Response:
        # format params:
        params = {} if params is None else params
        params = {key: val for key, val in params.items() if val is not None}
        return await self.client.post(
            url=f"{self.base_url}/{endpoint}",
            params=params,
            json=data,
        )

    async def _get(
        self, endpoint: str, params: Optional[Dict[str, Any]] = None
    ) -> httpx.Response:
        # format params:
        params = {} if params is None else params
        params = {key: val for key, val in params.items() if val is not None}
        return await self.client.get(
            url=f"{self.base_url}/{endpoint}",
            params=params,
        )


def check_status(response: httpx.Response):
    """Raise :class:`FetchError` unless ``response`` has a 2xx status."""
    if not 200 <= response.status_code < 300:
        raise FetchError(response.status_code, response.reason_phrase)


class ApiError(Exception):
    """The API returned a non-success status code, e.g., >= 400"""

    status_code: int

    def __init__(self, message: str, status_code: int):
        super().__init__(message)
        self.status_code = status_code


class Test(unittest.IsolatedAsyncioTestCase):
    def setUp(self):
        self.contract = Address(b"\x00" * 8 + b"\x05\x00" + b"\x01" * 22)
        self.requests: List[httpx.Request] = []

    def provider(self, handler) -> ApiNetworkProvider:
        def record(request: httpx.Request) -> httpx.Response:
            self.requests.append(request)
            return handler(request)

        return ApiNetworkProvider(
            "https://api.example.com/", transport=httpx.MockTransport(record)
        )

    async def test_query_contract(self):
        provider = self.provider(
            lambda request: httpx.Response(
                200,
                json={
                    "data": {
                        "data": {
                            "returnData": [base64.b64encode(b"\x01").decode(), ""],
                            "returnCode": "ok",
                            "returnMessage": "",
                        }
                    }
                },
            )
        )
        response = await provider.query_contract(
            ContractQuery(
                self.contract,
                "viewUserTotalOffers",
                [TransactionArgument(self.contract, TopEncoder.struct)],
            )
        )
        await provider.close()

        self.assertTrue(response.is_success())
        self.assertEqual(response.return_data_parts, [b"\x01", b""])
        request = self.requests[0]
        self.assertEqual(str(request.url), "https://api.example.com/vm-values/query")
        self.assertIn(Metadata.CLIENT_HEADER, request.headers)
        self.assertIn(self.contract.hex().encode(), request.content)

    async def test_query_flat_body_with_failure_code(self):
        provider = self.provider(
            lambda request: httpx.Response(
                200, json={"returnCode": "user error", "returnMessage": "bad"}
            )
        )
        response = await provider.query_contract(ContractQuery(self.contract, "getOffers"))
        await provider.close()
        self.assertFalse(response.is_success())
        self.assertEqual(response.return_code, "user error")
        self.assertEqual(response.return_data_parts, [])

    async def test_http_error(self):
        provider = self.provider(lambda request: httpx.Response(500, text="boom"))
        with self.assertRaises(ApiError) as ctx:
            await provider.query_contract(ContractQuery(self.contract, "getOffers"))
        await provider.close()
        self.assertEqual(ctx.exception.status_code, 500)

    async def test_get_json_status(self):
        provider = self.provider(lambda request: httpx.Response(404, text="missing"))
        with self.assertRaises(FetchError) as ctx:
            await provider.get_json("nfts/DATA-a1b2c3-01")
        await provider.close()
        self.assertEqual(ctx.exception.status_code, 404)
        self.assertIn("Not Found", str(ctx.exception))

    async def test_get_json_drops_empty_params(self):
        provider = self.provider(lambda request: httpx.Response(200, json=[]))
        await provider.get_json("nfts", {"identifiers": "A-1-01", "withSupply": None})
        await provider.close()
        self.assertEqual(self.requests[0].url.params.get("identifiers"), "A-1-01")
        self.assertNotIn("withSupply", self.requests[0].url.params)

    async def test_send_transaction(self):
        provider = self.provider(
            lambda request: httpx.Response(200, json={"data": {"txHash": "abc"}})
        )
        txn = Transaction(
            sender=Address(b"\x02" * 32),
            receiver=self.contract,
            gas_limit=10_000_000,
            chain_id="D",
            payload=ContractCallPayload.natural("pause"),
        )
        self.assertEqual(await provider.send_transaction(txn, "ff"), "abc")
        await provider.close()


if __name__ == "__main__":
    unittest.main()
