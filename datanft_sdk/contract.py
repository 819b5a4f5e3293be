# Copyright © Data NFT SDK Contributors
# SPDX-License-Identifier: Apache-2.0

"""
A deployed contract: its address, ABI and the chain it lives on.

:class:`ContractClient` is the capability shared by the marketplace and both
minters. It builds unsigned transactions addressed to the contract and runs
ABI-decoded queries against it. A query whose return code is not ``ok`` raises
:class:`ContractQueryError` before any decoding is attempted.
"""

import logging
import unittest
from typing import Any, List, Optional

import httpx

from .abi import MARKETPLACE_ABI, AbiRegistry
from .address import Address
from .codec import TopEncoder
from .errors import ContractQueryError
from .network_provider import ApiNetworkProvider, ContractQuery
from .transactions import ContractCallPayload, Transaction, TransactionArgument

logger = logging.getLogger(__name__)


class ContractClient:
    address: Address
    abi: AbiRegistry
    chain_id: str
    provider: ApiNetworkProvider

    def __init__(
        self,
        address: Address,
        abi: AbiRegistry,
        chain_id: str,
        provider: ApiNetworkProvider,
    ):
        self.address = address
        self.abi = abi
        self.chain_id = chain_id
        self.provider = provider

    async def close(self):
        await self.provider.close()

    def call(
        self,
        sender: Address,
        function: str,
        arguments: Optional[List[TransactionArgument]] = None,
        gas_limit: int = 10_000_000,
        value: int = 0,
    ) -> Transaction:
        """A direct call: the receiver is this contract."""
        return self.transaction(
            sender,
            ContractCallPayload.natural(function, arguments),
            gas_limit,
            value=value,
        )

    def transaction(
        self,
        sender: Address,
        payload: ContractCallPayload,
        gas_limit: int,
        receiver: Optional[Address] = None,
        value: int = 0,
    ) -> Transaction:
        """Build a transaction carrying ``payload``; the receiver defaults to the contract."""
        return Transaction(
            sender=sender,
            receiver=self.address if receiver is None else receiver,
            gas_limit=gas_limit,
            chain_id=self.chain_id,
            payload=payload,
            value=value,
        )

    async def query(
        self,
        function: str,
        arguments: Optional[List[TransactionArgument]] = None,
        operation: Optional[str] = None,
    ) -> List[Any]:
        """
        Query ``function`` and decode its return parts with the ABI.

        :param operation: Name reported in errors, defaults to ``function``.
        :return: One decoded value per ABI output.
        :raises ContractQueryError: If the contract returned a failure code.
        """
        response = await self.provider.query_contract(
            ContractQuery(self.address, function, list(arguments or []))
        )
        if not response.is_success():
            logger.debug(
                "Query %s failed with %s: %s",
                function,
                response.return_code,
                response.return_message,
            )
            raise ContractQueryError(operation or function, response.return_code)
        return self.abi.decode_outputs(function, response.return_data_parts)

    async def query_single(
        self,
        function: str,
        arguments: Optional[List[TransactionArgument]] = None,
        operation: Optional[str] = None,
    ) -> Any:
        """Like :meth:`query` for endpoints with exactly one output."""
        [value] = await self.query(function, arguments, operation)
        return value


class Test(unittest.IsolatedAsyncioTestCase):
    def setUp(self):
        self.address = Address(b"\x00" * 8 + b"\x05\x00" + b"\x03" * 22)

    def client(self, body) -> ContractClient:
        transport = httpx.MockTransport(lambda request: httpx.Response(200, json=body))
        provider = ApiNetworkProvider("https://api.example.com", transport=transport)
        return ContractClient(self.address, AbiRegistry.load(MARKETPLACE_ABI), "D", provider)

    async def test_query_decodes(self):
        client = self.client({"returnCode": "ok", "returnData": ["AQ=="]})
        self.assertTrue(await client.query_single("getIsPaused"))
        await client.close()

    async def test_query_failure_raises(self):
        client = self.client({"returnCode": "function not found", "returnData": ["AQ=="]})
        with self.assertRaises(ContractQueryError) as ctx:
            await client.query("getIsPaused")
        await client.close()
        self.assertEqual(ctx.exception.method, "getIsPaused")
        self.assertEqual(ctx.exception.return_code, "function not found")
        self.assertIn("getIsPaused", str(ctx.exception))

    def test_call(self):
        client = self.client({})
        sender = Address(b"\x09" * 32)
        txn = client.call(
            sender, "setIsPaused", [TransactionArgument(True, TopEncoder.bool)], value=5
        )
        self.assertEqual(txn.receiver, self.address)
        self.assertEqual(txn.sender, sender)
        self.assertEqual(txn.chain_id, "D")
        self.assertEqual(txn.value, 5)
        self.assertEqual(txn.data, b"setIsPaused@01")


if __name__ == "__main__":
    unittest.main()
