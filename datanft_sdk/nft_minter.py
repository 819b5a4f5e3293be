# Copyright © Data NFT SDK Contributors
# SPDX-License-Identifier: Apache-2.0

"""
The single-supply Data NFT minter, deployed once per collection.

Unlike the network's shared Data NFT-FT minter, every deployment has its own
address, so :class:`NftMinter` takes it explicitly.
"""

import base64
import unittest
from typing import Optional

import httpx

from .abi import NFT_MINTER_ABI
from .address import Address
from .codec import Serializer, TopEncoder
from .config import NetworkConfig
from .minter import DEFAULT_GAS_LIMIT, TRANSFER_GAS_LIMIT, Minter, view_contract_configuration
from .parsers import ContractConfiguration
from .transactions import ContractCallPayload, Transaction, TransactionArgument

# Deposit paid on initialization for issuing the collection, 0.05 EGLD.
COLLECTION_ISSUE_COST = 50_000_000_000_000_000


class NftMinter(Minter):
    def __init__(
        self,
        config: NetworkConfig,
        contract_address: str,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        super().__init__(config, contract_address, NFT_MINTER_ABI, transport)

    def initialize_contract(
        self,
        sender: Address,
        collection_name: str,
        token_ticker: str,
        mint_limit: int,
        require_mint_tax: bool,
        tax_token_identifier: Optional[str] = None,
        tax_token_amount: Optional[int] = None,
        gas_limit: int = DEFAULT_GAS_LIMIT,
    ) -> Transaction:
        """
        Issue the collection and set the first mint rules.

        :param mint_limit: Seconds between two mints of the same address.
        :param require_mint_tax: When set, ``tax_token_identifier`` and
            ``tax_token_amount`` are appended to the call.
        """
        arguments = [
            TransactionArgument(collection_name, TopEncoder.str),
            TransactionArgument(token_ticker, TopEncoder.str),
            TransactionArgument(mint_limit, TopEncoder.biguint),
            TransactionArgument(require_mint_tax, TopEncoder.bool),
        ]
        if require_mint_tax and tax_token_identifier is not None and tax_token_amount is not None:
            arguments += [
                TransactionArgument(tax_token_identifier, TopEncoder.str),
                TransactionArgument(tax_token_amount, TopEncoder.biguint),
            ]
        return self.contract.call(
            sender, "initializeContract", arguments, gas_limit, value=COLLECTION_ISSUE_COST
        )

    def update_attributes(
        self,
        sender: Address,
        token_identifier: str,
        nonce: int,
        data_marshal: str,
        data_stream: str,
        data_preview: str,
        creator: Address,
        title: str,
        description: str,
        quantity: int = 1,
    ) -> Transaction:
        """Replace the attributes of token ``nonce``; the owner sends it through the minter."""
        payload = ContractCallPayload.esdt_nft_transfer(
            token_identifier,
            nonce,
            quantity,
            self.contract.address,
            "updateAttributes",
            [
                TransactionArgument(data_marshal, TopEncoder.str),
                TransactionArgument(data_stream, TopEncoder.str),
                TransactionArgument(data_preview, TopEncoder.str),
                TransactionArgument(creator, TopEncoder.struct),
                TransactionArgument(title, TopEncoder.str),
                TransactionArgument(description, TopEncoder.str),
            ],
            amount_encoder=TopEncoder.u64,
        )
        return self.contract.transaction(sender, payload, TRANSFER_GAS_LIMIT, receiver=sender)

    def set_local_roles(self, sender: Address) -> Transaction:
        return self.contract.call(sender, "setLocalRoles")

    def set_transfer_role(self, sender: Address, address: Address) -> Transaction:
        return self.contract.call(
            sender, "setTransferRole", [TransactionArgument(address, TopEncoder.struct)]
        )

    def unset_transfer_role(self, sender: Address, address: Address) -> Transaction:
        return self.contract.call(
            sender, "unsetTransferRole", [TransactionArgument(address, TopEncoder.struct)]
        )

    async def view_contract_configuration(self) -> ContractConfiguration:
        return await view_contract_configuration(self.contract)


class Test(unittest.IsolatedAsyncioTestCase):
    def setUp(self):
        self.config = NetworkConfig.for_environment("devnet")
        self.contract_address = Address(b"\x00" * 8 + b"\x05\x00" + b"\x08" * 22)
        self.admin = Address(b"\x01" * 32)

    def minter(self, body=None) -> NftMinter:
        transport = httpx.MockTransport(lambda request: httpx.Response(200, json=body or {}))
        return NftMinter(self.config, self.contract_address.bech32(), transport)

    def test_initialize_contract(self):
        minter = self.minter()
        txn = minter.initialize_contract(self.admin, "Weather", "WTHR", 3600, False)
        self.assertEqual(txn.payload.args, ["Weather", "WTHR", 3600, False])
        self.assertEqual(txn.value, COLLECTION_ISSUE_COST)
        self.assertEqual(txn.receiver, self.contract_address)

        txn = minter.initialize_contract(
            self.admin, "Weather", "WTHR", 3600, True, "ITHEUM-fce905", 100
        )
        self.assertEqual(
            txn.payload.args, ["Weather", "WTHR", 3600, True, "ITHEUM-fce905", 100]
        )
        self.assertTrue(txn.data.endswith(b"@01@" + b"ITHEUM-fce905".hex().encode() + b"@64"))

    def test_update_attributes(self):
        minter = self.minter()
        txn = minter.update_attributes(
            self.admin,
            "NFTLEASE-a1b2c3",
            7,
            "https://marshal.example.com",
            "https://example.com/stream",
            "https://example.com/preview",
            self.admin,
            "Weather readings",
            "Hourly readings",
        )
        self.assertEqual(txn.receiver, self.admin)
        self.assertEqual(txn.gas_limit, TRANSFER_GAS_LIMIT)
        self.assertEqual(txn.payload.function, "ESDTNFTTransfer")
        self.assertEqual(
            txn.payload.args[:5],
            ["NFTLEASE-a1b2c3", 7, 1, self.contract_address, "updateAttributes"],
        )
        self.assertEqual(len(txn.payload.args), 11)

    def test_update_attributes_quantity(self):
        minter = self.minter()
        txn = minter.update_attributes(
            self.admin,
            "NFTLEASE-a1b2c3",
            7,
            "https://marshal.example.com",
            "https://example.com/stream",
            "https://example.com/preview",
            self.admin,
            "Weather readings",
            "Hourly readings",
            quantity=3,
        )
        self.assertEqual(txn.payload.args[2], 3)
        self.assertTrue(
            txn.data.startswith(
                b"ESDTNFTTransfer@" + b"NFTLEASE-a1b2c3".hex().encode() + b"@07@03@"
            )
        )

    def test_roles(self):
        minter = self.minter()
        self.assertEqual(minter.set_local_roles(self.admin).data, b"setLocalRoles")
        self.assertEqual(
            minter.set_transfer_role(self.admin, self.admin).data,
            b"setTransferRole@" + self.admin.hex().encode(),
        )
        self.assertEqual(
            minter.unset_transfer_role(self.admin, self.admin).payload.function,
            "unsetTransferRole",
        )

    async def test_view_contract_configuration(self):
        ser = Serializer()
        ser.str("NFTLEASE-a1b2c3")
        ser.biguint(12)
        ser.bool(True)
        ser.bool(False)
        ser.biguint(5000)
        ser.biguint(0)
        ser.u64(3600)
        ser.bool(True)
        ser.bool(True)
        self.admin.serialize(ser)
        self.admin.serialize(ser)
        minter = self.minter(
            {"returnCode": "ok", "returnData": [base64.b64encode(ser.output()).decode()]}
        )
        config = await minter.view_contract_configuration()
        await minter.close()
        self.assertEqual(config.token_identifier, "NFTLEASE-a1b2c3")
        self.assertEqual(config.minted_tokens, 12)
        self.assertTrue(config.is_tax_required)
        self.assertFalse(config.is_contract_paused)
        self.assertEqual(config.max_royalties, 5000)
        self.assertEqual(config.administrator_address, self.admin.bech32())


if __name__ == "__main__":
    unittest.main()
