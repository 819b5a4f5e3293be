# Copyright © Data NFT SDK Contributors
# SPDX-License-Identifier: Apache-2.0

"""
The Data NFT marketplace: listing, buying and managing offers.

Every transaction method returns an unsigned :class:`Transaction` for the
caller to sign and send. Listing transfers the Data NFT to the marketplace,
so :meth:`DataNftMarket.add_offer` is an ``ESDTNFTTransfer`` sent to the
seller's own address; buying with a token is an ``ESDTTransfer`` to the
marketplace; buying with EGLD carries the price as the transaction value.

Examples:
    Listing 5 units of a Data NFT for 100 ITHEUM each and reading it back::

        market = DataNftMarket(NetworkConfig.for_environment("devnet"))
        txn = market.add_offer(
            seller, "DATANFTFT-e0b917", 62, 5, "ITHEUM-fce905", 0, 100 * 10**18
        )
        # sign and send txn, then
        offers = await market.view_address_listed_offers(seller)
        await market.close()
"""

import base64
import json
import unittest
from typing import List, Optional

import httpx

from .abi import MARKETPLACE_ABI, AbiRegistry
from .address import Address
from .codec import Serializer, TopEncoder
from .config import NetworkConfig
from .contract import ContractClient
from .errors import ContractQueryError, NetworkConfigError
from .network_provider import ApiNetworkProvider
from .parsers import (
    MarketplaceRequirements,
    Offer,
    parse_indexed_offer,
    parse_marketplace_requirements,
    parse_offer,
)
from .transactions import ContractCallPayload, Transaction, TransactionArgument

OFFER_GAS_LIMIT = 12_000_000
MANAGE_GAS_LIMIT = 10_000_000


def _u64(value: int) -> TransactionArgument:
    return TransactionArgument(value, TopEncoder.u64)


def _biguint(value: int) -> TransactionArgument:
    return TransactionArgument(value, TopEncoder.biguint)


class DataNftMarket:
    config: NetworkConfig
    contract: ContractClient

    def __init__(
        self,
        config: NetworkConfig,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        if not config.marketplace_contract_address:
            raise NetworkConfigError(
                f"No marketplace contract address for {config.environment.value}"
            )
        self.config = config
        self.contract = ContractClient(
            Address.from_str(config.marketplace_contract_address),
            AbiRegistry.load(MARKETPLACE_ABI),
            config.chain_id,
            ApiNetworkProvider.from_config(config, transport),
        )

    async def close(self):
        await self.contract.close()

    def get_contract_address(self) -> Address:
        return self.contract.address

    # Queries

    async def view_address_listed_offers(self, address: Address) -> List[Offer]:
        [offers] = await self.contract.query(
            "viewUserListedOffers",
            [TransactionArgument(address, TopEncoder.struct)],
            operation="view_address_listed_offers",
        )
        return [parse_offer(offer) for offer in offers]

    async def view_address_paged_offers(
        self, from_index: int, to_index: int, address: Address
    ) -> List[Offer]:
        """Offers of ``address`` with indexes in ``[from_index, to_index]``."""
        [offers] = await self.contract.query(
            "viewUserPagedOffers",
            [_u64(from_index), _u64(to_index), TransactionArgument(address, TopEncoder.struct)],
            operation="view_address_paged_offers",
        )
        return [parse_offer(offer) for offer in offers]

    async def view_address_total_offers(self, address: Address) -> int:
        return await self.contract.query_single(
            "viewUserTotalOffers",
            [TransactionArgument(address, TopEncoder.struct)],
            operation="view_address_total_offers",
        )

    async def view_address_cancelled_offers(self, address: Address) -> List[Offer]:
        """Offers of ``address`` that were cancelled but whose tokens were not withdrawn."""
        [offers] = await self.contract.query(
            "viewCancelledOffers",
            [TransactionArgument(address, TopEncoder.struct)],
            operation="view_address_cancelled_offers",
        )
        return [parse_offer(offer) for offer in offers]

    async def view_paged_offers(self, from_index: int, to_index: int) -> List[Offer]:
        [offers] = await self.contract.query(
            "viewPagedOffers",
            [_u64(from_index), _u64(to_index)],
            operation="view_paged_offers",
        )
        return [parse_offer(offer) for offer in offers]

    async def view_offers(self) -> List[Offer]:
        """Every open offer on the marketplace."""
        [entries] = await self.contract.query("getOffers", operation="view_offers")
        return [parse_indexed_offer(entry) for entry in entries]

    async def view_requirements(self) -> MarketplaceRequirements:
        value = await self.contract.query_single(
            "viewRequirements", operation="view_requirements"
        )
        return parse_marketplace_requirements(value)

    async def view_number_of_offers(self) -> int:
        return await self.contract.query_single(
            "viewNumberOfOffers", operation="view_number_of_offers"
        )

    async def view_last_valid_offer_id(self) -> int:
        return await self.contract.query_single(
            "getLastValidOfferId", operation="view_last_valid_offer_id"
        )

    async def view_contract_pause_state(self) -> bool:
        return await self.contract.query_single(
            "getIsPaused", operation="view_contract_pause_state"
        )

    # Transactions

    def add_offer(
        self,
        sender: Address,
        data_nft_identifier: str,
        data_nft_nonce: int,
        data_nft_amount: int,
        payment_token_identifier: str,
        payment_token_nonce: int,
        payment_token_amount: int,
        minimum_payment_token_amount: int = 0,
    ) -> Transaction:
        """
        List ``data_nft_amount`` units of a Data NFT.

        :param payment_token_amount: Price of one unit, in the smallest unit
            of the payment token.
        :param minimum_payment_token_amount: Lowest amount the seller accepts
            to receive after fees.
        """
        payload = ContractCallPayload.esdt_nft_transfer(
            data_nft_identifier,
            data_nft_nonce,
            data_nft_amount,
            self.contract.address,
            "addOffer",
            [
                TransactionArgument(payment_token_identifier, TopEncoder.str),
                _u64(payment_token_nonce),
                _biguint(payment_token_amount),
                _biguint(minimum_payment_token_amount),
                _biguint(data_nft_amount),
            ],
        )
        return self.contract.transaction(sender, payload, OFFER_GAS_LIMIT, receiver=sender)

    def accept_offer_with_esdt(
        self,
        sender: Address,
        offer_id: int,
        amount: int,
        price: int,
        payment_token_identifier: Optional[str] = None,
    ) -> Transaction:
        """
        Buy ``amount`` units of offer ``offer_id``, paying ``price`` in a fungible token.

        :param payment_token_identifier: Defaults to the network's ITHEUM token.
        """
        payload = ContractCallPayload.esdt_transfer(
            payment_token_identifier or self.config.itheum_token_identifier,
            price,
            "acceptOffer",
            [_u64(offer_id), _biguint(amount)],
        )
        return self.contract.transaction(sender, payload, OFFER_GAS_LIMIT)

    def accept_offer_with_egld(
        self, sender: Address, offer_id: int, amount: int, price: int
    ) -> Transaction:
        return self.contract.call(
            sender,
            "acceptOffer",
            [_u64(offer_id), _biguint(amount)],
            OFFER_GAS_LIMIT,
            value=price,
        )

    def accept_offer_with_no_payment(
        self, sender: Address, offer_id: int, amount: int
    ) -> Transaction:
        """Take units of a free offer."""
        return self.contract.call(
            sender, "acceptOffer", [_u64(offer_id), _biguint(amount)], OFFER_GAS_LIMIT
        )

    def cancel_offer(
        self, sender: Address, offer_id: int, send_funds_back_to_owner: bool = True
    ) -> Transaction:
        """
        Cancel an offer. Without ``send_funds_back_to_owner`` the tokens stay
        in the marketplace until :meth:`withdraw_cancelled_offer`.
        """
        return self.contract.call(
            sender,
            "cancelOffer",
            [_u64(offer_id), TransactionArgument(send_funds_back_to_owner, TopEncoder.bool)],
            MANAGE_GAS_LIMIT,
        )

    def change_offer_price(
        self,
        sender: Address,
        offer_id: int,
        new_price: int,
        new_minimum_payment_token_amount: int = 0,
    ) -> Transaction:
        return self.contract.call(
            sender,
            "changeOfferPrice",
            [_u64(offer_id), _biguint(new_price), _biguint(new_minimum_payment_token_amount)],
            MANAGE_GAS_LIMIT,
        )

    def withdraw_cancelled_offer(self, sender: Address, offer_id: int) -> Transaction:
        return self.contract.call(
            sender, "withdrawCancelledOffer", [_u64(offer_id)], OFFER_GAS_LIMIT
        )


class Test(unittest.IsolatedAsyncioTestCase):
    def setUp(self):
        self.contract_address = Address(b"\x00" * 8 + b"\x05\x00" + b"\x0a" * 22)
        self.config = NetworkConfig.for_environment(
            "devnet", marketplace_contract_address=self.contract_address.bech32()
        )
        self.seller = Address(b"\x0b" * 32)
        self.buyer = Address(b"\x0c" * 32)
        self.requests: List[httpx.Request] = []

    def market(self, return_data=None, return_code="ok") -> DataNftMarket:
        def handler(request: httpx.Request) -> httpx.Response:
            self.requests.append(request)
            parts = [base64.b64encode(part).decode() for part in return_data or []]
            return httpx.Response(200, json={"returnCode": return_code, "returnData": parts})

        return DataNftMarket(self.config, transport=httpx.MockTransport(handler))

    def offer_out(self, index: int) -> bytes:
        ser = Serializer()
        ser.u64(index)
        self.seller.serialize(ser)
        ser.str("DATANFTFT-e0b917")
        ser.u64(62)
        ser.biguint(1)
        ser.str("ITHEUM-fce905")
        ser.u64(0)
        ser.biguint(10**18)
        ser.biguint(5)
        return ser.output()

    def offer(self) -> bytes:
        return self.offer_out(0)[8:]

    def test_add_offer(self):
        market = self.market()
        txn = market.add_offer(self.seller, "DATA-X", 0, 1, "USDC-1", 0, 100, 50)
        self.assertEqual(txn.sender, self.seller)
        self.assertEqual(txn.receiver, self.seller)
        self.assertEqual(txn.gas_limit, OFFER_GAS_LIMIT)
        self.assertEqual(txn.value, 0)
        self.assertEqual(txn.payload.function, "ESDTNFTTransfer")
        self.assertEqual(
            txn.payload.args,
            ["DATA-X", 0, 1, self.contract_address, "addOffer", "USDC-1", 0, 100, 50, 1],
        )
        self.assertEqual(
            txn.data,
            b"ESDTNFTTransfer@"
            + b"DATA-X".hex().encode()
            + b"@@01@"
            + self.contract_address.hex().encode()
            + b"@"
            + b"addOffer".hex().encode()
            + b"@"
            + b"USDC-1".hex().encode()
            + b"@@64@32@01",
        )

    def test_accept_offer(self):
        market = self.market()
        txn = market.accept_offer_with_esdt(self.buyer, 3, 2, 200)
        self.assertEqual(txn.receiver, self.contract_address)
        self.assertEqual(txn.payload.function, "ESDTTransfer")
        self.assertEqual(txn.payload.args, ["ITHEUM-fce905", 200, "acceptOffer", 3, 2])

        txn = market.accept_offer_with_egld(self.buyer, 3, 2, 200)
        self.assertEqual(txn.data, b"acceptOffer@03@02")
        self.assertEqual(txn.value, 200)

        txn = market.accept_offer_with_no_payment(self.buyer, 3, 2)
        self.assertEqual(txn.data, b"acceptOffer@03@02")
        self.assertEqual(txn.value, 0)

    def test_manage_offer(self):
        market = self.market()
        txn = market.cancel_offer(self.seller, 42)
        self.assertEqual(txn.data, b"cancelOffer@2a@01")
        self.assertEqual(txn.gas_limit, MANAGE_GAS_LIMIT)
        self.assertEqual(market.cancel_offer(self.seller, 42, False).data, b"cancelOffer@2a@")
        self.assertEqual(
            market.change_offer_price(self.seller, 42, 1000).data,
            b"changeOfferPrice@2a@03e8@",
        )
        txn = market.withdraw_cancelled_offer(self.seller, 42)
        self.assertEqual(txn.data, b"withdrawCancelledOffer@2a")
        self.assertEqual(txn.gas_limit, OFFER_GAS_LIMIT)

    def test_transaction_json(self):
        txn = self.market().cancel_offer(self.seller, 1)
        body = json.loads(json.dumps(txn.to_dict()))
        self.assertEqual(body["receiver"], self.contract_address.bech32())
        self.assertEqual(body["chainID"], "D")

    async def test_view_paged_offers(self):
        market = self.market([self.offer_out(4) + self.offer_out(5)])
        offers = await market.view_paged_offers(0, 10)
        await market.close()
        self.assertEqual([offer.index for offer in offers], [4, 5])
        self.assertEqual(offers[0].owner, self.seller.bech32())
        self.assertEqual(offers[0].wanted_token_amount, str(10**18))
        body = json.loads(self.requests[0].content)
        self.assertEqual(body["funcName"], "viewPagedOffers")
        self.assertEqual(body["args"], ["", "0a"])

    async def test_view_address_listed_offers(self):
        market = self.market([self.offer_out(1), self.offer_out(2)])
        offers = await market.view_address_listed_offers(self.seller)
        await market.close()
        self.assertEqual(len(offers), 2)
        self.assertEqual(offers[1].quantity, 5)

    async def test_view_offers(self):
        market = self.market([b"\x07", self.offer(), b"\x09", self.offer()])
        offers = await market.view_offers()
        await market.close()
        self.assertEqual([offer.index for offer in offers], [7, 9])

    async def test_view_counters(self):
        market = self.market([b"\x03"])
        self.assertEqual(await market.view_number_of_offers(), 3)
        self.assertEqual(await market.view_last_valid_offer_id(), 3)
        self.assertEqual(await market.view_address_total_offers(self.seller), 3)
        await market.close()

        market = self.market([b"\x01"])
        self.assertTrue(await market.view_contract_pause_state())
        await market.close()

    async def test_view_requirements(self):
        ser = Serializer()
        ser.sequence(["DATANFTFT-e0b917"], Serializer.str)
        ser.sequence(["ITHEUM-fce905", "EGLD"], Serializer.str)
        ser.sequence([10**21, 0], Serializer.biguint)
        ser.u64(0)
        ser.u64(0)
        ser.u64(200)
        ser.u64(200)
        market = self.market([ser.output()])
        requirements = await market.view_requirements()
        await market.close()
        self.assertEqual(requirements.accepted_payments, ["ITHEUM-fce905", "EGLD"])
        self.assertEqual(requirements.maximum_payment_fees, [str(10**21), "0"])
        self.assertEqual(requirements.buyer_tax_percentage, 200)

    async def test_query_failure(self):
        market = self.market(return_code="function not found")
        with self.assertRaises(ContractQueryError) as ctx:
            await market.view_requirements()
        await market.close()
        self.assertEqual(ctx.exception.method, "view_requirements")

    def test_missing_contract_address(self):
        with self.assertRaises(NetworkConfigError):
            DataNftMarket(NetworkConfig.for_environment("testnet"))


if __name__ == "__main__":
    unittest.main()
