# Copyright © Data NFT SDK Contributors
# SPDX-License-Identifier: Apache-2.0

"""
Domain records built from decoded contract query results.

The ABI decoder yields plain Python values (dicts for structs, :class:`Address`
for addresses, ints for numbers). The functions here map those values onto
the records the SDK returns:

- indexes, nonces, quantities and counters become ``int``
- owners and configured addresses become bech32 strings
- token amounts in offers and fee caps stay decimal strings so that callers
  serialising them to JSON never lose precision

Examples:
    Turning a decoded ``OfferOut`` into an :class:`Offer`::

        [values] = await contract.query("viewPagedOffers", args)
        offers = [parse_offer(value) for value in values]
        offers[0].offered_token_amount  # "1000000000000000000"
"""

import unittest
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple

from .address import Address


@dataclass(frozen=True)
class Offer:
    """A marketplace listing, as stored on chain when it was queried."""

    index: int
    owner: str
    offered_token_identifier: str
    offered_token_nonce: int
    offered_token_amount: str
    wanted_token_identifier: str
    wanted_token_nonce: int
    wanted_token_amount: str
    quantity: int


@dataclass(frozen=True)
class MarketplaceRequirements:
    accepted_tokens: List[str]
    accepted_payments: List[str]
    maximum_payment_fees: List[str]
    buyer_tax_percentage_discount: int
    seller_tax_percentage_discount: int
    buyer_tax_percentage: int
    seller_tax_percentage: int


@dataclass(frozen=True)
class MinterRequirements:
    """Minting eligibility of one address.

    ``last_user_mint_time`` and ``mint_time_limit`` are in seconds.
    """

    anti_spam_tax_value: int
    contract_paused: bool
    max_royalties: int
    min_royalties: int
    max_supply: int
    mint_time_limit: int
    last_user_mint_time: int
    user_whitelisted_for_mint: bool
    contract_whitelist_enabled: bool
    number_of_mints_for_user: int
    total_number_of_mints: int
    address_frozen: bool
    frozen_nonces: List[int] = field(default_factory=list)


@dataclass(frozen=True)
class ContractConfiguration:
    token_identifier: str
    minted_tokens: int
    is_tax_required: bool
    is_contract_paused: bool
    max_royalties: int
    min_royalties: int
    mint_time_limit: int
    is_whitelist_enabled: bool
    roles_are_set: bool
    claims_address: str
    administrator_address: str


def _bech32(value: Any) -> str:
    if isinstance(value, Address):
        return value.bech32()
    return str(value)


def parse_offer(value: Dict[str, Any], index: Optional[int] = None) -> Offer:
    """Build an :class:`Offer` from a decoded ``OfferOut`` (or ``Offer`` plus ``index``)."""
    offered = value["offered_token"]
    wanted = value["wanted_token"]
    return Offer(
        index=int(value["index"] if index is None else index),
        owner=_bech32(value["owner"]),
        offered_token_identifier=str(offered["token_identifier"]),
        offered_token_nonce=int(offered["token_nonce"]),
        offered_token_amount=str(offered["amount"]),
        wanted_token_identifier=str(wanted["token_identifier"]),
        wanted_token_nonce=int(wanted["token_nonce"]),
        wanted_token_amount=str(wanted["amount"]),
        quantity=int(value["quantity"]),
    )


def parse_indexed_offer(entry: Tuple[int, Dict[str, Any]]) -> Offer:
    """Build an :class:`Offer` from an ``(index, Offer)`` pair as returned by ``getOffers``."""
    index, value = entry
    return parse_offer(value, index=index)


def parse_marketplace_requirements(value: Dict[str, Any]) -> MarketplaceRequirements:
    return MarketplaceRequirements(
        accepted_tokens=[str(token) for token in value["accepted_tokens"]],
        accepted_payments=[str(token) for token in value["accepted_payments"]],
        maximum_payment_fees=[str(fee) for fee in value["maximum_payment_fees"]],
        buyer_tax_percentage_discount=int(value["discount_fee_percentage_buyer"]),
        seller_tax_percentage_discount=int(value["discount_fee_percentage_seller"]),
        buyer_tax_percentage=int(value["percentage_cut_from_buyer"]),
        seller_tax_percentage=int(value["percentage_cut_from_seller"]),
    )


def parse_minter_requirements(value: Dict[str, Any]) -> MinterRequirements:
    return MinterRequirements(
        anti_spam_tax_value=int(value["anti_spam_tax_value"]),
        contract_paused=bool(value["is_paused"]),
        max_royalties=int(value["max_royalties"]),
        min_royalties=int(value["min_royalties"]),
        max_supply=int(value["max_supply"]),
        mint_time_limit=int(value["mint_time_limit"]),
        last_user_mint_time=int(value["last_mint_time"]),
        user_whitelisted_for_mint=bool(value["is_whitelisted"]),
        contract_whitelist_enabled=bool(value["whitelist_enabled"]),
        number_of_mints_for_user=int(value["minted_per_user"]),
        total_number_of_mints=int(value["total_minted"]),
        address_frozen=bool(value["frozen"]),
        frozen_nonces=[int(nonce) for nonce in value["frozen_nonces"]],
    )


def parse_contract_configuration(value: Dict[str, Any]) -> ContractConfiguration:
    return ContractConfiguration(
        token_identifier=str(value["token_identifier"]),
        minted_tokens=int(value["minted_tokens"]),
        is_tax_required=bool(value["tax_required"]),
        is_contract_paused=bool(value["is_paused"]),
        max_royalties=int(value["max_royalties"]),
        min_royalties=int(value["min_royalties"]),
        mint_time_limit=int(value["mint_time_limit"]),
        is_whitelist_enabled=bool(value["is_whitelist_enabled"]),
        roles_are_set=bool(value["roles_are_set"]),
        claims_address=_bech32(value["claims_address"]),
        administrator_address=_bech32(value["administrator_address"]),
    )


class Test(unittest.TestCase):
    def setUp(self):
        self.owner = Address(b"\x07" * 32)
        self.offer = {
            "owner": self.owner,
            "offered_token": {
                "token_identifier": "DATANFTFT-e0b917",
                "token_nonce": 12,
                "amount": 3,
            },
            "wanted_token": {
                "token_identifier": "ITHEUM-fce905",
                "token_nonce": 0,
                "amount": 123456789012345678901234567890,
            },
            "quantity": 2,
        }

    def test_offer(self):
        offer = parse_offer(dict(self.offer, index=9))
        self.assertEqual(offer.index, 9)
        self.assertEqual(offer.owner, self.owner.bech32())
        self.assertEqual(offer.offered_token_nonce, 12)
        self.assertEqual(offer.offered_token_amount, "3")
        self.assertEqual(offer.wanted_token_amount, "123456789012345678901234567890")
        self.assertEqual(offer.quantity, 2)

    def test_indexed_offer(self):
        offers = [parse_indexed_offer((i, self.offer)) for i in (4, 5, 6)]
        self.assertEqual([offer.index for offer in offers], [4, 5, 6])
        self.assertEqual(offers[0], parse_offer(dict(self.offer, index=4)))

    def test_marketplace_requirements(self):
        requirements = parse_marketplace_requirements(
            {
                "accepted_tokens": ["DATANFTFT-e0b917"],
                "accepted_payments": ["ITHEUM-fce905", "EGLD"],
                "maximum_payment_fees": [10**24, 0],
                "discount_fee_percentage_buyer": 0,
                "discount_fee_percentage_seller": 50,
                "percentage_cut_from_buyer": 200,
                "percentage_cut_from_seller": 200,
            }
        )
        self.assertEqual(requirements.accepted_payments, ["ITHEUM-fce905", "EGLD"])
        self.assertEqual(requirements.maximum_payment_fees, [str(10**24), "0"])
        self.assertEqual(requirements.seller_tax_percentage_discount, 50)
        self.assertEqual(requirements.buyer_tax_percentage, 200)

    def test_minter_requirements(self):
        requirements = parse_minter_requirements(
            {
                "anti_spam_tax_value": 10**18,
                "is_paused": False,
                "max_royalties": 8000,
                "min_royalties": 0,
                "max_supply": 20,
                "mint_time_limit": 120,
                "last_mint_time": 1_690_000_000,
                "whitelist_enabled": True,
                "is_whitelisted": True,
                "minted_per_user": 3,
                "total_minted": 300,
                "frozen": False,
                "frozen_nonces": [4, 7],
            }
        )
        self.assertEqual(requirements.anti_spam_tax_value, 10**18)
        self.assertTrue(requirements.user_whitelisted_for_mint)
        self.assertEqual(requirements.frozen_nonces, [4, 7])

    def test_contract_configuration(self):
        admin = Address(b"\x08" * 32)
        config = parse_contract_configuration(
            {
                "token_identifier": "DNFTPHR-a1b2c3",
                "minted_tokens": 5,
                "tax_required": True,
                "is_paused": False,
                "max_royalties": 5000,
                "min_royalties": 0,
                "mint_time_limit": 0,
                "is_whitelist_enabled": False,
                "roles_are_set": True,
                "claims_address": self.owner,
                "administrator_address": admin,
            }
        )
        self.assertTrue(config.is_tax_required)
        self.assertEqual(config.claims_address, self.owner.bech32())
        self.assertEqual(config.administrator_address, admin.bech32())


if __name__ == "__main__":
    unittest.main()
