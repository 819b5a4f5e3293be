# Copyright © Data NFT SDK Contributors
# SPDX-License-Identifier: Apache-2.0

"""
Unsigned transactions and contract call payloads.

A contract call payload is the function name followed by its top-level
encoded arguments, each rendered as hex and joined with ``@``::

    cancelOffer@2a@01

Three payload shapes are used by the Data NFT contracts:

- **Direct call**: the payload names the contract function and the
  transaction receiver is the contract.
- **Fungible token transfer** (``ESDTTransfer``): the payload first names the
  transferred token and amount, then the contract function and its arguments.
  The receiver is the contract.
- **NFT/SFT transfer** (``ESDTNFTTransfer``): the payload names the token,
  nonce, amount and the destination contract before the function. The
  receiver is the sender itself, the protocol forwards the token.

Examples:
    Building a direct call::

        payload = ContractCallPayload.natural(
            "cancelOffer",
            [
                TransactionArgument(42, TopEncoder.u64),
                TransactionArgument(True, TopEncoder.bool),
            ],
        )
        payload.encode()  # b"cancelOffer@2a@01"
"""

from __future__ import annotations

import base64
import typing
import unittest
from dataclasses import dataclass
from typing import Any, Dict, List

from .address import Address
from .codec import TopEncoder

ESDT_TRANSFER = "ESDTTransfer"
ESDT_NFT_TRANSFER = "ESDTNFTTransfer"

DEFAULT_GAS_PRICE = 1_000_000_000
TRANSACTION_VERSION = 1


class TransactionArgument:
    """A logical argument value together with the encoder that renders it."""

    value: Any
    encoder: typing.Callable[[Any], bytes]

    def __init__(self, value: Any, encoder: typing.Callable[[Any], bytes]):
        self.value = value
        self.encoder = encoder

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, TransactionArgument):
            return NotImplemented
        return self.encode() == other.encode()

    def __repr__(self) -> str:
        return f"TransactionArgument({self.value!r})"

    def encode(self) -> bytes:
        return self.encoder(self.value)


class ContractCallPayload:
    """A function name and its ordered arguments."""

    function: str
    arguments: List[TransactionArgument]

    def __init__(self, function: str, arguments: List[TransactionArgument]):
        self.function = function
        self.arguments = arguments

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, ContractCallPayload):
            return NotImplemented
        return self.encode() == other.encode()

    def __str__(self) -> str:
        return self.encode().decode()

    @staticmethod
    def natural(
        function: str, arguments: typing.Optional[List[TransactionArgument]] = None
    ) -> ContractCallPayload:
        return ContractCallPayload(function, list(arguments or []))

    @staticmethod
    def esdt_transfer(
        token_identifier: str,
        amount: int,
        function: str,
        arguments: List[TransactionArgument],
    ) -> ContractCallPayload:
        """Wrap a contract call in a fungible token transfer."""
        return ContractCallPayload(
            ESDT_TRANSFER,
            [
                TransactionArgument(token_identifier, TopEncoder.str),
                TransactionArgument(int(amount), TopEncoder.biguint),
                TransactionArgument(function, TopEncoder.str),
            ]
            + arguments,
        )

    @staticmethod
    def esdt_nft_transfer(
        token_identifier: str,
        nonce: int,
        amount: int,
        destination: Address,
        function: str,
        arguments: List[TransactionArgument],
        amount_encoder: typing.Callable[[Any], bytes] = TopEncoder.biguint,
    ) -> ContractCallPayload:
        """Wrap a contract call in an NFT/SFT transfer addressed to ``destination``."""
        return ContractCallPayload(
            ESDT_NFT_TRANSFER,
            [
                TransactionArgument(token_identifier, TopEncoder.str),
                TransactionArgument(nonce, TopEncoder.u64),
                TransactionArgument(int(amount), amount_encoder),
                TransactionArgument(destination, TopEncoder.struct),
                TransactionArgument(function, TopEncoder.str),
            ]
            + arguments,
        )

    @property
    def args(self) -> List[Any]:
        """The logical argument values, in payload order."""
        return [arg.value for arg in self.arguments]

    def encode(self) -> bytes:
        parts = [self.function] + [arg.encode().hex() for arg in self.arguments]
        return "@".join(parts).encode()


@dataclass(frozen=True)
class Transaction:
    """An unsigned transaction, ready for the caller to sign and broadcast.

    Attributes:
        sender: Account paying for and signing the transaction.
        receiver: Contract for direct and fungible-transfer calls, the sender
            itself for NFT/SFT transfers.
        gas_limit: Maximum gas the transaction may consume.
        chain_id: Chain identifier the signature is bound to.
        payload: The function call carried in the data field.
        value: Native currency amount in its smallest unit.
    """

    sender: Address
    receiver: Address
    gas_limit: int
    chain_id: str
    payload: ContractCallPayload
    value: int = 0
    nonce: int = 0
    gas_price: int = DEFAULT_GAS_PRICE
    version: int = TRANSACTION_VERSION

    @property
    def data(self) -> bytes:
        return self.payload.encode()

    def to_dict(self) -> Dict[str, Any]:
        """The JSON shape accepted by the chain API, without a signature."""
        return {
            "nonce": self.nonce,
            "value": str(self.value),
            "receiver": self.receiver.bech32(),
            "sender": self.sender.bech32(),
            "gasPrice": self.gas_price,
            "gasLimit": self.gas_limit,
            "data": base64.b64encode(self.data).decode(),
            "chainID": self.chain_id,
            "version": self.version,
        }


class Test(unittest.TestCase):
    def setUp(self):
        self.contract = Address(b"\x00" * 8 + b"\x05\x00" + b"\x01" * 22)
        self.sender = Address(b"\x02" * 32)

    def test_direct_call_encoding(self):
        payload = ContractCallPayload.natural(
            "cancelOffer",
            [
                TransactionArgument(42, TopEncoder.u64),
                TransactionArgument(False, TopEncoder.bool),
            ],
        )
        self.assertEqual(payload.encode(), b"cancelOffer@2a@")
        self.assertEqual(payload.args, [42, False])

    def test_call_without_arguments(self):
        self.assertEqual(ContractCallPayload.natural("pause").encode(), b"pause")

    def test_esdt_transfer(self):
        payload = ContractCallPayload.esdt_transfer(
            "ITHEUM-a1b2c3", 256, "acceptOffer", [TransactionArgument(1, TopEncoder.u64)]
        )
        self.assertEqual(
            payload.encode(),
            b"ESDTTransfer@"
            + "ITHEUM-a1b2c3".encode().hex().encode()
            + b"@0100@"
            + b"acceptOffer".hex().encode()
            + b"@01",
        )

    def test_esdt_nft_transfer(self):
        payload = ContractCallPayload.esdt_nft_transfer(
            "DATA-X", 5, 1, self.contract, "burn", []
        )
        self.assertEqual(payload.function, ESDT_NFT_TRANSFER)
        self.assertEqual(payload.args, ["DATA-X", 5, 1, self.contract, "burn"])
        self.assertIn(self.contract.hex().encode(), payload.encode())

    def test_to_dict(self):
        txn = Transaction(
            sender=self.sender,
            receiver=self.contract,
            gas_limit=10_000_000,
            chain_id="D",
            payload=ContractCallPayload.natural("pause"),
            value=5,
        )
        body = txn.to_dict()
        self.assertEqual(body["value"], "5")
        self.assertEqual(body["data"], base64.b64encode(b"pause").decode())
        self.assertEqual(body["receiver"], self.contract.bech32())
        self.assertEqual(body["chainID"], "D")


if __name__ == "__main__":
    unittest.main()
