# Copyright © Data NFT SDK Contributors
# SPDX-License-Identifier: Apache-2.0

"""
Account and contract addresses.

An address is a 32-byte public key (for user accounts) or a 32-byte contract
identifier (for smart contracts). Users see addresses in their bech32 form
with the ``erd`` human readable part, for example
``erd1qyu5wthldzr8wx5c9ucg8kjagg0jfs53s8nr3zpz3hypefsdd8ssycr6th``. Contract
calls and the Data Marshal use the raw bytes or their hex form.

Smart contract addresses start with eight zero bytes, which makes them easy to
tell apart from user accounts.

Examples:
    Parsing and formatting::

        from datanft_sdk.address import Address

        addr = Address.from_bech32(
            "erd1qyu5wthldzr8wx5c9ucg8kjagg0jfs53s8nr3zpz3hypefsdd8ssycr6th"
        )
        addr.hex()         # "0139472eff...0d69e1"
        addr.bech32()      # back to the erd1... form
        Address.from_str(addr.hex()) == addr  # True
"""

from __future__ import annotations

import unittest

import bech32

from .codec import Deserializer, Serializer

HRP = "erd"


class ParseAddressError(Exception):
    """Raised when a string or byte sequence is not a valid address."""


class Address:
    """A 32-byte account or contract address.

    Attributes:
        address: The raw 32 bytes.
        hrp: Human readable part used when rendering bech32.
    """

    address: bytes
    hrp: str
    LENGTH: int = 32

    def __init__(self, address: bytes, hrp: str = HRP):
        if len(address) != Address.LENGTH:
            raise ParseAddressError(
                f"Expected address of length {Address.LENGTH}, got {len(address)}"
            )
        self.address = address
        self.hrp = hrp

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Address):
            return NotImplemented
        return self.address == other.address

    def __hash__(self) -> int:
        return hash(self.address)

    def __str__(self):
        return self.bech32()

    def __repr__(self):
        return f"Address({self.bech32()})"

    def bech32(self) -> str:
        """Render the address in its bech32 (``erd1...``) form."""
        words = bech32.convertbits(self.address, 8, 5)
        return bech32.bech32_encode(self.hrp, words)

    def hex(self) -> str:
        """Render the address as 64 lowercase hex characters, without a prefix."""
        return self.address.hex()

    def is_smart_contract(self) -> bool:
        return self.address[:8] == b"\x00" * 8

    @staticmethod
    def from_bech32(value: str) -> Address:
        """Parse a bech32 address, verifying its checksum.

        Raises:
            ParseAddressError: If the checksum, the human readable part or the
                decoded length is wrong.
        """
        hrp, words = bech32.bech32_decode(value)
        if hrp is None or words is None:
            raise ParseAddressError(f"Invalid bech32 address: {value}")
        if hrp != HRP:
            raise ParseAddressError(f"Unexpected address prefix '{hrp}' in {value}")
        data = bech32.convertbits(words, 5, 8, False)
        if data is None:
            raise ParseAddressError(f"Invalid bech32 payload: {value}")
        return Address(bytes(data), hrp)

    @staticmethod
    def from_hex(value: str) -> Address:
        value = value[2:] if value.startswith("0x") else value
        try:
            return Address(bytes.fromhex(value))
        except ValueError as e:
            raise ParseAddressError(f"Invalid hex address: {value}") from e

    @staticmethod
    def from_str(value: str) -> Address:
        """Parse either a bech32 or a hex address."""
        if value.startswith(HRP + "1"):
            return Address.from_bech32(value)
        return Address.from_hex(value)

    @staticmethod
    def deserialize(deserializer: Deserializer) -> Address:
        return Address(deserializer.fixed_bytes(Address.LENGTH))

    def serialize(self, serializer: Serializer):
        serializer.fixed_bytes(self.address)


class Test(unittest.TestCase):
    ALICE_BECH32 = "erd1qyu5wthldzr8wx5c9ucg8kjagg0jfs53s8nr3zpz3hypefsdd8ssycr6th"
    ALICE_HEX = "0139472eff6886771a982f3083da5d421f24c29181e63888228dc81ca60d69e1"

    def test_bech32_to_hex(self):
        addr = Address.from_bech32(self.ALICE_BECH32)
        self.assertEqual(addr.hex(), self.ALICE_HEX)
        self.assertEqual(Address.from_hex(self.ALICE_HEX).bech32(), self.ALICE_BECH32)

    def test_from_str(self):
        self.assertEqual(
            Address.from_str(self.ALICE_BECH32), Address.from_str("0x" + self.ALICE_HEX)
        )

    def test_bad_checksum(self):
        broken = self.ALICE_BECH32[:-1] + ("q" if self.ALICE_BECH32[-1] != "q" else "p")
        with self.assertRaises(ParseAddressError):
            Address.from_bech32(broken)

    def test_wrong_length(self):
        with self.assertRaises(ParseAddressError):
            Address(b"\x01" * 31)
        with self.assertRaises(ParseAddressError):
            Address.from_hex("zz")

    def test_smart_contract(self):
        contract = Address(b"\x00" * 8 + b"\x05\x00" + b"\x11" * 22)
        self.assertTrue(contract.is_smart_contract())
        self.assertFalse(Address.from_hex(self.ALICE_HEX).is_smart_contract())
        self.assertTrue(contract.bech32().startswith("erd1qqqqqqqqqqqqq"))

    def test_serialize(self):
        addr = Address.from_hex(self.ALICE_HEX)
        ser = Serializer()
        addr.serialize(ser)
        self.assertEqual(ser.output(), bytes.fromhex(self.ALICE_HEX))
        self.assertEqual(Address.deserialize(Deserializer(ser.output())), addr)


if __name__ == "__main__":
    unittest.main()
