# Copyright © Data NFT SDK Contributors
# SPDX-License-Identifier: Apache-2.0

"""
Contract ABI registry and typed decoding of query results.

The marketplace and minter contracts publish JSON ABIs describing their
endpoints and the structs they return. A query returns a list of raw byte
parts; this module uses the ABI output types to turn those parts into Python
values:

=============================================  =============================
ABI type                                       Python value
=============================================  =============================
``u8`` ``u16`` ``u32`` ``u64`` ``BigUint``     ``int``
``bool``                                       ``bool``
``Address``                                    :class:`Address`
``TokenIdentifier`` ``EgldOrEsdtTokenIdentifier``  ``str``
``bytes``                                      ``bytes``
``List<T>``                                    ``list``
``Option<T>``                                  value or ``None``
``tuple<A,B>`` ``multi<A,B>``                  ``tuple``
struct                                         ``dict`` keyed by field name
=============================================  =============================

``variadic<T>`` and ``optional<T>`` outputs are spread over the remaining
return parts, one part per item (or one part per ``multi`` member).

Examples:
    Decoding the marketplace offer listing::

        from datanft_sdk.abi import AbiRegistry

        abi = AbiRegistry.load("data_market.abi.json")
        [offers] = abi.decode_outputs("viewPagedOffers", return_parts)
        offers[0]["owner"]          # Address(erd1...)
        offers[0]["quantity"]       # 3
"""

from __future__ import annotations

import json
import os
import typing
import unittest
from dataclasses import dataclass
from typing import Any, Dict, List, Tuple

from .address import Address, ParseAddressError
from .codec import CodecError, Deserializer, Serializer, TopDecoder

ABI_DIRECTORY = os.path.join(os.path.dirname(__file__), "abis")

MARKETPLACE_ABI = "data_market.abi.json"
SFT_MINTER_ABI = "datanftmint.abi.json"
NFT_MINTER_ABI = "data-nft-lease.abi.json"

NESTED_INTEGERS = {
    "u8": Deserializer.u8,
    "u16": Deserializer.u16,
    "u32": Deserializer.u32,
    "u64": Deserializer.u64,
}
TOKEN_TYPES = {"TokenIdentifier", "EgldOrEsdtTokenIdentifier"}


class AbiError(Exception):
    """Raised for unknown endpoints, unknown types or undecodable results."""


@dataclass(frozen=True)
class TypeExpr:
    """A parsed ABI type expression such as ``List<OfferOut>``."""

    name: str
    args: Tuple[TypeExpr, ...] = ()

    def __str__(self) -> str:
        if not self.args:
            return self.name
        return f"{self.name}<{','.join(str(arg) for arg in self.args)}>"


def parse_type(expression: str) -> TypeExpr:
    """Parse an ABI type expression.

    Raises:
        AbiError: If the expression is not well formed.
    """
    type_expr, rest = _parse_type(expression.replace(" ", ""))
    if rest:
        raise AbiError(f"Unexpected trailing input '{rest}' in type '{expression}'")
    return type_expr


def _parse_type(text: str) -> Tuple[TypeExpr, str]:
    end = 0
    while end < len(text) and text[end] not in "<>,":
        end += 1
    name, rest = text[:end], text[end:]
    if not name:
        raise AbiError(f"Missing type name at '{text}'")
    if not rest.startswith("<"):
        return TypeExpr(name), rest

    args: List[TypeExpr] = []
    rest = rest[1:]
    while True:
        arg, rest = _parse_type(rest)
        args.append(arg)
        if rest.startswith(","):
            rest = rest[1:]
        elif rest.startswith(">"):
            return TypeExpr(name, tuple(args)), rest[1:]
        else:
            raise AbiError(f"Unterminated type arguments for '{name}'")


@dataclass(frozen=True)
class Parameter:
    name: str
    type: TypeExpr


@dataclass(frozen=True)
class Endpoint:
    name: str
    mutability: str
    inputs: List[Parameter]
    outputs: List[Parameter]


class AbiRegistry:
    """Endpoints and struct layouts of one contract."""

    name: str
    endpoints: Dict[str, Endpoint]
    structs: Dict[str, List[Parameter]]

    def __init__(
        self,
        name: str,
        endpoints: Dict[str, Endpoint],
        structs: Dict[str, List[Parameter]],
    ):
        self.name = name
        self.endpoints = endpoints
        self.structs = structs

    @staticmethod
    def from_dict(data: Dict[str, Any]) -> AbiRegistry:
        endpoints = {}
        for raw in data.get("endpoints", []):
            endpoints[raw["name"]] = Endpoint(
                name=raw["name"],
                mutability=raw.get("mutability", "mutable"),
                inputs=[
                    Parameter(param.get("name", ""), parse_type(param["type"]))
                    for param in raw.get("inputs", [])
                ],
                outputs=[
                    Parameter(param.get("name", ""), parse_type(param["type"]))
                    for param in raw.get("outputs", [])
                ],
            )

        structs = {}
        for type_name, definition in data.get("types", {}).items():
            if definition.get("type") != "struct":
                raise AbiError(f"Unsupported ABI type kind for {type_name}")
            structs[type_name] = [
                Parameter(field["name"], parse_type(field["type"]))
                for field in definition["fields"]
            ]
        return AbiRegistry(data.get("name", ""), endpoints, structs)

    @staticmethod
    def load(file_name: str) -> AbiRegistry:
        """Load one of the ABIs bundled with the package, e.g. ``data_market.abi.json``."""
        path = file_name
        if not os.path.isabs(path):
            path = os.path.join(ABI_DIRECTORY, file_name)
        with open(path) as file:
            return AbiRegistry.from_dict(json.load(file))

    def endpoint(self, name: str) -> Endpoint:
        try:
            return self.endpoints[name]
        except KeyError:
            raise AbiError(f"Endpoint {name} not found in ABI {self.name}") from None

    def decode_outputs(self, endpoint_name: str, parts: List[bytes]) -> List[Any]:
        """Decode the return parts of a query into one value per ABI output."""
        endpoint = self.endpoint(endpoint_name)
        values = []
        remaining = list(parts)
        for output in endpoint.outputs:
            value, remaining = self._decode_multi(output.type, remaining)
            values.append(value)
        return values

    def decode_top(self, type_expr: TypeExpr, data: bytes) -> Any:
        """Decode a single value that occupies a whole return part."""
        name = type_expr.name
        try:
            if name in NESTED_INTEGERS:
                if len(data) > int(name[1:]) // 8:
                    raise AbiError(f"Value too large for {name}: {data.hex()}")
                return TopDecoder.biguint(data)
            if name == "BigUint":
                return TopDecoder.biguint(data)
            if name == "bool":
                return TopDecoder.bool(data)
            if name == "Address":
                return Address(data)
            if name in TOKEN_TYPES:
                return TopDecoder.str(data)
            if name == "bytes":
                return data
            if name == "List":
                der = Deserializer(data)
                values = []
                while der.remaining() > 0:
                    values.append(self.decode_nested(type_expr.args[0], der))
                return values
            if name == "Option":
                if data == b"":
                    return None
                der = Deserializer(data)
                return self._finish(der, der.option(self._nested(type_expr.args[0])))
            der = Deserializer(data)
            return self._finish(der, self.decode_nested(type_expr, der))
        except (CodecError, ParseAddressError, UnicodeDecodeError) as e:
            raise AbiError(f"Cannot decode {type_expr}: {e}") from e

    def decode_nested(self, type_expr: TypeExpr, der: Deserializer) -> Any:
        """Decode a value embedded in a larger structure."""
        name = type_expr.name
        if name in NESTED_INTEGERS:
            return NESTED_INTEGERS[name](der)
        if name == "BigUint":
            return der.biguint()
        if name == "bool":
            return der.bool()
        if name == "Address":
            return Address.deserialize(der)
        if name in TOKEN_TYPES:
            return der.str()
        if name == "bytes":
            return der.to_bytes()
        if name == "List":
            return der.sequence(self._nested(type_expr.args[0]))
        if name == "Option":
            return der.option(self._nested(type_expr.args[0]))
        if name in ("tuple", "multi"):
            return tuple(self.decode_nested(arg, der) for arg in type_expr.args)
        if name in self.structs:
            return {
                field.name: self.decode_nested(field.type, der)
                for field in self.structs[name]
            }
        raise AbiError(f"Unknown ABI type {type_expr}")

    def _nested(self, type_expr: TypeExpr) -> typing.Callable[[Deserializer], Any]:
        return lambda der: self.decode_nested(type_expr, der)

    def _decode_multi(
        self, type_expr: TypeExpr, parts: List[bytes]
    ) -> Tuple[Any, List[bytes]]:
        name = type_expr.name
        if name == "variadic":
            values = []
            while parts:
                value, parts = self._decode_multi(type_expr.args[0], parts)
                values.append(value)
            return values, parts
        if name == "optional":
            if not parts:
                return None, parts
            return self._decode_multi(type_expr.args[0], parts)
        if name == "multi":
            items = []
            for arg in type_expr.args:
                value, parts = self._decode_multi(arg, parts)
                items.append(value)
            return tuple(items), parts
        if not parts:
            raise AbiError(f"Missing return part for {type_expr}")
        return self.decode_top(type_expr, parts[0]), parts[1:]

    @staticmethod
    def _finish(der: Deserializer, value: Any) -> Any:
        if der.remaining() != 0:
            raise AbiError(f"{der.remaining()} unexpected trailing bytes")
        return value


class Test(unittest.TestCase):
    def setUp(self):
        self.abi = AbiRegistry.load(MARKETPLACE_ABI)
        self.owner = Address(b"\x07" * 32)

    @staticmethod
    def payment(ser: Serializer, token: str, nonce: int, amount: int):
        ser.str(token)
        ser.u64(nonce)
        ser.biguint(amount)

    def offer_bytes(self, index=None) -> bytes:
        ser = Serializer()
        if index is not None:
            ser.u64(index)
        self.owner.serialize(ser)
        self.payment(ser, "DATANFTFT-e0b917", 12, 3)
        self.payment(ser, "ITHEUM-fce905", 0, 10**21)
        ser.biguint(2)
        return ser.output()

    def test_parse_type(self):
        parsed = parse_type("variadic<multi<u64, Offer>>")
        self.assertEqual(parsed.name, "variadic")
        self.assertEqual(parsed.args[0], TypeExpr("multi", (TypeExpr("u64"), TypeExpr("Offer"))))
        self.assertEqual(str(parsed), "variadic<multi<u64,Offer>>")
        with self.assertRaises(AbiError):
            parse_type("List<u64")
        with self.assertRaises(AbiError):
            parse_type("List<u64>>")

    def test_top_level_list_of_structs(self):
        data = self.offer_bytes(1) + self.offer_bytes(2)
        [offers] = self.abi.decode_outputs("viewPagedOffers", [data])
        self.assertEqual([offer["index"] for offer in offers], [1, 2])
        self.assertEqual(offers[0]["owner"], self.owner)
        self.assertEqual(offers[0]["offered_token"]["token_nonce"], 12)
        self.assertEqual(offers[0]["wanted_token"]["amount"], 10**21)
        self.assertEqual(offers[1]["quantity"], 2)

    def test_variadic_multi(self):
        parts = [b"\x05", self.offer_bytes(), b"\x06", self.offer_bytes()]
        [offers] = self.abi.decode_outputs("getOffers", parts)
        self.assertEqual([index for index, _ in offers], [5, 6])
        self.assertEqual(offers[1][1]["wanted_token"]["token_identifier"], "ITHEUM-fce905")

    def test_empty_variadic(self):
        self.assertEqual(self.abi.decode_outputs("viewUserListedOffers", []), [[]])

    def test_scalars(self):
        self.assertEqual(self.abi.decode_outputs("getIsPaused", [b"\x01"]), [True])
        self.assertEqual(self.abi.decode_outputs("getIsPaused", [b""]), [False])
        self.assertEqual(self.abi.decode_outputs("viewNumberOfOffers", [b"\x01\x00"]), [256])
        with self.assertRaises(AbiError):
            self.abi.decode_outputs("viewNumberOfOffers", [b"\x01" * 5])

    def test_missing_part(self):
        with self.assertRaises(AbiError):
            self.abi.decode_outputs("viewRequirements", [])

    def test_trailing_bytes(self):
        with self.assertRaises(AbiError):
            self.abi.decode_top(TypeExpr("EsdtTokenPayment"), self.offer_bytes() + b"\x00")

    def test_unknown_endpoint(self):
        with self.assertRaises(AbiError):
            self.abi.endpoint("notAnEndpoint")

    def test_bundled_minter_abis(self):
        sft = AbiRegistry.load(SFT_MINTER_ABI)
        nft = AbiRegistry.load(NFT_MINTER_ABI)
        self.assertEqual(len(sft.endpoint("mint").inputs), 10)
        self.assertEqual(len(nft.structs["ContractConfiguration"]), 11)
        self.assertIn("DataNftAttributes", sft.structs)


if __name__ == "__main__":
    unittest.main()
