# Copyright © Data NFT SDK Contributors
# SPDX-License-Identifier: Apache-2.0

"""
Decoding of the on-chain attributes carried by every Data NFT.

The minter stores a ``DataNftAttributes`` struct, top-level encoded, in the
attributes field of each token. The public API returns it base64 encoded.
"""

import base64
import binascii
import unittest
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Optional

from .abi import SFT_MINTER_ABI, AbiError, AbiRegistry, TypeExpr
from .address import Address
from .codec import Serializer
from .errors import AttributeDecodeError

ATTRIBUTES_TYPE = TypeExpr("DataNftAttributes")

_registry: Optional[AbiRegistry] = None


def _attributes_abi() -> AbiRegistry:
    global _registry
    if _registry is None:
        _registry = AbiRegistry.load(SFT_MINTER_ABI)
    return _registry


@dataclass(frozen=True)
class DataNftAttributes:
    data_preview: str
    data_stream: str
    data_marshal: str
    creator: str
    creation_time: datetime
    description: str
    title: str


def decode_attributes(attributes: str) -> DataNftAttributes:
    """
    Decode a base64 attribute blob.

    :param attributes: The ``attributes`` field of an API token record.
    :raises AttributeDecodeError: If the blob is not valid base64 or does not
        match the ``DataNftAttributes`` layout.
    """
    try:
        raw = base64.b64decode(attributes, validate=True)
        value = _attributes_abi().decode_top(ATTRIBUTES_TYPE, raw)
        return DataNftAttributes(
            data_preview=value["data_preview_url"].decode(),
            data_stream=value["data_stream_url"].decode(),
            data_marshal=value["data_marshal_url"].decode(),
            creator=value["creator"].bech32(),
            creation_time=datetime.fromtimestamp(value["creation_time"], tz=timezone.utc),
            description=value["description"].decode(),
            title=value["title"].decode(),
        )
    except (AbiError, binascii.Error, TypeError, ValueError, OverflowError, OSError) as e:
        raise AttributeDecodeError(str(e)) from e


def encode_attributes(
    data_stream: str,
    data_preview: str,
    data_marshal: str,
    creator: Address,
    creation_time: int,
    title: str,
    description: str,
) -> str:
    """Build the base64 attribute blob the minter would store, e.g. for test fixtures."""
    ser = Serializer()
    ser.str(data_stream)
    ser.str(data_preview)
    ser.str(data_marshal)
    creator.serialize(ser)
    ser.u64(creation_time)
    ser.str(title)
    ser.str(description)
    return base64.b64encode(ser.output()).decode()


class Test(unittest.TestCase):
    def setUp(self):
        self.creator = Address(b"\x04" * 32)
        self.blob = encode_attributes(
            "https://example.com/stream.json",
            "https://example.com/preview.json",
            "https://marshal.example.com/v1",
            self.creator,
            1_690_000_000,
            "Weather readings",
            "Hourly readings from a rooftop station",
        )

    def test_decode(self):
        attributes = decode_attributes(self.blob)
        self.assertEqual(attributes.data_stream, "https://example.com/stream.json")
        self.assertEqual(attributes.data_preview, "https://example.com/preview.json")
        self.assertEqual(attributes.data_marshal, "https://marshal.example.com/v1")
        self.assertEqual(attributes.creator, self.creator.bech32())
        self.assertEqual(attributes.creation_time.timestamp() * 1000, 1_690_000_000_000)
        self.assertEqual(attributes.title, "Weather readings")

    def test_truncated_blob(self):
        raw = base64.b64decode(self.blob)[:-4]
        with self.assertRaises(AttributeDecodeError):
            decode_attributes(base64.b64encode(raw).decode())

    def test_not_base64(self):
        with self.assertRaises(AttributeDecodeError):
            decode_attributes("not base64!")

    def test_missing_blob(self):
        with self.assertRaises(AttributeDecodeError):
            decode_attributes(None)  # type: ignore[arg-type]


if __name__ == "__main__":
    unittest.main()
