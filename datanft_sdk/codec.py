# Copyright © Data NFT SDK Contributors
# SPDX-License-Identifier: Apache-2.0

"""
Binary codec for smart contract values.

Contract storage, query results and token attributes are encoded with two
related formats:

- **Nested encoding** is used for values that live inside a larger structure
  (struct fields, list items). Fixed width integers are big-endian, variable
  length values (buffers, strings, ``BigUint``) carry a ``u32`` length prefix
  and lists carry a ``u32`` item count.
- **Top-level encoding** is used for a value that stands on its own, such as a
  single call argument or a single query return part. The length is implied by
  the surrounding container, so integers are written as their minimal
  big-endian representation and zero becomes the empty byte string.

The module contains:
- Protocol interfaces for serializable and deserializable objects
- Deserializer / Serializer for the nested encoding
- TopEncoder / TopDecoder for the top-level encoding

Examples:
    Nested serialization::

        from datanft_sdk.codec import Serializer, Deserializer

        ser = Serializer()
        ser.str("hello")
        ser.u64(42)
        data = ser.output()  # b"\\x00\\x00\\x00\\x05hello" + 8 byte u64

        der = Deserializer(data)
        der.str()  # "hello"
        der.u64()  # 42

    Top-level call arguments::

        TopEncoder.u64(0)        # b""
        TopEncoder.biguint(256)  # b"\\x01\\x00"
        TopEncoder.str("mint")   # b"mint"
"""

from __future__ import annotations

import io
import typing
import unittest
from typing import List

from typing_extensions import Protocol

MAX_U8 = 2**8 - 1
MAX_U16 = 2**16 - 1
MAX_U32 = 2**32 - 1
MAX_U64 = 2**64 - 1


class CodecError(Exception):
    """Raised when a value cannot be encoded or the input cannot be decoded."""


class Deserializable(Protocol):
    """Protocol for objects that can be read from a nested-encoded stream."""

    @classmethod
    def from_bytes(cls, indata: bytes) -> Deserializable:
        der = Deserializer(indata)
        return der.struct(cls)

    @staticmethod
    def deserialize(deserializer: Deserializer) -> Deserializable:
        ...


class Serializable(Protocol):
    """Protocol for objects that can be written to a nested-encoded stream."""

    def to_bytes(self) -> bytes:
        ser = Serializer()
        ser.struct(self)
        return ser.output()

    def serialize(self, serializer: Serializer):
        ...


class Deserializer:
    """Reads nested-encoded values from a byte stream.

    The deserializer keeps an internal position and every read advances it.
    Reading past the end of the input raises :class:`CodecError`.

    Examples:
        Reading a struct laid out as (buffer, u64, bool)::

            der = Deserializer(data)
            url = der.str()
            created = der.u64()
            frozen = der.bool()
            assert der.remaining() == 0
    """

    _input: io.BytesIO
    _length: int

    def __init__(self, data: bytes):
        self._length = len(data)
        self._input = io.BytesIO(data)

    def remaining(self) -> int:
        """Number of bytes not yet consumed."""
        return self._length - self._input.tell()

    def bool(self) -> bool:
        value = self._read_int(1)
        if value == 0:
            return False
        elif value == 1:
            return True
        raise CodecError(f"Unexpected boolean value: {value}")

    def to_bytes(self) -> bytes:
        """Read a length-prefixed byte buffer."""
        return self._read(self.u32())

    def fixed_bytes(self, length: int) -> bytes:
        return self._read(length)

    def sequence(
        self,
        value_decoder: typing.Callable[[Deserializer], typing.Any],
    ) -> List[typing.Any]:
        """Read a ``u32`` item count followed by that many items.

        Examples:
            Reading a list of u64 nonces::

                nonces = der.sequence(Deserializer.u64)
        """
        length = self.u32()
        values: List = []
        while len(values) < length:
            values.append(value_decoder(self))
        return values

    def option(
        self,
        value_decoder: typing.Callable[[Deserializer], typing.Any],
    ) -> typing.Any:
        """Read an optional value: a ``0x00`` tag for none, ``0x01`` then the value."""
        tag = self._read_int(1)
        if tag == 0:
            return None
        elif tag == 1:
            return value_decoder(self)
        raise CodecError(f"Unexpected option tag: {tag}")

    def str(self) -> str:
        return self.to_bytes().decode()

    def struct(self, struct: typing.Any) -> typing.Any:
        return struct.deserialize(self)

    def u8(self) -> int:
        return self._read_int(1)

    def u16(self) -> int:
        return self._read_int(2)

    def u32(self) -> int:
        return self._read_int(4)

    def u64(self) -> int:
        return self._read_int(8)

    def biguint(self) -> int:
        """Read an arbitrary precision unsigned integer (length-prefixed)."""
        return int.from_bytes(self.to_bytes(), byteorder="big", signed=False)

    def _read(self, length: int) -> bytes:
        value = self._input.read(length)
        if value is None or len(value) < length:
            actual_length = 0 if value is None else len(value)
            error = (
                f"Unexpected end of input. Requested: {length}, found: {actual_length}"
            )
            raise CodecError(error)
        return value

    def _read_int(self, length: int) -> int:
        return int.from_bytes(self._read(length), byteorder="big", signed=False)


class Serializer:
    """Writes nested-encoded values to an in-memory buffer.

    Examples:
        Building a struct laid out as (buffer, u64)::

            ser = Serializer()
            ser.str("https://example.com/stream")
            ser.u64(1_690_000_000)
            data = ser.output()
    """

    _output: io.BytesIO

    def __init__(self):
        self._output = io.BytesIO()

    def output(self) -> bytes:
        return self._output.getvalue()

    def bool(self, value: bool):
        self._write_int(int(value), 1)

    def to_bytes(self, value: bytes):
        """Write a ``u32`` length prefix followed by the raw bytes."""
        self.u32(len(value))
        self._output.write(value)

    def fixed_bytes(self, value):
        self._output.write(value)

    def sequence(
        self,
        values: typing.List[typing.Any],
        value_encoder: typing.Callable[[Serializer, typing.Any], None],
    ):
        self.u32(len(values))
        for value in values:
            self.fixed_bytes(encoder(value, value_encoder))

    def option(
        self,
        value: typing.Any,
        value_encoder: typing.Callable[[Serializer, typing.Any], None],
    ):
        if value is None:
            self.u8(0)
        else:
            self.u8(1)
            value_encoder(self, value)

    def str(self, value: str):
        self.to_bytes(value.encode())

    def struct(self, value: typing.Any):
        value.serialize(self)

    def u8(self, value: int):
        if value > MAX_U8:
            raise CodecError(f"Cannot encode {value} into u8")
        self._write_int(value, 1)

    def u16(self, value: int):
        if value > MAX_U16:
            raise CodecError(f"Cannot encode {value} into u16")
        self._write_int(value, 2)

    def u32(self, value: int):
        if value > MAX_U32:
            raise CodecError(f"Cannot encode {value} into u32")
        self._write_int(value, 4)

    def u64(self, value: int):
        if value > MAX_U64:
            raise CodecError(f"Cannot encode {value} into u64")
        self._write_int(value, 8)

    def biguint(self, value: int):
        self.to_bytes(TopEncoder.biguint(value))

    def _write_int(self, value: int, length: int):
        if value < 0:
            raise CodecError(f"Cannot encode negative value {value}")
        self._output.write(value.to_bytes(length, "big", signed=False))


def encoder(
    value: typing.Any, encoder: typing.Callable[[Serializer, typing.Any], typing.Any]
) -> bytes:
    """Encode a single value with a nested encoder and return the bytes."""
    ser = Serializer()
    encoder(ser, value)
    return ser.output()


class TopEncoder:
    """Top-level encoders for standalone values such as call arguments.

    Every encoder takes a Python value and returns the raw bytes; the call
    payload builder hex-encodes them.
    """

    @staticmethod
    def u64(value: int) -> bytes:
        if value > MAX_U64:
            raise CodecError(f"Cannot encode {value} into u64")
        return TopEncoder.biguint(value)

    @staticmethod
    def biguint(value: int) -> bytes:
        value = int(value)
        if value < 0:
            raise CodecError(f"Cannot encode negative value {value}")
        if value == 0:
            return b""
        return value.to_bytes((value.bit_length() + 7) // 8, "big", signed=False)

    @staticmethod
    def bool(value: bool) -> bytes:
        return b"\x01" if value else b""

    @staticmethod
    def str(value: str) -> bytes:
        return value.encode()

    @staticmethod
    def bytes(value: bytes) -> bytes:
        return value

    @staticmethod
    def struct(value: typing.Any) -> bytes:
        ser = Serializer()
        value.serialize(ser)
        return ser.output()


class TopDecoder:
    """Top-level decoders, the inverse of :class:`TopEncoder`."""

    @staticmethod
    def biguint(data: bytes) -> int:
        return int.from_bytes(data, byteorder="big", signed=False)

    @staticmethod
    def u64(data: bytes) -> int:
        if len(data) > 8:
            raise CodecError(f"Cannot decode {len(data)} bytes into u64")
        return TopDecoder.biguint(data)

    @staticmethod
    def bool(data: bytes) -> bool:
        if data == b"":
            return False
        elif data == b"\x01":
            return True
        raise CodecError(f"Unexpected boolean value: {data.hex()}")

    @staticmethod
    def str(data: bytes) -> str:
        return data.decode()


class Test(unittest.TestCase):
    def test_buffer_has_big_endian_u32_prefix(self):
        ser = Serializer()
        ser.str("abc")
        self.assertEqual(ser.output(), b"\x00\x00\x00\x03abc")

    def test_u64_is_big_endian(self):
        ser = Serializer()
        ser.u64(1)
        self.assertEqual(ser.output(), b"\x00" * 7 + b"\x01")
        self.assertEqual(Deserializer(ser.output()).u64(), 1)

    def test_biguint_nested(self):
        ser = Serializer()
        ser.biguint(0)
        ser.biguint(1000)
        self.assertEqual(ser.output(), b"\x00\x00\x00\x00" + b"\x00\x00\x00\x02\x03\xe8")

        der = Deserializer(ser.output())
        self.assertEqual(der.biguint(), 0)
        self.assertEqual(der.biguint(), 1000)
        self.assertEqual(der.remaining(), 0)

    def test_sequence(self):
        in_value = [3, 7, 11]

        ser = Serializer()
        ser.sequence(in_value, Serializer.u64)
        der = Deserializer(ser.output())

        self.assertEqual(der.sequence(Deserializer.u64), in_value)

    def test_option(self):
        ser = Serializer()
        ser.option(None, Serializer.u32)
        ser.option(5, Serializer.u32)
        der = Deserializer(ser.output())

        self.assertIsNone(der.option(Deserializer.u32))
        self.assertEqual(der.option(Deserializer.u32), 5)

    def test_bool_error(self):
        ser = Serializer()
        ser.u8(32)
        der = Deserializer(ser.output())
        with self.assertRaises(CodecError):
            der.bool()

    def test_truncated_input(self):
        der = Deserializer(b"\x00\x00\x00\x09short")
        with self.assertRaises(CodecError):
            der.str()

    def test_u8_overflow(self):
        with self.assertRaises(CodecError):
            Serializer().u8(256)

    def test_top_level_integers(self):
        self.assertEqual(TopEncoder.u64(0), b"")
        self.assertEqual(TopEncoder.u64(1), b"\x01")
        self.assertEqual(TopEncoder.biguint(256), b"\x01\x00")
        self.assertEqual(TopDecoder.biguint(b""), 0)
        self.assertEqual(TopDecoder.u64(b"\x01\x00"), 256)
        with self.assertRaises(CodecError):
            TopEncoder.biguint(-1)

    def test_top_level_bool(self):
        self.assertEqual(TopEncoder.bool(True), b"\x01")
        self.assertEqual(TopEncoder.bool(False), b"")
        self.assertTrue(TopDecoder.bool(b"\x01"))
        self.assertFalse(TopDecoder.bool(b""))
        with self.assertRaises(CodecError):
            TopDecoder.bool(b"\x02")


if __name__ == "__main__":
    unittest.main()
