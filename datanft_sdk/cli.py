# Copyright © Data NFT SDK Contributors
# SPDX-License-Identifier: Apache-2.0

"""
Command-line access to the read-only parts of the SDK.

Supported Commands:
- offers: List marketplace offers, optionally only those of one address
- requirements: Show the marketplace requirements
- nft: Fetch and decode a Data NFT from the public API
- preaccess: Request a Data Marshal nonce for a Data NFT

Results are printed as JSON.

Examples:
    Listing the first ten offers on devnet::

        python -m datanft_sdk.cli offers --env devnet --from 0 --to 10

    Fetching a token with request logging::

        python -m datanft_sdk.cli nft --nonce 62 --verbose
"""

from __future__ import annotations

import argparse
import asyncio
import base64
import contextlib
import dataclasses
import io
import json
import logging
import sys
import unittest
from typing import Any, List, Optional

import httpx

from .address import Address
from .codec import Serializer
from .config import Environment, NetworkConfig
from .datanft import DataNftClient
from .marketplace import DataNftMarket
from .marshal import DataMarshalClient


def dump(value: Any) -> str:
    """Render dataclasses and lists of them as indented JSON."""
    if isinstance(value, list):
        value = [dataclasses.asdict(item) for item in value]
    elif dataclasses.is_dataclass(value):
        value = dataclasses.asdict(value)
    return json.dumps(value, indent=2, default=str)


async def offers(
    config: NetworkConfig,
    from_index: int,
    to_index: int,
    address: Optional[Address],
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> str:
    market = DataNftMarket(config, transport)
    try:
        if address is None:
            result = await market.view_paged_offers(from_index, to_index)
        else:
            result = await market.view_address_paged_offers(from_index, to_index, address)
    finally:
        await market.close()
    return dump(result)


async def requirements(
    config: NetworkConfig, transport: Optional[httpx.AsyncBaseTransport] = None
) -> str:
    market = DataNftMarket(config, transport)
    try:
        return dump(await market.view_requirements())
    finally:
        await market.close()


async def nft(
    config: NetworkConfig,
    nonce: int,
    collection: Optional[str],
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> str:
    client = DataNftClient(config, transport)
    try:
        return dump(await client.create_from_api(nonce, collection))
    finally:
        await client.close()


async def preaccess(
    config: NetworkConfig,
    nonce: int,
    collection: Optional[str],
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> str:
    client = DataNftClient(config, transport)
    marshal = DataMarshalClient(config, transport)
    try:
        data_nft = await client.create_from_api(nonce, collection)
        return json.dumps({"nonce": await marshal.get_message_to_sign(data_nft)})
    finally:
        await client.close()
        await marshal.close()


async def main(args: List[str], transport: Optional[httpx.AsyncBaseTransport] = None):
    parser = argparse.ArgumentParser(description="Data NFT Python CLI")
    parser.add_argument(
        "command",
        type=str,
        help="The command to execute",
        choices=["offers", "requirements", "nft", "preaccess"],
    )
    parser.add_argument(
        "--env",
        help="Network environment",
        choices=[env.value for env in Environment],
        default=Environment.DEVNET.value,
    )
    parser.add_argument(
        "--address",
        help="Only list offers of this bech32 address",
        type=Address.from_str,
    )
    parser.add_argument("--from", dest="from_index", type=int, default=0)
    parser.add_argument("--to", dest="to_index", type=int, default=25)
    parser.add_argument("--nonce", help="Data NFT nonce", type=int)
    parser.add_argument(
        "--collection",
        help="Data NFT collection, defaults to the network's Data NFT-FT",
        type=str,
    )
    parser.add_argument("--verbose", help="Log requests", action="store_true")

    parsed_args = parser.parse_args(args)
    if parsed_args.verbose:
        logging.basicConfig(level=logging.DEBUG)
    config = NetworkConfig.for_environment(parsed_args.env)

    if parsed_args.command == "offers":
        output = await offers(
            config,
            parsed_args.from_index,
            parsed_args.to_index,
            parsed_args.address,
            transport,
        )
    elif parsed_args.command == "requirements":
        output = await requirements(config, transport)
    else:
        if parsed_args.nonce is None:
            parser.error("Missing required argument '--nonce'")
        if parsed_args.command == "nft":
            output = await nft(config, parsed_args.nonce, parsed_args.collection, transport)
        else:
            output = await preaccess(
                config, parsed_args.nonce, parsed_args.collection, transport
            )
    print(output)


class Test(unittest.IsolatedAsyncioTestCase):
    def requirements_transport(self) -> httpx.MockTransport:
        ser = Serializer()
        ser.sequence(["DATANFTFT-e0b917"], Serializer.str)
        ser.sequence(["ITHEUM-fce905"], Serializer.str)
        ser.sequence([10**21], Serializer.biguint)
        for value in (0, 0, 200, 200):
            ser.u64(value)
        body = {
            "returnCode": "ok",
            "returnData": [base64.b64encode(ser.output()).decode()],
        }
        return httpx.MockTransport(lambda request: httpx.Response(200, json=body))

    async def test_requirements(self):
        out = io.StringIO()
        with contextlib.redirect_stdout(out):
            await main(["requirements"], self.requirements_transport())
        printed = json.loads(out.getvalue())
        self.assertEqual(printed["accepted_tokens"], ["DATANFTFT-e0b917"])
        self.assertEqual(printed["maximum_payment_fees"], [str(10**21)])

    async def test_nft_requires_nonce(self):
        with contextlib.redirect_stderr(io.StringIO()):
            with self.assertRaises(SystemExit):
                await main(["nft"])

    def test_dump(self):
        @dataclasses.dataclass
        class Item:
            value: int

        self.assertEqual(json.loads(dump([Item(1), Item(2)])), [{"value": 1}, {"value": 2}])
        self.assertEqual(json.loads(dump(Item(3))), {"value": 3})


if __name__ == "__main__":
    asyncio.run(main(sys.argv[1:]))
