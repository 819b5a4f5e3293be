# Copyright © Data NFT SDK Contributors
# SPDX-License-Identifier: Apache-2.0

"""
Data NFT records and their hydration from the public API.

A :class:`DataNft` describes one token of a Data NFT collection: its
identifiers, presentation fields from the API record, and the descriptive
fields decoded from its on-chain attributes (data stream, preview and marshal
URLs, creator, title, description, creation time).

Every field has a default so that partial records can be built by hand, for
example a :class:`DataNft` carrying only ``data_marshal`` and ``collection``
is enough to talk to the Data Marshal.

Examples:
    Fetching tokens::

        from datanft_sdk.config import NetworkConfig
        from datanft_sdk.datanft import DataNftClient, NftToken

        client = DataNftClient(NetworkConfig.for_environment("devnet"))
        nft = await client.create_from_api(62)
        many = await client.create_many_from_api(
            [NftToken(62), NftToken(2, "DATANFTFT-e0b917")]
        )
        owned = await client.owned_by_address("erd1...")
        await client.close()

    Identifiers::

        create_nft_identifier("DATANFTFT-e0b917", 10)  # "DATANFTFT-e0b917-0a"
"""

import logging
import unittest
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Dict, List, Optional, Sequence, Union

import httpx

from .address import Address
from .attributes import decode_attributes, encode_attributes
from .config import NetworkConfig
from .errors import AttributeDecodeError, DataNftCreateError, FetchError
from .network_provider import ApiNetworkProvider

logger = logging.getLogger(__name__)


def number_to_padded_hex(value: int) -> str:
    """Lowercase hex of ``value``, left padded to an even number of digits."""
    text = format(value, "x")
    return text if len(text) % 2 == 0 else "0" + text


def create_nft_identifier(collection: str, nonce: int) -> str:
    return f"{collection}-{number_to_padded_hex(nonce)}"


@dataclass(frozen=True)
class DataNft:
    token_identifier: str = ""
    nft_img_url: str = ""
    data_preview: str = ""
    data_stream: str = ""
    data_marshal: str = ""
    token_name: str = ""
    creator: str = ""
    creation_time: Optional[datetime] = None
    supply: int = 0
    description: str = ""
    title: str = ""
    royalties: float = 0
    nonce: int = 0
    collection: str = ""
    balance: int = 0

    @staticmethod
    def from_api_record(record: Dict[str, Any]) -> "DataNft":
        """
        Build a :class:`DataNft` from an API token record and its decoded attributes.

        Royalties in the record are a percentage and are converted to a
        fraction, e.g. ``10`` becomes ``0.1``.

        :raises DataNftCreateError: If the record is missing fields or its
            attributes cannot be decoded.
        """
        try:
            attributes = decode_attributes(record["attributes"])
            supply = record.get("supply")
            balance = record.get("balance")
            return DataNft(
                token_identifier=record["identifier"],
                nft_img_url=record.get("url") or "",
                token_name=record["name"],
                supply=int(supply) if supply is not None else 1,
                royalties=record.get("royalties", 0) / 100,
                nonce=int(record["nonce"]),
                collection=record["collection"],
                balance=int(balance) if balance is not None else 0,
                data_preview=attributes.data_preview,
                data_stream=attributes.data_stream,
                data_marshal=attributes.data_marshal,
                creator=attributes.creator,
                creation_time=attributes.creation_time,
                description=attributes.description,
                title=attributes.title,
            )
        except (KeyError, TypeError, ValueError, AttributeDecodeError) as e:
            raise DataNftCreateError(f"Record could not be parsed: {e}") from e


@dataclass(frozen=True)
class NftToken:
    """A token reference; the collection defaults to the network's Data NFT-FT."""

    nonce: int
    token_identifier: Optional[str] = None


class DataNftClient:
    """Loads :class:`DataNft` records from the public API of one network."""

    config: NetworkConfig
    provider: ApiNetworkProvider

    def __init__(
        self,
        config: NetworkConfig,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.config = config
        self.provider = ApiNetworkProvider(
            config.api_url,
            timeout=config.timeout,
            http2=config.http2,
            transport=transport,
        )

    async def close(self):
        await self.provider.close()

    def identifier(self, token: NftToken) -> str:
        return create_nft_identifier(
            token.token_identifier or self.config.data_nft_token_identifier, token.nonce
        )

    async def create_from_api(
        self, nonce: int, token_identifier: Optional[str] = None
    ) -> DataNft:
        """
        Fetch and decode a single token.

        :raises FetchError: If the API does not answer with a 2xx status.
        :raises DataNftCreateError: If the record cannot be parsed.
        """
        identifier = self.identifier(NftToken(nonce, token_identifier))
        record = await self.provider.get_json(f"nfts/{identifier}")
        return DataNft.from_api_record(record)

    async def create_many_from_api(self, tokens: Sequence[NftToken]) -> List[DataNft]:
        """Fetch several tokens, possibly of different collections, in one request."""
        identifiers = ",".join(self.identifier(token) for token in tokens)
        records = await self.provider.get_json(
            "nfts", {"identifiers": identifiers, "withSupply": "true"}
        )
        return DataNftClient.create_from_api_response_or_bulk(records)

    async def owned_by_address(
        self, address: Union[str, Address], identifier: Optional[str] = None
    ) -> List[DataNft]:
        """All tokens of collection ``identifier`` held by ``address``."""
        records = await self.provider.get_json(
            f"accounts/{address}/nfts",
            {
                "size": 10000,
                "collections": identifier or self.config.data_nft_token_identifier,
                "withSupply": "true",
            },
        )
        return DataNftClient.create_from_api_response_or_bulk(records)

    @staticmethod
    def create_from_api_response_or_bulk(
        payload: Union[Dict[str, Any], List[Dict[str, Any]]]
    ) -> List[DataNft]:
        """Build records from a single API token record or a list of them."""
        records = payload if isinstance(payload, list) else [payload]
        logger.debug("Hydrating %d token records", len(records))
        return [DataNft.from_api_record(record) for record in records]


class Test(unittest.IsolatedAsyncioTestCase):
    def setUp(self):
        self.config = NetworkConfig.for_environment("devnet")
        self.creator = Address(b"\x04" * 32)
        self.attributes = encode_attributes(
            "https://example.com/stream.json",
            "https://example.com/preview.json",
            "https://marshal.example.com/v1",
            self.creator,
            1_690_000_000,
            "Weather readings",
            "Hourly readings from a rooftop station",
        )
        self.requests: List[httpx.Request] = []

    def record(self, nonce: int) -> Dict[str, Any]:
        return {
            "identifier": create_nft_identifier("DATANFTFT-e0b917", nonce),
            "collection": "DATANFTFT-e0b917",
            "nonce": nonce,
            "name": "Weather01",
            "attributes": self.attributes,
            "royalties": 10,
            "url": "https://media.example.com/image.png",
            "supply": "20",
            "balance": "3",
        }

    def client(self, body, status_code=200) -> DataNftClient:
        def handler(request: httpx.Request) -> httpx.Response:
            self.requests.append(request)
            return httpx.Response(status_code, json=body)

        return DataNftClient(self.config, transport=httpx.MockTransport(handler))

    def test_identifiers(self):
        self.assertEqual(number_to_padded_hex(10), "0a")
        self.assertEqual(number_to_padded_hex(255), "ff")
        self.assertEqual(number_to_padded_hex(256), "0100")
        self.assertEqual(create_nft_identifier("DATA-a1b2c3", 62), "DATA-a1b2c3-3e")

    def test_from_api_record(self):
        nft = DataNft.from_api_record(self.record(62))
        self.assertEqual(nft.token_identifier, "DATANFTFT-e0b917-3e")
        self.assertEqual(nft.nonce, 62)
        self.assertEqual(nft.supply, 20)
        self.assertEqual(nft.balance, 3)
        self.assertEqual(nft.royalties, 0.1)
        self.assertEqual(nft.data_marshal, "https://marshal.example.com/v1")
        self.assertEqual(nft.creator, self.creator.bech32())

    def test_from_api_record_errors(self):
        with self.assertRaises(DataNftCreateError):
            DataNft.from_api_record({"identifier": "X-1-01"})
        with self.assertRaises(DataNftCreateError):
            DataNft.from_api_record(dict(self.record(1), attributes="AAAA"))

    def test_partial(self):
        nft = DataNft(data_marshal="https://marshal.example.com")
        self.assertEqual(nft.title, "")
        self.assertIsNone(nft.creation_time)

    async def test_create_from_api(self):
        client = self.client(self.record(62))
        nft = await client.create_from_api(62)
        await client.close()
        self.assertEqual(nft.title, "Weather readings")
        self.assertEqual(
            str(self.requests[0].url),
            f"{self.config.api_url}/nfts/DATANFTFT-e0b917-3e",
        )

    async def test_create_many_from_api(self):
        client = self.client([self.record(62), self.record(2)])
        nfts = await client.create_many_from_api([NftToken(62), NftToken(2, "INSP-a65b3b")])
        await client.close()
        self.assertEqual([nft.nonce for nft in nfts], [62, 2])
        params = self.requests[0].url.params
        self.assertEqual(params["identifiers"], "DATANFTFT-e0b917-3e,INSP-a65b3b-02")
        self.assertEqual(params["withSupply"], "true")

    async def test_owned_by_address(self):
        client = self.client([self.record(5)])
        nfts = await client.owned_by_address(self.creator)
        await client.close()
        self.assertEqual(len(nfts), 1)
        request = self.requests[0]
        self.assertEqual(request.url.path, f"/accounts/{self.creator.bech32()}/nfts")
        self.assertEqual(request.url.params["collections"], "DATANFTFT-e0b917")
        self.assertEqual(request.url.params["size"], "10000")

    async def test_fetch_error(self):
        client = self.client({"message": "not found"}, status_code=404)
        with self.assertRaises(FetchError):
            await client.create_from_api(1)
        await client.close()

    def test_bulk_single_payload(self):
        nfts = DataNftClient.create_from_api_response_or_bulk(self.record(7))
        self.assertEqual(len(nfts), 1)


if __name__ == "__main__":
    unittest.main()
