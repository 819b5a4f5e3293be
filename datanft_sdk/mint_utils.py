# Copyright © Data NFT SDK Contributors
# SPDX-License-Identifier: Apache-2.0

"""
HTTP helpers used while minting: liveness checks on the dataset URLs, stream
URL encryption by the Data Marshal, generated NFT art and the metadata file
stored next to it.
"""

import json
import logging
import unittest
from dataclasses import dataclass
from typing import Any, Dict, List, Sequence, Tuple

import httpx

from .errors import FailedOperationError, FetchError
from .network_provider import check_status

logger = logging.getLogger(__name__)

REQUIRED_TRAITS = ("Creator", "Data Preview URL")


@dataclass
class StreamAdvertisement:
    """The Data Marshal's answer to ``/generate``."""

    message_hash: str
    encrypted_message: str


def _json_object(response: httpx.Response, operation: str, message: str) -> Dict[str, Any]:
    try:
        body = response.json()
    except ValueError as e:
        raise FailedOperationError(operation, message) from e
    if not isinstance(body, dict):
        raise FailedOperationError(operation, message)
    return body


async def check_url_is_up(client: httpx.AsyncClient, url: str, expected_statuses: Sequence[int]):
    """
    :raises FailedOperationError: If ``url`` cannot be reached or answers with
        a status not in ``expected_statuses``.
    """
    logger.debug("Checking %s", url)
    try:
        response = await client.get(url)
    except httpx.HTTPError as e:
        raise FailedOperationError("check_url_is_up", f"{url} is unreachable: {e}") from e
    if response.status_code not in expected_statuses:
        raise FailedOperationError(
            "check_url_is_up",
            f"{url} returned a {response.status_code} status code, expected one of "
            f"{list(expected_statuses)}",
        )


async def check_traits_url(client: httpx.AsyncClient, traits_url: str):
    """
    Ensure the metadata at ``traits_url`` has a description and the
    ``Creator`` and ``Data Preview URL`` traits.

    :raises FetchError: If the URL does not answer with a 2xx status.
    :raises FailedOperationError: If the URL is unreachable, the body is not a
        JSON object, or a required key or trait is missing.
    """
    try:
        response = await client.get(traits_url)
    except httpx.HTTPError as e:
        raise FailedOperationError("check_traits_url", f"{traits_url} is unreachable: {e}") from e
    check_status(response)
    traits = _json_object(response, "check_traits_url", "Traits are not a JSON object")

    if not traits.get("description"):
        raise FailedOperationError("check_traits_url", "Missing value for key: description")
    attributes = traits.get("attributes")
    if not isinstance(attributes, list) or not all(
        isinstance(attribute, dict) for attribute in attributes
    ):
        raise FailedOperationError("check_traits_url", "Missing trait: attributes")
    for required in REQUIRED_TRAITS:
        if not any(attribute.get("trait_type") == required for attribute in attributes):
            raise FailedOperationError("check_traits_url", f"Missing trait: {required}")


async def data_stream_advertise(
    client: httpx.AsyncClient, data_marshal_url: str, data_stream_url: str
) -> StreamAdvertisement:
    """
    Ask the Data Marshal to encrypt ``data_stream_url``.

    :raises FetchError: If the marshal does not answer with a 2xx status.
    :raises FailedOperationError: If the answer lacks the hash or the ciphertext.
    """
    logger.debug("Advertising data stream to %s", data_marshal_url)
    response = await client.post(
        f"{data_marshal_url}/generate",
        headers={"cache-control": "no-cache"},
        json={"dataNFTStreamUrl": data_stream_url},
    )
    check_status(response)
    body = _json_object(response, "data_stream_advertise", "Invalid response from Data Marshal")
    if not body.get("encryptedMessage") or not body.get("messageHash"):
        raise FailedOperationError(
            "data_stream_advertise", "Invalid response from Data Marshal"
        )
    return StreamAdvertisement(body["messageHash"], body["encryptedMessage"])


async def create_file_from_url(
    client: httpx.AsyncClient, image_service_url: str, message_hash: str
) -> Tuple[bytes, str]:
    """
    Generate the NFT art for ``message_hash``.

    :return: The PNG bytes and the raw ``x-nft-traits`` header.
    """
    response = await client.get(
        f"{image_service_url}/v1/generateNFTArt", params={"hash": message_hash}
    )
    check_status(response)
    return response.content, response.headers.get("x-nft-traits", "")


def create_ipfs_metadata(
    traits: str,
    dataset_title: str,
    dataset_description: str,
    data_preview_url: str,
    creator: str,
) -> Dict[str, Any]:
    """
    Build ``metadata.json`` from an ``x-nft-traits`` header such as
    ``"Background: blue, Eyes: green"``.
    """
    attributes: List[Dict[str, str]] = []
    for trait in traits.split(","):
        if not trait.strip():
            continue
        trait_type, _, value = trait.partition(":")
        attributes.append({"trait_type": trait_type.strip(), "value": value.strip()})
    attributes.append({"trait_type": "Data Preview URL", "value": data_preview_url})
    attributes.append({"trait_type": "Creator", "value": creator})
    return {
        "description": f"{dataset_title} : {dataset_description}",
        "attributes": attributes,
    }


class Test(unittest.IsolatedAsyncioTestCase):
    def client(self, handler) -> httpx.AsyncClient:
        return httpx.AsyncClient(transport=httpx.MockTransport(handler))

    async def test_check_url_is_up(self):
        client = self.client(lambda request: httpx.Response(403))
        await check_url_is_up(client, "https://example.com/stream", [200, 403])
        with self.assertRaises(FailedOperationError) as ctx:
            await check_url_is_up(client, "https://example.com/preview", [200])
        await client.aclose()
        self.assertIn("403", str(ctx.exception))

    async def test_check_url_unreachable(self):
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("refused", request=request)

        client = self.client(handler)
        with self.assertRaises(FailedOperationError):
            await check_url_is_up(client, "https://example.com", [200])
        await client.aclose()

    async def test_check_traits_url(self):
        good = {
            "description": "Weather readings",
            "attributes": [
                {"trait_type": "Creator", "value": "erd1..."},
                {"trait_type": "Data Preview URL", "value": "https://example.com"},
            ],
        }
        client = self.client(lambda request: httpx.Response(200, json=good))
        await check_traits_url(client, "https://example.com/metadata.json")
        await client.aclose()

        missing = dict(good, attributes=good["attributes"][:1])
        client = self.client(lambda request: httpx.Response(200, json=missing))
        with self.assertRaises(FailedOperationError) as ctx:
            await check_traits_url(client, "https://example.com/metadata.json")
        await client.aclose()
        self.assertIn("Data Preview URL", str(ctx.exception))

        client = self.client(lambda request: httpx.Response(500))
        with self.assertRaises(FetchError):
            await check_traits_url(client, "https://example.com/metadata.json")
        await client.aclose()

    async def test_data_stream_advertise(self):
        requests: List[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            requests.append(request)
            return httpx.Response(
                200, json={"encryptedMessage": "enc", "messageHash": "hash"}
            )

        client = self.client(handler)
        result = await data_stream_advertise(
            client, "https://marshal.example.com", "https://example.com/stream"
        )
        await client.aclose()
        self.assertEqual(result, StreamAdvertisement("hash", "enc"))
        self.assertEqual(requests[0].url.path, "/generate")
        self.assertEqual(
            json.loads(requests[0].content),
            {"dataNFTStreamUrl": "https://example.com/stream"},
        )

    async def test_data_stream_advertise_invalid(self):
        client = self.client(lambda request: httpx.Response(200, json={"messageHash": "h"}))
        with self.assertRaises(FailedOperationError):
            await data_stream_advertise(client, "https://m.example.com", "https://s")
        await client.aclose()

    async def test_data_stream_advertise_malformed_body(self):
        for response in (
            httpx.Response(200, text="<html>oops</html>"),
            httpx.Response(200, json=["encryptedMessage", "messageHash"]),
        ):
            client = self.client(lambda request: response)
            with self.assertRaises(FailedOperationError) as ctx:
                await data_stream_advertise(client, "https://m.example.com", "https://s")
            await client.aclose()
            self.assertEqual(ctx.exception.operation, "data_stream_advertise")

    async def test_check_traits_url_malformed_body(self):
        for response in (
            httpx.Response(200, text="<html>oops</html>"),
            httpx.Response(200, json=[]),
            httpx.Response(
                200, json={"description": "Weather readings", "attributes": ["Creator"]}
            ),
        ):
            client = self.client(lambda request: response)
            with self.assertRaises(FailedOperationError) as ctx:
                await check_traits_url(client, "https://example.com/metadata.json")
            await client.aclose()
            self.assertEqual(ctx.exception.operation, "check_traits_url")

    async def test_check_traits_url_unreachable(self):
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("refused", request=request)

        client = self.client(handler)
        with self.assertRaises(FailedOperationError):
            await check_traits_url(client, "https://example.com/metadata.json")
        await client.aclose()

    async def test_create_file_from_url(self):
        client = self.client(
            lambda request: httpx.Response(
                200, content=b"\x89PNG", headers={"x-nft-traits": "Eyes: green"}
            )
        )
        image, traits = await create_file_from_url(client, "https://img.example.com", "h")
        await client.aclose()
        self.assertEqual(image, b"\x89PNG")
        self.assertEqual(traits, "Eyes: green")

    def test_create_ipfs_metadata(self):
        metadata = create_ipfs_metadata(
            "Background: blue, Eyes : green,",
            "Weather readings",
            "Hourly readings",
            "https://example.com/preview",
            "erd1abc",
        )
        self.assertEqual(metadata["description"], "Weather readings : Hourly readings")
        self.assertEqual(
            metadata["attributes"],
            [
                {"trait_type": "Background", "value": "blue"},
                {"trait_type": "Eyes", "value": "green"},
                {"trait_type": "Data Preview URL", "value": "https://example.com/preview"},
                {"trait_type": "Creator", "value": "erd1abc"},
            ],
        )


if __name__ == "__main__":
    unittest.main()
