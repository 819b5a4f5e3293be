# Copyright © Data NFT SDK Contributors
# SPDX-License-Identifier: Apache-2.0

"""
IPFS storage of the generated NFT image and its metadata through nft.storage.

Both files are uploaded as one directory so they share a content id; the
resulting gateway URLs are::

    https://ipfs.io/ipfs/{cid}/image.png
    https://ipfs.io/ipfs/{cid}/metadata.json
"""

import json
import logging
import unittest
from dataclasses import dataclass
from typing import Any, Dict, List

import httpx

from .errors import FailedOperationError

logger = logging.getLogger(__name__)

NFT_STORAGE_UPLOAD_URL = "https://api.nft.storage/upload"
IPFS_GATEWAY_URL = "https://ipfs.io/ipfs"


@dataclass
class StoredAssets:
    cid: str

    @property
    def image_url(self) -> str:
        return f"{IPFS_GATEWAY_URL}/{self.cid}/image.png"

    @property
    def metadata_url(self) -> str:
        return f"{IPFS_GATEWAY_URL}/{self.cid}/metadata.json"


async def store_to_ipfs(
    client: httpx.AsyncClient,
    storage_token: str,
    image: bytes,
    metadata: Dict[str, Any],
    upload_url: str = NFT_STORAGE_UPLOAD_URL,
) -> StoredAssets:
    """
    Upload ``image.png`` and ``metadata.json`` as a single directory.

    :param storage_token: nft.storage API token.
    :raises FailedOperationError: If the upload fails or returns no content id.
    """
    files = [
        ("file", ("image.png", image, "image/png")),
        ("file", ("metadata.json", json.dumps(metadata).encode(), "application/json")),
    ]
    logger.debug("Uploading %d files to %s", len(files), upload_url)
    try:
        response = await client.post(
            upload_url,
            headers={"Authorization": f"Bearer {storage_token}"},
            files=files,
        )
    except httpx.HTTPError as e:
        raise FailedOperationError("store_to_ipfs", str(e)) from e

    if response.status_code >= 400:
        raise FailedOperationError(
            "store_to_ipfs", f"{response.status_code} - {response.text}"
        )
    try:
        body = response.json()
    except ValueError as e:
        raise FailedOperationError("store_to_ipfs", "Upload response is not JSON") from e
    value = body.get("value") if isinstance(body, dict) else None
    cid = value.get("cid") if isinstance(value, dict) else None
    if not cid:
        raise FailedOperationError("store_to_ipfs", "Upload returned no content id")
    return StoredAssets(cid)


class Test(unittest.IsolatedAsyncioTestCase):
    async def test_store(self):
        requests: List[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            requests.append(request)
            return httpx.Response(200, json={"ok": True, "value": {"cid": "bafy123"}})

        client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
        stored = await store_to_ipfs(client, "token", b"\x89PNG", {"description": "d"})
        await client.aclose()

        self.assertEqual(stored.image_url, "https://ipfs.io/ipfs/bafy123/image.png")
        self.assertEqual(stored.metadata_url, "https://ipfs.io/ipfs/bafy123/metadata.json")
        request = requests[0]
        self.assertEqual(request.headers["authorization"], "Bearer token")
        body = request.read()
        self.assertIn(b'filename="image.png"', body)
        self.assertIn(b'filename="metadata.json"', body)

    async def test_store_failure(self):
        client = httpx.AsyncClient(
            transport=httpx.MockTransport(lambda request: httpx.Response(401, text="denied"))
        )
        with self.assertRaises(FailedOperationError) as ctx:
            await store_to_ipfs(client, "bad", b"", {})
        await client.aclose()
        self.assertIn("401", str(ctx.exception))
        self.assertEqual(ctx.exception.operation, "store_to_ipfs")

    async def test_store_malformed_response(self):
        for response in (
            httpx.Response(200, text="<html/>"),
            httpx.Response(200, json=["bafy123"]),
            httpx.Response(200, json={"ok": True, "value": "bafy123"}),
        ):
            client = httpx.AsyncClient(
                transport=httpx.MockTransport(lambda request: response)
            )
            with self.assertRaises(FailedOperationError) as ctx:
                await store_to_ipfs(client, "token", b"\x89PNG", {})
            await client.aclose()
            self.assertEqual(ctx.exception.operation, "store_to_ipfs")


if __name__ == "__main__":
    unittest.main()
