# Copyright © Data NFT SDK Contributors
# SPDX-License-Identifier: Apache-2.0

"""
Client for the Data Marshal, the service that gates access to the data stream
behind a Data NFT.

Two access flows are supported:

**Signature flow**
    1. ``GET {marshal}/preaccess?chainId=`` returns a one time nonce
       (:meth:`DataMarshalClient.get_message_to_sign`).
    2. The caller signs the nonce with their wallet.
    3. ``GET {marshal}/access?nonce=&NFTId=&signature=&chainId=&accessRequesterAddr=``
       streams the data back (:meth:`DataMarshalClient.view_data`).

**Native auth flow**
    A single ``GET {marshal}/access`` carrying ``mvxNativeAuthEnable=1`` and a
    bearer token in the ``authorization`` header
    (:meth:`DataMarshalClient.view_data_via_native_auth`).

The devnet chain id ``D`` is sent to the marshal as ``ED``; every other chain
id is sent unchanged.

Unlike the rest of the SDK, the access flows do not raise once the request
has been sent. A failed access comes back as a :class:`ViewDataResult` whose
``error`` holds the status and the marshal's error body, so the caller can
inspect what the marshal answered. Missing marshal URLs and invalid options
are still raised before any request is made.

Examples:
    Signature flow::

        marshal = DataMarshalClient(NetworkConfig.for_environment("devnet"))
        nonce = await marshal.get_message_to_sign(nft)
        signature = wallet.sign(nonce)  # done outside the SDK
        result = await marshal.view_data(
            nft,
            signed_message=nonce,
            signable_message=SignableMessage(nonce, signature, wallet.address),
            options=ViewDataOptions(stream=True),
        )
        if result.error is None:
            print(result.content_type, len(result.data))

    Native auth flow::

        result = await marshal.view_data_via_native_auth(
            nft,
            NativeAuthParams(
                mvx_native_auth_origins=["https://mysite.com"],
                mvx_native_auth_max_expiry_seconds=3600,
                fwd_header_map_lookup={"authorization": "Bearer eyJ..."},
            ),
        )
"""

import base64
import logging
import unittest
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Union

import httpx

from .address import Address
from .config import NetworkConfig
from .datanft import DataNft, create_nft_identifier
from .errors import AttributeNotSetError, FailedOperationError, FetchError, ParamValidationError
from .metadata import Metadata
from .network_provider import check_status
from .validation import validate_specific_params_view_data

logger = logging.getLogger(__name__)

DEVNET_CHAIN_ID = "D"
MARSHAL_DEVNET_CHAIN_ID = "ED"


def map_chain_id(chain_id: str) -> str:
    """Chain id as expected by the marshal: ``D`` becomes ``ED``, others pass through."""
    return MARSHAL_DEVNET_CHAIN_ID if chain_id == DEVNET_CHAIN_ID else chain_id


@dataclass
class SignableMessage:
    """The nonce signed by the caller's wallet.

    Attributes:
        message: The nonce returned by the preaccess call.
        signature: Raw signature bytes, or their hex form.
        address: The signer.
    """

    message: Union[str, bytes]
    signature: Union[bytes, str, None] = None
    address: Optional[Address] = None


@dataclass
class AccessSignResult:
    signature: str = ""
    address_hex: str = ""
    success: bool = False
    exception: str = ""

    @staticmethod
    def from_signable_message(message: SignableMessage) -> "AccessSignResult":
        if not message.signature or message.address is None:
            return AccessSignResult(exception="Signable message is missing a signature or address")
        signature = message.signature
        if isinstance(signature, bytes):
            signature = signature.hex()
        return AccessSignResult(
            signature=signature, address_hex=message.address.hex(), success=True
        )


@dataclass
class ViewDataOptions:
    """Optional behaviour of a signature flow access request.

    Attributes:
        stream: Ask the marshal to stream the data inline instead of as a download.
        fwd_all_headers: Forward every request header to the origin server.
        fwd_header_keys: Comma separated lowercase header names (at most 4) to
            forward. Takes precedence over ``fwd_all_headers``.
        fwd_header_map_lookup: Header values to attach when ``fwd_header_keys``
            is set, e.g. ``{"cookie": "xyz"}``.
        nested_idx_to_stream: Index of the item to fetch from a nested stream.
    """

    stream: Optional[bool] = None
    fwd_all_headers: Optional[bool] = None
    fwd_header_keys: Optional[str] = None
    fwd_header_map_lookup: Optional[Dict[str, str]] = None
    nested_idx_to_stream: Optional[int] = None


@dataclass
class NativeAuthParams:
    """Parameters of a native auth access request.

    ``fwd_header_map_lookup`` must hold an ``authorization`` entry with the
    bearer token; it is always sent. The other entries are sent only when
    ``fwd_header_keys`` is set.
    """

    mvx_native_auth_origins: List[str]
    mvx_native_auth_max_expiry_seconds: int
    fwd_header_map_lookup: Dict[str, str]
    fwd_header_keys: Optional[str] = None
    fwd_all_headers: Optional[bool] = None
    stream: Optional[bool] = None
    nested_idx_to_stream: Optional[int] = None


@dataclass
class ViewDataResult:
    data: Optional[bytes] = None
    content_type: str = ""
    error: Optional[str] = None


def encode_origins(origins: List[str]) -> str:
    """Join origins with commas, drop spaces and base64 encode the result."""
    joined = ",".join(origins).strip().replace(" ", "")
    return base64.b64encode(joined.encode()).decode()


class DataMarshalClient:
    """Talks to the Data Marshal named in each :class:`DataNft`."""

    config: NetworkConfig
    client: httpx.AsyncClient

    def __init__(
        self,
        config: NetworkConfig,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.config = config
        self.client = httpx.AsyncClient(
            http2=config.http2,
            timeout=httpx.Timeout(config.timeout),
            headers={Metadata.CLIENT_HEADER: Metadata.get_client_header_val()},
            transport=transport,
        )

    async def close(self):
        await self.client.aclose()

    @property
    def chain_id(self) -> str:
        return map_chain_id(self.config.chain_id)

    async def health_check(self, marshal_url: str) -> bool:
        response = await self.client.get(f"{marshal_url}/health-check")
        return response.status_code == 200

    async def get_message_to_sign(self, data_nft: DataNft) -> str:
        """
        Request a one time nonce from the token's marshal.

        :raises AttributeNotSetError: If ``data_nft.data_marshal`` is empty.
        :raises FetchError: If the marshal does not answer with a 2xx status.
        """
        marshal = self._marshal_url(data_nft)
        logger.debug("Requesting preaccess nonce from %s", marshal)
        response = await self.client.get(
            f"{marshal}/preaccess", params={"chainId": self.chain_id}
        )
        check_status(response)
        nonce = response.json().get("nonce")
        if nonce is None:
            raise FailedOperationError("get_message_to_sign", "Response has no nonce")
        return nonce

    async def view_data(
        self,
        data_nft: DataNft,
        signed_message: str,
        signable_message: SignableMessage,
        options: Optional[ViewDataOptions] = None,
    ) -> ViewDataResult:
        """
        Fetch the data behind ``data_nft`` using a signed preaccess nonce.

        :raises AttributeNotSetError: If ``data_nft.data_marshal`` is empty.
        :raises ParamValidationError: If the message or options are invalid.
        """
        marshal = self._marshal_url(data_nft)
        options = options or ViewDataOptions()
        result = validate_specific_params_view_data(
            signed_message=signed_message,
            signable_message=signable_message,
            stream=options.stream,
            fwd_all_headers=options.fwd_all_headers,
            fwd_header_keys=options.fwd_header_keys,
            fwd_header_map_lookup=options.fwd_header_map_lookup,
            nested_idx_to_stream=options.nested_idx_to_stream,
            mandatory_params=["signed_message", "signable_message"],
        )
        if not result.all_passed:
            raise ParamValidationError(result.validation_messages)

        sign_result = AccessSignResult.from_signable_message(signable_message)
        if not sign_result.success:
            return self._failed(sign_result.exception)

        params: Dict[str, Any] = {
            "nonce": signed_message,
            "NFTId": create_nft_identifier(data_nft.collection, data_nft.nonce),
            "signature": sign_result.signature,
            "chainId": self.chain_id,
            "accessRequesterAddr": sign_result.address_hex,
        }
        self._optional_params(
            params, options.stream, options.fwd_all_headers, options.nested_idx_to_stream
        )

        headers: Dict[str, str] = {}
        if options.fwd_header_keys is not None:
            params["fwdHeaderKeys"] = options.fwd_header_keys
            headers.update(options.fwd_header_map_lookup or {})

        return await self._access(marshal, params, headers)

    async def view_data_via_native_auth(
        self, data_nft: DataNft, auth: NativeAuthParams
    ) -> ViewDataResult:
        """
        Fetch the data behind ``data_nft`` authenticating with a native auth token.

        :raises AttributeNotSetError: If ``data_nft.data_marshal`` is empty.
        :raises ParamValidationError: If the parameters are invalid, including a
            header map without an ``authorization: Bearer ...`` entry.
        """
        marshal = self._marshal_url(data_nft)
        result = validate_specific_params_view_data(
            mvx_native_auth_origins=auth.mvx_native_auth_origins,
            mvx_native_auth_max_expiry_seconds=auth.mvx_native_auth_max_expiry_seconds,
            fwd_header_keys=auth.fwd_header_keys,
            fwd_header_map_lookup=auth.fwd_header_map_lookup,
            fwd_all_headers=auth.fwd_all_headers,
            stream=auth.stream,
            nested_idx_to_stream=auth.nested_idx_to_stream,
            mandatory_params=[
                "mvx_native_auth_origins",
                "mvx_native_auth_max_expiry_seconds",
                "fwd_header_map_lookup",
            ],
        )
        if not result.all_passed:
            raise ParamValidationError(result.validation_messages)

        params: Dict[str, Any] = {
            "NFTId": create_nft_identifier(data_nft.collection, data_nft.nonce),
            "chainId": self.chain_id,
            "mvxNativeAuthEnable": 1,
            "mvxNativeAuthMaxExpirySeconds": auth.mvx_native_auth_max_expiry_seconds,
            "mvxNativeAuthOrigins": encode_origins(auth.mvx_native_auth_origins),
        }
        self._optional_params(
            params, auth.stream, auth.fwd_all_headers, auth.nested_idx_to_stream
        )

        headers = {"authorization": auth.fwd_header_map_lookup["authorization"]}
        if auth.fwd_header_keys is not None:
            params["fwdHeaderKeys"] = auth.fwd_header_keys
            for key, value in auth.fwd_header_map_lookup.items():
                if key != "authorization":
                    headers[key] = value

        return await self._access(marshal, params, headers)

    @staticmethod
    def _marshal_url(data_nft: DataNft) -> str:
        if not data_nft.data_marshal:
            raise AttributeNotSetError("data_marshal")
        return data_nft.data_marshal.rstrip("/")

    @staticmethod
    def _optional_params(
        params: Dict[str, Any],
        stream: Optional[bool],
        fwd_all_headers: Optional[bool],
        nested_idx_to_stream: Optional[int],
    ):
        if stream:
            params["streamInLine"] = 1
        if fwd_all_headers:
            params["fwdAllHeaders"] = 1
        if nested_idx_to_stream is not None:
            params["nestedIdxToStream"] = nested_idx_to_stream

    async def _access(
        self, marshal: str, params: Dict[str, Any], headers: Dict[str, str]
    ) -> ViewDataResult:
        logger.debug("Requesting access to %s from %s", params["NFTId"], marshal)
        try:
            response = await self.client.get(
                f"{marshal}/access", params=params, headers=headers
            )
            try:
                check_status(response)
            except FetchError as e:
                raise FailedOperationError(
                    "access", f"{e}. Detailed error trace follows : {response.text}"
                ) from e
        except (FailedOperationError, httpx.HTTPError) as e:
            return self._failed(str(e))
        return ViewDataResult(
            data=response.content,
            content_type=response.headers.get("content-type", ""),
        )

    @staticmethod
    def _failed(error: str) -> ViewDataResult:
        logger.warning("Data Marshal access failed: %s", error)
        return ViewDataResult(data=None, content_type="", error=error)


class Test(unittest.IsolatedAsyncioTestCase):
    def setUp(self):
        self.config = NetworkConfig.for_environment("devnet")
        self.nft = DataNft(
            data_marshal="https://marshal.example.com/v1",
            collection="DATANFTFT-e0b917",
            nonce=10,
        )
        self.signer = Address(b"\x05" * 32)
        self.requests: List[httpx.Request] = []

    def client(self, handler) -> DataMarshalClient:
        def record(request: httpx.Request) -> httpx.Response:
            self.requests.append(request)
            return handler(request)

        return DataMarshalClient(self.config, transport=httpx.MockTransport(record))

    def ok(self, request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, content=b"payload", headers={"content-type": "text/csv"})

    def test_map_chain_id(self):
        self.assertEqual(map_chain_id("D"), "ED")
        self.assertEqual(map_chain_id("1"), "1")
        self.assertEqual(map_chain_id("T"), "T")

    def test_encode_origins(self):
        self.assertEqual(
            encode_origins(["http://localhost:3000", " https://example.com"]),
            base64.b64encode(b"http://localhost:3000,https://example.com").decode(),
        )

    async def test_get_message_to_sign(self):
        marshal = self.client(lambda request: httpx.Response(200, json={"nonce": "abc123"}))
        self.assertEqual(await marshal.get_message_to_sign(self.nft), "abc123")
        await marshal.close()
        request = self.requests[0]
        self.assertEqual(request.url.path, "/v1/preaccess")
        self.assertEqual(request.url.params["chainId"], "ED")

    async def test_missing_marshal(self):
        marshal = self.client(self.ok)
        with self.assertRaises(AttributeNotSetError):
            await marshal.get_message_to_sign(DataNft())
        with self.assertRaises(AttributeNotSetError):
            await marshal.view_data(DataNft(), "abcdefgh", SignableMessage("abcdefgh"))
        await marshal.close()
        self.assertEqual(self.requests, [])

    async def test_view_data(self):
        marshal = self.client(self.ok)
        result = await marshal.view_data(
            self.nft,
            "nonce-123",
            SignableMessage("nonce-123", b"\xaa\xbb", self.signer),
            ViewDataOptions(
                stream=True,
                fwd_all_headers=True,
                fwd_header_keys="cookie",
                fwd_header_map_lookup={"cookie": "xyz"},
                nested_idx_to_stream=2,
            ),
        )
        await marshal.close()

        self.assertIsNone(result.error)
        self.assertEqual(result.data, b"payload")
        self.assertEqual(result.content_type, "text/csv")
        params = self.requests[0].url.params
        self.assertEqual(params["nonce"], "nonce-123")
        self.assertEqual(params["NFTId"], "DATANFTFT-e0b917-0a")
        self.assertEqual(params["signature"], "aabb")
        self.assertEqual(params["chainId"], "ED")
        self.assertEqual(params["accessRequesterAddr"], self.signer.hex())
        self.assertEqual(params["streamInLine"], "1")
        self.assertEqual(params["fwdAllHeaders"], "1")
        self.assertEqual(params["nestedIdxToStream"], "2")
        self.assertEqual(params["fwdHeaderKeys"], "cookie")
        self.assertEqual(self.requests[0].headers["cookie"], "xyz")

    async def test_view_data_header_map_needs_keys(self):
        marshal = self.client(self.ok)
        await marshal.view_data(
            self.nft,
            "nonce-123",
            SignableMessage("nonce-123", "aabb", self.signer),
            ViewDataOptions(fwd_header_map_lookup={"cookie": "xyz"}),
        )
        await marshal.close()
        self.assertNotIn("cookie", self.requests[0].headers)
        self.assertNotIn("fwdHeaderKeys", self.requests[0].url.params)

    async def test_view_data_marshal_error(self):
        marshal = self.client(
            lambda request: httpx.Response(403, json={"error": "not owner"})
        )
        result = await marshal.view_data(
            self.nft, "nonce-123", SignableMessage("nonce-123", "aabb", self.signer)
        )
        await marshal.close()
        self.assertIsNone(result.data)
        self.assertEqual(result.content_type, "")
        self.assertIn("403", result.error)
        self.assertIn("Detailed error trace follows", result.error)
        self.assertIn("not owner", result.error)

    async def test_view_data_validation(self):
        marshal = self.client(self.ok)
        with self.assertRaises(ParamValidationError):
            await marshal.view_data(
                self.nft,
                "",
                SignableMessage(""),
                ViewDataOptions(fwd_header_keys="a,b,c,d,e"),
            )
        await marshal.close()
        self.assertEqual(self.requests, [])

    async def test_view_data_unsigned(self):
        marshal = self.client(self.ok)
        result = await marshal.view_data(self.nft, "nonce-123", SignableMessage("nonce-123"))
        await marshal.close()
        self.assertIsNotNone(result.error)
        self.assertEqual(self.requests, [])

    async def test_native_auth(self):
        marshal = self.client(self.ok)
        result = await marshal.view_data_via_native_auth(
            self.nft,
            NativeAuthParams(
                mvx_native_auth_origins=["https://example.com"],
                mvx_native_auth_max_expiry_seconds=3600,
                fwd_header_map_lookup={"authorization": "Bearer abc", "cookie": "xyz"},
                fwd_all_headers=True,
            ),
        )
        await marshal.close()
        self.assertIsNone(result.error)
        request = self.requests[0]
        self.assertEqual(request.headers["authorization"], "Bearer abc")
        self.assertNotIn("cookie", request.headers)
        self.assertEqual(request.url.params["mvxNativeAuthEnable"], "1")
        self.assertEqual(request.url.params["mvxNativeAuthMaxExpirySeconds"], "3600")
        self.assertEqual(
            request.url.params["mvxNativeAuthOrigins"],
            encode_origins(["https://example.com"]),
        )
        self.assertEqual(request.url.params["fwdAllHeaders"], "1")

    async def test_native_auth_forwards_keyed_headers(self):
        marshal = self.client(self.ok)
        await marshal.view_data_via_native_auth(
            self.nft,
            NativeAuthParams(
                mvx_native_auth_origins=["https://example.com"],
                mvx_native_auth_max_expiry_seconds=3600,
                fwd_header_map_lookup={"authorization": "Bearer abc", "cookie": "xyz"},
                fwd_header_keys="cookie",
            ),
        )
        await marshal.close()
        request = self.requests[0]
        self.assertEqual(request.headers["cookie"], "xyz")
        self.assertEqual(request.headers["authorization"], "Bearer abc")
        self.assertEqual(request.url.params["fwdHeaderKeys"], "cookie")

    async def test_native_auth_without_bearer(self):
        marshal = self.client(self.ok)
        with self.assertRaises(ParamValidationError):
            await marshal.view_data_via_native_auth(
                self.nft,
                NativeAuthParams(
                    mvx_native_auth_origins=["https://example.com"],
                    mvx_native_auth_max_expiry_seconds=3600,
                    fwd_header_map_lookup={"cookie": "xyz"},
                ),
            )
        await marshal.close()
        self.assertEqual(self.requests, [])

    async def test_health_check(self):
        marshal = self.client(lambda request: httpx.Response(200, text="ok"))
        self.assertTrue(await marshal.health_check("https://marshal.example.com/v1"))
        await marshal.close()
        self.assertEqual(self.requests[0].url.path, "/v1/health-check")


if __name__ == "__main__":
    unittest.main()
