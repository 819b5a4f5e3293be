# Copyright © Data NFT SDK Contributors
# SPDX-License-Identifier: Apache-2.0

"""
The network's Data NFT-FT minter, where anyone can mint a semi-fungible Data
NFT for a dataset.

:meth:`SftMinter.mint` is the only operation in the SDK that talks to
services other than the chain API before building its transaction. In order,
it:

1. validates the parameters;
2. checks that the data stream answers 200 or 403, the preview 200 and the
   Data Marshal health check 200;
3. has the Data Marshal encrypt the data stream URL;
4. either generates art from the encrypted stream's hash and stores it on IPFS
   with a metadata file, or checks the caller's own image and traits;
5. builds the ``mint`` call, wrapped in an ``ESDTTransfer`` of the anti-spam
   tax when the tax is positive.

Examples:
    Minting with a custom image::

        minter = SftMinter(NetworkConfig.for_environment("devnet"))
        txn = await minter.mint(
            sender,
            "Weather01",
            "https://marshal.example.com",
            "https://example.com/stream.json",
            "https://example.com/preview.json",
            royalties=10,
            supply=100,
            dataset_title="Weather readings",
            dataset_description="Hourly readings from a rooftop station",
            anti_spam_tax=0,
            options=MintOptions(
                image_url="https://example.com/image.png",
                traits_url="https://example.com/metadata.json",
            ),
        )
"""

import logging
import unittest
from dataclasses import dataclass
from typing import List, Optional, Union

import httpx

from .abi import SFT_MINTER_ABI
from .address import Address
from .codec import TopEncoder
from .config import NetworkConfig
from .errors import ArgumentNotSetError, FailedOperationError, ParamValidationError
from .metadata import Metadata
from .mint_utils import (
    check_traits_url,
    check_url_is_up,
    create_file_from_url,
    create_ipfs_metadata,
    data_stream_advertise,
)
from .minter import DEFAULT_GAS_LIMIT, Minter
from .storage import NFT_STORAGE_UPLOAD_URL, store_to_ipfs
from .transactions import ContractCallPayload, Transaction, TransactionArgument
from .validation import validate_specific_params_mint

logger = logging.getLogger(__name__)

MINT_GAS_LIMIT = 60_000_000


@dataclass
class MintOptions:
    """How the token image and metadata are obtained.

    Attributes:
        image_url: Use this image instead of generated art; requires ``traits_url``.
        traits_url: Metadata JSON matching ``image_url``.
        nft_storage_token: nft.storage token used to upload generated art.
        anti_spam_token_identifier: Token the anti-spam tax is paid in,
            defaults to the network's ITHEUM token.
    """

    image_url: Optional[str] = None
    traits_url: Optional[str] = None
    nft_storage_token: Optional[str] = None
    anti_spam_token_identifier: Optional[str] = None


class SftMinter(Minter):
    client: httpx.AsyncClient
    storage_url: str

    def __init__(
        self,
        config: NetworkConfig,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        storage_url: str = NFT_STORAGE_UPLOAD_URL,
    ):
        super().__init__(config, config.minter_contract_address, SFT_MINTER_ABI, transport)
        self.storage_url = storage_url
        self.client = httpx.AsyncClient(
            http2=config.http2,
            timeout=httpx.Timeout(config.timeout),
            headers={Metadata.CLIENT_HEADER: Metadata.get_client_header_val()},
            transport=transport,
        )

    async def close(self):
        await super().close()
        await self.client.aclose()

    def initialize_contract(
        self,
        sender: Address,
        collection_name: str,
        token_ticker: str,
        anti_spam_tax_token_identifier: str,
        anti_spam_tax: int,
        mint_limit: int,
        treasury_address: Address,
        gas_limit: int = DEFAULT_GAS_LIMIT,
    ) -> Transaction:
        return self.contract.call(
            sender,
            "initializeContract",
            [
                TransactionArgument(collection_name, TopEncoder.str),
                TransactionArgument(token_ticker, TopEncoder.str),
                TransactionArgument(anti_spam_tax_token_identifier, TopEncoder.str),
                TransactionArgument(anti_spam_tax, TopEncoder.biguint),
                TransactionArgument(mint_limit, TopEncoder.u64),
                TransactionArgument(treasury_address, TopEncoder.struct),
            ],
            gas_limit,
        )

    def set_treasury_address(self, sender: Address, treasury_address: Address) -> Transaction:
        return self.contract.call(
            sender,
            "setTreasuryAddress",
            [TransactionArgument(treasury_address, TopEncoder.struct)],
        )

    def set_max_supply(self, sender: Address, max_supply: int) -> Transaction:
        return self.contract.call(
            sender, "setMaxSupply", [TransactionArgument(max_supply, TopEncoder.biguint)]
        )

    async def mint(
        self,
        sender: Address,
        token_name: str,
        data_marshal_url: str,
        data_stream_url: str,
        data_preview_url: str,
        royalties: int,
        supply: int,
        dataset_title: str,
        dataset_description: str,
        anti_spam_tax: Union[int, float],
        options: Optional[MintOptions] = None,
    ) -> Transaction:
        """
        Build the mint transaction for a new dataset.

        :param anti_spam_tax: Tax in the smallest unit of the tax token;
            fractional amounts are truncated.
        :raises ParamValidationError: If any parameter fails validation.
        :raises ArgumentNotSetError: If ``nft_storage_token`` is missing for
            generated art, or ``traits_url`` for a custom image.
        :raises FailedOperationError: If a URL is down or a collaborating
            service answers unexpectedly.
        :raises FetchError: If a collaborating service answers with an error status.
        """
        options = options or MintOptions()
        result = validate_specific_params_mint(
            sender_address=sender,
            token_name=token_name,
            royalties=royalties,
            supply=supply,
            dataset_title=dataset_title,
            dataset_description=dataset_description,
            anti_spam_tax=anti_spam_tax,
            mandatory_params=[
                "sender_address",
                "token_name",
                "royalties",
                "supply",
                "dataset_title",
                "dataset_description",
                "anti_spam_tax",
            ],
        )
        if not result.all_passed:
            raise ParamValidationError(result.validation_messages)

        await check_url_is_up(self.client, data_stream_url, [200, 403])
        await check_url_is_up(self.client, data_preview_url, [200])
        await check_url_is_up(self.client, f"{data_marshal_url}/health-check", [200])

        advertisement = await data_stream_advertise(
            self.client, data_marshal_url, data_stream_url
        )

        if not options.image_url:
            if not options.nft_storage_token:
                raise ArgumentNotSetError(
                    "nft_storage_token",
                    "NFT Storage token is required when not using custom image and traits",
                )
            image, traits = await create_file_from_url(
                self.client, self.config.image_service_url, advertisement.message_hash
            )
            metadata = create_ipfs_metadata(
                traits,
                dataset_title,
                dataset_description,
                data_preview_url,
                sender.bech32(),
            )
            stored = await store_to_ipfs(
                self.client, options.nft_storage_token, image, metadata, self.storage_url
            )
            image_url, metadata_url = stored.image_url, stored.metadata_url
        else:
            if not options.traits_url:
                raise ArgumentNotSetError(
                    "traits_url", "Traits URL is required when using custom image"
                )
            await check_traits_url(self.client, options.traits_url)
            image_url, metadata_url = options.image_url, options.traits_url

        arguments = [
            TransactionArgument(token_name, TopEncoder.str),
            TransactionArgument(image_url, TopEncoder.str),
            TransactionArgument(metadata_url, TopEncoder.str),
            TransactionArgument(data_marshal_url, TopEncoder.str),
            TransactionArgument(advertisement.encrypted_message, TopEncoder.str),
            TransactionArgument(data_preview_url, TopEncoder.str),
            TransactionArgument(royalties, TopEncoder.u64),
            TransactionArgument(supply, TopEncoder.u64),
            TransactionArgument(dataset_title, TopEncoder.str),
            TransactionArgument(dataset_description, TopEncoder.str),
        ]
        if anti_spam_tax > 0:
            payload = ContractCallPayload.esdt_transfer(
                options.anti_spam_token_identifier or self.config.itheum_token_identifier,
                int(anti_spam_tax),
                "mint",
                arguments,
            )
        else:
            payload = ContractCallPayload.natural("mint", arguments)

        logger.debug("Built mint of %s for %s", token_name, sender)
        return self.contract.transaction(sender, payload, MINT_GAS_LIMIT)


class Test(unittest.IsolatedAsyncioTestCase):
    def setUp(self):
        contract = Address(b"\x00" * 8 + b"\x05\x00" + b"\x09" * 22)
        self.config = NetworkConfig.for_environment(
            "devnet", minter_contract_address=contract.bech32()
        )
        self.sender = Address(b"\x03" * 32)
        self.requests: List[httpx.Request] = []
        self.stream_status = 403

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        url = str(request.url)
        if url.startswith("https://example.com/stream"):
            return httpx.Response(self.stream_status)
        if url.startswith("https://example.com/preview"):
            return httpx.Response(200)
        if request.url.path.endswith("/health-check"):
            return httpx.Response(200, text="ok")
        if request.url.path.endswith("/generate"):
            return httpx.Response(
                200, json={"encryptedMessage": "encrypted", "messageHash": "hash"}
            )
        if request.url.path.endswith("/v1/generateNFTArt"):
            return httpx.Response(
                200, content=b"\x89PNG", headers={"x-nft-traits": "Eyes: green"}
            )
        if request.url.host == "api.nft.storage":
            return httpx.Response(200, json={"ok": True, "value": {"cid": "bafy"}})
        if url.startswith("https://example.com/metadata"):
            return httpx.Response(
                200,
                json={
                    "description": "d",
                    "attributes": [
                        {"trait_type": "Creator", "value": "erd1"},
                        {"trait_type": "Data Preview URL", "value": "https://p"},
                    ],
                },
            )
        return httpx.Response(404)

    def minter(self) -> SftMinter:
        return SftMinter(self.config, transport=httpx.MockTransport(self.handler))

    async def mint(self, minter: SftMinter, anti_spam_tax=0, **options) -> Transaction:
        return await minter.mint(
            self.sender,
            "Weather01",
            "https://marshal.example.com",
            "https://example.com/stream.json",
            "https://example.com/preview.json",
            10,
            100,
            "Weather readings",
            "Hourly readings from a rooftop station",
            anti_spam_tax,
            MintOptions(**options),
        )

    async def test_mint_custom_image(self):
        minter = self.minter()
        txn = await self.mint(
            minter,
            image_url="https://example.com/image.png",
            traits_url="https://example.com/metadata.json",
        )
        await minter.close()
        self.assertEqual(txn.payload.function, "mint")
        self.assertEqual(txn.receiver, minter.get_contract_address())
        self.assertEqual(txn.gas_limit, MINT_GAS_LIMIT)
        self.assertEqual(
            txn.payload.args,
            [
                "Weather01",
                "https://example.com/image.png",
                "https://example.com/metadata.json",
                "https://marshal.example.com",
                "encrypted",
                "https://example.com/preview.json",
                10,
                100,
                "Weather readings",
                "Hourly readings from a rooftop station",
            ],
        )

    async def test_mint_generated_art_with_tax(self):
        minter = self.minter()
        txn = await self.mint(minter, anti_spam_tax=5, nft_storage_token="token")
        await minter.close()
        self.assertEqual(txn.payload.function, "ESDTTransfer")
        self.assertEqual(txn.receiver, minter.get_contract_address())
        self.assertEqual(txn.payload.args[:3], ["ITHEUM-fce905", 5, "mint"])
        self.assertEqual(txn.payload.args[4], "https://ipfs.io/ipfs/bafy/image.png")
        self.assertEqual(txn.payload.args[5], "https://ipfs.io/ipfs/bafy/metadata.json")

        upload = next(r for r in self.requests if r.url.host == "api.nft.storage")
        body = upload.read()
        self.assertIn(b"Weather readings : Hourly readings", body)
        art = next(r for r in self.requests if r.url.path.endswith("generateNFTArt"))
        self.assertEqual(art.url.params["hash"], "hash")

    async def test_mint_requires_storage_token(self):
        minter = self.minter()
        with self.assertRaises(ArgumentNotSetError) as ctx:
            await self.mint(minter)
        await minter.close()
        self.assertEqual(ctx.exception.argument, "nft_storage_token")

    async def test_mint_requires_traits_url(self):
        minter = self.minter()
        with self.assertRaises(ArgumentNotSetError):
            await self.mint(minter, image_url="https://example.com/image.png")
        await minter.close()

    async def test_mint_stream_down(self):
        self.stream_status = 500
        minter = self.minter()
        with self.assertRaises(FailedOperationError):
            await self.mint(minter, nft_storage_token="token")
        await minter.close()

    async def test_mint_validation(self):
        minter = self.minter()
        with self.assertRaises(ParamValidationError):
            await minter.mint(
                self.sender, "x", "m", "s", "p", 99, 0, "t", "d", -1
            )
        await minter.close()
        self.assertEqual(self.requests, [])

    def test_admin_calls(self):
        minter = self.minter()
        treasury = Address(b"\x04" * 32)
        txn = minter.initialize_contract(
            self.sender, "Weather", "WTHR", "ITHEUM-fce905", 1000, 3600, treasury
        )
        self.assertEqual(
            txn.payload.args, ["Weather", "WTHR", "ITHEUM-fce905", 1000, 3600, treasury]
        )
        self.assertEqual(txn.value, 0)
        self.assertEqual(minter.set_max_supply(self.sender, 20).data, b"setMaxSupply@14")
        txn = minter.set_treasury_address(self.sender, treasury)
        self.assertEqual(txn.to_dict()["receiver"], minter.get_contract_address().bech32())


if __name__ == "__main__":
    unittest.main()
