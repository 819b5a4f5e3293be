# Copyright © Data NFT SDK Contributors
# SPDX-License-Identifier: Apache-2.0

"""
Data NFT Python SDK - a client library for Data NFTs on MultiversX.

A Data NFT is a token whose on-chain attributes point at a dataset: a data
stream guarded by a Data Marshal, a public preview and descriptive metadata.
The SDK builds unsigned transactions for the Data NFT marketplace and minter
contracts, decodes their query results, hydrates Data NFTs from the public
API and fetches the data behind them from the Data Marshal.

Key Components:
- **Configuration** (:mod:`datanft_sdk.config`): Immutable per-network settings
- **Marketplace** (:mod:`datanft_sdk.marketplace`): Offers, purchases and listings
- **Minters** (:mod:`datanft_sdk.sft_minter`, :mod:`datanft_sdk.nft_minter`):
  Minting and contract administration, with the shared operations in
  :mod:`datanft_sdk.minter`
- **Data NFTs** (:mod:`datanft_sdk.datanft`): Token records from the public API
- **Data Marshal** (:mod:`datanft_sdk.marshal`): Gated access to the data stream
- **Encoding** (:mod:`datanft_sdk.codec`, :mod:`datanft_sdk.abi`,
  :mod:`datanft_sdk.address`): Binary codec, ABI decoding and bech32 addresses

Quick Start:
    Reading the marketplace::

        import asyncio

        from datanft_sdk.config import NetworkConfig
        from datanft_sdk.marketplace import DataNftMarket

        async def main():
            market = DataNftMarket(NetworkConfig.for_environment("devnet"))
            offers = await market.view_paged_offers(0, 10)
            await market.close()

        asyncio.run(main())

    Accessing a dataset::

        from datanft_sdk.datanft import DataNftClient
        from datanft_sdk.marshal import DataMarshalClient, SignableMessage

        nft = await DataNftClient(config).create_from_api(62)
        marshal = DataMarshalClient(config)
        nonce = await marshal.get_message_to_sign(nft)
        result = await marshal.view_data(
            nft, nonce, SignableMessage(nonce, wallet.sign(nonce), wallet.address)
        )

Signing and broadcasting are left to the caller's wallet;
:meth:`datanft_sdk.network_provider.ApiNetworkProvider.send_transaction`
submits a transaction once it is signed.
"""
