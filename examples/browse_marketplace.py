# Copyright © Data NFT SDK Contributors
# SPDX-License-Identifier: Apache-2.0

"""
Read the marketplace and the Data NFT configured in :mod:`examples.common`.

Nothing is signed or sent.
"""

import asyncio

from datanft_sdk.address import Address
from datanft_sdk.datanft import DataNftClient
from datanft_sdk.marketplace import DataNftMarket

from .common import COLLECTION, CONFIG, NONCE, OWNER


async def main():
    market = DataNftMarket(CONFIG)
    client = DataNftClient(CONFIG)

    requirements, paused, total = await asyncio.gather(
        market.view_requirements(),
        market.view_contract_pause_state(),
        market.view_number_of_offers(),
    )
    print("\n=== Marketplace ===")
    print(f"Paused: {paused}")
    print(f"Offers: {total}")
    print(f"Accepted payments: {', '.join(requirements.accepted_payments)}")

    print("\n=== First offers ===")
    for offer in await market.view_paged_offers(0, 5):
        print(
            f"#{offer.index} {offer.quantity} x {offer.offered_token_identifier}-"
            f"{offer.offered_token_nonce} for {offer.wanted_token_amount} "
            f"{offer.wanted_token_identifier}"
        )

    if OWNER:
        listed = await market.view_address_listed_offers(Address.from_str(OWNER))
        print(f"\n{OWNER} has {len(listed)} listed offers")

    nft = await client.create_from_api(NONCE, COLLECTION)
    print("\n=== Data NFT ===")
    print(f"{nft.token_identifier}: {nft.title}")
    print(f"Creator: {nft.creator}")
    print(f"Marshal: {nft.data_marshal}")
    print(f"Royalties: {nft.royalties:.2%}")

    await market.close()
    await client.close()


if __name__ == "__main__":
    asyncio.run(main())
