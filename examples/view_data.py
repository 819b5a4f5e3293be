# Copyright © Data NFT SDK Contributors
# SPDX-License-Identifier: Apache-2.0

"""
Fetch the data behind a Data NFT through the Data Marshal native auth flow.

The native auth token must be issued by a wallet that owns the Data NFT, for
the origin set in ``DATANFT_ORIGIN``.
"""

import asyncio
import sys

from datanft_sdk.datanft import DataNftClient
from datanft_sdk.marshal import DataMarshalClient, NativeAuthParams

from .common import COLLECTION, CONFIG, NATIVE_AUTH_TOKEN, NONCE, ORIGIN


async def main():
    if not NATIVE_AUTH_TOKEN:
        sys.exit("Set DATANFT_NATIVE_AUTH_TOKEN to run this example")

    client = DataNftClient(CONFIG)
    marshal = DataMarshalClient(CONFIG)

    nft = await client.create_from_api(NONCE, COLLECTION)
    print(f"Marshal of {nft.token_identifier}: {nft.data_marshal}")
    print(f"Marshal healthy: {await marshal.health_check(nft.data_marshal)}")

    result = await marshal.view_data_via_native_auth(
        nft,
        NativeAuthParams(
            mvx_native_auth_origins=[ORIGIN],
            mvx_native_auth_max_expiry_seconds=3600,
            fwd_header_map_lookup={"authorization": f"Bearer {NATIVE_AUTH_TOKEN}"},
            stream=True,
        ),
    )
    if result.error is not None:
        print(f"Access failed: {result.error}")
    else:
        print(f"Received {len(result.data)} bytes of {result.content_type}")

    await client.close()
    await marshal.close()


if __name__ == "__main__":
    asyncio.run(main())
