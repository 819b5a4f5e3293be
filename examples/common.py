# Copyright © Data NFT SDK Contributors
# SPDX-License-Identifier: Apache-2.0

"""
Common configuration for the Data NFT SDK examples.

Environment Variables:
    DATANFT_ENV: Network environment, one of devnet, devnet2, testnet, mainnet
    DATANFT_NONCE: Nonce of the Data NFT the examples look at
    DATANFT_COLLECTION: Collection of that Data NFT, defaults to the network's
        Data NFT-FT
    DATANFT_OWNER: bech32 address whose offers are listed
    DATANFT_NATIVE_AUTH_TOKEN: Native auth token for the Data Marshal
    DATANFT_ORIGIN: Origin the native auth token was issued for
"""

import os

from datanft_sdk.config import NetworkConfig

ENVIRONMENT = os.getenv("DATANFT_ENV", "devnet")

NONCE = int(os.getenv("DATANFT_NONCE", "1"))

COLLECTION = os.getenv("DATANFT_COLLECTION")

OWNER = os.getenv("DATANFT_OWNER")

NATIVE_AUTH_TOKEN = os.getenv("DATANFT_NATIVE_AUTH_TOKEN")

ORIGIN = os.getenv("DATANFT_ORIGIN", "http://localhost:3000")

CONFIG = NetworkConfig.for_environment(ENVIRONMENT)
