# Copyright © Data NFT SDK Contributors
# SPDX-License-Identifier: Apache-2.0

"""
Network configuration for the Data NFT SDK.

Every client in this package is constructed with a :class:`NetworkConfig`, an
immutable value holding the chain id, API endpoints, contract addresses and
well-known token identifiers of one environment. Presets exist for the public
environments and any field can be overridden.

Examples:
    Preset configuration::

        from datanft_sdk.config import NetworkConfig

        config = NetworkConfig.for_environment("devnet")
        config.chain_id  # "D"

    Custom minter contract and a longer timeout::

        config = NetworkConfig.for_environment(
            "mainnet",
            minter_contract_address="erd1qqqqqqqqqqqqqpgq...",
            timeout=30.0,
        )

Only the devnet minter and the devnet and mainnet marketplaces have preset
addresses. On mainnet, testnet and devnet2, :class:`SftMinter` raises
:class:`NetworkConfigError` until ``minter_contract_address`` is passed as an
override, as above; testnet and devnet2 need ``marketplace_contract_address``
for :class:`DataNftMarket` too.
"""

import dataclasses
import unittest
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict

from .errors import NetworkConfigError


class Environment(str, Enum):
    DEVNET = "devnet"
    DEVNET2 = "devnet2"
    TESTNET = "testnet"
    MAINNET = "mainnet"


@dataclass(frozen=True)
class NetworkConfig:
    """Settings for one network environment.

    Chain Parameters:
        environment: The environment this configuration belongs to.
        chain_id: Chain identifier placed on every transaction ("D", "T", "1").
        network_provider_url: Base URL of the chain API used for contract
            queries and transaction submission.
        api_url: Base URL of the public API used to fetch token records.

    Contracts and Tokens:
        marketplace_contract_address: bech32 address of the marketplace.
        minter_contract_address: bech32 address of the Data NFT-FT minter.
        data_nft_token_identifier: Collection identifier of the Data NFT-FT.
        itheum_token_identifier: Canonical payment and anti-spam tax token.
        image_service_url: Base URL of the NFT art generation service.

    Transport:
        timeout: HTTP timeout in seconds (default: 10.0).
        http2: Enable HTTP/2 (default: True).
    """

    environment: Environment
    chain_id: str
    network_provider_url: str
    api_url: str
    marketplace_contract_address: str = ""
    minter_contract_address: str = ""
    data_nft_token_identifier: str = ""
    itheum_token_identifier: str = ""
    image_service_url: str = ""
    timeout: float = 10.0
    http2: bool = True

    @staticmethod
    def for_environment(env: Any, **overrides: Any) -> "NetworkConfig":
        """Build the preset for ``env``, applying any field overrides.

        :param env: An :class:`Environment` or its name, e.g. ``"devnet"``.
        :raises NetworkConfigError: If ``env`` is not a known environment.
        """
        try:
            environment = Environment(env)
        except ValueError:
            expected = " | ".join(f"'{e.value}'" for e in Environment)
            raise NetworkConfigError(
                f"Invalid environment: {env}, Expected: {expected}"
            ) from None
        config = PRESETS[environment]
        if overrides:
            config = dataclasses.replace(config, **overrides)
        return config


PRESETS: Dict[Environment, NetworkConfig] = {
    Environment.DEVNET: NetworkConfig(
        environment=Environment.DEVNET,
        chain_id="D",
        network_provider_url="https://devnet-api.multiversx.com",
        api_url="https://devnet-api.multiversx.com",
        marketplace_contract_address="erd1qqqqqqqqqqqqqpgqlhewm06p4c9qhq32p239hs45dvry948tfsxshx3e0l",
        minter_contract_address="erd1qqqqqqqqqqqqqpgqpd9qxrq5a03jrneafmlmckmlj5zgdj55fsxsqa7jsm",
        data_nft_token_identifier="DATANFTFT-e0b917",
        itheum_token_identifier="ITHEUM-fce905",
        image_service_url="https://api.itheumcloud-stg.com/datadexapi",
    ),
    Environment.DEVNET2: NetworkConfig(
        environment=Environment.DEVNET2,
        chain_id="D",
        network_provider_url="https://devnet2-api.multiversx.com",
        api_url="https://devnet2-api.multiversx.com",
        data_nft_token_identifier="DATANFTFT-e0b917",
        itheum_token_identifier="ITHEUM-fce905",
        image_service_url="https://api.itheumcloud-stg.com/datadexapi",
    ),
    Environment.TESTNET: NetworkConfig(
        environment=Environment.TESTNET,
        chain_id="T",
        network_provider_url="https://testnet-api.multiversx.com",
        api_url="https://testnet-api.multiversx.com",
    ),
    Environment.MAINNET: NetworkConfig(
        environment=Environment.MAINNET,
        chain_id="1",
        network_provider_url="https://api.multiversx.com",
        api_url="https://api.multiversx.com",
        marketplace_contract_address="erd1qqqqqqqqqqqqqpgqay2r64l9nhhvmaqw4qanywfd0954w2m3c77qm7drxc",
        data_nft_token_identifier="DATANFTFT-e936d4",
        itheum_token_identifier="ITHEUM-df6f26",
        image_service_url="https://api.itheumcloud.com/datadexapi",
    ),
}


class Test(unittest.TestCase):
    def test_presets(self):
        self.assertEqual(NetworkConfig.for_environment("devnet").chain_id, "D")
        self.assertEqual(NetworkConfig.for_environment(Environment.MAINNET).chain_id, "1")
        self.assertEqual(NetworkConfig.for_environment("testnet").chain_id, "T")

    def test_overrides(self):
        config = NetworkConfig.for_environment("devnet", timeout=30.0)
        self.assertEqual(config.timeout, 30.0)
        self.assertEqual(NetworkConfig.for_environment("devnet").timeout, 10.0)

    def test_mainnet_minter_needs_override(self):
        self.assertEqual(NetworkConfig.for_environment("mainnet").minter_contract_address, "")
        address = "erd1qqqqqqqqqqqqqpgqlhewm06p4c9qhq32p239hs45dvry948tfsxshx3e0l"
        config = NetworkConfig.for_environment("mainnet", minter_contract_address=address)
        self.assertEqual(config.minter_contract_address, address)

    def test_unknown_environment(self):
        with self.assertRaises(NetworkConfigError) as ctx:
            NetworkConfig.for_environment("localnet")
        self.assertIn("localnet", str(ctx.exception))

    def test_immutable(self):
        config = NetworkConfig.for_environment("devnet")
        with self.assertRaises(dataclasses.FrozenInstanceError):
            config.chain_id = "1"  # type: ignore[misc]


if __name__ == "__main__":
    unittest.main()
