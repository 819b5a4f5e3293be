# Copyright © Data NFT SDK Contributors
# SPDX-License-Identifier: Apache-2.0

"""
Operations shared by the Data NFT minter contracts.

Each function takes the :class:`ContractClient` of a minter and either builds
an unsigned :class:`Transaction` or runs a query. :class:`Minter` binds them to
one contract; :class:`datanft_sdk.nft_minter.NftMinter` and
:class:`datanft_sdk.sft_minter.SftMinter` build on it.

Examples:
    Pausing a minter and whitelisting two addresses::

        minter = NftMinter(config, "erd1qqqqqqqqqqqqqpgq...")
        pause = minter.pause_contract(admin)
        spots = minter.whitelist(admin, [alice, bob], extra_gas=1_000_000)
"""

import base64
import logging
import unittest
from typing import List, Optional, Sequence

import httpx

from .abi import NFT_MINTER_ABI, SFT_MINTER_ABI, AbiRegistry
from .address import Address
from .codec import TopEncoder
from .config import NetworkConfig
from .contract import ContractClient
from .errors import NetworkConfigError
from .network_provider import ApiNetworkProvider
from .parsers import (
    ContractConfiguration,
    MinterRequirements,
    parse_contract_configuration,
    parse_minter_requirements,
)
from .transactions import ContractCallPayload, Transaction, TransactionArgument

logger = logging.getLogger(__name__)

DEFAULT_GAS_LIMIT = 10_000_000
TRANSFER_GAS_LIMIT = 12_000_000


def _address(value: Address) -> TransactionArgument:
    return TransactionArgument(value, TopEncoder.struct)


def _token(value: str) -> TransactionArgument:
    return TransactionArgument(value, TopEncoder.str)


def _biguint(value: int) -> TransactionArgument:
    return TransactionArgument(value, TopEncoder.biguint)


def _u64(value: int) -> TransactionArgument:
    return TransactionArgument(value, TopEncoder.u64)


def _bool(value: bool) -> TransactionArgument:
    return TransactionArgument(value, TopEncoder.bool)


def pause_contract(contract: ContractClient, sender: Address) -> Transaction:
    """Stop minting."""
    return contract.call(sender, "setIsPaused", [_bool(True)])


def unpause_contract(contract: ContractClient, sender: Address) -> Transaction:
    return contract.call(sender, "setIsPaused", [_bool(False)])


def set_mint_tax_is_required(
    contract: ContractClient, sender: Address, is_required: bool
) -> Transaction:
    return contract.call(sender, "setTaxIsRequired", [_bool(is_required)])


def set_mint_tax(
    contract: ContractClient, sender: Address, token_identifier: str, tax: int
) -> Transaction:
    return contract.call(sender, "setAntiSpamTax", [_token(token_identifier), _biguint(tax)])


def set_whitelist_is_enabled(
    contract: ContractClient, sender: Address, is_enabled: bool
) -> Transaction:
    return contract.call(sender, "setWhiteListEnabled", [_bool(is_enabled)])


def whitelist(
    contract: ContractClient,
    sender: Address,
    addresses: Sequence[Address],
    extra_gas: int = 0,
) -> Transaction:
    """Add ``addresses`` to the mint whitelist; long lists need ``extra_gas``."""
    return contract.call(
        sender,
        "setWhiteListSpots",
        [_address(address) for address in addresses],
        gas_limit=DEFAULT_GAS_LIMIT + extra_gas,
    )


def delist(
    contract: ContractClient,
    sender: Address,
    addresses: Sequence[Address],
    extra_gas: int = 0,
) -> Transaction:
    return contract.call(
        sender,
        "delist",
        [_address(address) for address in addresses],
        gas_limit=DEFAULT_GAS_LIMIT + extra_gas,
    )


def set_mint_time_limit(
    contract: ContractClient, sender: Address, time_limit: int
) -> Transaction:
    """Minimum number of seconds between two mints of the same address."""
    return contract.call(sender, "setMintTimeLimit", [_biguint(time_limit)])


def set_administrator(
    contract: ContractClient, sender: Address, administrator: Address
) -> Transaction:
    return contract.call(sender, "setAdministrator", [_address(administrator)])


def set_royalties_limits(
    contract: ContractClient, sender: Address, min_royalties: int, max_royalties: int
) -> Transaction:
    """Royalty bounds in basis points, e.g. ``0`` and ``5000``."""
    return contract.call(
        sender, "setRoyaltiesLimits", [_biguint(min_royalties), _biguint(max_royalties)]
    )


def set_claims_address(
    contract: ContractClient, sender: Address, claims_address: Address
) -> Transaction:
    return contract.call(sender, "setClaimsAddress", [_address(claims_address)])


def claim_royalties(
    contract: ContractClient, sender: Address, token_identifier: str, nonce: int = 0
) -> Transaction:
    return contract.call(sender, "claimRoyalties", [_token(token_identifier), _u64(nonce)])


def pause_collection(contract: ContractClient, sender: Address) -> Transaction:
    """Pause every transfer of the minted collection."""
    return contract.call(sender, "pause")


def unpause_collection(contract: ContractClient, sender: Address) -> Transaction:
    return contract.call(sender, "unpause")


def freeze(contract: ContractClient, sender: Address, address: Address) -> Transaction:
    return contract.call(sender, "freeze", [_address(address)])


def unfreeze(contract: ContractClient, sender: Address, address: Address) -> Transaction:
    return contract.call(sender, "unfreeze", [_address(address)])


def freeze_single_nft(
    contract: ContractClient, sender: Address, nonce: int, address: Address
) -> Transaction:
    return contract.call(sender, "freezeSingleNFT", [_u64(nonce), _address(address)])


def unfreeze_single_nft(
    contract: ContractClient, sender: Address, nonce: int, address: Address
) -> Transaction:
    return contract.call(sender, "unFreezeSingleNFT", [_u64(nonce), _address(address)])


def wipe_single_nft(
    contract: ContractClient, sender: Address, nonce: int, address: Address
) -> Transaction:
    return contract.call(sender, "wipeSingleNFT", [_u64(nonce), _address(address)])


def burn(
    contract: ContractClient,
    sender: Address,
    token_identifier: str,
    nonce: int,
    quantity: int,
) -> Transaction:
    """Send ``quantity`` tokens back to the minter to be destroyed."""
    payload = ContractCallPayload.esdt_nft_transfer(
        token_identifier, nonce, quantity, contract.address, "burn", []
    )
    return contract.transaction(sender, payload, TRANSFER_GAS_LIMIT, receiver=sender)


async def view_contract_pause_state(contract: ContractClient) -> bool:
    return await contract.query_single("getIsPaused", operation="view_contract_pause_state")


async def view_minter_requirements(
    contract: ContractClient, address: Address, tax_token_identifier: str
) -> MinterRequirements:
    """Minting eligibility of ``address``, with the tax expressed in ``tax_token_identifier``."""
    value = await contract.query_single(
        "getUserDataOut",
        [_address(address), _token(tax_token_identifier)],
        operation="view_minter_requirements",
    )
    return parse_minter_requirements(value)


async def view_contract_configuration(contract: ContractClient) -> ContractConfiguration:
    value = await contract.query_single(
        "getContractConfiguration", operation="view_contract_configuration"
    )
    return parse_contract_configuration(value)


async def view_whitelist(contract: ContractClient) -> List[str]:
    addresses = await contract.query_single("getWhiteList", operation="view_whitelist")
    return [address.bech32() for address in addresses]


class Minter:
    """A minter contract with the shared operations bound to it."""

    config: NetworkConfig
    contract: ContractClient

    def __init__(
        self,
        config: NetworkConfig,
        contract_address: str,
        abi_file: str,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        if not contract_address:
            raise NetworkConfigError(
                f"No minter contract address for {config.environment.value}"
            )
        self.config = config
        self.contract = ContractClient(
            Address.from_str(contract_address),
            AbiRegistry.load(abi_file),
            config.chain_id,
            ApiNetworkProvider.from_config(config, transport),
        )

    async def close(self):
        await self.contract.close()

    def get_contract_address(self) -> Address:
        return self.contract.address

    def pause_contract(self, sender: Address) -> Transaction:
        return pause_contract(self.contract, sender)

    def unpause_contract(self, sender: Address) -> Transaction:
        return unpause_contract(self.contract, sender)

    def set_mint_tax_is_required(self, sender: Address, is_required: bool) -> Transaction:
        return set_mint_tax_is_required(self.contract, sender, is_required)

    def set_mint_tax(self, sender: Address, token_identifier: str, tax: int) -> Transaction:
        return set_mint_tax(self.contract, sender, token_identifier, tax)

    def set_whitelist_is_enabled(self, sender: Address, is_enabled: bool) -> Transaction:
        return set_whitelist_is_enabled(self.contract, sender, is_enabled)

    def whitelist(
        self, sender: Address, addresses: Sequence[Address], extra_gas: int = 0
    ) -> Transaction:
        return whitelist(self.contract, sender, addresses, extra_gas)

    def delist(
        self, sender: Address, addresses: Sequence[Address], extra_gas: int = 0
    ) -> Transaction:
        return delist(self.contract, sender, addresses, extra_gas)

    def set_mint_time_limit(self, sender: Address, time_limit: int) -> Transaction:
        return set_mint_time_limit(self.contract, sender, time_limit)

    def set_administrator(self, sender: Address, administrator: Address) -> Transaction:
        return set_administrator(self.contract, sender, administrator)

    def set_royalties_limits(
        self, sender: Address, min_royalties: int, max_royalties: int
    ) -> Transaction:
        return set_royalties_limits(self.contract, sender, min_royalties, max_royalties)

    def set_claims_address(self, sender: Address, claims_address: Address) -> Transaction:
        return set_claims_address(self.contract, sender, claims_address)

    def claim_royalties(
        self, sender: Address, token_identifier: str, nonce: int = 0
    ) -> Transaction:
        return claim_royalties(self.contract, sender, token_identifier, nonce)

    def pause_collection(self, sender: Address) -> Transaction:
        return pause_collection(self.contract, sender)

    def unpause_collection(self, sender: Address) -> Transaction:
        return unpause_collection(self.contract, sender)

    def freeze(self, sender: Address, address: Address) -> Transaction:
        return freeze(self.contract, sender, address)

    def unfreeze(self, sender: Address, address: Address) -> Transaction:
        return unfreeze(self.contract, sender, address)

    def freeze_single_nft(self, sender: Address, nonce: int, address: Address) -> Transaction:
        return freeze_single_nft(self.contract, sender, nonce, address)

    def unfreeze_single_nft(self, sender: Address, nonce: int, address: Address) -> Transaction:
        return unfreeze_single_nft(self.contract, sender, nonce, address)

    def wipe_single_nft(self, sender: Address, nonce: int, address: Address) -> Transaction:
        return wipe_single_nft(self.contract, sender, nonce, address)

    def burn(
        self, sender: Address, nonce: int, quantity: int, token_identifier: Optional[str] = None
    ) -> Transaction:
        """Burn ``quantity`` tokens of ``nonce``; the collection defaults to the network's Data NFT-FT."""
        return burn(
            self.contract,
            sender,
            token_identifier or self.config.data_nft_token_identifier,
            nonce,
            quantity,
        )

    async def view_contract_pause_state(self) -> bool:
        return await view_contract_pause_state(self.contract)

    async def view_minter_requirements(
        self, address: Address, tax_token_identifier: Optional[str] = None
    ) -> MinterRequirements:
        return await view_minter_requirements(
            self.contract, address, tax_token_identifier or self.config.itheum_token_identifier
        )

    async def view_whitelist(self) -> List[str]:
        return await view_whitelist(self.contract)


class Test(unittest.IsolatedAsyncioTestCase):
    def setUp(self):
        self.config = NetworkConfig.for_environment("devnet")
        self.contract_address = Address(b"\x00" * 8 + b"\x05\x00" + b"\x07" * 22)
        self.admin = Address(b"\x01" * 32)
        self.other = Address(b"\x02" * 32)

    def minter(self, body=None, abi_file=NFT_MINTER_ABI) -> Minter:
        transport = httpx.MockTransport(lambda request: httpx.Response(200, json=body or {}))
        return Minter(self.config, self.contract_address.bech32(), abi_file, transport)

    def test_pause(self):
        minter = self.minter()
        self.assertEqual(minter.pause_contract(self.admin).data, b"setIsPaused@01")
        self.assertEqual(minter.unpause_contract(self.admin).data, b"setIsPaused@")
        txn = minter.pause_collection(self.admin)
        self.assertEqual(txn.data, b"pause")
        self.assertEqual(txn.receiver, self.contract_address)
        self.assertEqual(txn.gas_limit, DEFAULT_GAS_LIMIT)

    def test_whitelist_gas(self):
        minter = self.minter()
        txn = minter.whitelist(self.admin, [self.admin, self.other], extra_gas=500)
        self.assertEqual(txn.gas_limit, DEFAULT_GAS_LIMIT + 500)
        self.assertEqual(txn.payload.args, [self.admin, self.other])
        self.assertEqual(
            txn.data,
            b"setWhiteListSpots@" + self.admin.hex().encode() + b"@" + self.other.hex().encode(),
        )
        self.assertEqual(minter.delist(self.admin, [self.other]).payload.function, "delist")

    def test_admin_calls(self):
        minter = self.minter()
        self.assertEqual(
            minter.set_mint_tax(self.admin, "ITHEUM-fce905", 1000).data,
            b"setAntiSpamTax@" + b"ITHEUM-fce905".hex().encode() + b"@03e8",
        )
        self.assertEqual(minter.set_mint_time_limit(self.admin, 3600).data, b"setMintTimeLimit@0e10")
        self.assertEqual(
            minter.claim_royalties(self.admin, "EGLD").payload.args, ["EGLD", 0]
        )
        self.assertEqual(
            minter.freeze_single_nft(self.admin, 5, self.other).data,
            b"freezeSingleNFT@05@" + self.other.hex().encode(),
        )
        self.assertEqual(
            minter.set_royalties_limits(self.admin, 0, 5000).data,
            b"setRoyaltiesLimits@@1388",
        )

    def test_burn(self):
        minter = self.minter()
        txn = minter.burn(self.admin, 62, 2)
        self.assertEqual(txn.receiver, self.admin)
        self.assertEqual(txn.gas_limit, TRANSFER_GAS_LIMIT)
        self.assertEqual(
            txn.payload.args,
            ["DATANFTFT-e0b917", 62, 2, self.contract_address, "burn"],
        )

    def test_missing_contract_address(self):
        with self.assertRaises(NetworkConfigError):
            Minter(NetworkConfig.for_environment("testnet"), "", SFT_MINTER_ABI)

    async def test_view_whitelist(self):
        minter = self.minter(
            {
                "returnCode": "ok",
                "returnData": [
                    base64.b64encode(self.admin.address).decode(),
                    base64.b64encode(self.other.address).decode(),
                ],
            }
        )
        self.assertEqual(
            await minter.view_whitelist(), [self.admin.bech32(), self.other.bech32()]
        )
        await minter.close()

    async def test_view_contract_pause_state(self):
        minter = self.minter({"returnCode": "ok", "returnData": [""]}, SFT_MINTER_ABI)
        self.assertFalse(await minter.view_contract_pause_state())
        await minter.close()


if __name__ == "__main__":
    unittest.main()
