"""
Data NFT Python SDK Examples.

Scripts:
- browse_marketplace.py: Marketplace requirements, offers and one Data NFT
- view_data.py: The Data Marshal native auth flow
- common.py: Shared configuration read from environment variables

Run them from the repository root::

    python -m examples.browse_marketplace
    DATANFT_NATIVE_AUTH_TOKEN=... python -m examples.view_data

All examples default to devnet.
"""
