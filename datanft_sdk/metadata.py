# Copyright © Data NFT SDK Contributors
# SPDX-License-Identifier: Apache-2.0

"""
SDK identification for outgoing HTTP requests.

Every request made by the chain API, public API and Data Marshal clients
carries an ``x-datanft-client`` header so that service operators can tell SDK
traffic apart in their logs.

Examples:
    Build request headers::

        from datanft_sdk.metadata import Metadata

        headers = {Metadata.CLIENT_HEADER: Metadata.get_client_header_val()}
        # {"x-datanft-client": "datanft-python-sdk/0.1.0"}
"""

import importlib.metadata as metadata

# Package name constant for metadata lookup
PACKAGE_NAME = "datanft-sdk"


class Metadata:
    """Header name and value identifying this SDK."""

    CLIENT_HEADER = "x-datanft-client"

    @staticmethod
    def get_client_header_val() -> str:
        """Return ``datanft-python-sdk/<installed version>``."""
        try:
            version = metadata.version(PACKAGE_NAME)
        except metadata.PackageNotFoundError:
            version = "0.0.0"
        return f"datanft-python-sdk/{version}"
