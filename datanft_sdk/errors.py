# Copyright © Data NFT SDK Contributors
# SPDX-License-Identifier: Apache-2.0

"""
Exceptions raised by the Data NFT SDK.

Validation and configuration errors are raised before any network call.
Failures reported by remote services are raised with the operation name and
the underlying message attached. The Data Marshal access flows are the only
operations that capture errors into their result instead of raising; see
:class:`datanft_sdk.marshal.ViewDataResult`.
"""

from typing import List, Optional


class DataNftError(Exception):
    """Base class for all SDK errors."""


class NetworkConfigError(DataNftError):
    """The network environment is unknown or invalid."""

    def __init__(self, message: Optional[str] = None):
        super().__init__(
            message
            or "Network configuration is not set. Create the client with a NetworkConfig."
        )


class ContractQueryError(DataNftError):
    """A contract query returned a failure return code."""

    method: str
    return_code: str

    def __init__(self, method: str, return_code: str, message: str = ""):
        text = f"Failed to query contract with method: {method}. Return code: {return_code}"
        if message:
            text = f"{text}. {message}"
        super().__init__(text)
        self.method = method
        self.return_code = return_code


class AttributeDecodeError(DataNftError):
    """Token attributes could not be decoded."""

    def __init__(self, message: str):
        super().__init__(f"Failed to decode attributes: {message}")


class AttributeNotSetError(DataNftError):
    """A field needed by the operation is missing on the DataNft."""

    attribute: str

    def __init__(self, attribute: str):
        super().__init__(f"Attribute {attribute} is not set")
        self.attribute = attribute


class ParamValidationError(DataNftError):
    """One or more parameters failed validation."""

    validation_messages: List[str]

    def __init__(self, validation_messages: List[str]):
        super().__init__(
            f"Params have validation issues = {', '.join(validation_messages)}"
        )
        self.validation_messages = validation_messages


class ArgumentNotSetError(DataNftError):
    """An argument that is required in this situation was not supplied."""

    argument: str

    def __init__(self, argument: str, message: str = ""):
        text = f"Argument {argument} is not set"
        if message:
            text = f"{text}. {message}"
        super().__init__(text)
        self.argument = argument


class FailedOperationError(DataNftError):
    """An external service returned a malformed or unexpected response."""

    operation: str

    def __init__(self, operation: str, message: str = ""):
        text = f"Failed to perform operation: {operation}"
        if message:
            text = f"{text}. {message}"
        super().__init__(text)
        self.operation = operation


class FetchError(DataNftError):
    """An HTTP request returned a status outside the 2xx range."""

    status_code: int

    def __init__(self, status_code: int, reason: str = ""):
        super().__init__(
            f"Fetch error with status code: {status_code} and message: {reason}"
        )
        self.status_code = status_code


class DataNftCreateError(DataNftError):
    """An API token record could not be turned into a DataNft."""

    def __init__(self, message: str):
        super().__init__(f"Failed to create DataNft: {message}")
