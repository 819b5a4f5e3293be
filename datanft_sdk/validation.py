# Copyright © Data NFT SDK Contributors
# SPDX-License-Identifier: Apache-2.0

"""
Parameter checks run before minting or requesting data.

Both validators collect every problem they find instead of stopping at the
first one, so a caller can report all of them at once. Parameters left as
``None`` are only checked when their name is in ``mandatory_params``.

Examples:
    Checking a native auth request::

        result = validate_specific_params_view_data(
            fwd_header_map_lookup={"authorization": "Bearer abc"},
            mvx_native_auth_max_expiry_seconds=3600,
            mvx_native_auth_origins=["https://example.com"],
            mandatory_params=[
                "mvx_native_auth_origins",
                "mvx_native_auth_max_expiry_seconds",
                "fwd_header_map_lookup",
            ],
        )
        result.all_passed  # True
"""

import re
import unittest
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Sequence

TOKEN_NAME_PATTERN = re.compile(r"^[a-zA-Z0-9]+$")
TITLE_PATTERN = re.compile(r"^[a-zA-Z0-9\s]+$")
HEADER_KEYS_PATTERN = re.compile(r"^[a-z0-9-]+(,[a-z0-9-]+)*$")

MAX_FWD_HEADER_KEYS = 4
MIN_NATIVE_AUTH_EXPIRY_SECONDS = 300
MAX_NATIVE_AUTH_EXPIRY_SECONDS = 259200


@dataclass
class ValidationResult:
    all_passed: bool = True
    validation_messages: List[str] = field(default_factory=list)

    def fail(self, message: str):
        self.all_passed = False
        self.validation_messages.append(message)


def _is_int(value: Any) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


def _checked(name: str, value: Any, mandatory: Sequence[str]) -> bool:
    return value is not None or name in mandatory


def validate_specific_params_view_data(
    signed_message: Optional[str] = None,
    signable_message: Any = None,
    stream: Optional[bool] = None,
    fwd_all_headers: Optional[bool] = None,
    fwd_header_keys: Optional[str] = None,
    fwd_header_map_lookup: Optional[Dict[str, str]] = None,
    nested_idx_to_stream: Optional[int] = None,
    mvx_native_auth_max_expiry_seconds: Optional[int] = None,
    mvx_native_auth_origins: Optional[List[str]] = None,
    mandatory_params: Sequence[str] = (),
) -> ValidationResult:
    result = ValidationResult()

    if _checked("signed_message", signed_message, mandatory_params):
        if not isinstance(signed_message, str) or len(signed_message.strip()) <= 5:
            result.fail("[signed_message needs to be a valid type]")

    if "signable_message" in mandatory_params and signable_message is None:
        result.fail("[signable_message needs to be a valid type]")

    if _checked("stream", stream, mandatory_params) and not isinstance(stream, bool):
        result.fail("[stream needs to be true or false]")

    if _checked("fwd_all_headers", fwd_all_headers, mandatory_params) and not isinstance(
        fwd_all_headers, bool
    ):
        result.fail("[fwd_all_headers needs to be true or false]")

    if _checked("fwd_header_keys", fwd_header_keys, mandatory_params):
        if (
            not isinstance(fwd_header_keys, str)
            or not HEADER_KEYS_PATTERN.match(fwd_header_keys)
            or len(fwd_header_keys.split(",")) > MAX_FWD_HEADER_KEYS
        ):
            result.fail(
                "[fwd_header_keys needs to be a comma separated lowercase string "
                "with less than 5 items]"
            )

    native_auth = "mvx_native_auth_origins" in mandatory_params
    if _checked("fwd_header_map_lookup", fwd_header_map_lookup, mandatory_params):
        if not isinstance(fwd_header_map_lookup, dict) or not fwd_header_map_lookup:
            result.fail("[fwd_header_map_lookup needs to be a non-empty mapping]")
        elif native_auth and not str(
            fwd_header_map_lookup.get("authorization", "")
        ).startswith("Bearer "):
            result.fail(
                "[fwd_header_map_lookup needs to contain an authorization key "
                "with a Bearer token value]"
            )

    if _checked("nested_idx_to_stream", nested_idx_to_stream, mandatory_params):
        if not _is_int(nested_idx_to_stream) or nested_idx_to_stream < 0:
            result.fail("[nested_idx_to_stream needs to be a number >= 0]")

    if _checked(
        "mvx_native_auth_max_expiry_seconds",
        mvx_native_auth_max_expiry_seconds,
        mandatory_params,
    ):
        if (
            not _is_int(mvx_native_auth_max_expiry_seconds)
            or not MIN_NATIVE_AUTH_EXPIRY_SECONDS
            <= mvx_native_auth_max_expiry_seconds
            <= MAX_NATIVE_AUTH_EXPIRY_SECONDS
        ):
            result.fail(
                "[mvx_native_auth_max_expiry_seconds needs to be between "
                f"{MIN_NATIVE_AUTH_EXPIRY_SECONDS} and {MAX_NATIVE_AUTH_EXPIRY_SECONDS}]"
            )

    if _checked("mvx_native_auth_origins", mvx_native_auth_origins, mandatory_params):
        if (
            not isinstance(mvx_native_auth_origins, list)
            or not mvx_native_auth_origins
            or not all(isinstance(origin, str) for origin in mvx_native_auth_origins)
        ):
            result.fail("[mvx_native_auth_origins needs to be a non-empty list of strings]")

    return result


def validate_specific_params_mint(
    sender_address: Any = None,
    token_name: Optional[str] = None,
    royalties: Optional[int] = None,
    supply: Optional[int] = None,
    dataset_title: Optional[str] = None,
    dataset_description: Optional[str] = None,
    anti_spam_tax: Optional[float] = None,
    mandatory_params: Sequence[str] = (),
) -> ValidationResult:
    result = ValidationResult()

    if "sender_address" in mandatory_params and sender_address is None:
        result.fail("[sender_address needs to be set]")

    if _checked("token_name", token_name, mandatory_params):
        if (
            not isinstance(token_name, str)
            or not TOKEN_NAME_PATTERN.match(token_name)
            or not 3 <= len(token_name) <= 20
        ):
            result.fail(
                "[token_name needs to be between 3 and 20 alphanumeric characters]"
            )

    if _checked("dataset_title", dataset_title, mandatory_params):
        if (
            not isinstance(dataset_title, str)
            or not TITLE_PATTERN.match(dataset_title)
            or not 10 <= len(dataset_title) <= 60
        ):
            result.fail(
                "[dataset_title needs to be between 10 and 60 alphanumeric characters "
                "or spaces]"
            )

    if _checked("dataset_description", dataset_description, mandatory_params):
        if (
            not isinstance(dataset_description, str)
            or not 10 <= len(dataset_description) <= 400
        ):
            result.fail("[dataset_description needs to be between 10 and 400 characters]")

    if _checked("royalties", royalties, mandatory_params):
        if not _is_int(royalties) or not 0 <= royalties <= 50:
            result.fail("[royalties needs to be a whole number between 0 and 50]")

    if _checked("supply", supply, mandatory_params):
        if not _is_int(supply) or not 1 <= supply <= 1000:
            result.fail("[supply needs to be a whole number between 1 and 1000]")

    if _checked("anti_spam_tax", anti_spam_tax, mandatory_params):
        if (
            not isinstance(anti_spam_tax, (int, float))
            or isinstance(anti_spam_tax, bool)
            or anti_spam_tax < 0
        ):
            result.fail("[anti_spam_tax needs to be a number >= 0]")

    return result


class Test(unittest.TestCase):
    def test_view_data_signature_flow(self):
        result = validate_specific_params_view_data(
            signed_message="0xabcdef0123",
            signable_message=object(),
            mandatory_params=["signed_message", "signable_message"],
        )
        self.assertTrue(result.all_passed)
        self.assertEqual(result.validation_messages, [])

    def test_view_data_collects_all_messages(self):
        result = validate_specific_params_view_data(
            fwd_header_keys="Cookie,authorization",
            nested_idx_to_stream=-1,
            mandatory_params=["signed_message", "signable_message"],
        )
        self.assertFalse(result.all_passed)
        self.assertEqual(len(result.validation_messages), 4)

    def test_fwd_header_keys_limit(self):
        ok = validate_specific_params_view_data(fwd_header_keys="a,b,c,d")
        too_many = validate_specific_params_view_data(fwd_header_keys="a,b,c,d,e")
        self.assertTrue(ok.all_passed)
        self.assertFalse(too_many.all_passed)

    def test_native_auth_requires_bearer(self):
        mandatory = [
            "mvx_native_auth_origins",
            "mvx_native_auth_max_expiry_seconds",
            "fwd_header_map_lookup",
        ]
        result = validate_specific_params_view_data(
            fwd_header_map_lookup={"cookie": "abc"},
            mvx_native_auth_max_expiry_seconds=3600,
            mvx_native_auth_origins=["https://example.com"],
            mandatory_params=mandatory,
        )
        self.assertFalse(result.all_passed)
        self.assertIn("authorization", result.validation_messages[0])

        result = validate_specific_params_view_data(
            fwd_header_map_lookup={"authorization": "Bearer abc"},
            mvx_native_auth_max_expiry_seconds=100,
            mvx_native_auth_origins=[],
            mandatory_params=mandatory,
        )
        self.assertEqual(len(result.validation_messages), 2)

    def test_mint_valid(self):
        result = validate_specific_params_mint(
            sender_address="erd1...",
            token_name="Weather01",
            royalties=10,
            supply=100,
            dataset_title="Weather readings",
            dataset_description="Hourly readings from a rooftop station",
            anti_spam_tax=0,
            mandatory_params=["sender_address", "token_name", "royalties", "supply"],
        )
        self.assertTrue(result.all_passed)

    def test_mint_invalid(self):
        result = validate_specific_params_mint(
            token_name="no spaces allowed",
            royalties=51,
            supply=0,
            dataset_title="short",
            dataset_description="tiny",
            anti_spam_tax=-1,
            mandatory_params=["sender_address"],
        )
        self.assertEqual(len(result.validation_messages), 7)
        self.assertFalse(result.all_passed)

    def test_mandatory_missing(self):
        result = validate_specific_params_mint(mandatory_params=["token_name", "supply"])
        self.assertEqual(len(result.validation_messages), 2)


if __name__ == "__main__":
    unittest.main()
