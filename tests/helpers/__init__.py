# tests/helpers/__init__.py
"""Shared test utilities for the medoro test suite.

Usage:
    >>> from tests.helpers import expect_success, make_client, ORIGIN
    >>>
    >>> async with make_client(private_key, handler) as client:
    ...     data = expect_success(await client.delete_object("k"))
"""

from __future__ import annotations

from tests.helpers.constants import FIXED_NOW, KEY_ID, ORIGIN
from tests.helpers.factories import make_client, make_policy, success_body
from tests.helpers.result_utils import expect_failure, expect_success


__all__ = [
    "FIXED_NOW",
    "KEY_ID",
    "ORIGIN",
    "expect_failure",
    "expect_success",
    "make_client",
    "make_policy",
    "success_body",
]
