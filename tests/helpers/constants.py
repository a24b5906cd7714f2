# tests/helpers/constants.py
"""Constants shared across medoro tests."""

from __future__ import annotations

ORIGIN = "https://test-bucket.content-serve.com"
KEY_ID = "test-key-id"

# Frozen clock (2023-11-14T22:13:20Z) so signed URLs are reproducible
FIXED_NOW = 1_700_000_000
