"""Tests for utility functions.

Tests for: chunk_children, split_string, md5_hash, redact.
"""

import hashlib

import pytest

from mdbridge.utils.chunk import chunk_children
from mdbridge.utils.hashing import md5_hash
from mdbridge.utils.redact import redact
from mdbridge.utils.text_split import split_string

# =========================================================================
# chunk_children tests
# =========================================================================

class TestChunkChildren:
    def test_empty_list(self):
        assert chunk_children([]) == []

    def test_wiki_batch_size(self):
        result = chunk_children(list(range(120)), size=50)
        assert [len(b) for b in result] == [50, 50, 20]
        assert result[1][0] == 50

    def test_default_size(self):
        assert [len(b) for b in chunk_children([{"type": "paragraph"}] * 250)] == [100, 100, 50]

    def test_exact_multiple(self):
        assert [len(b) for b in chunk_children(list(range(100)), size=50)] == [50, 50]

    def test_accepts_tuples(self):
        assert chunk_children(("a", "b", "c"), size=2) == [["a", "b"], ["c"]]

    @pytest.mark.parametrize("size", [0, -5])
    def test_invalid_size(self, size):
        with pytest.raises(ValueError):
            chunk_children([1], size=size)


# =========================================================================
# split_string tests
# =========================================================================

class TestSplitString:
    def test_empty(self):
        assert split_string("") == []

    def test_under_limit(self):
        assert split_string("short") == ["short"]

    def test_default_limit(self):
        parts = split_string("x" * 4500)
        assert [len(p) for p in parts] == [2000, 2000, 500]

    def test_cjk_not_bisected(self):
        text = "飞书" * 1500
        parts = split_string(text)
        assert "".join(parts) == text
        assert all(len(p) <= 2000 for p in parts)

    def test_invalid_limit(self):
        with pytest.raises(ValueError):
            split_string("abc", 0)


# =========================================================================
# md5_hash tests
# =========================================================================

class TestMd5Hash:
    def test_matches_hashlib(self):
        assert md5_hash("# Title\nbody") == hashlib.md5("# Title\nbody".encode()).hexdigest()

    def test_utf8_encoding(self):
        assert md5_hash("日本") == hashlib.md5("日本".encode("utf-8")).hexdigest()

    def test_differs_on_change(self):
        assert md5_hash("a") != md5_hash("a ")


# =========================================================================
# redact tests
# =========================================================================

class TestRedact:
    def test_sensitive_keys_masked(self):
        result = redact({"app_id": "cli_1", "app_secret": "s3cr3t-value-1234"})
        assert result["app_id"] == "cli_1"
        assert result["app_secret"] == "<redacted:...1234>"

    def test_short_secret_fully_masked(self):
        assert redact({"tenant_access_token": "abc"})["tenant_access_token"] == "<redacted:...****>"

    def test_non_string_sensitive_value(self):
        assert redact({"token": None})["token"] == "<redacted>"

    def test_known_secrets_scrubbed_everywhere(self):
        payload = {"data": {"note": "uses secret_notion_1234 inside", "items": ["secret_notion_1234"]}}
        result = redact(payload, secrets=["secret_notion_1234", ""])
        assert "secret_notion_1234" not in str(result)
        assert result["data"]["items"] == ["<redacted:...1234>"]

    def test_single_secret_string(self):
        assert redact({"msg": "xyz-secret-9999"}, secrets="xyz-secret-9999")["msg"] == "<redacted:...9999>"

    def test_bearer_scrubbed(self):
        result = redact({"headers": {"X": "Bearer t-abc.def"}})
        assert result["headers"]["X"] == "Bearer <redacted>"

    def test_binary_summarised(self):
        assert redact({"file": b"\x89PNG...."})["file"] == "<binary:8_bytes>"

    def test_input_not_mutated(self):
        payload = {"nested": {"app_secret": "s3cr3t-value-1234"}}
        redact(payload)
        assert payload["nested"]["app_secret"] == "s3cr3t-value-1234"
