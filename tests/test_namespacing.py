"""Tests for per-batch key namespacing."""

import pytest

from src.ai_translator.utils.namespacing import KeyNamespacer, derive_prefix


class TestDerivePrefix:
    """Prefix derivation from batch identities."""

    @pytest.mark.parametrize("batch_id,prefix", [
        ("auth.php", "auth"),
        ("lang/en/auth.php", "auth"),
        ("lang\\en\\validation.php", "validation"),
        ("auth.php#2", "auth"),
        ("my file.json", "my_file"),
        ("messages", "messages"),
        ("", "batch"),
        ("***.json", "batch"),
    ])
    def test_derive_prefix(self, batch_id, prefix):
        assert derive_prefix(batch_id) == prefix

    def test_prefix_never_contains_separator(self):
        assert "." not in derive_prefix("v1.2.strings.json")


class TestKeyNamespacer:
    """Applying and stripping prefixes."""

    @pytest.fixture
    def namespacer(self):
        return KeyNamespacer("lang/en/auth.php")

    def test_apply(self, namespacer):
        assert namespacer.apply("failed") == "auth.failed"
        assert namespacer.apply("nested.key") == "auth.nested.key"

    def test_apply_all_preserves_order(self, namespacer):
        mapping = namespacer.apply_all(["b", "a", "c"])

        assert list(mapping.items()) == [("b", "auth.b"), ("a", "auth.a"), ("c", "auth.c")]

    def test_strip_is_inverse(self, namespacer):
        for key in ["failed", "nested.key", "auth", "with space"]:
            assert namespacer.strip(namespacer.apply(key)) == key

    @pytest.mark.parametrize("key", ["failed", "validation.failed", "authfailed", "auth.", "AUTH.failed"])
    def test_foreign_keys(self, namespacer, key):
        assert namespacer.strip(key) is None

    def test_display_key(self, namespacer):
        assert namespacer.display_key("auth.failed") == "failed"
        assert namespacer.display_key("other.failed") == "other.failed"
