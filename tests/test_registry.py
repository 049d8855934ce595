"""Tests for the .gitsubtree registry."""

import pytest

from gitsubtree.errors import UserInputError
from gitsubtree.registry import SUBTREE_FILE, SubtreeRegistry


def test_missing_file_has_no_entries(tmp_path):
    registry = SubtreeRegistry(tmp_path / SUBTREE_FILE)

    assert registry.entries() == []
    with pytest.raises(UserInputError, match="Must specify a prefix"):
        registry.resolve([], [])


def test_record_and_lookup(tmp_path):
    registry = SubtreeRegistry(tmp_path / SUBTREE_FILE)

    registry.record("core", "lib/core", url="https://example.com/core.git")
    registry.record("docs", "docs")

    core = registry.lookup("core")
    assert core.path == "lib/core"
    assert core.url == "https://example.com/core.git"
    assert registry.lookup("docs").url is None
    assert registry.prefixes() == ["lib/core", "docs"]


def test_record_updates_existing_entry(tmp_path):
    registry = SubtreeRegistry(tmp_path / SUBTREE_FILE)

    registry.record("core", "lib")
    registry.record("core", "src/lib")

    assert [(e.name, e.path) for e in registry.entries()] == [("core", "src/lib")]


def test_unknown_name_rejected(tmp_path):
    registry = SubtreeRegistry(tmp_path / SUBTREE_FILE)
    registry.record("core", "lib")

    with pytest.raises(UserInputError, match="No subtree named 'other'"):
        registry.lookup("other")


def test_resolve_prefers_explicit_prefixes(tmp_path):
    registry = SubtreeRegistry(tmp_path / SUBTREE_FILE)
    registry.record("core", "lib")
    registry.record("docs", "docs")

    assert registry.resolve([], []) == ["lib", "docs"]
    assert registry.resolve(["other"], []) == ["other"]
    assert registry.resolve([], ["docs"]) == ["docs"]


def test_sections_without_path_are_ignored(tmp_path):
    path = tmp_path / SUBTREE_FILE
    path.write_text('[subtree "broken"]\n\turl = x\n[core]\n\tbare = false\n')

    assert SubtreeRegistry(path).entries() == []
