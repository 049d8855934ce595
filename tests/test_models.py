"""Tests for prefixes, annotations and option validation."""

import pytest

from gitsubtree.errors import IntegrityError, UserInputError
from gitsubtree.models import (
    AnnotationTable,
    CommitAnnotation,
    SplitOptions,
    TreeComparison,
    TreeVerdict,
    make_prefixes,
    normalize_prefix,
)


def test_prefixes_are_normalized_and_deduplicated():
    prefixes = make_prefixes(["lib/", "docs", "lib", "pkg/sub//"])

    assert [p.path for p in prefixes] == ["lib", "docs", "pkg/sub"]
    assert [p.index for p in prefixes] == [0, 1, 2]
    assert prefixes[2].parts == ("pkg", "sub")


@pytest.mark.parametrize("path", ["", "/", "/abs", "a/../b", "./lib", "a//b"])
def test_invalid_prefix_rejected(path):
    with pytest.raises(UserInputError):
        normalize_prefix(path)


def test_no_prefixes_rejected():
    with pytest.raises(UserInputError):
        make_prefixes([])


def test_tree_comparison_addition_and_verdict():
    total = TreeComparison(added=1, unchanged=2) + TreeComparison(changed=1)

    assert total.differences == 2
    assert total.verdict == TreeVerdict.MODIFIED
    assert TreeComparison().verdict == TreeVerdict.SAME


def test_annotation_remap_keeps_most_recent_first(linear_repo):
    git = linear_repo.git()
    a = git.resolve_commit(linear_repo.shas["A"])
    b = git.resolve_commit(linear_repo.shas["B"])
    annotation = CommitAnnotation()

    annotation.remap(a)
    annotation.remap(b)
    annotation.remap(a)

    assert [c.hexsha for c in annotation.remapping] == [b.hexsha, a.hexsha]
    assert annotation.latest.hexsha == b.hexsha


def test_annotation_table_slots(linear_repo):
    commit = linear_repo.git().resolve_commit("HEAD")
    table = AnnotationTable(prefix_count=2)

    assert table.rewrite_slot == 2
    assert table.get(commit, 0) is None
    assert table.ensure(commit, 2) is table.ensure(commit, 2)
    assert len(table) == 1

    with pytest.raises(IntegrityError):
        table.ensure(commit, 3)
    with pytest.raises(IntegrityError):
        table.require(commit, 1)


@pytest.mark.parametrize("options", [
    SplitOptions(prefixes=["lib"], rewrite_parents=True, rejoin=True),
    SplitOptions(prefixes=["lib"], rewrite_parents=True, squash=True),
    SplitOptions(prefixes=["lib"], rewrite_head=True, rejoin=True),
    SplitOptions(prefixes=["lib"], rewrite_head=True, squash=True),
    SplitOptions(prefixes=["lib"], rewrite_parents=True, rewrite_head=True),
])
def test_conflicting_options_rejected(options):
    with pytest.raises(UserInputError, match="Can't rewrite"):
        options.validate()


@pytest.mark.parametrize("options", [
    SplitOptions(prefixes=["lib"]),
    SplitOptions(prefixes=["lib"], squash=True, rejoin=True),
    SplitOptions(prefixes=["lib"], rewrite_parents=True),
    SplitOptions(prefixes=["lib"], rewrite_head=True),
])
def test_compatible_options_accepted(options):
    options.validate()
