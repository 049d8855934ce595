"""Tree resolution, comparison and parent matching.

These helpers are pure with respect to the object store: they read trees,
never write them, and hold no state between calls.
"""

import logging
import posixpath
from collections.abc import Iterable

from git import Commit, Tree

from gitsubtree.models import PrefixSpec, TreeComparison

logger = logging.getLogger(__name__)

TREE_TYPE = "tree"


def same_tree(a: Tree | None, b: Tree | None) -> bool:
    """Content-hash equality for two (possibly missing) trees."""
    if a is None or b is None:
        return False
    return a.binsha == b.binsha


def _sort_key(entry) -> str:
    # git orders tree entries as if directory names ended with '/'
    name = posixpath.basename(entry.path)
    return name + "/" if entry.type == TREE_TYPE else name


def resolve_subtrees(
    source: Commit | Tree,
    prefixes: Iterable[PrefixSpec],
) -> dict[int, Tree | None]:
    """Find the tree at each prefix in a single walk of the snapshot.

    Returns a mapping of prefix index to the tree found there, or None when
    the prefix does not exist (or is not a directory) in the snapshot.
    """
    root = source.tree if isinstance(source, Commit) else source
    wanted = list(prefixes)
    found: dict[int, Tree | None] = {p.index: None for p in wanted}

    # Each pending item is (tree, depth, prefixes still looking below it)
    pending = [(root, 0, wanted)]
    while pending:
        tree, depth, candidates = pending.pop()
        by_name: dict[str, list[PrefixSpec]] = {}
        for prefix in candidates:
            by_name.setdefault(prefix.parts[depth], []).append(prefix)

        for entry in tree.trees:
            matching = by_name.get(entry.name)
            if not matching:
                continue

            deeper = []
            for prefix in matching:
                if len(prefix.parts) == depth + 1:
                    found[prefix.index] = entry
                else:
                    deeper.append(prefix)
            if deeper:
                pending.append((entry, depth + 1, deeper))

    return found


def resolve_subtree(source: Commit | Tree, path: str) -> Tree | None:
    """Find the tree at a single prefix path."""
    return resolve_subtrees(source, [PrefixSpec(path=path, index=0)])[0]


def compare_trees(tree_a: Tree, tree_b: Tree, recurse: bool = False) -> TreeComparison:
    """Structurally compare two trees entry by entry.

    Entries only in ``tree_a`` count as removed, entries only in ``tree_b``
    as added. With ``recurse``, changed directories on both sides contribute
    the counts of their own comparison instead of a single change.
    """
    result = TreeComparison()
    left = sorted(tree_a, key=_sort_key)
    right = sorted(tree_b, key=_sort_key)

    i = j = 0
    while i < len(left) or j < len(right):
        if j >= len(right):
            result.removed += 1
            i += 1
            continue
        if i >= len(left):
            result.added += 1
            j += 1
            continue

        a, b = left[i], right[j]
        key_a, key_b = _sort_key(a), _sort_key(b)
        if key_a < key_b:
            result.removed += 1
            i += 1
        elif key_a > key_b:
            result.added += 1
            j += 1
        else:
            if a.mode == b.mode and a.binsha == b.binsha:
                result.unchanged += 1
            elif recurse and a.type == TREE_TYPE and b.type == TREE_TYPE:
                result = result + compare_trees(a, b, recurse)
            else:
                result.changed += 1
            i += 1
            j += 1

    return result


def match_parent(commit: Commit, target: Tree, exact_only: bool = False) -> Commit | None:
    """Find the parent of commit that already carries target.

    An exact tree match always wins, first in parent order. Otherwise, unless
    ``exact_only``, parents are scored by comparing trees. This second stage
    is a best-effort continuity heuristic and does not prove provenance.
    """
    for parent in commit.parents:
        if same_tree(parent.tree, target):
            return parent

    if exact_only:
        return None

    best: Commit | None = None
    best_unchanged = 0
    best_fallback: int | None = None
    for parent in commit.parents:
        score = compare_trees(target, parent.tree, recurse=True)
        if score.unchanged > best_unchanged:
            best_unchanged = score.unchanged
            best = parent

        # Nothing shared yet: prefer in-place edits over wholesale replacement
        churn = score.added + score.removed
        if (
            best_unchanged == 0
            and score.changed > churn
            and (best_fallback is None or churn < best_fallback)
        ):
            best_fallback = churn
            best = parent

    if best is not None:
        logger.debug("Approximate match %s for tree %s", best.hexsha, target.hexsha)
    return best
