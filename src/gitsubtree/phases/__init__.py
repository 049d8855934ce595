"""Phases of the split engine."""

from gitsubtree.phases.collect import HistoryClassifier
from gitsubtree.phases.generate import CommitRewriter, SubtreeGenerator, prune_parents
from gitsubtree.phases.finalize import Finalizer, create_squash_commit

__all__ = [
    "HistoryClassifier",
    "CommitRewriter",
    "SubtreeGenerator",
    "prune_parents",
    "Finalizer",
    "create_squash_commit",
]
