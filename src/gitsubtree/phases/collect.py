"""Collect phase: find the commits that carry unsplit subtree content."""

import logging

from git import Commit, Tree

from gitsubtree.git import GitOperations
from gitsubtree.models import AnnotationTable, PrefixSpec
from gitsubtree.trees import match_parent, resolve_subtrees, same_tree

logger = logging.getLogger(__name__)


class HistoryClassifier:
    """Walks history newest-first and builds the interesting-commit worklist."""

    def __init__(
        self,
        git: GitOperations,
        table: AnnotationTable,
        prefixes: list[PrefixSpec],
        onto: list[Commit] | None = None,
    ):
        self.git = git
        self.table = table
        self.prefixes = prefixes
        self.onto = onto or []

    def seed_onto(self) -> None:
        """Onto commits are subtree commits that need no processing."""
        for commit in self.onto:
            for slot in range(self.table.rewrite_slot + 1):
                annotation = self.table.ensure(commit, slot)
                annotation.referenced = True
                annotation.is_subtree = True

    def collect(self, revisions: list[str]) -> list[Commit]:
        """Classify every commit reachable from revisions.

        Returns the interesting commits oldest-first, ready for generation.
        """
        self.seed_onto()

        interesting = []
        for commit in self.git.rev_list(revisions):
            logger.debug("%s processing...", commit.hexsha)
            if self.classify(commit):
                interesting.append(commit)

        interesting.reverse()
        return interesting

    def classify(self, commit: Commit) -> bool:
        """Classify one commit; True if it needs subtree commits generated."""
        active = self._propagate_referenced(commit)
        if not active:
            return False

        trees = resolve_subtrees(commit, active)
        has_subtree_data = False
        for prefix in active:
            tree = trees[prefix.index]
            if tree is None:
                continue

            if self._match_onto(commit, prefix, tree):
                continue

            parent = match_parent(commit, tree)
            if parent is not None:
                logger.debug(
                    "\tFound existing subtree parent %s for %s", parent.hexsha, prefix.path
                )
                self._remap_to_parent(commit, prefix, tree, parent)
                # A differing tree means the subtree merge commit was amended
                if same_tree(parent.tree, tree):
                    continue

            annotation = self.table.ensure(commit, prefix.index)
            annotation.referenced = False
            annotation.resolved_tree = tree
            logger.debug("\tFound tree %s for %s", tree.hexsha, prefix.path)

            # Keep a parallel branch from hiding this content in the parents
            for p in commit.parents:
                self.table.ensure(p, prefix.index).force = True

            has_subtree_data = True

        return has_subtree_data

    def _propagate_referenced(self, commit: Commit) -> list[PrefixSpec]:
        """Push referenced flags to parents; return the prefixes still to process."""
        active = []
        for prefix in self.prefixes:
            annotation = self.table.get(commit, prefix.index)
            if annotation is not None and annotation.referenced:
                for p in commit.parents:
                    self.table.ensure(p, prefix.index).referenced = True
                if not annotation.force:
                    continue
                annotation.referenced = False
            active.append(prefix)
        return active

    def _match_onto(self, commit: Commit, prefix: PrefixSpec, tree: Tree) -> bool:
        for onto in self.onto:
            if same_tree(onto.tree, tree):
                logger.debug("\tFound onto %s for %s", onto.hexsha, prefix.path)
                self._remap_to_parent(commit, prefix, onto.tree, onto)
                return True
        return False

    def _remap_to_parent(
        self,
        commit: Commit,
        prefix: PrefixSpec,
        tree: Tree,
        subtree_commit: Commit,
    ) -> None:
        """Record an existing subtree commit as this commit's representation."""
        annotation = self.table.ensure(commit, prefix.index)
        annotation.remap(subtree_commit)
        annotation.resolved_tree = tree
        annotation.referenced = False

        for p in commit.parents:
            parent_annotation = self.table.ensure(p, prefix.index)
            parent_annotation.referenced = True
            parent_annotation.is_subtree = p.binsha == subtree_commit.binsha
