"""Finalize phase: report, squash, rejoin or rewrite HEAD."""

import logging

from git import Commit, Tree

from gitsubtree.errors import NoOpError, UserInputError
from gitsubtree.git import GitOperations
from gitsubtree.models import HEAD_LABEL, AnnotationTable, SplitOptions, SplitResult
from gitsubtree.phases.generate import CommitRewriter, SubtreeGenerator
from gitsubtree.trees import resolve_subtrees

logger = logging.getLogger(__name__)


def create_squash_commit(
    git: GitOperations,
    tree: Tree,
    parents: list[Commit],
    squash_info: str,
) -> Commit:
    """Create a commit flattening a subtree history into one snapshot."""
    return git.create_commit(f"Subtree squash {squash_info}", tree, parents)


def _unique(commits: list[Commit]) -> list[Commit]:
    seen = set()
    result = []
    for c in commits:
        if c.binsha not in seen:
            seen.add(c.binsha)
            result.append(c)
    return result


class Finalizer:
    """Turns generated commits into the invocation's result."""

    def __init__(
        self,
        git: GitOperations,
        table: AnnotationTable,
        generator: SubtreeGenerator,
        rewriter: CommitRewriter,
        options: SplitOptions,
    ):
        self.git = git
        self.table = table
        self.generator = generator
        self.rewriter = rewriter
        self.options = options

    def collect_output(self, result: SplitResult) -> None:
        """Fill in produced commits and heads for every label."""
        slots = [(p.path, p.index) for p in result.prefixes]
        if self.options.rewrite_parents:
            slots.append((HEAD_LABEL, self.table.rewrite_slot))

        for label, slot in slots:
            produced = self.generator.produced[slot]
            result.produced[label] = list(produced)
            result.heads[label] = [
                p.commit
                for p in produced
                if not self.table.require(p.commit, slot).referenced
            ]

    def squash(self, result: SplitResult, head: Commit) -> None:
        """Replace each prefix's produced chain with a single squash commit."""
        head_trees = resolve_subtrees(head, result.prefixes)

        for prefix in result.prefixes:
            produced = result.produced[prefix.path]
            if not produced:
                logger.debug("Nothing to squash for %s", prefix.path)
                continue

            tree = head_trees[prefix.index]
            if tree is None:
                raise UserInputError(f"Prefix '{prefix.path}' does not exist in HEAD")

            parents = []
            for item in produced:
                for parent in item.commit.parents:
                    annotation = self.table.get(parent, prefix.index)
                    if annotation is None or not annotation.created:
                        logger.debug("\tSquash %s to %s", item.commit.hexsha, parent.hexsha)
                        parents.append(parent)

            result.squashed[prefix.path] = create_squash_commit(
                self.git, tree, _unique(parents), prefix.path
            )

        if not result.squashed:
            raise NoOpError("No new changes to squash")

    def join_parents(self, result: SplitResult) -> list[Commit]:
        """Commits that a rejoin or rewritten HEAD should merge in."""
        commits = []
        for prefix in result.prefixes:
            if prefix.path in result.squashed:
                commits.append(result.squashed[prefix.path])
            else:
                commits.extend(result.heads.get(prefix.path, []))
        return _unique(commits)

    def rejoin(self, result: SplitResult, head: Commit) -> Commit:
        """Merge the split histories back into HEAD and advance it."""
        joined = [c for c in self.join_parents(result) if c.binsha != head.binsha]
        if not joined:
            raise NoOpError("Nothing to rejoin")

        lines = ["Subtree split rejoin", ""]
        lines.extend(p.path for p in result.prefixes)
        message = "\n".join(lines) + "\n"

        commit = self.git.create_commit(message, head.tree, [head] + joined)
        result.rejoin = commit
        return commit

    def rewrite_head(self, result: SplitResult, head: Commit) -> Commit:
        """Rewrite HEAD with the split heads as extra parents."""
        parents = _unique(list(head.parents) + self.join_parents(result))
        commit = self.rewriter.rewrite(head, head.tree, parents, is_subtree=False)
        result.rewritten_head = commit
        return commit
