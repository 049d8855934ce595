"""Generate phase: write subtree commits for the collected worklist."""

import logging

from git import Commit, Tree
from git.objects.util import altz_to_utctz_str

from gitsubtree.errors import IntegrityError
from gitsubtree.git import GitOperations
from gitsubtree.models import AnnotationTable, PrefixSpec, ProducedCommit
from gitsubtree.trees import same_tree

logger = logging.getLogger(__name__)


def _git_date(timestamp: int, tz_offset: int) -> str:
    """Format a commit date the way git stores it ("<epoch> +HHMM")."""
    return f"{timestamp} {altz_to_utctz_str(tz_offset)}"


class CommitRewriter:
    """Builds new commits that copy an original commit's metadata."""

    def __init__(
        self,
        git: GitOperations,
        change_committer: bool = False,
        annotation: str | None = None,
        footer: str | None = None,
    ):
        self.git = git
        self.change_committer = change_committer
        self.annotation = annotation
        self.footer = footer

    def rewrite(
        self,
        commit: Commit,
        tree: Tree,
        parents: list[Commit],
        is_subtree: bool,
    ) -> Commit:
        """Create a copy of commit with a new tree and parent list.

        Author, author date and message are preserved. The committer is kept
        too unless ``change_committer`` is set, so rewriting identical inputs
        always yields the same commit id.
        """
        message = commit.message
        if is_subtree:
            message = (self.annotation or "") + message + (self.footer or "")

        committer = None
        commit_date = None
        if not self.change_committer:
            committer = commit.committer
            commit_date = _git_date(commit.committed_date, commit.committer_tz_offset)

        return self.git.create_commit(
            message,
            tree,
            parents,
            author=commit.author,
            committer=committer,
            author_date=_git_date(commit.authored_date, commit.author_tz_offset),
            commit_date=commit_date,
        )


def _index_of(commits: list[Commit], commit: Commit) -> int | None:
    for i, c in enumerate(commits):
        if c.binsha == commit.binsha:
            return i
    return None


def prune_parents(
    table: AnnotationTable,
    commit: Commit,
    slot: int,
    parents: list[Commit],
) -> tuple[list[Commit], bool]:
    """Drop remapped parents that are reachable from another remapped parent.

    Only subtree-lineage parents are candidates. Returns the surviving
    parents and whether the commit can be skipped entirely, which happens
    when something was pruned and every survivor already has the commit's
    subtree tree.
    """
    annotation = table.require(commit, slot)
    if len(parents) < 2:
        return list(parents), False

    logger.debug("\t\tValidating %d remapped parents", len(parents))
    kept = list(parents)
    candidates: list[Commit] = []
    created: dict[bytes, int] = {}
    found_unnecessary = False

    for parent in parents:
        parent_annotation = table.require(parent, slot)
        if not parent_annotation.is_subtree:
            logger.debug("\t\tSkipping %s (not a subtree)", parent.hexsha)
            continue

        if parent_annotation.created == 0:
            if parent_annotation.force and parent_annotation.referenced:
                logger.debug("\t\tSkipping %s (already in history)", parent.hexsha)
                del kept[_index_of(kept, parent)]
                found_unnecessary = True
                continue
        elif not parent_annotation.remapping:
            raise IntegrityError(
                f"Commit {parent.hexsha} was created but has no remapping"
            )

        created[parent.binsha] = parent_annotation.created
        candidates.append(parent)

    # Newest first; sort is stable so ties keep parent order
    candidates.sort(key=lambda c: created[c.binsha], reverse=True)
    min_created = min(created.values(), default=0)

    while candidates:
        search = candidates.pop(0)
        logger.debug("\t\tSearch %s (%d)", search.hexsha, created[search.binsha])

        queue = [search]
        seen = {search.binsha}
        while candidates and queue:
            current = queue.pop(0)

            index = _index_of(candidates, current)
            if index is not None:
                logger.debug("\t\t\tFound unnecessary parent %s", current.hexsha)
                del candidates[index]
                del kept[_index_of(kept, current)]
                found_unnecessary = True

            for parent in current.parents:
                if parent.binsha in seen:
                    continue
                parent_annotation = table.get(parent, slot)
                order = parent_annotation.created if parent_annotation else 0
                if order >= min_created:
                    seen.add(parent.binsha)
                    queue.append(parent)

    skip_rewrite = found_unnecessary and all(
        same_tree(p.tree, annotation.resolved_tree) for p in kept
    )
    return kept, skip_rewrite


class SubtreeGenerator:
    """Turns the worklist into subtree commits, one prefix slot at a time."""

    def __init__(
        self,
        table: AnnotationTable,
        prefixes: list[PrefixSpec],
        rewriter: CommitRewriter,
    ):
        self.table = table
        self.prefixes = prefixes
        self.rewriter = rewriter
        self.produced: dict[int, list[ProducedCommit]] = {
            slot: [] for slot in range(table.rewrite_slot + 1)
        }

    def generate(self, worklist: list[Commit], sequence: int = 0) -> int:
        """Generate subtree commits; returns the last creation sequence used."""
        for commit in worklist:
            for prefix in self.prefixes:
                sequence = self._generate_one(commit, prefix, sequence)
        return sequence

    def _generate_one(self, commit: Commit, prefix: PrefixSpec, sequence: int) -> int:
        slot = prefix.index
        annotation = self.table.get(commit, slot)
        if annotation is None or annotation.referenced or annotation.resolved_tree is None:
            return sequence

        tree = annotation.resolved_tree
        rewrite_needed = False

        latest = annotation.latest
        if latest is not None:
            if same_tree(latest.tree, tree):
                logger.debug("\t\t%s already split for %s", commit.hexsha, prefix.path)
                return sequence
            # An amended subtree commit becomes the parent of its replacement
            rewrite_needed = True
            self.table.require(latest, slot).remap(latest)

        if not commit.parents:
            rewrite_needed = True

        for parent in commit.parents:
            parent_annotation = self.table.get(parent, slot)
            if parent_annotation is not None:
                if parent_annotation.resolved_tree is not None and not parent_annotation.remapping:
                    continue
                if parent_annotation.referenced:
                    continue

                match = next(
                    (c for c in parent_annotation.remapping if same_tree(c.tree, tree)),
                    None,
                )
                if match is not None:
                    # Unchanged from this parent, reuse its subtree commit
                    annotation.remap(match)
                    continue

            rewrite_needed = True

        if not rewrite_needed:
            return sequence

        remapped = []
        was_referenced: dict[bytes, bool] = {}
        for parent in commit.parents:
            parent_annotation = self.table.get(parent, slot)
            if parent_annotation is None:
                continue
            for c in parent_annotation.remapping:
                remapped.append(c)
                remapped_annotation = self.table.ensure(c, slot)
                was_referenced.setdefault(c.binsha, remapped_annotation.referenced)
                remapped_annotation.referenced = True
                remapped_annotation.is_subtree = True

        # A branch that never touched the subtree may have been merged in
        remapped, skip = prune_parents(self.table, commit, slot, remapped)
        if skip:
            # No new commit uses the survivors as parents, so they stay heads
            for p in remapped:
                self.table.require(p, slot).referenced = was_referenced[p.binsha]
                annotation.remap(p)
            return sequence

        new_commit = self.rewriter.rewrite(commit, tree, remapped, is_subtree=True)
        sequence += 1
        self._record(commit, new_commit, slot, sequence, is_subtree=True)
        logger.debug("\t\t*** CREATED %s", new_commit.hexsha)
        return sequence

    def rewrite_parents(self, worklist: list[Commit], sequence: int) -> int:
        """Rewrite original commits so they merge in their new subtree commits."""
        slot = self.table.rewrite_slot
        for commit in worklist:
            parents = []
            changed = False
            for parent in commit.parents:
                parent_annotation = self.table.get(parent, slot)
                if parent_annotation is not None and parent_annotation.remapping:
                    for c in parent_annotation.remapping:
                        parents.append(c)
                        self.table.ensure(c, slot).referenced = True
                    changed = True
                else:
                    parents.append(parent)

            for prefix in self.prefixes:
                annotation = self.table.get(commit, prefix.index)
                if annotation is not None and annotation.created:
                    parents.extend(annotation.remapping)
                    changed = True

            if changed:
                new_commit = self.rewriter.rewrite(commit, commit.tree, parents, is_subtree=False)
                sequence += 1
                self._record(commit, new_commit, slot, sequence, is_subtree=False)
                logger.debug("\t*** REWRITE %s", new_commit.hexsha)

        return sequence

    def _record(
        self,
        original: Commit,
        new_commit: Commit,
        slot: int,
        sequence: int,
        is_subtree: bool,
    ) -> None:
        annotation = self.table.ensure(original, slot)
        annotation.remap(new_commit)
        annotation.created = sequence

        new_annotation = self.table.ensure(new_commit, slot)
        new_annotation.remap(original)
        new_annotation.created = sequence
        new_annotation.is_subtree = is_subtree

        self.produced[slot].append(
            ProducedCommit(original=original, commit=new_commit, sequence=sequence)
        )
