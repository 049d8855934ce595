"""Split engine: runs the collect, generate and finalize phases in order."""

import logging
from pathlib import Path

from git import Commit

from gitsubtree.errors import UserInputError
from gitsubtree.git import GitOperations
from gitsubtree.models import (
    AnnotationTable,
    SplitOptions,
    SplitPhase,
    SplitResult,
    make_prefixes,
)
from gitsubtree.phases import CommitRewriter, Finalizer, HistoryClassifier, SubtreeGenerator
from gitsubtree.registry import SubtreeRegistry

logger = logging.getLogger(__name__)


class SplitEngine:
    """
    The split orchestrator.

    One engine instance serves exactly one invocation: the annotation table
    it owns caches results that are only valid for its prefix set.
    """

    def __init__(self, git: GitOperations, options: SplitOptions):
        self.git = git
        self.options = options
        self.phase = SplitPhase.COLLECT

        options.validate()
        self.prefixes = make_prefixes(options.prefixes)
        self.table = AnnotationTable(len(self.prefixes))
        self.rewriter = CommitRewriter(
            git,
            change_committer=options.change_committer,
            annotation=options.annotation,
            footer=options.footer,
        )
        self.generator = SubtreeGenerator(self.table, self.prefixes, self.rewriter)
        self.finalizer = Finalizer(git, self.table, self.generator, self.rewriter, options)

    def run(self) -> SplitResult:
        """
        Run the split.

        Every commit is written before HEAD is touched, so a failure in any
        phase leaves all references as they were.
        """
        result = SplitResult(prefixes=self.prefixes)
        try:
            head = self.git.head_commit() if self.options.needs_head else None
            onto = self._resolve_onto()

            self._enter(SplitPhase.COLLECT, result)
            classifier = HistoryClassifier(self.git, self.table, self.prefixes, onto)
            worklist = classifier.collect(self.options.revisions)
            logger.info("%d interesting commits", len(worklist))

            self._enter(SplitPhase.GENERATE, result)
            sequence = self.generator.generate(worklist)

            if self.options.rewrite_parents:
                self._enter(SplitPhase.REWRITE_PARENTS, result)
                sequence = self.generator.rewrite_parents(worklist, sequence)
            logger.info("%d commits created", sequence)

            self._enter(SplitPhase.FINALIZE, result)
            self._finalize(result, head)

            self._enter(SplitPhase.DONE, result)
            return result

        except Exception:
            self._enter(SplitPhase.FAILED, result)
            raise

    def _enter(self, phase: SplitPhase, result: SplitResult) -> None:
        logger.debug("Phase %s -> %s", self.phase.value, phase.value)
        self.phase = phase
        result.phase = phase

    def _resolve_onto(self) -> list[Commit]:
        onto = []
        for rev in self.options.onto:
            try:
                onto.append(self.git.resolve_commit(rev))
            except UserInputError:
                raise UserInputError(f"Unable to resolve onto {rev}")
        return onto

    def _finalize(self, result: SplitResult, head: Commit | None) -> None:
        self.finalizer.collect_output(result)

        if self.options.squash:
            self.finalizer.squash(result, head)

        if self.options.rewrite_head:
            self.finalizer.rewrite_head(result, head)
        elif self.options.rejoin:
            commit = self.finalizer.rejoin(result, head)
            # The only reference update of the whole run
            self.git.update_head(commit, "subtree split")


def create_engine(
    options: SplitOptions,
    repo_path: str | Path | None = None,
    names: list[str] | None = None,
) -> SplitEngine:
    """Create a configured split engine.

    Registered subtree names are resolved to prefixes, and when neither
    prefixes nor names are given every registered subtree is split.
    """
    git = GitOperations(repo_path)
    registry = SubtreeRegistry.for_repo(git)
    options.prefixes = registry.resolve(options.prefixes, names or [])
    return SplitEngine(git, options)
