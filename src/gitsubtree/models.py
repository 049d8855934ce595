"""Data models for gitsubtree."""

from dataclasses import dataclass, field
from enum import Enum

from git import Commit, Tree

from gitsubtree.errors import IntegrityError, UserInputError


# Label used for the rewrite-parents slot and the rejoin/rewrite-head output
HEAD_LABEL = "HEAD"


class SplitPhase(str, Enum):
    """Current state of a split invocation."""

    COLLECT = "collect"
    GENERATE = "generate"
    REWRITE_PARENTS = "rewrite-parents"
    FINALIZE = "finalize"
    DONE = "done"
    FAILED = "failed"


class TreeVerdict(str, Enum):
    """Coarse relation between two compared trees."""

    SAME = "same"  # No differences at all
    MODIFIED = "modified"  # Shares entries, but some differ
    DIFFERENT = "different"  # Nothing shared, likely unrelated


@dataclass
class TreeComparison:
    """Entry counts produced by comparing two trees."""

    added: int = 0
    removed: int = 0
    changed: int = 0
    unchanged: int = 0

    def __add__(self, other: "TreeComparison") -> "TreeComparison":
        return TreeComparison(
            added=self.added + other.added,
            removed=self.removed + other.removed,
            changed=self.changed + other.changed,
            unchanged=self.unchanged + other.unchanged,
        )

    @property
    def differences(self) -> int:
        return self.added + self.removed + self.changed

    @property
    def verdict(self) -> TreeVerdict:
        """Classify the comparison."""
        if self.differences == 0:
            return TreeVerdict.SAME
        if self.unchanged > 0:
            return TreeVerdict.MODIFIED
        return TreeVerdict.DIFFERENT


@dataclass(frozen=True)
class PrefixSpec:
    """A subdirectory to split out, identified by its slot index."""

    path: str
    index: int

    @property
    def parts(self) -> tuple[str, ...]:
        return tuple(self.path.split("/"))


def normalize_prefix(path: str) -> str:
    """Validate a prefix path and strip trailing slashes."""
    cleaned = path.strip().rstrip("/")
    if not cleaned:
        raise UserInputError("Prefix must not be empty")
    if cleaned.startswith("/"):
        raise UserInputError(f"Prefix must be relative to the repository root: {path}")

    parts = cleaned.split("/")
    if any(part in ("", ".", "..") for part in parts):
        raise UserInputError(f"Invalid prefix: {path}")
    return cleaned


def make_prefixes(paths: list[str]) -> list[PrefixSpec]:
    """Build the fixed, ordered prefix set for one invocation."""
    seen: list[str] = []
    for path in paths:
        cleaned = normalize_prefix(path)
        if cleaned not in seen:
            seen.append(cleaned)

    if not seen:
        raise UserInputError("Must specify at least one prefix")

    return [PrefixSpec(path=p, index=i) for i, p in enumerate(seen)]


@dataclass
class CommitAnnotation:
    """Split bookkeeping for one commit in one prefix slot."""

    resolved_tree: Tree | None = None
    remapping: list[Commit] = field(default_factory=list)  # Most recent first
    referenced: bool = False
    force: bool = False
    is_subtree: bool = False
    created: int = 0

    def remap(self, commit: Commit) -> None:
        """Record that ``commit`` represents this one."""
        if not any(c.binsha == commit.binsha for c in self.remapping):
            self.remapping.insert(0, commit)

    @property
    def latest(self) -> Commit | None:
        return self.remapping[0] if self.remapping else None


class AnnotationTable:
    """Annotations keyed by (commit hexsha, slot).

    There is one slot per prefix plus a trailing slot used by the
    rewrite-parents pass. A table lives for exactly one split invocation.
    """

    def __init__(self, prefix_count: int):
        self.prefix_count = prefix_count
        self._entries: dict[tuple[str, int], CommitAnnotation] = {}

    @property
    def rewrite_slot(self) -> int:
        return self.prefix_count

    def _key(self, commit: Commit, slot: int) -> tuple[str, int]:
        if not 0 <= slot <= self.prefix_count:
            raise IntegrityError(f"Annotation slot {slot} out of range")
        return commit.hexsha, slot

    def get(self, commit: Commit, slot: int) -> CommitAnnotation | None:
        return self._entries.get(self._key(commit, slot))

    def ensure(self, commit: Commit, slot: int) -> CommitAnnotation:
        """Get the annotation, allocating it on first use."""
        key = self._key(commit, slot)
        annotation = self._entries.get(key)
        if annotation is None:
            annotation = CommitAnnotation()
            self._entries[key] = annotation
        return annotation

    def require(self, commit: Commit, slot: int) -> CommitAnnotation:
        """Get an annotation that must already exist."""
        annotation = self._entries.get(self._key(commit, slot))
        if annotation is None:
            raise IntegrityError(
                f"Commit {commit.hexsha} has no annotation for slot {slot}"
            )
        return annotation

    def __len__(self) -> int:
        return len(self._entries)


@dataclass
class SplitOptions:
    """Options for one split invocation."""

    prefixes: list[str] = field(default_factory=list)
    revisions: list[str] = field(default_factory=lambda: ["HEAD"])
    onto: list[str] = field(default_factory=list)
    rewrite_head: bool = False
    rewrite_parents: bool = False
    rejoin: bool = False
    squash: bool = False
    change_committer: bool = False
    annotation: str | None = None
    footer: str | None = None

    @property
    def needs_head(self) -> bool:
        return self.squash or self.rejoin or self.rewrite_head

    def validate(self) -> None:
        """Reject option combinations that cannot be honored together."""
        if self.needs_head and (
            self.rewrite_parents or (self.rewrite_head and (self.squash or self.rejoin))
        ):
            raise UserInputError("Can't rewrite and do a squash or a join")
        if not self.revisions:
            raise UserInputError("At least one revision must be given")


@dataclass
class ProducedCommit:
    """A commit created by the split, paired with its original."""

    original: Commit
    commit: Commit
    sequence: int


@dataclass
class SplitResult:
    """Everything a split invocation produced."""

    prefixes: list[PrefixSpec]
    produced: dict[str, list[ProducedCommit]] = field(default_factory=dict)
    heads: dict[str, list[Commit]] = field(default_factory=dict)
    squashed: dict[str, Commit] = field(default_factory=dict)
    rejoin: Commit | None = None
    rewritten_head: Commit | None = None
    phase: SplitPhase = SplitPhase.COLLECT

    @property
    def labels(self) -> list[str]:
        labels = [p.path for p in self.prefixes]
        if HEAD_LABEL in self.produced:
            labels.append(HEAD_LABEL)
        return labels

    @property
    def total_created(self) -> int:
        return sum(len(items) for items in self.produced.values())

    def output_commits(self, label: str) -> list[Commit]:
        """Commits to report for a label, in creation order."""
        if label in self.squashed:
            return [self.squashed[label]]
        return [p.commit for p in self.produced.get(label, [])]
