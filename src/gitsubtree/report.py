"""JSON serialization of split results."""

from typing import Any

from git import Commit

from gitsubtree.models import ProducedCommit, SplitResult


def _sha(commit: Commit | None) -> str | None:
    return commit.hexsha if commit is not None else None


def _serialize_produced(produced: ProducedCommit) -> dict[str, Any]:
    """Serialize a ProducedCommit to a dict."""
    return {
        "original": produced.original.hexsha,
        "commit": produced.commit.hexsha,
        "sequence": produced.sequence,
    }


def serialize_result(result: SplitResult) -> dict[str, Any]:
    """Serialize a SplitResult to a dict for JSON output."""
    return {
        "phase": result.phase.value,
        "prefixes": [p.path for p in result.prefixes],
        "produced": {
            label: [_serialize_produced(p) for p in items]
            for label, items in result.produced.items()
        },
        "heads": {
            label: [c.hexsha for c in commits]
            for label, commits in result.heads.items()
        },
        "squashed": {label: c.hexsha for label, c in result.squashed.items()},
        "rejoin": _sha(result.rejoin),
        "rewritten_head": _sha(result.rewritten_head),
    }
