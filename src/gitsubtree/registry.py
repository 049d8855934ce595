"""The .gitsubtree registry of named subtrees."""

import logging
import re
from dataclasses import dataclass
from pathlib import Path

from git.config import GitConfigParser

from gitsubtree.errors import UserInputError
from gitsubtree.git import GitOperations

logger = logging.getLogger(__name__)

SUBTREE_FILE = ".gitsubtree"

_SECTION_RE = re.compile(r'^subtree "(?P<name>.+)"$')


@dataclass
class SubtreeEntry:
    """A named subtree recorded in .gitsubtree."""

    name: str
    path: str
    url: str | None = None


class SubtreeRegistry:
    """Reads and writes ``[subtree "<name>"]`` sections of .gitsubtree."""

    def __init__(self, path: Path):
        self.path = Path(path)

    @classmethod
    def for_repo(cls, git: GitOperations) -> "SubtreeRegistry":
        return cls(git.working_dir / SUBTREE_FILE)

    def entries(self) -> list[SubtreeEntry]:
        """All registered subtrees, in file order."""
        if not self.path.exists():
            return []

        parser = GitConfigParser(str(self.path), read_only=True)
        entries = []
        for section in parser.sections():
            match = _SECTION_RE.match(section)
            if not match or not parser.has_option(section, "path"):
                continue
            url = parser.get_value(section, "url") if parser.has_option(section, "url") else None
            entries.append(
                SubtreeEntry(
                    name=match.group("name"),
                    path=str(parser.get_value(section, "path")),
                    url=str(url) if url is not None else None,
                )
            )
        return entries

    def prefixes(self) -> list[str]:
        return [e.path for e in self.entries()]

    def lookup(self, name: str) -> SubtreeEntry:
        """Find a subtree by name."""
        for entry in self.entries():
            if entry.name == name:
                return entry
        raise UserInputError(f"No subtree named '{name}' in {SUBTREE_FILE}")

    def record(self, name: str, prefix: str, url: str | None = None) -> None:
        """Register (or update) a named subtree."""
        section = f'subtree "{name}"'
        with GitConfigParser(str(self.path), read_only=False) as writer:
            if url:
                writer.set_value(section, "url", url)
            writer.set_value(section, "path", prefix)
        logger.debug("Recorded subtree %s at %s", name, prefix)

    def resolve(self, prefixes: list[str], names: list[str]) -> list[str]:
        """Combine explicit prefixes and named subtrees.

        Falls back to every registered subtree when nothing was given.
        """
        paths = list(prefixes) + [self.lookup(name).path for name in names]
        if not paths:
            paths = self.prefixes()
        if not paths:
            raise UserInputError(
                f"Must specify a prefix (none given and none registered in {SUBTREE_FILE})"
            )
        return paths
