"""Git operations for gitsubtree.

Thin adapter over GitPython and the git command line. The split engine only
talks to the repository through this class: reading commits and trees,
writing new commit objects, and the few porcelain steps (fetch, merge,
read-tree) the subtree commands delegate to git itself.
"""

import logging
from pathlib import Path

from git import Actor, Commit, Repo, Tree
from git.exc import BadName, GitCommandError, InvalidGitRepositoryError, NoSuchPathError
from git.util import hex_to_bin

from gitsubtree.errors import StateConflictError, UserInputError

logger = logging.getLogger(__name__)


class GitError(Exception):
    """Git operation failed."""

    pass


class GitOperations:
    """Git operations wrapper."""

    def __init__(self, repo_path: str | Path | None = None):
        self.repo_path = Path(repo_path) if repo_path else Path.cwd()
        try:
            self.repo = Repo(self.repo_path, search_parent_directories=True)
        except (InvalidGitRepositoryError, NoSuchPathError):
            raise GitError(f"Not a git repository: {self.repo_path}")

    @property
    def working_dir(self) -> Path:
        """Root of the work tree."""
        if self.repo.working_tree_dir is None:
            raise GitError("Operation requires a work tree")
        return Path(self.repo.working_tree_dir)

    @property
    def git_dir(self) -> Path:
        return Path(self.repo.git_dir)

    def resolve_commit(self, rev: str) -> Commit:
        """Resolve any revision expression to a commit."""
        try:
            return self.repo.commit(rev)
        except (BadName, ValueError, GitCommandError) as e:
            raise UserInputError(f"Unable to resolve '{rev}' to a commit: {e}")

    def head_commit(self) -> Commit:
        """The commit HEAD currently points at."""
        try:
            return self.repo.head.commit
        except ValueError:
            raise UserInputError("HEAD does not point to a commit")

    def rev_list(self, revisions: list[str], min_parents: int | None = None) -> list[Commit]:
        """List commits reachable from revisions, children before parents."""
        args = ["--topo-order"]
        if min_parents is not None:
            args.append(f"--min-parents={min_parents}")

        try:
            output = self.repo.git.rev_list(*args, *revisions, "--")
        except GitCommandError as e:
            raise UserInputError(f"Unable to walk {' '.join(revisions)}: {e.stderr.strip()}")

        return [self.repo.commit(sha) for sha in output.split()]

    def create_commit(
        self,
        message: str,
        tree: Tree,
        parents: list[Commit],
        author: Actor | None = None,
        committer: Actor | None = None,
        author_date: str | None = None,
        commit_date: str | None = None,
    ) -> Commit:
        """Write a commit object without touching any reference.

        Identity fields left as None are taken from git's environment and
        configuration, the same way ``git commit-tree`` does.
        """
        try:
            return Commit.create_from_tree(
                self.repo,
                tree,
                message,
                parent_commits=parents,
                head=False,
                author=author,
                committer=committer,
                author_date=author_date,
                commit_date=commit_date,
            )
        except (GitCommandError, ValueError) as e:
            raise GitError(f"Failed to create commit: {e}")

    def update_head(self, commit: Commit, reason: str) -> None:
        """Advance HEAD (or the branch it points to) to commit."""
        try:
            self.repo.head.set_commit(commit, logmsg=reason)
        except (GitCommandError, OSError, ValueError) as e:
            raise StateConflictError(f"Unable to update HEAD: {e}")

    def ensure_clean_index(self) -> None:
        """Fail if the index is locked or has unresolved conflicts."""
        if (self.git_dir / "index.lock").exists():
            raise StateConflictError("The index is locked by another git process")

        if self.repo.index.unmerged_blobs():
            raise StateConflictError("You need to resolve your current index first")

    def fetch(self, remote: str, ref: str | None = None) -> str:
        """Fetch from a remote and return the sha of the fetched head."""
        args = [remote]
        if ref:
            args.append(ref)
        args.append("--quiet")

        try:
            self.repo.git.fetch(*args)
            return self.repo.git.rev_parse("FETCH_HEAD^{commit}")
        except GitCommandError as e:
            raise GitError(f"Unable to fetch ({e.status}): {e.stderr.strip()}")

    def merge(self, prefix: str, message: str, ref: str, extra_args: tuple[str, ...] = ()) -> str:
        """Merge ref with the subtree strategy option for prefix."""
        try:
            return self.repo.git.merge(
                f"-Xsubtree={prefix}", "--message", message, *extra_args, ref
            )
        except GitCommandError as e:
            raise GitError(f"Merge failed: {e.stderr.strip() or e}")

    def pull(self, prefix: str, args: tuple[str, ...] = ()) -> str:
        """Pull with the subtree strategy option for prefix."""
        try:
            return self.repo.git.pull(f"-Xsubtree={prefix}", *args)
        except GitCommandError as e:
            raise GitError(f"Pull failed: {e.stderr.strip() or e}")

    def read_tree_into_prefix(self, prefix: str, commit: Commit) -> None:
        """Bind commit's tree at prefix in the index and the work tree."""
        try:
            self.repo.git.read_tree(f"--prefix={prefix}/", "-u", commit.hexsha)
        except GitCommandError as e:
            raise GitError(f"Unable to read tree: {e.stderr.strip() or e}")

    def write_tree(self) -> Tree:
        """Write the index as a tree object."""
        try:
            sha = self.repo.git.write_tree()
        except GitCommandError as e:
            raise GitError(f"git write-tree failed to write a tree: {e.stderr.strip()}")
        # A root tree needs an empty path to be traversable
        return Tree(self.repo, hex_to_bin(sha), path="")

    def stage_files(self, files: list[str]) -> None:
        """Stage specific files."""
        for f in files:
            self.repo.git.add(f)

    def path_exists(self, commit: Commit, path: str) -> bool:
        """Check if a path exists in a commit's tree."""
        try:
            commit.tree / path
            return True
        except KeyError:
            return False
