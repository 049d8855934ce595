"""Shared fixtures: throwaway git repositories with reproducible commits."""

import os
import subprocess
from pathlib import Path

import pytest

from gitsubtree.git import GitOperations

BASE_DATE = 1700000000


@pytest.fixture(autouse=True)
def git_env(monkeypatch, tmp_path_factory):
    """Pin identity and dates so commit ids are reproducible."""
    home = tmp_path_factory.mktemp("home")
    monkeypatch.setenv("HOME", str(home))
    monkeypatch.setenv("GIT_CONFIG_NOSYSTEM", "1")
    monkeypatch.setenv("GIT_AUTHOR_NAME", "Test User")
    monkeypatch.setenv("GIT_AUTHOR_EMAIL", "test@example.com")
    monkeypatch.setenv("GIT_COMMITTER_NAME", "Test User")
    monkeypatch.setenv("GIT_COMMITTER_EMAIL", "test@example.com")
    monkeypatch.setenv("GIT_AUTHOR_DATE", f"{BASE_DATE} +0000")
    monkeypatch.setenv("GIT_COMMITTER_DATE", f"{BASE_DATE} +0000")
    monkeypatch.delenv("GITSUBTREE_REPO", raising=False)


class RepoBuilder:
    """Builds history in a real repository through the git command line."""

    def __init__(self, path: Path):
        self.path = path
        self.tick = 0
        self.run("init", "-q", "-b", "main")
        self.run("config", "user.email", "test@example.com")
        self.run("config", "user.name", "Test User")
        self.run("config", "commit.gpgsign", "false")

    def run(self, *args: str) -> str:
        # Each call gets its own date so commits never collide
        self.tick += 1
        date = f"{BASE_DATE + self.tick * 60} +0000"
        env = {
            "GIT_AUTHOR_DATE": date,
            "GIT_COMMITTER_DATE": date,
        }
        result = subprocess.run(
            ["git", *args],
            cwd=self.path,
            check=True,
            capture_output=True,
            text=True,
            env={**os.environ, **env},
        )
        return result.stdout.strip()

    def write(self, files: dict[str, str | None]) -> None:
        for name, content in files.items():
            target = self.path / name
            if content is None:
                target.unlink()
                continue
            target.parent.mkdir(parents=True, exist_ok=True)
            target.write_text(content)

    def commit(self, message: str, files: dict[str, str | None]) -> str:
        """Write files (None deletes) and commit them; returns the sha."""
        self.write(files)
        self.run("add", "-A")
        self.run("commit", "-q", "-m", message)
        return self.rev_parse("HEAD")

    def branch(self, name: str, start: str = "HEAD") -> None:
        self.run("branch", name, start)

    def checkout(self, name: str) -> None:
        self.run("checkout", "-q", name)

    def merge(self, ref: str, message: str) -> str:
        self.run("merge", "-q", "--no-ff", "-m", message, ref)
        return self.rev_parse("HEAD")

    def rev_parse(self, rev: str) -> str:
        return self.run("rev-parse", rev)

    def git(self) -> GitOperations:
        return GitOperations(self.path)


@pytest.fixture
def make_repo(tmp_path):
    """Factory for fresh repositories under the test's tmp dir."""
    def factory(name: str = "repo") -> RepoBuilder:
        path = tmp_path / name
        path.mkdir()
        return RepoBuilder(path)

    return factory


@pytest.fixture
def repo(make_repo):
    return make_repo()


@pytest.fixture
def linear_repo(repo):
    """A -> B -> C where B changes lib/ and C only touches the top level."""
    shas = {
        "A": repo.commit("A", {"lib/core.txt": "one\n", "top.txt": "top\n"}),
        "B": repo.commit("B", {"lib/core.txt": "two\n"}),
        "C": repo.commit("C", {"top.txt": "top again\n"}),
    }
    repo.shas = shas
    return repo
