"""Subtree add, merge, pull and list."""

import logging

from git import Commit

from gitsubtree.errors import NoOpError, UserInputError
from gitsubtree.git import GitOperations
from gitsubtree.models import PrefixSpec, make_prefixes
from gitsubtree.phases import create_squash_commit
from gitsubtree.registry import SUBTREE_FILE, SubtreeRegistry
from gitsubtree.trees import match_parent, resolve_subtrees, same_tree

logger = logging.getLogger(__name__)

DEFAULT_BRANCH = "master"


def single_prefix(paths: list[str]) -> PrefixSpec:
    """Commands that merge into a subtree work on exactly one prefix."""
    if not paths:
        raise UserInputError("Must specify a prefix")
    prefixes = make_prefixes(paths)
    if len(prefixes) > 1:
        raise UserInputError("You can only subtree merge one subtree at a time")
    return prefixes[0]


def find_subtree_commits(
    commit: Commit,
    prefixes: list[PrefixSpec],
    exact: bool = False,
) -> list[Commit]:
    """Parents of commit that carry one of the prefixes' subtree content."""
    trees = resolve_subtrees(commit, prefixes)
    found: list[Commit] = []
    for prefix in prefixes:
        tree = trees[prefix.index]
        if tree is None:
            continue

        parent = match_parent(commit, tree, exact_only=exact)
        if parent is not None and all(c.binsha != parent.binsha for c in found):
            logger.debug("%s merges %s into %s", commit.hexsha, parent.hexsha, prefix.path)
            found.append(parent)
    return found


def list_subtrees(
    git: GitOperations,
    revisions: list[str],
    prefixes: list[PrefixSpec],
    exact: bool = False,
) -> list[Commit]:
    """Every subtree commit merged into the history of revisions."""
    commits = []
    # There is no subtree merge without a merge
    for commit in git.rev_list(revisions, min_parents=2):
        commits.extend(find_subtree_commits(commit, prefixes, exact))
    return commits


def last_subtree_commit(git: GitOperations, prefix: PrefixSpec, rev: str = "HEAD") -> Commit | None:
    """The most recently merged subtree commit for prefix, if any."""
    for commit in git.rev_list([rev], min_parents=2):
        found = find_subtree_commits(commit, [prefix])
        if found:
            return found[0]
    return None


def add_subtree(
    git: GitOperations,
    prefix: PrefixSpec,
    ref: str | None = None,
    remote: str | None = None,
    name: str | None = None,
    squash: bool = False,
) -> Commit:
    """Graft a commit's tree into the work tree at prefix and commit it.

    HEAD is advanced to a merge of the current HEAD and the added commit
    (or a squash of it).
    """
    git.ensure_clean_index()

    if remote:
        merge_ref = git.fetch(remote, ref)
        branch_name = ref or DEFAULT_BRANCH
    else:
        if not ref:
            raise UserInputError("Branch must be specified")
        merge_ref = ref
        branch_name = ref

    try:
        commit = git.resolve_commit(merge_ref)
    except UserInputError:
        raise UserInputError(f"Valid branch must be specified ({branch_name})")
    logger.debug("Add commit %s", commit.hexsha)

    head = git.head_commit()
    if git.path_exists(head, prefix.path):
        raise UserInputError(f"Prefix '{prefix.path}' already exists")

    git.read_tree_into_prefix(prefix.path, commit)

    if name:
        SubtreeRegistry.for_repo(git).record(name, prefix.path, url=remote)
        git.stage_files([SUBTREE_FILE])

    merged = commit
    if squash:
        merged = create_squash_commit(git, commit.tree, [], branch_name)

    message = f"Subtree add {branch_name}"
    if remote:
        message += f" on {remote}"
    message += f" into {prefix.path}"

    tree = git.write_tree()
    result = git.create_commit(message, tree, [head, merged])
    git.update_head(result, "subtree add")
    return result


def merge_subtree(
    git: GitOperations,
    prefix: PrefixSpec,
    ref: str | None = None,
    remote: str | None = None,
    squash: bool = False,
    extra_args: tuple[str, ...] = (),
) -> str:
    """Merge a branch into prefix using the subtree merge strategy.

    With ``squash``, the branch is first flattened into a single commit on
    top of the previous subtree merge for this prefix.
    """
    branch_name = ref or DEFAULT_BRANCH
    merge_ref = ref
    if remote:
        merge_ref = git.fetch(remote, ref)
    if not merge_ref:
        raise UserInputError("Branch must be specified")

    if squash:
        previous = last_subtree_commit(git, prefix)
        incoming = git.resolve_commit(merge_ref)

        if previous is not None and same_tree(incoming.tree, previous.tree):
            raise NoOpError("No new changes")

        parents = [previous] if previous is not None else []
        squashed = create_squash_commit(git, incoming.tree, parents, prefix.path)
        merge_ref = squashed.hexsha

    message = f"Subtree merge {branch_name} into {prefix.path}"
    return git.merge(prefix.path, message, merge_ref, extra_args)


def pull_subtree(git: GitOperations, prefix: PrefixSpec, args: tuple[str, ...] = ()) -> str:
    """Pull into prefix using the subtree merge strategy."""
    return git.pull(prefix.path, args)
