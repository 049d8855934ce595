"""CLI for gitsubtree."""

import json
import logging
import sys

import rich_click as click
from rich.logging import RichHandler

from gitsubtree import display

# Configure rich-click for pretty help output
click.rich_click.USE_RICH_MARKUP = True
click.rich_click.USE_MARKDOWN = True
click.rich_click.SHOW_ARGUMENTS = True
click.rich_click.GROUP_ARGUMENTS_OPTIONS = True
click.rich_click.STYLE_ERRORS_SUGGESTION = "magenta italic"
click.rich_click.ERRORS_SUGGESTION = "Try running '--help' for more information."
click.rich_click.MAX_WIDTH = 100
click.rich_click.STYLE_OPTION = "bold cyan"
click.rich_click.STYLE_ARGUMENT = "bold cyan"
click.rich_click.STYLE_COMMAND = "bold green"
click.rich_click.STYLE_SWITCH = "bold yellow"
from gitsubtree.engine import create_engine
from gitsubtree.errors import NoOpError, SubtreeError
from gitsubtree.git import GitError, GitOperations
from gitsubtree.models import SplitOptions, make_prefixes
from gitsubtree.operations import (
    add_subtree,
    list_subtrees,
    merge_subtree,
    pull_subtree,
    single_prefix,
)
from gitsubtree.registry import SubtreeRegistry
from gitsubtree.report import serialize_result


def _configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=display.err_console, show_path=False)],
        force=True,
    )


def _fail(error: Exception) -> None:
    """Report a failure and exit nonzero."""
    if isinstance(error, NoOpError):
        display.print_warning(str(error))
    else:
        display.print_error(str(error))
    sys.exit(1)


def _open_repo(ctx: click.Context) -> GitOperations:
    try:
        return GitOperations(ctx.obj["repo"])
    except GitError as e:
        _fail(e)


@click.group()
@click.option(
    "--repo", "-C", default=None, envvar="GITSUBTREE_REPO", metavar="PATH",
    help="Repository to operate on. Defaults to the current directory "
         "(or $GITSUBTREE_REPO)."
)
@click.option(
    "--verbose", "-v", is_flag=True,
    help="Trace every visited commit, match, prune and created commit on stderr."
)
@click.pass_context
def cli(ctx, repo, verbose):
    """**gitsubtree** - split, add and merge subtrees of a git history.

    **Examples:**

        gitsubtree split -P lib                    Split lib/ out of HEAD

        gitsubtree split -P lib --rejoin           Split and merge back

        gitsubtree add -P vendor/x ../x main       Graft a branch at vendor/x

        gitsubtree merge -P vendor/x other         Merge a branch into vendor/x
    """
    _configure_logging(verbose)
    ctx.ensure_object(dict)
    ctx.obj["repo"] = repo


@cli.command()
@click.option("--prefix", "-P", "prefixes", multiple=True, metavar="PATH",
              help="Subdirectory to split out. Repeat for several subtrees.")
@click.option("--name", "-n", "names", multiple=True, metavar="NAME",
              help="Subtree registered in .gitsubtree to split. Repeatable.")
@click.option("--onto", multiple=True, metavar="COMMIT",
              help="Graft the split subtree onto an existing subtree commit.")
@click.option("--rewrite-head", is_flag=True,
              help="Rewrite HEAD to include the generated commits as subtree merges.")
@click.option("--rewrite-parents", is_flag=True,
              help="Rewrite the split commits to include the generated commits as merges.")
@click.option("--rejoin", is_flag=True,
              help="Add a merge commit joining the split subtrees with HEAD.")
@click.option("--squash", is_flag=True,
              help="Produce one squash commit per subtree instead of its full history.")
@click.option("--committer", "change_committer", is_flag=True,
              help="Use the current committer identity for rewritten commits.")
@click.option("--annotate", "annotation", default=None, metavar="TEXT",
              help="Prepend TEXT to the message of split commits.")
@click.option("--footer", default=None, metavar="TEXT",
              help="Append TEXT to the message of split commits.")
@click.option("--summary", is_flag=True,
              help="Show a per-prefix summary table on stderr.")
@click.option("--json", "json_output", is_flag=True,
              help="Output the result as JSON.")
@click.argument("revisions", nargs=-1)
@click.pass_context
def split(
    ctx,
    prefixes,
    names,
    onto,
    rewrite_head,
    rewrite_parents,
    rejoin,
    squash,
    change_committer,
    annotation,
    footer,
    summary,
    json_output,
    revisions,
):
    """Split subtrees out into their own histories.

    Prints each prefix followed by every commit created for it, oldest first.
    This is the whole new chain, not only its heads; use **--summary** or
    **--json** to see the heads.
    Without **-P** or **-n**, every subtree registered in `.gitsubtree` is split.
    """
    options = SplitOptions(
        prefixes=list(prefixes),
        revisions=list(revisions) or ["HEAD"],
        onto=list(onto),
        rewrite_head=rewrite_head,
        rewrite_parents=rewrite_parents,
        rejoin=rejoin,
        squash=squash,
        change_committer=change_committer,
        annotation=annotation,
        footer=footer,
    )

    try:
        engine = create_engine(options, repo_path=ctx.obj["repo"], names=list(names))
        with display.create_spinner("Splitting...") as progress:
            progress.add_task("Splitting...", total=None)
            result = engine.run()
    except (SubtreeError, GitError) as e:
        _fail(e)

    if json_output:
        print(json.dumps(serialize_result(result), indent=2))
    else:
        display.print_split_result(result)

    if summary:
        display.print_split_summary(result)


@cli.command()
@click.option("--prefix", "-P", required=True, metavar="PATH",
              help="Location to add the subtree at.")
@click.option("--name", "-n", default=None, metavar="NAME",
              help="Record the subtree under NAME in .gitsubtree.")
@click.option("--remote", "-r", default=None, metavar="REPO",
              help="Repository to fetch the branch from.")
@click.option("--squash", is_flag=True,
              help="Bring the history in as one commit.")
@click.argument("branch", required=False)
@click.pass_context
def add(ctx, prefix, name, remote, squash, branch):
    """Add a branch's content as a subtree at **PREFIX**."""
    git = _open_repo(ctx)
    try:
        target = single_prefix([prefix])
        commit = add_subtree(
            git,
            target,
            ref=branch,
            remote=remote,
            name=name,
            squash=squash,
        )
    except (SubtreeError, GitError) as e:
        _fail(e)

    display.print_success(f"Added dir '{target.path}'")
    display.console.out(commit.hexsha)


@cli.command(context_settings={"ignore_unknown_options": True})
@click.option("--prefix", "-P", "prefixes", multiple=True, metavar="PATH",
              help="Subtree to merge into.")
@click.option("--name", "-n", default=None, metavar="NAME",
              help="Registered subtree to merge into.")
@click.option("--remote", "-r", default=None, metavar="REPO",
              help="Repository to fetch the branch from.")
@click.option("--squash", is_flag=True,
              help="Bring the history in as one commit.")
@click.argument("branch", required=False)
@click.argument("merge_args", nargs=-1, type=click.UNPROCESSED)
@click.pass_context
def merge(ctx, prefixes, name, remote, squash, branch, merge_args):
    """Merge a branch into an existing subtree.

    Extra arguments after the branch are passed on to `git merge`.
    """
    git = _open_repo(ctx)
    try:
        paths = list(prefixes)
        if name:
            paths.append(SubtreeRegistry.for_repo(git).lookup(name).path)
        output = merge_subtree(
            git,
            single_prefix(paths),
            ref=branch,
            remote=remote,
            squash=squash,
            extra_args=tuple(merge_args),
        )
    except (SubtreeError, GitError) as e:
        _fail(e)

    if output:
        display.print_info(output)


@cli.command(context_settings={"ignore_unknown_options": True})
@click.option("--prefix", "-P", required=True, metavar="PATH",
              help="Subtree to pull into.")
@click.argument("pull_args", nargs=-1, type=click.UNPROCESSED)
@click.pass_context
def pull(ctx, prefix, pull_args):
    """Pull into a subtree: `git pull -Xsubtree=PREFIX [args]`."""
    git = _open_repo(ctx)
    try:
        output = pull_subtree(git, single_prefix([prefix]), tuple(pull_args))
    except (SubtreeError, GitError) as e:
        _fail(e)

    if output:
        display.print_info(output)


@cli.command("list")
@click.option("--prefix", "-P", "prefixes", multiple=True, metavar="PATH",
              help="Subtree to look for. Repeatable.")
@click.option("--name", "-n", "names", multiple=True, metavar="NAME",
              help="Registered subtree to look for. Repeatable.")
@click.option("--exact", is_flag=True,
              help="Only list exact subtree matches.")
@click.argument("revisions", nargs=-1)
@click.pass_context
def list_command(ctx, prefixes, names, exact, revisions):
    """List the subtree commits merged into the history."""
    git = _open_repo(ctx)
    try:
        paths = SubtreeRegistry.for_repo(git).resolve(list(prefixes), list(names))
        commits = list_subtrees(git, list(revisions) or ["HEAD"], make_prefixes(paths), exact)
    except (SubtreeError, GitError) as e:
        _fail(e)

    display.print_commit_list(commits)


@cli.command()
def version():
    """Show version information."""
    from gitsubtree import __version__

    display.console.print(f"gitsubtree version {__version__}")


def main():
    """Main entry point."""
    cli()


if __name__ == "__main__":
    main()
