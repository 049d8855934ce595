"""Rich terminal display for gitsubtree."""

from git import Commit
from rich.console import Console
from rich.progress import Progress, SpinnerColumn, TextColumn
from rich.table import Table

from gitsubtree.models import SplitResult


# Results go to stdout so they can be piped; everything else to stderr
console = Console(highlight=False)
err_console = Console(stderr=True, highlight=False)


def create_spinner(message: str) -> Progress:
    """Create a spinner progress indicator."""
    return Progress(
        SpinnerColumn(),
        TextColumn("[progress.description]{task.description}"),
        console=err_console,
        transient=True,
    )


def print_split_result(result: SplitResult) -> None:
    """Print each label followed by its produced commits in creation order."""
    for label in result.labels:
        console.out(label)
        for commit in result.output_commits(label):
            console.out(f"\t{commit.hexsha}")

    final = result.rewritten_head or result.rejoin
    if final is not None:
        console.out("HEAD")
        console.out(f"\t{final.hexsha}")


def print_commit_list(commits: list[Commit]) -> None:
    """Print one commit id per line."""
    for commit in commits:
        console.out(commit.hexsha)


def print_split_summary(result: SplitResult) -> None:
    """Print a per-prefix summary table."""
    table = Table(title="Split summary", show_header=True, header_style="bold")
    table.add_column("Prefix")
    table.add_column("Created", justify="right")
    table.add_column("Heads")

    for label in result.labels:
        heads = result.heads.get(label, [])
        table.add_row(
            label,
            str(len(result.produced.get(label, []))),
            ", ".join(c.hexsha[:8] for c in heads),
        )

    err_console.print(table)


def print_error(message: str) -> None:
    """Print an error message."""
    err_console.print(f"[bold red]Error:[/bold red] {message}")


def print_warning(message: str) -> None:
    """Print a warning message."""
    err_console.print(f"[bold yellow]Warning:[/bold yellow] {message}")


def print_info(message: str) -> None:
    """Print an info message."""
    err_console.print(f"[dim]{message}[/dim]")


def print_success(message: str) -> None:
    """Print a success message."""
    err_console.print(f"[bold green]{message}[/bold green]")
