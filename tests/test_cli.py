"""Tests for the gitsubtree command line."""

import json

from click.testing import CliRunner

from gitsubtree import __version__
from gitsubtree.cli import cli, split


def _lines(output):
    return [line.strip() for line in output.splitlines() if line.strip()]


def _invoke(repo, *args):
    return CliRunner().invoke(cli, ["-C", str(repo.path), *args])


def test_version():
    result = CliRunner().invoke(cli, ["version"])

    assert result.exit_code == 0
    assert __version__ in result.output


def test_split_prints_prefix_and_commits(linear_repo):
    result = _invoke(linear_repo, "split", "-P", "lib")

    assert result.exit_code == 0, result.output
    lines = _lines(result.output)
    assert lines[0] == "lib"
    assert len(lines) == 3
    assert all(len(sha) == 40 for sha in lines[1:])


def test_split_json(linear_repo):
    result = _invoke(linear_repo, "split", "-P", "lib", "--json")

    assert result.exit_code == 0, result.output
    data = json.loads(result.output)
    assert data["phase"] == "done"
    assert data["prefixes"] == ["lib"]
    assert [p["original"] for p in data["produced"]["lib"]] == [
        linear_repo.shas["A"], linear_repo.shas["B"],
    ]
    assert data["rejoin"] is None


def test_split_rejoin_prints_head(linear_repo):
    result = _invoke(linear_repo, "split", "-P", "lib", "--rejoin")

    assert result.exit_code == 0, result.output
    lines = _lines(result.output)
    assert lines[-2] == "HEAD"
    assert lines[-1] == linear_repo.rev_parse("HEAD")


def test_split_conflicting_options_fail(linear_repo):
    result = _invoke(linear_repo, "split", "-P", "lib", "--rejoin", "--rewrite-parents")

    assert result.exit_code == 1
    assert "Can't rewrite" in result.output


def test_split_without_prefix_fails(linear_repo):
    result = _invoke(linear_repo, "split")

    assert result.exit_code == 1
    assert "Must specify a prefix" in result.output


def test_split_by_registered_name(linear_repo):
    (linear_repo.path / ".gitsubtree").write_text('[subtree "core"]\n\tpath = lib\n')

    result = _invoke(linear_repo, "split", "-n", "core")

    assert result.exit_code == 0, result.output
    assert _lines(result.output)[0] == "lib"


def test_second_squash_rejoin_warns(linear_repo):
    first = _invoke(linear_repo, "split", "-P", "lib", "--squash", "--rejoin")
    assert first.exit_code == 0, first.output

    second = _invoke(linear_repo, "split", "-P", "lib", "--squash", "--rejoin")

    assert second.exit_code == 1
    assert "No new changes" in second.output


def test_not_a_repository(tmp_path):
    result = CliRunner().invoke(cli, ["-C", str(tmp_path), "split", "-P", "lib"])

    assert result.exit_code == 1
    assert "Not a git repository" in result.output


def test_add_and_list(make_repo):
    upstream = make_repo("upstream")
    upstream_sha = upstream.commit("upstream", {"lib.txt": "v1\n"})
    host = make_repo("host")
    host.commit("host", {"app.txt": "app\n"})

    added = _invoke(host, "add", "-P", "vendor", "-r", str(upstream.path), "main")
    assert added.exit_code == 0, added.output

    listed = _invoke(host, "list", "-P", "vendor")
    assert listed.exit_code == 0, listed.output
    assert _lines(listed.output) == [upstream_sha]


def test_split_help_explains_output():
    result = CliRunner().invoke(cli, ["split", "--help"])

    assert result.exit_code == 0
    assert "whole new chain" in split.help
