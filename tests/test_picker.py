"""Tests for menu rendering and the fzf-backed presenter."""

import os
import signal
import subprocess
from pathlib import Path

import pytest

from gitpick.exceptions import DependencyMissingError, PickerError
from gitpick.models import Action, BranchRecord, Category, MenuRow
from gitpick.picker import (
    ABORT_LABEL,
    TOGGLE_KEY,
    Fzf,
    FzfResult,
    MenuView,
    Presenter,
    branch_rows,
    format_branch,
    matches_query,
    scratch_file,
    separator_row,
    truncate,
)


def record(name: str, epoch: int = 1_700_000_000, author: str = "Test User") -> BranchRecord:
    return BranchRecord(name=name, last_commit_epoch=epoch, last_commit_relative="2 days ago", author_name=author)


@pytest.fixture
def groups() -> dict:
    return {
        Category.MERGED: [record("feature/gone")],
        Category.STALE: [record("feature/old")],
        Category.RECENT: [record("feature/new"), record("bugfix/login")],
    }


@pytest.fixture
def fzf_on_path(monkeypatch: pytest.MonkeyPatch) -> Fzf:
    monkeypatch.setattr("gitpick.picker.shutil.which", lambda name: f"/usr/bin/{name}")
    return Fzf()


def test_truncate() -> None:
    assert truncate("short", 10) == "short"
    assert truncate("a" * 12, 10) == "aaaaaaa..."


def test_format_branch_with_label() -> None:
    text = format_branch(record("feature/x"), Category.STALE, width=12)
    assert text.startswith("[STALE]   feature/x   ")
    assert text.endswith("2 days ago")


def test_format_branch_with_author() -> None:
    text = format_branch(record("feature/x"), width=12, show_author=True)
    assert "feature/x" in text
    assert text.endswith("Test User")


def test_branch_rows_follow_category_order(groups: dict) -> None:
    rows = branch_rows(groups, preselect=frozenset({Category.MERGED, Category.STALE}))
    assert [row.key for row in rows] == ["feature/gone", "feature/old", "feature/new", "bugfix/login"]
    assert [row.preselected for row in rows] == [True, True, False, False]
    assert rows[0].display.startswith("[MERGED]")


def test_branch_rows_list_a_name_once() -> None:
    duplicated = {Category.STALE: [record("dup")], Category.RECENT: [record("dup")]}
    assert [row.key for row in branch_rows(duplicated)] == ["dup"]


def test_view_puts_preselected_first_and_abort_last() -> None:
    rows = [
        MenuRow(key="a", display="a", item="a"),
        MenuRow(key="b", display="b", item="b", preselected=True),
        MenuRow(key="c", display="c", item="c"),
    ]
    view = MenuView(rows)
    lines = view.lines()
    assert [row.key for row in lines] == ["b", "a", "c", ""]
    assert lines[-1].display == ABORT_LABEL
    assert not lines[-1].preselected
    assert view.preselect_count == 1


def test_matches_query() -> None:
    assert matches_query("local: feature/LOGIN-page", "login page")
    assert not matches_query("local: feature/login", "login signup")
    assert not matches_query("anything", "   ")


def test_single_match_skips_fzf(fake_fzf, groups: dict) -> None:
    presenter = Presenter(fake_fzf)
    result = presenter.present([MenuView(branch_rows(groups))], prompt="> ", query="LOGIN")
    assert result.action is Action.ACCEPT
    assert [r.name for r in result.chosen] == ["bugfix/login"]
    assert fake_fzf.calls == []


def test_single_match_ignores_separator_and_abort(fake_fzf) -> None:
    rows = [MenuRow(key="x", display="abort me", item="x"), separator_row()]
    result = Presenter(fake_fzf).present([MenuView(rows)], prompt="> ", query="abort")
    assert result.chosen == ["x"]
    assert fake_fzf.calls == []


def test_several_matches_open_fzf_with_query(fake_fzf, groups: dict) -> None:
    fake_fzf.script(fake_fzf.pick("feature/new", query="feature"))
    result = Presenter(fake_fzf).present([MenuView(branch_rows(groups))], prompt="> ", query="feature")
    assert [r.name for r in result.chosen] == ["feature/new"]
    assert fake_fzf.calls[0]["query"] == "feature"


def test_escape_is_cancelled(fake_fzf, groups: dict) -> None:
    fake_fzf.script(FzfResult(query="typed", cancelled=True))
    result = Presenter(fake_fzf).present([MenuView(branch_rows(groups))], prompt="> ")
    assert result.cancelled
    assert result.chosen == []
    assert result.query == "typed"


def test_abort_row_accepts_nothing(fake_fzf, groups: dict) -> None:
    fake_fzf.script(fake_fzf.abort)
    result = Presenter(fake_fzf).present([MenuView(branch_rows(groups))], prompt="> ", multi=True)
    assert result.action is Action.ACCEPT
    assert result.chosen == []


def test_abort_wins_over_other_rows(fake_fzf, groups: dict) -> None:
    fake_fzf.script(lambda lines: FzfResult(lines=[lines[0], lines[-1]]))
    result = Presenter(fake_fzf).present([MenuView(branch_rows(groups))], prompt="> ", multi=True)
    assert result.action is Action.ACCEPT
    assert result.chosen == []


def test_toggle_carries_query_to_next_view(fake_fzf, groups: dict) -> None:
    stale = MenuView(branch_rows({Category.STALE: groups[Category.STALE]}), header="stale")
    everything = MenuView(branch_rows(groups), header="all")
    fake_fzf.script(
        FzfResult(query="feat", key=TOGGLE_KEY),
        fake_fzf.pick("feature/new", query="feat"),
    )
    result = Presenter(fake_fzf).present([stale, everything], prompt="> ", multi=True)

    assert [call["header"] for call in fake_fzf.calls] == ["stale", "all"]
    assert fake_fzf.calls[1]["query"] == "feat"
    assert TOGGLE_KEY in fake_fzf.calls[0]["expect"]
    assert [r.name for r in result.chosen] == ["feature/new"]


def test_toggle_key_not_expected_with_single_view(fake_fzf, groups: dict) -> None:
    Presenter(fake_fzf).present([MenuView(branch_rows(groups))], prompt="> ")
    assert fake_fzf.calls[0]["expect"] == []


def test_action_key_is_reported(fake_fzf, groups: dict) -> None:
    fake_fzf.script(fake_fzf.pick("feature/old", key="ctrl-r"))
    result = Presenter(fake_fzf).present(
        [MenuView(branch_rows(groups))],
        prompt="> ",
        action_keys={"ctrl-r": Action.DELETE_KEY},
    )
    assert result.action is Action.DELETE_KEY
    assert [r.name for r in result.chosen] == ["feature/old"]
    assert fake_fzf.calls[0]["expect"] == ["ctrl-r"]


def test_preselect_count_passed_to_fzf(fake_fzf, groups: dict) -> None:
    rows = branch_rows(groups, preselect=frozenset({Category.MERGED, Category.STALE}))
    Presenter(fake_fzf).present([MenuView(rows)], prompt="> ", multi=True)
    assert fake_fzf.calls[0]["preselect"] == 2
    assert fake_fzf.calls[0]["lines"][0] == f"{rows[0].display}\tfeature/gone"


def test_present_requires_a_view(fake_fzf) -> None:
    with pytest.raises(ValueError):
        Presenter(fake_fzf).present([], prompt="> ")


def test_missing_fzf(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr("gitpick.picker.shutil.which", lambda name: None)
    with pytest.raises(DependencyMissingError):
        Fzf()


def test_build_args(fzf_on_path: Fzf) -> None:
    args = fzf_on_path.build_args(
        prompt="> ",
        header="head",
        multi=True,
        expect=["ctrl-a", "ctrl-r"],
        preview="echo {2}",
        preselect=2,
    )
    assert args[0] == "/usr/bin/fzf"
    assert "--print-query" in args
    assert "--multi" in args
    assert "--delimiter=\t" in args
    assert "--with-nth=1" in args
    assert "--expect=ctrl-a,ctrl-r" in args
    assert "--preview=echo {2}" in args
    assert "--bind=load:first+toggle+down+toggle+down+first" in args


def test_build_args_single_select_has_no_preselect(fzf_on_path: Fzf) -> None:
    args = fzf_on_path.build_args(prompt="> ", preselect=3)
    assert "--no-multi" in args
    assert not any(arg.startswith("--bind=load:") for arg in args)


def test_run_parses_output_and_removes_scratch_file(monkeypatch: pytest.MonkeyPatch, fzf_on_path: Fzf) -> None:
    seen = {}

    def fake_run(args, stdin, **kwargs):
        seen["path"] = stdin.name
        seen["menu"] = stdin.read()
        seen["cwd"] = kwargs.get("cwd")
        return subprocess.CompletedProcess(args, 0, stdout="fe\nctrl-r\nfeature/a\tfeature/a\n")

    monkeypatch.setattr("gitpick.picker.subprocess.run", fake_run)
    result = fzf_on_path.run(["feature/a\tfeature/a", "✖ Abort\t"], cwd="/tmp", prompt="> ", expect=["ctrl-r"])

    assert result == FzfResult(query="fe", key="ctrl-r", lines=["feature/a\tfeature/a"])
    assert seen["menu"] == "feature/a\tfeature/a\n✖ Abort\t\n"
    assert seen["cwd"] == "/tmp"
    assert not os.path.exists(seen["path"])


def test_run_without_expect_has_no_key_line(monkeypatch: pytest.MonkeyPatch, fzf_on_path: Fzf) -> None:
    monkeypatch.setattr(
        "gitpick.picker.subprocess.run",
        lambda args, stdin, **kwargs: subprocess.CompletedProcess(args, 0, stdout="\nmain\tmain\n"),
    )
    result = fzf_on_path.run(["main\tmain"], prompt="> ")
    assert result.key == ""
    assert result.lines == ["main\tmain"]


@pytest.mark.parametrize("code", [1, 130])
def test_run_no_match_or_interrupt_is_cancelled(monkeypatch: pytest.MonkeyPatch, fzf_on_path: Fzf, code: int) -> None:
    monkeypatch.setattr(
        "gitpick.picker.subprocess.run",
        lambda args, stdin, **kwargs: subprocess.CompletedProcess(args, code, stdout=""),
    )
    assert fzf_on_path.run(["a\ta"], prompt="> ").cancelled


def test_run_error_raises(monkeypatch: pytest.MonkeyPatch, fzf_on_path: Fzf) -> None:
    monkeypatch.setattr(
        "gitpick.picker.subprocess.run",
        lambda args, stdin, **kwargs: subprocess.CompletedProcess(args, 2, stdout=""),
    )
    with pytest.raises(PickerError):
        fzf_on_path.run(["a\ta"], prompt="> ")


def test_scratch_file_removed_on_error() -> None:
    with pytest.raises(KeyboardInterrupt):
        with scratch_file(["x"]) as path:
            assert Path(path).read_text(encoding="utf-8") == "x\n"
            raise KeyboardInterrupt
    assert not os.path.exists(path)


def test_build_args_applies_query_after_preselection(fzf_on_path: Fzf) -> None:
    args = fzf_on_path.build_args(prompt="> ", multi=True, query="Alice", preselect=3)
    assert "--query=" in args
    assert "--query=Alice" not in args
    assert "--bind=load:first+toggle+down+toggle+down+toggle+down+first+change-query:Alice" in args


def test_build_args_keeps_query_without_preselection(fzf_on_path: Fzf) -> None:
    args = fzf_on_path.build_args(prompt="> ", multi=True, query="Alice")
    assert "--query=Alice" in args
    assert not any(arg.startswith("--bind=load:") for arg in args)


def test_scratch_file_removed_on_sigterm() -> None:
    previous = signal.getsignal(signal.SIGTERM)
    with pytest.raises(SystemExit) as excinfo:
        with scratch_file(["x"]) as path:
            handler = signal.getsignal(signal.SIGTERM)
            assert handler is not previous
            handler(signal.SIGTERM, None)
    assert excinfo.value.code == 128 + signal.SIGTERM
    assert not os.path.exists(path)
    assert signal.getsignal(signal.SIGTERM) == previous
