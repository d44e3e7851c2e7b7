"""Test configuration and fixtures."""

from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Callable, Generator, Sequence, Union

import pytest
from git import Actor, Repo

from gitpick.picker import FzfResult

AUTHOR = Actor("Test User", "test@example.com")


def _commit_date(days_old: int) -> str:
    when = datetime.now(timezone.utc) - timedelta(days=days_old)
    return when.strftime("%Y-%m-%dT%H:%M:%S")


@pytest.fixture
def test_env(tmp_path: Path) -> Generator[tuple[Path, Path], None, None]:
    """Create a local repository with a bare ``origin``.

    Branches:
        main                  base branch, pushed and tracking
        feature/recent        pushed, committed today
        feature/old           pushed, last commit 200 days ago
        feature/gone          pushed with tracking, then deleted on origin
        feature/local         never pushed, committed today
        feature/remote-only   exists on origin only

    ``main`` is checked out.

    Returns:
        Tuple of (local_repo_path, remote_repo_path)
    """
    remote_path = tmp_path / "remote"
    local_path = tmp_path / "local"
    remote_path.mkdir()
    local_path.mkdir()

    Repo.init(remote_path, bare=True)
    local_repo = Repo.init(local_path)
    # unborn HEAD, so this only renames the branch the first commit lands on
    local_repo.git.symbolic_ref("HEAD", "refs/heads/main")

    with local_repo.config_writer() as config:
        config.set_value("user", "name", AUTHOR.name)
        config.set_value("user", "email", AUTHOR.email)

    readme = local_path / "README.md"
    readme.write_text("# Test Repository\n")
    local_repo.index.add(["README.md"])
    local_repo.index.commit("Initial commit", author=AUTHOR, committer=AUTHOR)
    main_branch = local_repo.heads.main

    origin = local_repo.create_remote("origin", url=str(remote_path))
    origin.push("main")
    main_branch.set_tracking_branch(origin.refs.main)

    def create_branch(name: str, days_old: int = 0, push: bool = True) -> None:
        """Create a branch off main with one commit of the given age."""
        main_branch.checkout()
        branch = local_repo.create_head(name)
        branch.checkout()

        file_name = name.replace("/", "_") + ".txt"
        (local_path / file_name).write_text(f"{name}\n")
        local_repo.index.add([file_name])
        date = _commit_date(days_old)
        local_repo.index.commit(
            f"Add {name}",
            author=AUTHOR,
            committer=AUTHOR,
            author_date=date,
            commit_date=date,
        )

        if push:
            origin.push(name)
            branch.set_tracking_branch(origin.refs[name])

    create_branch("feature/recent")
    create_branch("feature/old", days_old=200)
    create_branch("feature/gone")
    create_branch("feature/local", push=False)
    create_branch("feature/remote-only")

    main_branch.checkout()
    origin.push(":feature/gone")
    local_repo.delete_head("feature/remote-only", force=True)

    yield local_path, remote_path


@pytest.fixture
def empty_repo(tmp_path: Path) -> Path:
    """A freshly initialized repository without commits or remotes."""
    path = tmp_path / "empty"
    path.mkdir()
    Repo.init(path)
    return path


Scripted = Union[FzfResult, Callable[[Sequence[str]], FzfResult]]


class FakeFzf:
    """Stands in for ``gitpick.picker.Fzf``; replays scripted results in order.

    Once the script runs out every further run is cancelled, like ESC.
    """

    def __init__(self, results: Sequence[Scripted] = ()) -> None:
        self.results = list(results)
        self.calls: list[dict] = []

    def script(self, *results: Scripted) -> None:
        self.results.extend(results)

    def run(self, lines: Sequence[str], cwd=None, **options) -> FzfResult:
        self.calls.append({"lines": list(lines), "cwd": cwd, **options})
        if not self.results:
            return FzfResult(cancelled=True)
        result = self.results.pop(0)
        return result(lines) if callable(result) else result

    @staticmethod
    def pick(*keys: str, key: str = "", query: str = "") -> Callable[[Sequence[str]], FzfResult]:
        """Choose the menu lines whose hidden key column is one of ``keys``."""

        def choose(lines: Sequence[str]) -> FzfResult:
            chosen = [line for line in lines if line.split("\t")[-1] in keys]
            return FzfResult(query=query, key=key, lines=chosen)

        return choose

    @staticmethod
    def abort(lines: Sequence[str]) -> FzfResult:
        return FzfResult(lines=[line for line in lines if line.startswith("✖ Abort")])


@pytest.fixture
def fake_fzf(monkeypatch: pytest.MonkeyPatch) -> FakeFzf:
    """Replace fzf in the CLI with a scripted fake."""
    fake = FakeFzf()
    monkeypatch.setattr("gitpick.cli.Fzf", lambda: fake)
    return fake
