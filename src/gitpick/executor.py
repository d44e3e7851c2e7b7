"""State-changing git operations: checkout, branch deletion, push and pull."""

import shutil
from dataclasses import dataclass
from typing import Iterable, Optional

from git import GitCommandError

from gitpick.exceptions import DeleteError, GitOperationError, SwitchError
from gitpick.git import REMOTE, GitRepo
from gitpick.logging_config import get_logger

logger = get_logger(__name__)


def _detail(err: GitCommandError) -> str:
    return (err.stderr or "").strip() or str(err)


@dataclass
class DeleteOutcome:
    """Result of deleting one branch."""

    name: str
    error: Optional[DeleteError] = None

    @property
    def ok(self) -> bool:
        return self.error is None


class ActionExecutor:
    """Runs mutations against one repository.

    Every deletion batch is attempted branch by branch and reports one
    outcome per branch. The only step that stops a batch is the checkout
    away from the current branch before it is deleted.
    """

    def __init__(self, repo: GitRepo, base_branch: Optional[str]) -> None:
        self.repo = repo
        self.base_branch = base_branch

    def switch_to(self, name: str) -> None:
        """Check out an existing local branch."""
        logger.debug("Checking out %s", name)
        try:
            self.repo.repo.git.checkout(name)
        except GitCommandError as err:
            raise SwitchError(name, _detail(err)) from err

    def track_remote(self, name: str) -> None:
        """Create a local branch tracking ``origin/<name>`` and check it out."""
        logger.debug("Creating %s tracking %s/%s", name, REMOTE, name)
        try:
            self.repo.repo.git.checkout("-b", name, "--track", f"{REMOTE}/{name}")
        except GitCommandError as err:
            raise SwitchError(name, _detail(err)) from err

    def create_branch(self, name: str, start_point: Optional[str] = None) -> None:
        """Create ``name`` from ``start_point`` (HEAD when None) and check it out."""
        args = ["-b", name]
        if start_point:
            args.append(start_point)
        logger.debug("Creating branch %s from %s", name, start_point or "HEAD")
        try:
            self.repo.repo.git.checkout(*args)
        except GitCommandError as err:
            raise GitOperationError("create", name, _detail(err)) from err

    def delete_local(self, names: Iterable[str]) -> list[DeleteOutcome]:
        """Force-delete local branches.

        If the checked-out branch is among ``names``, the base branch is
        checked out first.

        Raises:
            SwitchError: If the current branch must be left and that fails;
                no branch has been deleted in that case.
        """
        names = list(names)
        current = self.repo.get_current_branch_name()
        if current and current in names:
            if not self.base_branch or self.base_branch == current:
                raise SwitchError(self.base_branch, f"cannot leave '{current}' before deleting it")
            self.switch_to(self.base_branch)

        outcomes = []
        for name in names:
            if name == self.base_branch:
                outcomes.append(DeleteOutcome(name, DeleteError(name, "refusing to delete the base branch")))
                continue
            try:
                # -D: the confirmation prompt is the safety check, not git's merge check
                self.repo.repo.git.branch("-D", name)
                logger.info("Deleted local branch %s", name)
                outcomes.append(DeleteOutcome(name))
            except GitCommandError as err:
                logger.debug("Deleting %s failed: %s", name, _detail(err))
                outcomes.append(DeleteOutcome(name, DeleteError(name, _detail(err))))
        return outcomes

    def delete_remote(self, names: Iterable[str]) -> list[DeleteOutcome]:
        """Delete branches from origin, one push per branch."""
        outcomes = []
        for name in names:
            if name == self.base_branch:
                outcomes.append(DeleteOutcome(name, DeleteError(name, "refusing to delete the base branch")))
                continue
            try:
                self.repo.repo.git.push(REMOTE, "--delete", name)
                logger.info("Deleted %s/%s", REMOTE, name)
                outcomes.append(DeleteOutcome(name))
            except GitCommandError as err:
                logger.debug("Deleting %s/%s failed: %s", REMOTE, name, _detail(err))
                outcomes.append(DeleteOutcome(name, DeleteError(f"{REMOTE}/{name}", _detail(err))))
        return outcomes

    def update_base(self, base: str) -> None:
        """Fast-forward the local base branch from origin without checking it out."""
        try:
            self.repo.repo.git.fetch(REMOTE, f"{base}:{base}")
        except GitCommandError as err:
            raise GitOperationError("update", base, _detail(err)) from err

    def push(self, branch: str, set_upstream: bool = False) -> None:
        args = ["-u", REMOTE, branch] if set_upstream else [REMOTE, branch]
        logger.debug("Pushing %s", branch)
        try:
            self.repo.repo.git.push(*args)
        except GitCommandError as err:
            raise GitOperationError("push", branch, _detail(err)) from err

    def pull(self, rebase_from: Optional[str] = None) -> None:
        """Pull the current branch, or ``pull --rebase origin <branch>`` when ``rebase_from`` is given."""
        args = ["--rebase", REMOTE, rebase_from] if rebase_from else []
        try:
            self.repo.repo.git.pull(*args)
        except GitCommandError as err:
            raise GitOperationError("pull", rebase_from, _detail(err)) from err

    def sync_with_remote(self, branch: str) -> Optional[str]:
        """Rebase ``branch`` onto its origin counterpart if the remote moved on.

        Returns "behind" or "diverged" when a rebase happened, None when the
        branch was already up to date or does not exist on origin yet.
        """
        try:
            self.repo.repo.git.fetch(REMOTE, branch)
        except GitCommandError as err:
            logger.debug("Fetching %s failed: %s", branch, _detail(err))
        local = self.repo.head_commit()
        remote = self.repo.rev_parse(f"{REMOTE}/{branch}")
        if not remote or not local or local == remote:
            return None
        if self.repo.is_ancestor(local, remote):
            state = "behind"
        elif not self.repo.is_ancestor(remote, local):
            state = "diverged"
        else:
            return None
        self.pull(rebase_from=branch)
        return state

    # ------------------------------------------------------------------
    # Index and working tree
    # ------------------------------------------------------------------

    def stage(self, paths: Iterable[str]) -> None:
        self._index_op("add", ["--"], paths)

    def stage_all(self) -> None:
        self._index_op("add", ["-A"], [])

    def unstage(self, paths: Iterable[str]) -> None:
        self._index_op("reset", ["-q", "HEAD", "--"], paths)

    def _index_op(self, command: str, flags: list[str], paths: Iterable[str]) -> None:
        paths = list(paths)
        if flags[-1] == "--" and not paths:
            return
        try:
            getattr(self.repo.repo.git, command)(*flags, *paths)
        except GitCommandError as err:
            raise GitOperationError(command, message=_detail(err)) from err

    def revert(self, paths: Iterable[str]) -> None:
        """Discard staged and unstaged changes of tracked files.

        Files that are only added to the index (not in HEAD) are unstaged and
        left on disk.
        """
        for path in paths:
            in_head = self._in_head(path)
            try:
                if in_head:
                    self.repo.repo.git.reset("-q", "HEAD", "--", path)
                    self.repo.repo.git.checkout("--", path)
                else:
                    self.repo.repo.git.rm("-q", "--cached", "--", path)
            except GitCommandError as err:
                raise GitOperationError("revert", message=f"{path}: {_detail(err)}") from err

    def _in_head(self, path: str) -> bool:
        try:
            self.repo.repo.git.cat_file("-e", f"HEAD:{path}")
            return True
        except GitCommandError:
            return False

    def delete_untracked(self, paths: Iterable[str]) -> None:
        for path in paths:
            target = self.repo.path / path
            try:
                if target.is_dir():
                    shutil.rmtree(target)
                else:
                    target.unlink()
            except OSError as err:
                raise GitOperationError("delete untracked", message=f"{path}: {err.strerror or err}") from err

    def commit(self, message: str, amend: bool = False) -> str:
        """Commit the index and return git's summary output."""
        args = ["--amend"] if amend else []
        try:
            return self.repo.repo.git.commit(*args, "-m", message)
        except GitCommandError as err:
            raise GitOperationError("commit", message=_detail(err)) from err
