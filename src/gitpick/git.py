"""Git repository operations."""

from pathlib import Path
from typing import Optional

from git import GitCommandError, InvalidGitRepositoryError, NoSuchPathError, Repo

from gitpick.exceptions import BackendSyncError, GitOperationError, NotARepositoryError
from gitpick.logging_config import get_logger
from gitpick.models import BranchRecord, Scope, StagingState, StatusEntry

logger = get_logger(__name__)

REMOTE = "origin"
BASE_CANDIDATES = ("main", "master")

# Fields of one for-each-ref line, separated by NUL (ref names cannot contain it).
_REF_FORMAT = "%00".join(
    [
        "%(refname:lstrip=2)",
        "%(committerdate:unix)",
        "%(committerdate:relative)",
        "%(authorname)",
        "%(authoremail)",
    ]
)


def _parse_epoch(value: str) -> Optional[int]:
    try:
        return int(value)
    except ValueError:
        return None


class GitRepo:
    """Handle on one working-directory repository.

    All reads go through here so the text format of git's output is only
    parsed in one place.
    """

    def __init__(self, path: Path) -> None:
        """Open the repository containing ``path``."""
        try:
            self.repo: Repo = Repo(path, search_parent_directories=True)
        except (InvalidGitRepositoryError, NoSuchPathError, ValueError) as err:
            raise NotARepositoryError(str(path)) from err
        if self.repo.bare:
            raise NotARepositoryError(str(path))
        self.path = Path(self.repo.working_tree_dir)

    # ------------------------------------------------------------------
    # Branch queries
    # ------------------------------------------------------------------

    def get_current_branch_name(self) -> str:
        """Get current branch name, or an empty string on a detached HEAD."""
        try:
            return self.repo.active_branch.name
        except TypeError:
            return ""

    def ref_exists(self, ref: str) -> bool:
        """Check whether a fully qualified ref (``refs/heads/...``) exists."""
        try:
            self.repo.git.show_ref("--verify", "--quiet", ref)
            return True
        except GitCommandError:
            return False

    def detect_base_branch(self) -> Optional[str]:
        """Return ``main`` or ``master`` (in that order of preference), if present locally."""
        for candidate in BASE_CANDIDATES:
            if self.ref_exists(f"refs/heads/{candidate}"):
                return candidate
        return None

    def _configured_upstreams(self) -> set[str]:
        """Names of local branches that have ``branch.<name>.remote`` configured."""
        try:
            output = self.repo.git.config("--get-regexp", r"^branch\..*\.remote$")
        except GitCommandError:
            # exit status 1: no branch has a remote configured
            return set()
        names = set()
        for line in output.splitlines():
            key, _, value = line.partition(" ")
            if value.strip() and key.startswith("branch.") and key.endswith(".remote"):
                names.add(key[len("branch.") : -len(".remote")])
        return names

    def _for_each_ref(self, pattern: str) -> list[list[str]]:
        try:
            output = self.repo.git.for_each_ref(f"--format={_REF_FORMAT}", pattern)
        except GitCommandError as err:
            raise GitOperationError("list branches", message=str(err)) from err
        rows = []
        for line in output.splitlines():
            if not line.strip():
                continue
            fields = line.split("\x00")
            fields += [""] * (5 - len(fields))
            rows.append(fields)
        return rows

    def _remote_branch_names(self) -> set[str]:
        return {record.name for record in self._list_remote()}

    def _list_remote(self) -> list[BranchRecord]:
        records = []
        prefix = f"{REMOTE}/"
        for refname, epoch, relative, author, email in self._for_each_ref(f"refs/remotes/{REMOTE}"):
            # refs/remotes/origin/HEAD lists as "origin/HEAD"
            if refname in (REMOTE, f"{REMOTE}/HEAD") or not refname.startswith(prefix):
                continue
            records.append(
                BranchRecord(
                    name=refname[len(prefix) :],
                    last_commit_epoch=_parse_epoch(epoch),
                    last_commit_relative=relative,
                    author_name=author,
                    author_email=email.strip("<>"),
                    has_remote_counterpart=True,
                )
            )
        return records

    def _list_local(self) -> list[BranchRecord]:
        current = self.get_current_branch_name()
        remote_names = self._remote_branch_names()
        upstreams = self._configured_upstreams()
        records = []
        for refname, epoch, relative, author, email in self._for_each_ref("refs/heads"):
            records.append(
                BranchRecord(
                    name=refname,
                    last_commit_epoch=_parse_epoch(epoch),
                    last_commit_relative=relative,
                    author_name=author,
                    author_email=email.strip("<>"),
                    has_remote_counterpart=refname in remote_names,
                    had_configured_upstream=refname in upstreams,
                    is_current=refname == current,
                )
            )
        return records

    def list_branches(self, scope: Scope) -> list[BranchRecord]:
        """List local branches or ``origin`` remote branches, in ref order."""
        if scope is Scope.REMOTE:
            records = self._list_remote()
        else:
            records = self._list_local()
        logger.debug("Found %d %s branches", len(records), scope.value)
        return records

    def merged_into(self, base: str) -> set[str]:
        """Local branches whose tip is reachable from ``base``."""
        try:
            output = self.repo.git.branch("--format=%(refname:lstrip=2)", "--merged", base)
        except GitCommandError as err:
            raise GitOperationError("merged check", base, str(err)) from err
        return {line.strip() for line in output.splitlines() if line.strip()}

    def fetch_and_prune(self) -> None:
        """Fetch from origin and prune deleted remote branches.

        Only remote-tracking refs are touched, so after a failure the
        previously fetched refs are still usable.

        Raises:
            BackendSyncError: If the fetch fails (no remote, network, auth)
        """
        try:
            self.repo.git.fetch("--prune", REMOTE)
        except GitCommandError as err:
            detail = (err.stderr or "").strip() or str(err)
            logger.debug("Fetch from %s failed: %s", REMOTE, detail)
            raise BackendSyncError(REMOTE, detail) from err

    def upstream_of(self, branch: str = "HEAD") -> Optional[str]:
        """Short name of the upstream of ``branch``, if one is configured and exists."""
        try:
            return self.repo.git.rev_parse("--abbrev-ref", f"{branch}@{{upstream}}").strip() or None
        except GitCommandError:
            return None

    def commits_behind(self, upstream: str) -> int:
        """Number of commits on ``upstream`` that HEAD does not have."""
        try:
            return int(self.repo.git.rev_list("--count", f"HEAD..{upstream}").strip() or 0)
        except (GitCommandError, ValueError):
            return 0

    def rev_parse(self, ref: str) -> Optional[str]:
        try:
            return self.repo.git.rev_parse("--verify", "--quiet", ref).strip() or None
        except GitCommandError:
            return None

    def is_ancestor(self, ancestor: str, descendant: str) -> bool:
        try:
            self.repo.git.merge_base("--is-ancestor", ancestor, descendant)
            return True
        except GitCommandError:
            return False

    # ------------------------------------------------------------------
    # Working tree queries
    # ------------------------------------------------------------------

    def status_entries(self) -> list[StatusEntry]:
        """Parse ``git status --short`` into entries with a staging state."""
        output = self.repo.git.status("--short")
        entries = []
        for line in output.splitlines():
            if len(line) < 4:
                continue
            index_status, work_status, path = line[0], line[1], line[3:]
            if " -> " in path:
                path = path.split(" -> ", 1)[1]
            path = path.strip('"')
            if index_status in "MADRC":
                state = StagingState.STAGED
            elif index_status == "?" or work_status == "?":
                state = StagingState.UNTRACKED
            else:
                state = StagingState.UNSTAGED
            entries.append(StatusEntry(path=path, code=line[:2], state=state))
        return entries

    def staged_files(self) -> list[str]:
        output = self.repo.git.diff("--cached", "--name-only")
        return [line for line in output.splitlines() if line]

    def unstaged_files(self) -> list[str]:
        output = self.repo.git.diff("--name-only")
        return [line for line in output.splitlines() if line]

    def has_uncommitted_changes(self) -> bool:
        """Tracked modifications or untracked files."""
        return self.repo.is_dirty(untracked_files=True)

    def remote_url(self) -> Optional[str]:
        try:
            return self.repo.git.config("--get", f"remote.{REMOTE}.url").strip() or None
        except GitCommandError:
            return None

    def user_name(self) -> str:
        try:
            return self.repo.git.config("user.name").strip()
        except GitCommandError:
            return ""

    def head_commit(self) -> Optional[str]:
        return self.rev_parse("HEAD")
