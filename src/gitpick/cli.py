"""Command line interface for gitpick."""

import json
import shutil
from pathlib import Path
from typing import Annotated, Iterable, Optional

import typer
from rich.console import Console
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table

from gitpick import __version__
from gitpick.classifier import classify, days_ago, flatten, months_ago
from gitpick.config import Config
from gitpick.exceptions import (
    BackendSyncError,
    DependencyMissingError,
    GitOperationError,
    NotARepositoryError,
    PickerError,
    SwitchError,
)
from gitpick.executor import ActionExecutor, DeleteOutcome
from gitpick.git import REMOTE, GitRepo
from gitpick.logging_config import get_logger, setup_logging
from gitpick.models import Action, BranchRecord, Category, MenuRow, Scope, SelectionResult, StagingState, StatusEntry
from gitpick.naming import BRANCH_TYPES, COMMIT_TYPES, branch_name, compare_url, parse_issue_key, slugify
from gitpick.picker import Fzf, MenuView, Presenter, branch_rows, separator_row

app = typer.Typer(help="Interactive git workflows with fzf menus")
console = Console()
err_console = Console(stderr=True)
logger = get_logger(__name__)

PathOption = Annotated[Path, typer.Option(help="Path to git repository")]

# fzf renders these; {2} is the hidden key column of the menu line
BRANCH_PREVIEW = (
    "branch={2}; "
    'if [ -z "$branch" ]; then echo "Exit without action"; '
    'else echo "Branch: $branch"; echo; echo "Recent commits:"; '
    'git log --oneline --color=always -n 15 "$branch" 2>/dev/null || echo "No commits found"; fi'
)

REMOTE_PREVIEW = (
    "branch={2}; "
    'if [ -z "$branch" ]; then echo "Exit without action"; '
    f'else echo "Branch: {REMOTE}/$branch"; echo; echo "Recent commits:"; '
    f'git log --oneline --color=always -n 15 "{REMOTE}/$branch" 2>/dev/null || echo "No commits found"; fi'
)

SWITCH_PREVIEW = (
    "branch={2}; "
    'if [ -z "$branch" ]; then case {1} in *Abort*) echo "Exit without action";; '
    '*) echo "Spacer - not selectable";; esac; '
    "else git log --color=always -n 1 "
    "--format='%C(bold cyan)Author:%C(reset) %an%n%C(bold cyan)Date:%C(reset) %ar (%ad)%n"
    "%C(bold cyan)Message:%C(reset) %s%n' "
    "--date=format:'%Y-%m-%d %H:%M' \"$branch\" 2>/dev/null "
    '&& echo && git log --oneline --color=always -n 10 "$branch" 2>/dev/null; fi'
)

CLEANUP_HEADER = "[TAB] toggle | [Enter] delete selected | [ESC] exit"
STALE_KEYS = "[TAB] toggle | [Enter] delete selected | [Ctrl-A] {other} | [ESC] exit"
STATUS_HEADER = "[Enter] toggle stage | [Ctrl-r] revert | [TAB] multi-select | [ESC] exit"


def success(message: str) -> None:
    console.print(f"[green]✓[/green] {escape(message)}")


def info(message: str) -> None:
    console.print(f"[blue]ℹ[/blue] {escape(message)}")


def warning(message: str) -> None:
    err_console.print(f"[yellow]⚠[/yellow] {escape(message)}")


def error(message: str) -> None:
    err_console.print(f"[red]✗[/red] {escape(message)}")


def get_config() -> Config:
    """Load configuration from the environment."""
    try:
        return Config.from_env()
    except ValueError as err:
        error(f"Invalid configuration: {err}")
        raise typer.Exit(code=1) from err


def get_repo(path: Path, json_output: bool = False) -> GitRepo:
    """Get git repository instance."""
    try:
        return GitRepo(path)
    except NotARepositoryError as err:
        if json_output:
            typer.echo("[]")
        else:
            error(str(err))
        raise typer.Exit(code=1) from err


def get_presenter() -> Presenter:
    """Picker for interactive commands; fails early when fzf is missing."""
    try:
        return Presenter(Fzf())
    except DependencyMissingError as err:
        error(str(err))
        raise typer.Exit(code=1) from err


def choose(presenter: Presenter, views: list[MenuView], **options) -> SelectionResult:
    """Run the picker; an fzf failure ends the command with exit code 1."""
    try:
        return presenter.present(views, **options)
    except PickerError as err:
        error(str(err))
        raise typer.Exit(code=1) from err


def sync_remote(repo: GitRepo, quiet: bool = False) -> None:
    """Fetch and prune; a failure is reported and the command carries on."""
    try:
        repo.fetch_and_prune()
    except BackendSyncError as err:
        logger.debug("Fetch failed: %s", err)
        if not quiet:
            warning("Fetch failed; continuing with local data.")


def emit_json(records: Iterable[BranchRecord]) -> None:
    typer.echo(json.dumps([record.to_json() for record in records], ensure_ascii=False, separators=(",", ":")))


def report(outcomes: list[DeleteOutcome], title: str) -> bool:
    """Print deletion results; True when every deletion succeeded."""
    deleted = [outcome.name for outcome in outcomes if outcome.ok]
    failed = [outcome for outcome in outcomes if not outcome.ok]

    if deleted:
        table = Table(
            title=title.format(count=len(deleted)),
            show_header=True,
            header_style="bold",
            title_style="bold green",
            show_edge=True,
        )
        table.add_column("Branch", style="cyan")
        for name in deleted:
            table.add_row(escape(name))
        console.print()
        console.print(table)

    for outcome in failed:
        error(str(outcome.error))
    if failed:
        error(f"{len(failed)} of {len(outcomes)} deletion(s) failed.")
    return not failed


def status_preview(config: Config) -> str:
    """Diff preview for one status entry, colored with delta and bat when installed."""
    delta = " ".join(["delta", *config.delta_args]) if shutil.which("delta") else "cat"
    if shutil.which("bat"):
        show_file = " ".join(["bat", "--color=always", "--style=numbers", *config.bat_args])
    else:
        show_file = "cat"
    return (
        "file={2}; "
        'if [ -z "$file" ]; then echo "Exit without action"; '
        'elif ! git ls-files --error-unmatch -- "$file" >/dev/null 2>&1; then '
        f'echo "=== UNTRACKED FILE ==="; echo; {show_file} "$file" 2>/dev/null || echo "Cannot preview file"; '
        "else "
        'staged=$(git diff --cached --color=always -- "$file" 2>/dev/null); '
        'unstaged=$(git diff --color=always -- "$file" 2>/dev/null); '
        'if [ -n "$staged" ]; then echo "=== STAGED CHANGES ==="; echo; '
        f'printf "%s\\n" "$staged" | {delta}; fi; '
        'if [ -n "$unstaged" ]; then [ -n "$staged" ] && echo; echo "=== UNSTAGED CHANGES ==="; echo; '
        f'printf "%s\\n" "$unstaged" | {delta}; fi; '
        "fi"
    )


def version_callback(value: bool) -> None:
    if value:
        console.print(f"gitpick {__version__}")
        raise typer.Exit()


@app.callback()
def main(
    verbose: Annotated[bool, typer.Option("--verbose", "-v", help="Show progress messages")] = False,
    debug: Annotated[bool, typer.Option("--debug", help="Show debug output, including git commands")] = False,
    version: Annotated[
        Optional[bool],
        typer.Option("--version", callback=version_callback, is_eager=True, help="Show version and exit"),
    ] = None,
) -> None:
    """Interactive git workflows with fzf menus."""
    setup_logging(verbose=verbose, debug=debug)


@app.command()
def cleanup(
    path: PathOption = Path("."),
    json_output: Annotated[bool, typer.Option("--json", help="Print branch data as JSON (no fzf needed)")] = False,
    dry_run: Annotated[bool, typer.Option("--dry-run", help="Show what would be deleted")] = False,
    days: Annotated[
        Optional[int], typer.Option("--days", min=1, help="Branches older than this many days are stale")
    ] = None,
) -> None:
    """Clean up merged and stale local branches."""
    config = get_config()
    repo = get_repo(path, json_output)
    presenter = None if json_output else get_presenter()

    sync_remote(repo, quiet=json_output)

    try:
        records = repo.list_branches(Scope.LOCAL)
        if not records:
            if json_output:
                emit_json([])
            else:
                console.print("No local branches found.")
            return

        base = repo.detect_base_branch()
        if base is None:
            if json_output:
                typer.echo("[]")
            else:
                error("Could not detect 'main' or 'master' locally.")
            raise typer.Exit(code=1)

        threshold_days = days or config.cleanup_days
        groups = classify(records, days_ago(threshold_days), base)
        if json_output:
            emit_json(flatten(groups))
            return

        rows = branch_rows(groups, preselect=frozenset({Category.MERGED, Category.STALE}))
        if not rows:
            console.print(
                Panel(
                    f"[green]Only '{escape(base)}' here, nothing to clean up ✨[/green]",
                    style="green",
                    padding=(0, 2),
                    expand=False,
                )
            )
            return

        view = MenuView(rows)
        view.header = f"{CLEANUP_HEADER}\nFound {len(rows)} branches ({view.preselect_count} pre-selected for deletion)"
        selection = choose(
            presenter,
            [view],
            prompt="Local branches to clean up > ",
            multi=True,
            preview=BRANCH_PREVIEW,
        )
        if selection.cancelled:
            console.print("Exited.")
            return
        if not selection.chosen:
            console.print("Aborted.")
            return

        chosen: list[BranchRecord] = selection.chosen
        categories = {row.key: row.category for row in rows}
        merged = repo.merged_into(base)
        current = repo.get_current_branch_name()

        table = Table(title="Branches to delete", show_header=True, header_style="bold", show_edge=True)
        table.add_column("Branch", style="cyan", no_wrap=True)
        table.add_column("Category", style="magenta")
        table.add_column("Last Commit", style="yellow")
        table.add_column("Note")
        for record in chosen:
            notes = []
            if record.name == current:
                notes.append("[turquoise2]current branch[/turquoise2]")
            if record.name in merged:
                notes.append(f"[green]merged into {escape(base)}[/green]")
            table.add_row(
                escape(record.name),
                escape(categories[record.name].label),
                escape(record.last_commit_relative),
                ", ".join(notes),
            )
        console.print(table)

        if current in {record.name for record in chosen}:
            info(f"You are on '{current}'; gitpick will switch to '{base}' before deleting it.")

        if dry_run:
            info("Dry run mode - no branches will be deleted")
            return

        all_merged = all(categories[record.name] is Category.MERGED for record in chosen)
        if not typer.confirm(f"Delete these {len(chosen)} local branch(es)?", default=all_merged):
            console.print("Deletion cancelled.")
            return

        executor = ActionExecutor(repo, base)
        logger.info("Deleting %d local branches", len(chosen))
        try:
            outcomes = executor.delete_local([record.name for record in chosen])
        except SwitchError as err:
            logger.debug("Switch before delete failed: %s", err)
            error(f"Failed to switch to '{base}'. Aborting deletion.")
            raise typer.Exit(code=1) from err
    except GitOperationError as err:
        error(str(err))
        raise typer.Exit(code=1) from err

    if not report(outcomes, "Deleted {count} local branch(es) 🧹"):
        raise typer.Exit(code=1)


@app.command()
def stale(
    filter_words: Annotated[
        Optional[list[str]], typer.Argument(metavar="[FILTER]...", help="Words to pre-fill the search with")
    ] = None,
    path: PathOption = Path("."),
    show_all: Annotated[bool, typer.Option("--all", "-a", help="Start with all branches, not only stale ones")] = False,
    mine: Annotated[bool, typer.Option("--my", "-m", help="Filter by your git user.name")] = False,
    json_output: Annotated[bool, typer.Option("--json", help="Print branch data as JSON (no fzf needed)")] = False,
    age: Annotated[
        Optional[int], typer.Option("--age", min=1, help="Branches older than this many months are stale")
    ] = None,
) -> None:
    """Find and delete stale branches on origin."""
    config = get_config()
    repo = get_repo(path, json_output)
    presenter = None if json_output else get_presenter()

    query = ""
    if mine:
        query = repo.user_name()
        if not query and not json_output:
            warning("git config user.name is not set.")
    elif filter_words:
        query = " ".join(filter_words)

    if not json_output:
        console.print("Fetching latest from remote...")
    sync_remote(repo, quiet=json_output)

    try:
        records = repo.list_branches(Scope.REMOTE)
        if not records:
            if json_output:
                emit_json([])
            else:
                console.print("No remote branches found.")
            return

        months = age or config.stale_months
        groups = classify(records, months_ago(months), repo.detect_base_branch())
        stale_records = groups[Category.STALE]
        if json_output:
            emit_json(flatten(groups) if show_all else stale_records)
            return

        stale_view = MenuView(
            branch_rows(
                {Category.STALE: stale_records},
                preselect=frozenset({Category.STALE}),
                labels=False,
                width=65,
                show_author=True,
            ),
            header=f"══ Stale branches (>{months}mo) ══  " + STALE_KEYS.format(other="all branches"),
        )
        all_view = MenuView(
            branch_rows(groups, labels=False, width=65, show_author=True),
            header="══ All branches ══  " + STALE_KEYS.format(other="stale only"),
        )
        if not stale_records and not show_all:
            info(f"No branches older than {months} months. Showing all branches.")

        selection = choose(
            presenter,
            [stale_view, all_view],
            prompt="Remote branches to delete > ",
            multi=True,
            query=query,
            preview=REMOTE_PREVIEW,
            start=1 if show_all or not stale_records else 0,
        )
        if selection.cancelled:
            console.print("Exited.")
            return
        if not selection.chosen:
            console.print("Aborted.")
            return

        chosen: list[BranchRecord] = selection.chosen
        table = Table(title=f"Branches to delete from {REMOTE}", show_header=True, header_style="bold", show_edge=True)
        table.add_column("Branch", style="cyan", no_wrap=True)
        table.add_column("Last Commit", style="yellow")
        table.add_column("Author", style="magenta")
        for record in chosen:
            table.add_row(escape(record.name), escape(record.last_commit_relative), escape(record.author_name))
        console.print(table)

        if not typer.confirm(f"Delete these {len(chosen)} branch(es) from {REMOTE}?", default=False):
            console.print("Deletion cancelled.")
            return

        executor = ActionExecutor(repo, repo.detect_base_branch())
        logger.info("Deleting %d remote branches", len(chosen))
        outcomes = executor.delete_remote([record.name for record in chosen])
    except GitOperationError as err:
        error(str(err))
        raise typer.Exit(code=1) from err

    if not report(outcomes, f"Deleted {{count}} branch(es) from {REMOTE} 🧹"):
        raise typer.Exit(code=1)


def offer_pull(repo: GitRepo, executor: ActionExecutor) -> None:
    """Ask to pull when the checked-out branch is behind its upstream."""
    upstream = repo.upstream_of()
    if not upstream:
        return
    behind = repo.commits_behind(upstream)
    if not behind:
        return
    info(f"Branch is {behind} commit(s) behind '{upstream}'.")
    if typer.confirm("Pull latest changes?", default=True):
        try:
            executor.pull()
        except GitOperationError as err:
            warning(str(err))
            return
        success("Pulled latest changes.")


@app.command()
def switch(
    filter_words: Annotated[
        Optional[list[str]], typer.Argument(metavar="[FILTER]...", help="Words to pre-fill the search with")
    ] = None,
    path: PathOption = Path("."),
) -> None:
    """Switch to a local or remote branch."""
    repo = get_repo(path)
    presenter = get_presenter()

    current = repo.get_current_branch_name()
    try:
        local = repo.list_branches(Scope.LOCAL)
        local_names = {record.name for record in local}
        remote = [record for record in repo.list_branches(Scope.REMOTE) if record.name not in local_names]
    except GitOperationError as err:
        error(str(err))
        raise typer.Exit(code=1) from err

    if not local and not remote:
        console.print("No branches found.")
        return

    rows = [MenuRow(key=record.name, display=f"local: {record.name}", item=(Scope.LOCAL, record)) for record in local]
    if remote:
        rows.append(separator_row())
        rows.extend(
            MenuRow(
                key=f"{REMOTE}/{record.name}",
                display=f"remote: {REMOTE}/{record.name}",
                item=(Scope.REMOTE, record),
            )
            for record in remote
        )

    selection = choose(
        presenter,
        [MenuView(rows, header=f"Current: {current or '(detached HEAD)'}")],
        prompt="Select branch: ",
        query=" ".join(filter_words or []),
        preview=SWITCH_PREVIEW,
        preview_window="right:50%",
    )
    if selection.cancelled or not selection.chosen:
        console.print("No branch selected.")
        return

    scope, record = selection.chosen[0]
    executor = ActionExecutor(repo, repo.detect_base_branch())
    try:
        if scope is Scope.REMOTE:
            info(f"Creating local tracking branch: {record.name} (tracking {REMOTE}/{record.name})")
            executor.track_remote(record.name)
        elif record.name == current:
            info(f"Already on '{current}'.")
            return
        else:
            info(f"Switching to local branch: {record.name}")
            executor.switch_to(record.name)
    except SwitchError as err:
        error(str(err))
        raise typer.Exit(code=1) from err

    success(f"Switched to '{record.name}'.")
    offer_pull(repo, executor)


def _branch_prefix(flags: dict[str, bool], choose_type: bool, config: Config) -> Optional[str]:
    picked = [prefix for prefix, enabled in flags.items() if enabled]
    if len(picked) > 1:
        error("Choose only one of --feature, --bugfix, --hotfix and --release.")
        raise typer.Exit(code=1)
    if picked:
        return picked[0]
    if not choose_type:
        return config.feature_branch_prefix

    rows = [MenuRow(key=prefix, display=f"{prefix:<10} {description}", item=prefix) for prefix, description in BRANCH_TYPES.items()]
    selection = choose(get_presenter(), [MenuView(rows, header="Select branch type")], prompt="Branch type > ")
    if selection.cancelled or not selection.chosen:
        return None
    return selection.chosen[0]


@app.command()
def create(
    words: Annotated[
        Optional[list[str]], typer.Argument(metavar="[ISSUE] [TITLE]...", help="Issue key or link, then the title")
    ] = None,
    path: PathOption = Path("."),
    choose_type: Annotated[bool, typer.Option("--type", "-t", help="Pick the branch type from a menu")] = False,
    feature: Annotated[bool, typer.Option("--feature", help="Use the feature/ prefix")] = False,
    bugfix: Annotated[bool, typer.Option("--bugfix", help="Use the bugfix/ prefix")] = False,
    hotfix: Annotated[bool, typer.Option("--hotfix", help="Use the hotfix/ prefix")] = False,
    release: Annotated[bool, typer.Option("--release", help="Use the release/ prefix")] = False,
) -> None:
    """Create a branch named after an issue and push it with tracking."""
    config = get_config()
    repo = get_repo(path)

    prefix = _branch_prefix(
        {"feature/": feature, "bugfix/": bugfix, "hotfix/": hotfix, "release/": release}, choose_type, config
    )
    if prefix is None:
        console.print("Aborted.")
        return

    words = list(words or [])
    issue: Optional[str] = None
    if config.no_issue_parsing:
        title = " ".join(words)
    else:
        if words:
            link, title = words[0], " ".join(words[1:])
        else:
            console.print("Enter issue link (e.g., https://jira.company.com/browse/PROJ-123) or press Enter to skip:")
            link = typer.prompt(" >", default="", show_default=False)
            title = ""
        if not link.strip():
            issue = config.issue_fallback
            info(f"No issue link provided. Using {issue}.")
        else:
            issue = parse_issue_key(link)
            if issue is None:
                issue = config.issue_fallback
                warning(f"Could not parse issue number from link. Using {issue}.")
                title = f"{link} {title}".strip()
            else:
                console.print(f"Parsed issue number: {escape(issue)}")

    if not title.strip():
        console.print("Enter branch title (will be converted to lowercase with dashes):")
        title = typer.prompt(" >", default="", show_default=False)
    if not slugify(title):
        error("No branch title provided.")
        raise typer.Exit(code=1)

    name = branch_name(prefix, title, issue)
    console.print(f"Branch name: {escape(name)}")

    base = repo.detect_base_branch()
    executor = ActionExecutor(repo, base)

    if repo.ref_exists(f"refs/heads/{name}"):
        warning(f"Branch '{name}' already exists locally.")
        if not typer.confirm("Switch to this branch instead?", default=True):
            console.print("Aborted.")
            raise typer.Exit(code=1)
        try:
            executor.switch_to(name)
        except SwitchError as err:
            error(str(err))
            raise typer.Exit(code=1) from err
        success(f"Switched to existing branch: {name}")
        return

    if base:
        info(f"Updating '{base}' from {REMOTE}...")
        try:
            executor.update_base(base)
            success(f"'{base}' is up to date.")
        except GitOperationError as err:
            logger.debug("Updating %s failed: %s", base, err)
            warning(f"Could not update '{base}' from {REMOTE}. Creating branch from local '{base}'.")
    else:
        warning("Could not detect 'main' or 'master' branch. Creating branch from current HEAD.")

    try:
        executor.create_branch(name, base)
    except GitOperationError as err:
        error(f"Failed to create branch: {err}")
        raise typer.Exit(code=1) from err
    success(f"Created and switched to branch: {name}" + (f" (from {base})" if base else ""))

    info(f"Pushing branch to {REMOTE} and setting up tracking...")
    try:
        executor.push(name, set_upstream=True)
    except GitOperationError as err:
        logger.debug("Push of %s failed: %s", name, err)
        warning(f"Could not push '{name}' to {REMOTE}. Push it later with: git push -u {REMOTE} {name}")
        return
    success(f"Pushed '{name}' and set upstream to {REMOTE}/{name}.")


def _push_current(repo: GitRepo, executor: ActionExecutor) -> None:
    """Bring the current branch up to date with origin, then push it."""
    branch = repo.get_current_branch_name()
    if not branch:
        error("HEAD is detached; nothing to push.")
        raise typer.Exit(code=1)

    try:
        state = executor.sync_with_remote(branch)
    except GitOperationError as err:
        logger.debug("Rebase onto %s/%s failed: %s", REMOTE, branch, err)
        warning("Failed to pull remote changes. Please resolve conflicts and try again.")
        raise typer.Exit(code=1) from err
    if state == "behind":
        success("Pulled latest changes.")
    elif state == "diverged":
        success("Rebased on latest changes.")

    info(f"Pushing '{branch}' to {REMOTE}...")
    try:
        executor.push(branch)
    except GitOperationError as err:
        logger.debug("Push failed: %s", err)
        warning(f"Failed to push '{branch}' to {REMOTE}.")
        raise typer.Exit(code=1) from err
    success(f"Successfully pushed '{branch}' to {REMOTE}.")


def _run_commit(
    repo: GitRepo,
    message: str,
    *,
    push: bool = False,
    staged_only: bool = False,
    amend: bool = False,
    choose_type: bool = False,
) -> None:
    if not message.strip():
        message = typer.prompt("Commit message", default="", show_default=False)
    if not message.strip():
        error("Commit message is required.")
        raise typer.Exit(code=1)

    if choose_type:
        rows = [MenuRow(key=kind, display=f"{kind:<9}- {description}", item=kind) for kind, description in COMMIT_TYPES.items()]
        selection = choose(
            get_presenter(),
            [MenuView(rows, header="Select conventional commit type")],
            prompt="Commit type > ",
        )
        if selection.cancelled or not selection.chosen:
            console.print("Aborted.")
            raise typer.Exit(code=1)
        message = f"{selection.chosen[0]}: {message}"
        info(f"Commit message: {message}")

    executor = ActionExecutor(repo, repo.detect_base_branch())
    staged = repo.staged_files()
    unstaged = repo.unstaged_files()

    try:
        if amend:
            if not staged and not unstaged:
                info("Amending commit message only...")
            elif staged_only:
                info("Amending with staged changes..." if staged else "Amending commit message only (no staged changes)...")
            else:
                info("Amending with all changes...")
                executor.stage_all()
        elif staged_only:
            if not staged:
                error("No staged changes to commit.")
                raise typer.Exit(code=1)
            console.print("Committing staged changes only...")
        elif staged and unstaged:
            console.print("\nYou have both staged and unstaged changes.\n")
            choice = typer.prompt("Commit [s]taged only, or [a]ll changes? (s/a)", default="a", show_default=False)
            if choice.strip().lower().startswith("s"):
                console.print("Committing staged changes only...")
            else:
                console.print("Staging all changes and committing...")
                executor.stage_all()
        elif staged:
            console.print("Committing staged changes...")
        else:
            executor.stage_all()

        output = executor.commit(message, amend=amend)
    except GitOperationError as err:
        error(str(err))
        raise typer.Exit(code=1) from err

    if output:
        console.print(escape(output))
    if push:
        _push_current(repo, executor)


@app.command()
def commit(
    message: Annotated[Optional[list[str]], typer.Argument(metavar="[MESSAGE]...", help="Commit message")] = None,
    path: PathOption = Path("."),
    push: Annotated[bool, typer.Option("--push", "-p", help="Push after committing")] = False,
    staged: Annotated[bool, typer.Option("--staged", "-s", help="Commit staged changes only")] = False,
    amend: Annotated[bool, typer.Option("--amend", "-a", help="Amend the last commit")] = False,
    choose_type: Annotated[bool, typer.Option("--type", "-t", help="Pick a conventional commit type")] = False,
) -> None:
    """Commit changes, staging everything unless told otherwise."""
    repo = get_repo(path)
    _run_commit(
        repo,
        " ".join(message or []),
        push=push,
        staged_only=staged,
        amend=amend,
        choose_type=choose_type,
    )


def _toggle_staging(executor: ActionExecutor, entries: list[StatusEntry]) -> bool:
    """Unstage staged entries and stage the rest. Returns True if anything was staged."""
    to_unstage = [entry.path for entry in entries if entry.state is StagingState.STAGED]
    to_stage = [entry.path for entry in entries if entry.state is not StagingState.STAGED]
    for entry in entries:
        if entry.state is StagingState.STAGED:
            console.print(f"Unstaging: {escape(entry.path)}")
        elif entry.state is StagingState.UNTRACKED:
            console.print(f"Adding: {escape(entry.path)}")
        else:
            console.print(f"Staging: {escape(entry.path)}")
    executor.unstage(to_unstage)
    executor.stage(to_stage)
    return bool(to_stage)


def _discard(executor: ActionExecutor, entries: list[StatusEntry]) -> None:
    """Delete untracked files and revert tracked ones, each after a confirmation."""
    untracked = [entry.path for entry in entries if entry.state is StagingState.UNTRACKED]
    tracked = [entry.path for entry in entries if entry.state is not StagingState.UNTRACKED]

    if untracked:
        console.print("Untracked files to delete:")
        for name in untracked:
            console.print(f"  - {escape(name)}")
        if typer.confirm(f"Delete these {len(untracked)} untracked file(s)?", default=False):
            executor.delete_untracked(untracked)
            for name in untracked:
                success(f"Deleted: {name}")
        else:
            console.print("Skipped deletion.")

    if tracked:
        console.print("Files to revert:")
        for name in tracked:
            console.print(f"  - {escape(name)}")
        if typer.confirm(f"Revert changes in these {len(tracked)} file(s)? This cannot be undone.", default=False):
            executor.revert(tracked)
            for name in tracked:
                success(f"Reverted: {name}")
        else:
            console.print("Skipped revert.")


@app.command()
def status(path: PathOption = Path(".")) -> None:
    """Browse changes, toggle staging, revert, then commit what was staged."""
    config = get_config()
    repo = get_repo(path)
    presenter = get_presenter()
    executor = ActionExecutor(repo, repo.detect_base_branch())
    preview = status_preview(config)

    entries = repo.status_entries()
    if not entries:
        console.print("Working tree clean - no changes to display.")
        return

    while True:
        rows = [
            MenuRow(key=entry.path, display=f"{entry.state.label:<12} {entry.code} {entry.path}", item=entry)
            for entry in entries
        ]
        selection = choose(
            presenter,
            [MenuView(rows, header=STATUS_HEADER)],
            prompt="Git Status > ",
            multi=True,
            preview=preview,
            preview_window="right:60%",
            action_keys={"ctrl-r": Action.DELETE_KEY},
            ansi=True,
            cwd=str(repo.path),
        )
        if selection.cancelled or not selection.chosen:
            console.print("Exited status viewer.")
            return

        did_stage = False
        try:
            if selection.action is Action.DELETE_KEY:
                _discard(executor, selection.chosen)
            else:
                did_stage = _toggle_staging(executor, selection.chosen)
        except GitOperationError as err:
            error(str(err))
            raise typer.Exit(code=1) from err

        entries = repo.status_entries()
        if not entries:
            success("Working tree is now clean - all changes staged or reverted.")
            return

        if did_stage and any(entry.state is StagingState.STAGED for entry in entries):
            console.print("\nStaged files:")
            for name in repo.staged_files():
                console.print(f"  └─ {escape(name)}")
            console.print("\nReady to commit and push staged changes.\nPress Ctrl+C to abort.\n")
            _run_commit(repo, "", push=True, staged_only=True)
            return


@app.command()
def pr(
    path: PathOption = Path("."),
    push: Annotated[bool, typer.Option("--push", "-p", help="Push the branch before opening the page")] = False,
) -> None:
    """Open the pull request page for the current branch."""
    repo = get_repo(path)

    if repo.has_uncommitted_changes():
        console.print("You have uncommitted changes or untracked files.\n")
        if push or typer.confirm("Would you like to commit them first?", default=True):
            before = repo.head_commit()
            status(path=path)
            if repo.head_commit() != before:
                if not push:
                    push = typer.confirm("Push the fresh commit to origin?", default=True)
            elif not push:
                console.print("No new commit was created. Continuing without pushing...")
        else:
            console.print("Continuing without committing...")

    url = repo.remote_url()
    if not url:
        error(f"No remote '{REMOTE}' found.")
        raise typer.Exit(code=1)

    branch = repo.get_current_branch_name()
    if not branch:
        error("HEAD is detached; check out a branch first.")
        raise typer.Exit(code=1)

    if push:
        _push_current(repo, ActionExecutor(repo, repo.detect_base_branch()))

    target = compare_url(url, branch)
    info(f"Opening {target}")
    typer.launch(target)


if __name__ == "__main__":
    app()
