"""Fuzzy-picker menus backed by fzf."""

import os
import shutil
import signal
import subprocess
import tempfile
import threading
from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import Iterator, Mapping, Optional, Sequence

from gitpick.exceptions import DependencyMissingError, PickerError
from gitpick.logging_config import get_logger
from gitpick.models import CATEGORY_ORDER, Action, BranchRecord, Category, MenuRow, SelectionResult

logger = get_logger(__name__)

ABORT_LABEL = "✖ Abort"
SEPARATOR_LABEL = "─" * 29
TOGGLE_KEY = "ctrl-a"

# fzf exit codes
FZF_NO_MATCH = 1
FZF_ERROR = 2
FZF_INTERRUPTED = 130

MAX_BRANCH_WIDTH = 60


def abort_row() -> MenuRow:
    return MenuRow(key="", display=ABORT_LABEL)


def separator_row() -> MenuRow:
    return MenuRow(key="", display=SEPARATOR_LABEL)


def truncate(text: str, width: int) -> str:
    """Cut ``text`` to ``width`` characters, marking the cut with an ellipsis."""
    if len(text) <= width:
        return text
    return text[: width - 3] + "..."


def format_branch(
    record: BranchRecord,
    category: Optional[Category] = None,
    width: int = MAX_BRANCH_WIDTH,
    show_author: bool = False,
) -> str:
    """Aligned menu text for a branch: optional label, name, age, optional author."""
    parts = []
    if category is not None:
        parts.append(f"{category.label:<10}")
    parts.append(f"{truncate(record.name, width):<{width}}  ")
    if show_author:
        parts.append(f"{record.last_commit_relative:<20} {record.author_name}")
    else:
        parts.append(record.last_commit_relative)
    return "".join(parts).rstrip()


def branch_rows(
    groups: Mapping[Category, Sequence[BranchRecord]],
    preselect: frozenset = frozenset(),
    labels: bool = True,
    width: int = MAX_BRANCH_WIDTH,
    show_author: bool = False,
) -> list[MenuRow]:
    """Menu rows for classified branches, in category order.

    Rows are pre-selected when their category is in ``preselect``. A name
    that shows up twice is only listed once.
    """
    rows = []
    seen = set()
    for category in CATEGORY_ORDER:
        for record in groups.get(category, ()):
            if record.name in seen:
                continue
            seen.add(record.name)
            rows.append(
                MenuRow(
                    key=record.name,
                    display=format_branch(record, category if labels else None, width, show_author),
                    item=record,
                    category=category,
                    preselected=category in preselect,
                )
            )
    return rows


def matches_query(text: str, query: str) -> bool:
    """True if every whitespace-separated term of ``query`` occurs in ``text`` (case-insensitive)."""
    terms = query.lower().split()
    haystack = text.lower()
    return bool(terms) and all(term in haystack for term in terms)


@dataclass
class MenuView:
    """One row-set the picker can show; toggling cycles between views."""

    rows: list[MenuRow]
    header: str = ""

    def lines(self) -> list[MenuRow]:
        # fzf pre-selects by toggling the first N rows
        rows = sorted(self.rows, key=lambda row: not row.preselected)
        rows.append(abort_row())
        return rows

    @property
    def preselect_count(self) -> int:
        return sum(1 for row in self.rows if row.preselected)


@dataclass
class FzfResult:
    """Parsed output of one fzf run."""

    query: str = ""
    key: str = ""
    lines: list[str] = field(default_factory=list)
    cancelled: bool = False


@contextmanager
def scratch_file(lines: Sequence[str]) -> Iterator[str]:
    """Write ``lines`` to a temporary file that is removed on every exit path.

    SIGTERM is turned into SystemExit while the file exists so the cleanup
    below still runs; SIGINT already raises KeyboardInterrupt.
    """
    fd, path = tempfile.mkstemp(prefix="gitpick-", suffix=".menu")
    previous = None
    in_main_thread = threading.current_thread() is threading.main_thread()
    if in_main_thread:
        previous = signal.signal(signal.SIGTERM, _raise_system_exit)
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as handle:
            handle.write("\n".join(lines))
            handle.write("\n")
        yield path
    finally:
        if in_main_thread:
            signal.signal(signal.SIGTERM, previous if previous is not None else signal.SIG_DFL)
        try:
            os.unlink(path)
        except FileNotFoundError:
            pass


def _raise_system_exit(signum, frame):
    raise SystemExit(128 + signum)


class Fzf:
    """Thin wrapper around the fzf executable."""

    def __init__(self, executable: str = "fzf") -> None:
        path = shutil.which(executable)
        if path is None:
            raise DependencyMissingError(executable)
        self.executable = path

    def build_args(
        self,
        *,
        prompt: str,
        header: str = "",
        multi: bool = False,
        query: str = "",
        expect: Sequence[str] = (),
        preview: Optional[str] = None,
        preview_window: str = "right:35%",
        preselect: int = 0,
        ansi: bool = False,
    ) -> list[str]:
        # the query filters the list, so pre-selection has to run before it is typed
        deferred_query = bool(multi and preselect and query)
        args = [
            self.executable,
            "-i",
            "--reverse",
            "--border",
            "--print-query",
            f"--prompt={prompt}",
            f"--query={'' if deferred_query else query}",
            "--delimiter=\t",
            "--with-nth=1",
            "--bind=enter:accept",
            "--multi" if multi else "--no-multi",
        ]
        if header:
            args.append(f"--header={header}")
        if expect:
            args.append(f"--expect={','.join(expect)}")
        if preview:
            args += [f"--preview={preview}", f"--preview-window={preview_window}"]
        if ansi:
            args.append("--ansi")
        if multi and preselect:
            # toggle the first N rows once the list is loaded, then go back to the top
            sequence = "first" + "+toggle+down" * preselect + "+first"
            if deferred_query:
                # the colon form takes the rest of the binding, so it must come last
                sequence += f"+change-query:{query}"
            args.append(f"--bind=load:{sequence}")
        return args

    def run(self, lines: Sequence[str], cwd: Optional[str] = None, **options) -> FzfResult:
        """Show ``lines`` in fzf and return what the user picked.

        ``cwd`` is where fzf (and so the preview command) runs.
        """
        args = self.build_args(**options)
        logger.debug("Running fzf with %d lines: %s", len(lines), args[1:])
        with scratch_file(lines) as path:
            with open(path, encoding="utf-8") as menu:
                completed = subprocess.run(
                    args, stdin=menu, stdout=subprocess.PIPE, text=True, cwd=cwd, check=False
                )

        if completed.returncode == FZF_ERROR:
            raise PickerError("fzf exited with an error")
        if completed.returncode in (FZF_NO_MATCH, FZF_INTERRUPTED):
            return FzfResult(cancelled=True)

        output = completed.stdout.split("\n")
        query = output[0] if output else ""
        key = output[1] if len(output) > 1 and options.get("expect") else ""
        selected = output[2:] if options.get("expect") else output[1:]
        return FzfResult(query=query, key=key, lines=[line for line in selected if line])


class Presenter:
    """Runs a picker over one or more menu views.

    States: browsing a view, toggling to the next view (the typed query is
    carried over, the selection is not), done. ``action_keys`` maps extra
    fzf keys to the action reported when the user leaves with them.
    """

    def __init__(self, fzf: Fzf) -> None:
        self.fzf = fzf

    def present(
        self,
        views: Sequence[MenuView],
        *,
        prompt: str,
        multi: bool = False,
        query: str = "",
        preview: Optional[str] = None,
        preview_window: str = "right:35%",
        action_keys: Optional[Mapping[str, Action]] = None,
        start: int = 0,
        ansi: bool = False,
        cwd: Optional[str] = None,
    ) -> SelectionResult:
        if not views:
            raise ValueError("at least one menu view is required")
        action_keys = dict(action_keys or {})
        index = start % len(views)

        shortcut = self._single_match(views[index], query)
        if shortcut is not None:
            logger.debug("Query %r matches only %s; skipping picker", query, shortcut.key)
            return SelectionResult(Action.ACCEPT, [shortcut.item], query)

        expect = list(action_keys)
        if len(views) > 1:
            expect.insert(0, TOGGLE_KEY)

        while True:
            view = views[index]
            rows = view.lines()
            result = self.fzf.run(
                [f"{row.display}\t{row.key}" for row in rows],
                prompt=prompt,
                header=view.header,
                multi=multi,
                query=query,
                expect=expect,
                preview=preview,
                preview_window=preview_window,
                preselect=view.preselect_count,
                ansi=ansi,
                cwd=cwd,
            )
            if result.cancelled:
                return SelectionResult(Action.CANCELLED, [], result.query)
            if len(views) > 1 and result.key == TOGGLE_KEY:
                index = (index + 1) % len(views)
                query = result.query
                logger.debug("Toggled to view %d", index)
                continue
            if not result.lines:
                return SelectionResult(Action.CANCELLED, [], result.query)
            return self._resolve(rows, result, action_keys)

    @staticmethod
    def _single_match(view: MenuView, query: str) -> Optional[MenuRow]:
        if not query.strip():
            return None
        candidates = [row for row in view.rows if row.selectable and matches_query(row.display, query)]
        if len(candidates) == 1:
            return candidates[0]
        return None

    @staticmethod
    def _resolve(rows: Sequence[MenuRow], result: FzfResult, action_keys: Mapping[str, Action]) -> SelectionResult:
        by_line = {f"{row.display}\t{row.key}": row for row in rows}
        chosen = []
        for line in result.lines:
            row = by_line.get(line)
            if row is None:
                logger.debug("Ignoring unknown picker line %r", line)
                continue
            if row.display == ABORT_LABEL:
                return SelectionResult(Action.ACCEPT, [], result.query)
            if row.selectable:
                chosen.append(row.item)
        action = action_keys.get(result.key, Action.ACCEPT)
        return SelectionResult(action, chosen, result.query)
