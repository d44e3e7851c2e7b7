"""Branch and commit naming helpers."""

import re
from typing import Optional
from urllib.parse import urlparse

ISSUE_KEY = re.compile(r"^[A-Z]+-[0-9]+$")
ISSUE_IN_LINK = re.compile(r"(?:browse/|selectedIssue=)([A-Z]+-[0-9]+)")

BRANCH_TYPES = {
    "feature/": "New features and enhancements",
    "bugfix/": "Bug fixes",
    "hotfix/": "Urgent production fixes",
    "release/": "Release preparation branches",
}

COMMIT_TYPES = {
    "feat": "A new feature",
    "fix": "A bug fix",
    "docs": "Documentation only changes",
    "style": "Code style changes (formatting, whitespace)",
    "refactor": "Code change that neither fixes nor adds a feature",
    "perf": "Performance improvement",
    "test": "Adding or fixing tests",
    "build": "Build system or dependency changes",
    "ci": "CI/CD configuration changes",
    "chore": "Other changes that don't modify src/test files",
}


def parse_issue_key(link: str) -> Optional[str]:
    """Extract an issue key such as ``PROJ-123`` from a bare key or an issue link.

    >>> parse_issue_key("https://jira.example.com/browse/PROJ-123")
    'PROJ-123'
    >>> parse_issue_key("https://jira.example.com/board?selectedIssue=ABC-7")
    'ABC-7'
    """
    link = link.strip()
    if ISSUE_KEY.match(link):
        return link
    match = ISSUE_IN_LINK.search(link)
    return match.group(1) if match else None


def slugify(title: str) -> str:
    """Lowercase ``title`` and collapse every run of other characters into one dash."""
    slug = re.sub(r"[^a-z0-9]", "-", title.lower())
    slug = re.sub(r"-+", "-", slug)
    return slug.strip("-")


def branch_name(prefix: str, title: str, issue: Optional[str] = None) -> str:
    """``<prefix><ISSUE>-<slug>`` or ``<prefix><slug>`` without an issue."""
    slug = slugify(title)
    if issue:
        return f"{prefix}{issue}-{slug}"
    return f"{prefix}{slug}"


def compare_url(remote_url: str, branch: str) -> str:
    """GitHub compare page for ``branch`` given an SSH or HTTPS remote URL."""
    url = remote_url.strip()
    if url.startswith("git@"):
        host, _, path = url[len("git@") :].partition(":")
        url = f"https://{host}/{path}"
    elif url.startswith("ssh://"):
        parsed = urlparse(url)
        url = f"https://{parsed.hostname}{parsed.path}"
    if url.endswith(".git"):
        url = url[: -len(".git")]
    return f"{url.rstrip('/')}/compare/{branch}?expand=1"
