"""Interactive git workflows on top of fzf.

Features:
- Switch branches with a fuzzy picker (local and remote)
- Create issue-prefixed branches and push them with tracking
- Clean up merged and stale local branches
- Triage and delete stale remote branches
- Interactive status viewer with staging, reverting and commit
- Open the pull request compare page for the current branch
"""

__version__ = "0.3.0"
