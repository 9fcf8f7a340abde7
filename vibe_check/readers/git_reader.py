"""
Git Reader

Reads commit history with ``git log --numstat`` and classifies each commit
by its conventional-commit prefix (``type(scope): subject``). Merge commits
are skipped. Binary files count as touched with zero changed lines.
"""

import logging
import re
import subprocess
from datetime import datetime, timezone
from pathlib import Path
from typing import List, Optional, Tuple

from vibe_check.core.models import Commit, CommitType
from vibe_check.readers.base_reader import BaseCommitReader

logger = logging.getLogger(__name__)

GIT_TIMEOUT_SECONDS = 30
SHORT_HASH_LENGTH = 7

# Record and field separators that cannot appear in a subject line
_RECORD_SEP = "\x1e"
_FIELD_SEP = "\x1f"
LOG_FORMAT = f"{_RECORD_SEP}%H{_FIELD_SEP}%aI{_FIELD_SEP}%an{_FIELD_SEP}%s"

CONVENTIONAL_RE = re.compile(r"^(\w+)(?:\(([^)]+)\))?!?:\s*(.+)")
VALID_TYPES = {t.value for t in CommitType if t != CommitType.OTHER}


def parse_commit_message(message: str) -> Tuple[CommitType, Optional[str]]:
    """Return the commit type and scope of a conventional-commit subject.

    Unknown prefixes and free-form messages are ``other`` with no scope.
    """
    match = CONVENTIONAL_RE.match(message.strip())
    if not match:
        return CommitType.OTHER, None
    prefix = match.group(1).lower()
    if prefix not in VALID_TYPES:
        return CommitType.OTHER, None
    return CommitType(prefix), match.group(2)


def _parse_numstat(lines: List[str]) -> Tuple[Tuple[str, ...], int, int]:
    files = []
    added = deleted = 0
    for line in lines:
        parts = line.split("\t", 2)
        if len(parts) != 3:
            continue
        a, d, path = parts
        files.append(path)
        if a.isdigit():
            added += int(a)
        if d.isdigit():
            deleted += int(d)
    return tuple(files), added, deleted


def parse_git_log(output: str) -> List[Commit]:
    """Parse output produced with LOG_FORMAT and ``--numstat``, oldest first."""
    commits = []
    for chunk in output.split(_RECORD_SEP):
        lines = [line for line in chunk.strip("\n").split("\n") if line.strip()]
        if not lines:
            continue
        header = lines[0].split(_FIELD_SEP)
        if len(header) < 4:
            logger.debug("Skipping malformed git log record: %r", lines[0])
            continue
        sha, date_str, author, subject = header[:4]
        try:
            ts = datetime.fromisoformat(date_str.replace("Z", "+00:00"))
        except ValueError:
            logger.debug("Skipping commit %s with bad date %r", sha, date_str)
            continue
        if ts.tzinfo is None:
            ts = ts.replace(tzinfo=timezone.utc)

        commit_type, scope = parse_commit_message(subject)
        files, added, deleted = _parse_numstat(lines[1:])
        commits.append(Commit(
            hash=sha[:SHORT_HASH_LENGTH],
            timestamp=ts,
            author=author,
            message=subject,
            type=commit_type,
            scope=scope,
            files=files,
            lines_added=added,
            lines_deleted=deleted,
        ))

    # git log lists newest first
    commits.reverse()
    return commits


class GitReader(BaseCommitReader):
    """Reads commits from a local git working tree."""

    def __init__(self, repo_path: Optional[Path] = None):
        self.repo_path = Path(repo_path) if repo_path else Path.cwd()

    def get_source_name(self) -> str:
        return "git"

    def _run(self, args: List[str]) -> subprocess.CompletedProcess:
        cmd = ["git", "-C", str(self.repo_path)] + args
        return subprocess.run(cmd, capture_output=True, text=True, timeout=GIT_TIMEOUT_SECONDS)

    def is_available(self) -> bool:
        try:
            result = self._run(["rev-parse", "--is-inside-work-tree"])
        except (subprocess.TimeoutExpired, FileNotFoundError, OSError) as e:
            logger.debug("Git unavailable for %s: %s", self.repo_path, e)
            return False
        return result.returncode == 0 and result.stdout.strip() == "true"

    def read_commits(
        self,
        since: Optional[datetime] = None,
        until: Optional[datetime] = None,
    ) -> List[Commit]:
        args = ["log", "--no-merges", "--numstat", f"--format={LOG_FORMAT}"]
        if since:
            args.append(f"--since={since.isoformat()}")
        if until:
            args.append(f"--until={until.isoformat()}")

        try:
            result = self._run(args)
        except FileNotFoundError as e:
            raise RuntimeError("git executable not found") from e
        except subprocess.TimeoutExpired as e:
            raise RuntimeError(f"git log timed out after {GIT_TIMEOUT_SECONDS}s") from e

        if result.returncode != 0:
            stderr = result.stderr.strip()
            # An empty repository has no HEAD yet
            if "does not have any commits" in stderr:
                return []
            raise RuntimeError(f"git log failed in {self.repo_path}: {stderr}")

        commits = parse_git_log(result.stdout)
        logger.info("Read %d commits from %s", len(commits), self.repo_path)
        return commits
