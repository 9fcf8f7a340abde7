"""
vibe-check Local Storage

File-based storage, single writer:

- global ``~/.vibe-check/``: profile.json, lessons.json, spiral-history.ndjson,
  interventions.ndjson
- per repository ``<repo>/.vibe-check/``: commits.ndjson, timeline.json

JSON stores are written atomically (temp file + rename) and carry a version
that is passed through a migration chain on load. A corrupted JSON store is
moved aside to ``<name>.corrupted.<timestamp>`` and replaced by a fresh one.
NDJSON logs are append-only; unparseable lines are skipped and counted.
"""

import json
import logging
import os
import tempfile
from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Callable, Dict, Iterable, List, Optional, Sequence

from vibe_check.config.defaults import (
    COMMIT_LOG_FILENAME,
    DEFAULT_DATA_DIR,
    INTERVENTION_LOG_FILENAME,
    LESSONS_FILENAME,
    LESSONS_VERSION,
    PROFILE_FILENAME,
    PROFILE_VERSION,
    REPO_DATA_DIRNAME,
    SPIRAL_HISTORY_FILENAME,
    TIMELINE_FILENAME,
    TIMELINE_VERSION,
)
from vibe_check.core.models import (
    Commit,
    CommitType,
    FixChain,
    InterventionRecord,
    Lesson,
    LessonsDatabase,
    LessonsStats,
    ProfileStats,
    RepoStore,
    SynthesisLogEntry,
    UserProfile,
    parse_datetime,
)
from vibe_check.learning.intervention_memory import (
    create_intervention_memory,
    intervention_memory_from_dict,
)
from vibe_check.learning.lessons import create_lessons_database, finalize_database
from vibe_check.learning.pattern_memory import create_pattern_memory, pattern_memory_from_dict

logger = logging.getLogger(__name__)

GITIGNORE_CONTENT = "# vibe-check local data\n*\n"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


# =============================================================================
# File primitives
# =============================================================================

def ensure_dir(path: Path) -> Path:
    """Create ``path`` if needed and drop a .gitignore that ignores everything."""
    path.mkdir(parents=True, exist_ok=True)
    gitignore = path / ".gitignore"
    if not gitignore.exists():
        gitignore.write_text(GITIGNORE_CONTENT, encoding="utf-8")
    return path


def atomic_write_json(path: Path, data: Any) -> None:
    """Write JSON to a temp file in the same directory, then rename over ``path``."""
    path.parent.mkdir(parents=True, exist_ok=True)
    fd, tmp_path = tempfile.mkstemp(dir=str(path.parent), prefix=f".{path.name}.", suffix=".tmp")
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            json.dump(data, f, indent=2)
            f.flush()
            os.fsync(f.fileno())
        os.replace(tmp_path, path)
    except BaseException:
        if os.path.exists(tmp_path):
            os.unlink(tmp_path)
        raise


def backup_corrupted(path: Path) -> Path:
    stamp = _utcnow().strftime("%Y%m%dT%H%M%S%f")
    backup = path.with_name(f"{path.name}.corrupted.{stamp}")
    os.replace(path, backup)
    return backup


def read_json(path: Path) -> Optional[Dict[str, Any]]:
    """Load a JSON object, or None when the file is missing or corrupted.

    Corrupted content is preserved under a ``.corrupted.<timestamp>`` name.
    """
    if not path.exists():
        return None
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except (json.JSONDecodeError, UnicodeDecodeError) as e:
        backup = backup_corrupted(path)
        logger.warning("Corrupted store %s (%s); moved to %s", path, e, backup.name)
        return None
    if not isinstance(data, dict):
        backup = backup_corrupted(path)
        logger.warning("Store %s is not a JSON object; moved to %s", path, backup.name)
        return None
    return data


@dataclass
class NdjsonReadResult:
    """Parsed lines of an NDJSON log plus how many were skipped."""
    items: List[Dict[str, Any]] = field(default_factory=list)
    errors: int = 0
    total: int = 0


def append_ndjson(path: Path, items: Iterable[Dict[str, Any]]) -> int:
    """Append one line per item. A partial last line is closed off first."""
    lines = [json.dumps(item, separators=(",", ":")) for item in items]
    if not lines:
        return 0
    path.parent.mkdir(parents=True, exist_ok=True)
    partial = False
    if path.exists() and path.stat().st_size > 0:
        with open(path, "rb") as existing:
            existing.seek(-1, os.SEEK_END)
            partial = existing.read(1) != b"\n"
    with open(path, "ab") as f:
        if partial:
            logger.warning("Closing partial last line in %s", path.name)
            f.write(b"\n")
        for line in lines:
            f.write((line + "\n").encode("utf-8"))
    return len(lines)


def read_ndjson(path: Path) -> NdjsonReadResult:
    """Read every parseable line; blank lines are ignored, bad lines counted."""
    result = NdjsonReadResult()
    if not path.exists():
        return result

    with open(path, "rb") as f:
        for line_no, raw in enumerate(f, 1):
            raw = raw.strip()
            if not raw:
                continue
            result.total += 1
            try:
                item = json.loads(raw.decode("utf-8"))
            except (UnicodeDecodeError, json.JSONDecodeError):
                result.errors += 1
                logger.debug("Skipping malformed line %d in %s", line_no, path.name)
                continue
            if not isinstance(item, dict):
                result.errors += 1
                continue
            result.items.append(item)

    if result.errors:
        logger.warning(
            "Skipped %d of %d lines in %s", result.errors, result.total, path.name
        )
    return result


def rewrite_ndjson(path: Path, items: Sequence[Dict[str, Any]]) -> None:
    """Replace an NDJSON log atomically."""
    path.parent.mkdir(parents=True, exist_ok=True)
    fd, tmp_path = tempfile.mkstemp(dir=str(path.parent), prefix=f".{path.name}.", suffix=".tmp")
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            for item in items:
                f.write(json.dumps(item, separators=(",", ":")) + "\n")
        os.replace(tmp_path, path)
    except BaseException:
        if os.path.exists(tmp_path):
            os.unlink(tmp_path)
        raise


# =============================================================================
# Migrations
# =============================================================================

Migration = Callable[[Dict[str, Any]], Dict[str, Any]]


def _profile_v0(data: Dict[str, Any]) -> Dict[str, Any]:
    now = _utcnow().isoformat()
    data.setdefault("created_at", now)
    data.setdefault("updated_at", data["created_at"])
    data.setdefault("pattern_memory", None)
    data.setdefault("intervention_memory", None)
    data.setdefault("stats", {})
    data["version"] = PROFILE_VERSION
    return data


def _lessons_v0(data: Dict[str, Any]) -> Dict[str, Any]:
    data.setdefault("last_updated", _utcnow().isoformat())
    data.setdefault("lessons", [])
    data.setdefault("synthesis_log", [])
    data.setdefault("last_synthesis", None)
    for lesson in data["lessons"]:
        lesson.setdefault("tags", [])
        lesson.setdefault("interventions", [])
    data["version"] = LESSONS_VERSION
    return data


def _timeline_v0(data: Dict[str, Any]) -> Dict[str, Any]:
    data.setdefault("last_updated", None)
    data.setdefault("last_commit_hash", None)
    data.setdefault("sessions", [])
    data.setdefault("records", [])
    for session in data["sessions"]:
        session.setdefault("spiral_minutes", [])
    data["version"] = TIMELINE_VERSION
    return data


# Keyed by the version a step upgrades from; "0" means unversioned
PROFILE_MIGRATIONS: Dict[str, Migration] = {"0": _profile_v0}
LESSONS_MIGRATIONS: Dict[str, Migration] = {"0": _lessons_v0}
TIMELINE_MIGRATIONS: Dict[str, Migration] = {"0": _timeline_v0}


def migrate(
    data: Dict[str, Any],
    migrations: Dict[str, Migration],
    current: str,
    name: str = "store",
) -> Dict[str, Any]:
    """Run migration steps until ``data`` reaches ``current``.

    A version with no known step is loaded as-is with a warning.
    """
    version = str(data.get("version") or "0")
    seen = set()
    while version != current:
        step = migrations.get(version)
        if step is None or version in seen:
            logger.warning("No migration from %s version %s to %s", name, version, current)
            break
        seen.add(version)
        logger.info("Migrating %s from version %s", name, version)
        data = step(data)
        version = str(data.get("version"))
    return data


# =============================================================================
# Serialization helpers
# =============================================================================

def profile_from_dict(data: Dict[str, Any]) -> UserProfile:
    now = _utcnow()
    return UserProfile(
        version=data.get("version", PROFILE_VERSION),
        created_at=parse_datetime(data.get("created_at")) or now,
        updated_at=parse_datetime(data.get("updated_at")) or now,
        pattern_memory=pattern_memory_from_dict(data.get("pattern_memory")),
        intervention_memory=intervention_memory_from_dict(data.get("intervention_memory")),
        stats=ProfileStats.from_dict(data.get("stats") or {}),
    )


def lessons_from_dict(data: Dict[str, Any]) -> LessonsDatabase:
    lessons = []
    for item in data.get("lessons", []):
        try:
            lessons.append(Lesson.from_dict(item))
        except (KeyError, ValueError, TypeError) as e:
            logger.warning("Skipping unreadable lesson %s: %s", item.get("id", "?"), e)
    db = LessonsDatabase(
        version=data.get("version", LESSONS_VERSION),
        last_updated=parse_datetime(data.get("last_updated")) or _utcnow(),
        lessons=lessons,
        stats=LessonsStats(),
        synthesis_log=[SynthesisLogEntry.from_dict(e) for e in data.get("synthesis_log", [])],
        last_synthesis=parse_datetime(data.get("last_synthesis")),
    )
    # Index and stats are derived, never loaded
    return finalize_database(db, db.last_updated)


def _load_store(
    path: Path,
    migrations: Dict[str, Migration],
    current: str,
    name: str,
    build: Callable[[Dict[str, Any]], Any],
) -> Any:
    """Read, migrate and build a JSON store, or None when it is missing or unusable.

    A store that parses but cannot be built is moved aside like corrupted JSON.
    """
    data = read_json(path)
    if data is None:
        return None
    try:
        return build(migrate(data, migrations, current, name))
    except (KeyError, TypeError, ValueError, AttributeError) as e:
        backup = backup_corrupted(path)
        logger.warning("Unreadable %s store %s (%r); moved to %s", name, path, e, backup.name)
        return None


def compress_commit(commit: Commit) -> Dict[str, Any]:
    """Short-key form used in commits.ndjson."""
    item: Dict[str, Any] = {
        "h": commit.hash,
        "d": commit.timestamp.isoformat(),
        "m": commit.message,
        "t": commit.type.value,
        "a": commit.author,
    }
    if commit.scope:
        item["s"] = commit.scope
    if commit.files:
        item["f"] = list(commit.files)
    if commit.lines_added:
        item["+"] = commit.lines_added
    if commit.lines_deleted:
        item["-"] = commit.lines_deleted
    return item


def expand_commit(item: Dict[str, Any]) -> Commit:
    try:
        commit_type = CommitType(item.get("t", "other"))
    except ValueError:
        commit_type = CommitType.OTHER
    return Commit(
        hash=item["h"],
        timestamp=parse_datetime(item["d"]),
        author=item.get("a", ""),
        message=item.get("m", ""),
        type=commit_type,
        scope=item.get("s"),
        files=tuple(item.get("f", ())),
        lines_added=int(item.get("+", 0)),
        lines_deleted=int(item.get("-", 0)),
    )


def spiral_entry(chain: FixChain, repo: Optional[str], now: datetime) -> Dict[str, Any]:
    return {
        "id": f"{chain.component}-{int(chain.first_commit.timestamp())}",
        "recorded_at": now.isoformat(),
        "repo": repo,
        "component": chain.component,
        "pattern": chain.pattern.value,
        "commits": chain.commit_count,
        "duration": chain.duration_minutes,
        "first_commit": chain.first_commit.isoformat(),
        "last_commit": chain.last_commit.isoformat(),
        "resolved": False,
        "resolution": None,
    }


# =============================================================================
# Storage
# =============================================================================

class VibeStorage:
    """Reads and writes every vibe-check store."""

    def __init__(self, data_dir: Optional[Path] = None):
        self.data_dir = Path(data_dir) if data_dir else DEFAULT_DATA_DIR

    @property
    def profile_path(self) -> Path:
        return self.data_dir / PROFILE_FILENAME

    @property
    def lessons_path(self) -> Path:
        return self.data_dir / LESSONS_FILENAME

    @property
    def spiral_history_path(self) -> Path:
        return self.data_dir / SPIRAL_HISTORY_FILENAME

    @property
    def intervention_log_path(self) -> Path:
        return self.data_dir / INTERVENTION_LOG_FILENAME

    @staticmethod
    def repo_dir(repo_path: Path) -> Path:
        return Path(repo_path) / REPO_DATA_DIRNAME

    # =========================================================================
    # Profile
    # =========================================================================

    def load_profile(self) -> UserProfile:
        profile = _load_store(
            self.profile_path, PROFILE_MIGRATIONS, PROFILE_VERSION, "profile", profile_from_dict
        )
        if profile is None:
            now = _utcnow()
            return UserProfile(
                version=PROFILE_VERSION,
                created_at=now,
                updated_at=now,
                pattern_memory=create_pattern_memory(),
                intervention_memory=create_intervention_memory(),
            )
        return profile

    def save_profile(self, profile: UserProfile) -> UserProfile:
        profile = replace(profile, updated_at=_utcnow())
        ensure_dir(self.data_dir)
        atomic_write_json(self.profile_path, profile.to_dict())
        return profile

    # =========================================================================
    # Lessons
    # =========================================================================

    def load_lessons(self) -> LessonsDatabase:
        db = _load_store(
            self.lessons_path, LESSONS_MIGRATIONS, LESSONS_VERSION, "lessons", lessons_from_dict
        )
        return db if db is not None else create_lessons_database()

    def save_lessons(self, db: LessonsDatabase) -> LessonsDatabase:
        db = finalize_database(db)
        ensure_dir(self.data_dir)
        atomic_write_json(self.lessons_path, db.to_dict())
        return db

    # =========================================================================
    # Per-repository timeline
    # =========================================================================

    def load_repo_store(self, repo_path: Path) -> RepoStore:
        path = self.repo_dir(repo_path) / TIMELINE_FILENAME
        store = _load_store(path, TIMELINE_MIGRATIONS, TIMELINE_VERSION, "timeline", RepoStore.from_dict)
        return store if store is not None else RepoStore(version=TIMELINE_VERSION)

    def save_repo_store(self, repo_path: Path, store: RepoStore) -> RepoStore:
        store = replace(store, last_updated=_utcnow())
        directory = ensure_dir(self.repo_dir(repo_path))
        atomic_write_json(directory / TIMELINE_FILENAME, store.to_dict())
        return store

    # =========================================================================
    # Commit log
    # =========================================================================

    def read_commit_log(self, repo_path: Path) -> List[Commit]:
        result = read_ndjson(self.repo_dir(repo_path) / COMMIT_LOG_FILENAME)
        commits = []
        for item in result.items:
            try:
                commits.append(expand_commit(item))
            except (KeyError, ValueError, TypeError) as e:
                logger.debug("Skipping unreadable commit entry: %s", e)
        return commits

    def append_commits(self, repo_path: Path, commits: Sequence[Commit]) -> int:
        """Append commits not already logged; returns how many were new."""
        known = {c.hash for c in self.read_commit_log(repo_path)}
        new = []
        for commit in commits:
            if commit.hash not in known:
                known.add(commit.hash)
                new.append(commit)
        if not new:
            return 0
        directory = ensure_dir(self.repo_dir(repo_path))
        return append_ndjson(directory / COMMIT_LOG_FILENAME, (compress_commit(c) for c in new))

    # =========================================================================
    # Spiral history
    # =========================================================================

    def append_spirals(
        self,
        chains: Sequence[FixChain],
        repo: Optional[str] = None,
        now: Optional[datetime] = None,
    ) -> int:
        now = now or _utcnow()
        entries = [spiral_entry(c, repo, now) for c in chains if c.is_spiral]
        if not entries:
            return 0
        ensure_dir(self.data_dir)
        return append_ndjson(self.spiral_history_path, entries)

    def read_spiral_history(self) -> NdjsonReadResult:
        return read_ndjson(self.spiral_history_path)

    def resolve_latest_spiral(
        self,
        resolution: str,
        component: Optional[str] = None,
    ) -> Optional[Dict[str, Any]]:
        """Mark the newest unresolved spiral (optionally for ``component``) resolved."""
        items = self.read_spiral_history().items
        for item in reversed(items):
            if item.get("resolved"):
                continue
            if component and item.get("component") != component:
                continue
            item["resolved"] = True
            item["resolution"] = resolution
            item["resolved_at"] = _utcnow().isoformat()
            rewrite_ndjson(self.spiral_history_path, items)
            return item
        return None

    # =========================================================================
    # Intervention log
    # =========================================================================

    def append_intervention(self, record: InterventionRecord) -> None:
        ensure_dir(self.data_dir)
        append_ndjson(self.intervention_log_path, [record.to_dict()])

    def read_intervention_log(self) -> List[InterventionRecord]:
        records = []
        for item in read_ndjson(self.intervention_log_path).items:
            try:
                records.append(InterventionRecord.from_dict(item))
            except (KeyError, ValueError) as e:
                logger.debug("Skipping unreadable intervention entry: %s", e)
        return records

    def get_status(self) -> Dict[str, Any]:
        return {
            "data_dir": str(self.data_dir),
            "profile": self.profile_path.exists(),
            "lessons": self.lessons_path.exists(),
            "spiral_history": self.spiral_history_path.exists(),
            "intervention_log": self.intervention_log_path.exists(),
        }
