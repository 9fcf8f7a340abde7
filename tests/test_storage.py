"""Tests for the file-based storage layer using a temp data directory."""

import json
from datetime import date, datetime, timedelta, timezone

import pytest

from vibe_check.config.defaults import LESSONS_VERSION, PROFILE_VERSION, TIMELINE_VERSION
from vibe_check.core.models import InterventionRecord, InterventionType, RepoStore
from vibe_check.core.storage import (
    LESSONS_MIGRATIONS,
    TIMELINE_MIGRATIONS,
    VibeStorage,
    append_ndjson,
    atomic_write_json,
    compress_commit,
    expand_commit,
    migrate,
    read_json,
    read_ndjson,
)
from vibe_check.learning.lessons import create_lessons_database
from vibe_check.learning.pattern_memory import update_pattern_memory
from vibe_check.learning.synthesis import synthesize_lessons


@pytest.fixture
def storage(tmp_path):
    return VibeStorage(data_dir=tmp_path / "home")


@pytest.fixture
def repo(tmp_path):
    path = tmp_path / "repo"
    path.mkdir()
    return path


class TestJsonFiles:
    def test_atomic_write_and_read(self, tmp_path):
        path = tmp_path / "nested" / "store.json"
        atomic_write_json(path, {"a": 1})
        assert read_json(path) == {"a": 1}
        assert [p.name for p in path.parent.iterdir()] == ["store.json"]

    def test_missing_file(self, tmp_path):
        assert read_json(tmp_path / "nope.json") is None

    def test_corrupted_file_backed_up(self, tmp_path):
        path = tmp_path / "store.json"
        path.write_text("{not json", encoding="utf-8")
        assert read_json(path) is None
        assert not path.exists()
        backups = list(tmp_path.glob("store.json.corrupted.*"))
        assert len(backups) == 1
        assert backups[0].read_text(encoding="utf-8") == "{not json"

    def test_non_object_backed_up(self, tmp_path):
        path = tmp_path / "store.json"
        path.write_text("[1, 2]", encoding="utf-8")
        assert read_json(path) is None
        assert list(tmp_path.glob("store.json.corrupted.*"))


class TestNdjson:
    def test_append_and_read(self, tmp_path):
        path = tmp_path / "log.ndjson"
        assert append_ndjson(path, [{"a": 1}, {"a": 2}]) == 2
        assert append_ndjson(path, []) == 0
        result = read_ndjson(path)
        assert [i["a"] for i in result.items] == [1, 2]
        assert result.errors == 0

    def test_bad_lines_skipped_and_counted(self, tmp_path):
        path = tmp_path / "log.ndjson"
        path.write_text('{"a": 1}\n{"a": 2, "b\n\n[3]\n{"a": 4}\n', encoding="utf-8")
        result = read_ndjson(path)
        assert [i["a"] for i in result.items] == [1, 4]
        assert result.errors == 2
        assert result.total == 4

    def test_missing(self, tmp_path):
        result = read_ndjson(tmp_path / "none.ndjson")
        assert result.items == []
        assert result.total == 0

    def test_invalid_utf8_line_skipped(self, tmp_path):
        path = tmp_path / "log.ndjson"
        append_ndjson(path, [{"a": 1}])
        with open(path, "ab") as f:
            f.write(b'{"m": "\xff\xfe"}\n')
        append_ndjson(path, [{"a": 3}])
        result = read_ndjson(path)
        assert [i["a"] for i in result.items] == [1, 3]
        assert result.errors == 1
        assert result.total == 3

    def test_append_after_partial_line(self, tmp_path):
        path = tmp_path / "log.ndjson"
        append_ndjson(path, [{"a": 1}])
        with open(path, "a", encoding="utf-8") as f:
            f.write('{"a": 2, "tr')
        append_ndjson(path, [{"a": 3}])
        result = read_ndjson(path)
        assert [i["a"] for i in result.items] == [1, 3]
        assert result.errors == 1
        assert result.total == 3

    def test_append_to_empty_file(self, tmp_path):
        path = tmp_path / "log.ndjson"
        path.touch()
        append_ndjson(path, [{"a": 1}])
        assert path.read_text(encoding="utf-8") == '{"a":1}\n'


class TestMigrations:
    def test_unversioned_timeline(self):
        data = migrate({"sessions": [{"id": "s1"}]}, TIMELINE_MIGRATIONS, TIMELINE_VERSION)
        assert data["version"] == TIMELINE_VERSION
        assert data["sessions"][0]["spiral_minutes"] == []
        assert data["records"] == []

    def test_unversioned_lessons(self):
        data = migrate({"lessons": [{"id": "l1"}]}, LESSONS_MIGRATIONS, LESSONS_VERSION)
        assert data["lessons"][0]["tags"] == []
        assert data["lessons"][0]["interventions"] == []

    def test_current_version_untouched(self):
        data = {"version": TIMELINE_VERSION, "sessions": []}
        assert migrate(dict(data), TIMELINE_MIGRATIONS, TIMELINE_VERSION) == data

    def test_unknown_version_loaded_as_is(self):
        data = migrate({"version": "9.9.9"}, TIMELINE_MIGRATIONS, TIMELINE_VERSION)
        assert data == {"version": "9.9.9"}

    def test_legacy_profile_loads(self, storage):
        storage.data_dir.mkdir(parents=True)
        storage.profile_path.write_text(json.dumps({"stats": {"total_sessions": 3}}), encoding="utf-8")
        profile = storage.load_profile()
        assert profile.version == PROFILE_VERSION
        assert profile.stats.total_sessions == 3
        assert profile.pattern_memory.records == []


class TestProfileAndLessons:
    def test_fresh_profile(self, storage):
        profile = storage.load_profile()
        assert profile.stats.total_sessions == 0
        assert not storage.profile_path.exists()

    def test_profile_round_trip(self, storage, make_chain):
        profile = storage.load_profile()
        profile.pattern_memory = update_pattern_memory(None, [make_chain()], date(2024, 3, 4))
        storage.save_profile(profile)
        assert (storage.data_dir / ".gitignore").exists()
        loaded = storage.load_profile()
        assert loaded.pattern_memory.pattern_counts == {"SECRETS_AUTH": 1}

    def test_lessons_round_trip(self, storage, make_chain):
        now = datetime(2024, 3, 4, 12, 0, tzinfo=timezone.utc)
        memory = update_pattern_memory(None, [make_chain(), make_chain()], date(2024, 3, 4))
        db, _ = synthesize_lessons(create_lessons_database(now), memory, now=now)
        storage.save_lessons(db)
        loaded = storage.load_lessons()
        assert [lesson.id for lesson in loaded.lessons] == [lesson.id for lesson in db.lessons]
        assert loaded.lessons_by_pattern == {"SECRETS_AUTH": [db.lessons[0].id]}
        assert loaded.stats.active_lessons == 1
        assert len(loaded.synthesis_log) == 1

    def test_corrupted_lessons_start_fresh(self, storage):
        storage.data_dir.mkdir(parents=True)
        storage.lessons_path.write_text("garbage", encoding="utf-8")
        assert storage.load_lessons().lessons == []


class TestRepoStores:
    def test_repo_store_round_trip(self, storage, repo, make_stored_session, make_record):
        store = RepoStore(
            version=TIMELINE_VERSION,
            sessions=[make_stored_session(spiral_components=["auth"])],
            records=[make_record(0, 2)],
        )
        storage.save_repo_store(repo, store)
        loaded = storage.load_repo_store(repo)
        assert loaded.sessions == store.sessions
        assert loaded.records == store.records
        assert loaded.last_updated is not None
        assert (repo / ".vibe-check" / ".gitignore").exists()

    def test_empty_repo_store(self, storage, repo):
        assert storage.load_repo_store(repo).sessions == []

    def test_repo_store_missing_keys_backed_up(self, storage, repo):
        directory = repo / ".vibe-check"
        directory.mkdir()
        path = directory / "timeline.json"
        path.write_text(json.dumps({
            "version": TIMELINE_VERSION,
            "sessions": [{"start": "2024-03-04T09:00:00Z"}],
        }), encoding="utf-8")
        store = storage.load_repo_store(repo)
        assert store.sessions == []
        assert not path.exists()
        assert len(list(directory.glob("timeline.json.corrupted.*"))) == 1

    def test_profile_with_bad_field_types_starts_fresh(self, storage):
        storage.data_dir.mkdir(parents=True)
        storage.profile_path.write_text(
            json.dumps({"version": PROFILE_VERSION, "created_at": "yesterday-ish"}),
            encoding="utf-8",
        )
        assert storage.load_profile().stats.total_sessions == 0
        assert list(storage.data_dir.glob("profile.json.corrupted.*"))

    def test_commit_log_dedup(self, storage, repo, make_commit):
        first = [make_commit(0, "fix(auth): token", files=["a.py"], lines_added=3),
                 make_commit(5, "feat: b")]
        assert storage.append_commits(repo, first) == 2
        assert storage.append_commits(repo, first + [make_commit(9)]) == 1
        log = storage.read_commit_log(repo)
        assert len(log) == 3
        assert log[0] == first[0]

    def test_compressed_commit_keys(self, make_commit):
        commit = make_commit(0, "fix(auth): token", files=["a.py"], lines_added=3, lines_deleted=1)
        item = compress_commit(commit)
        assert set(item) == {"h", "d", "m", "t", "a", "s", "f", "+", "-"}
        assert expand_commit(item) == commit


class TestLogs:
    def test_only_spirals_appended(self, storage, make_chain):
        chains = [make_chain(component="auth"), make_chain(component="ui", commit_count=2)]
        assert storage.append_spirals(chains, repo="demo") == 1
        items = storage.read_spiral_history().items
        assert items[0]["component"] == "auth"
        assert items[0]["resolved"] is False

    def test_resolve_latest_spiral(self, storage, make_chain, t0):
        storage.append_spirals([
            make_chain(component="auth"),
            make_chain(component="db", start=t0 + timedelta(hours=1)),
        ])
        resolved = storage.resolve_latest_spiral("BREAK")
        assert resolved["component"] == "db"
        resolved = storage.resolve_latest_spiral("DOCS")
        assert resolved["component"] == "auth"
        assert storage.resolve_latest_spiral("HELP") is None
        items = storage.read_spiral_history().items
        assert [i["resolution"] for i in items] == ["DOCS", "BREAK"]

    def test_resolve_for_component(self, storage, make_chain, t0):
        storage.append_spirals([
            make_chain(component="auth"),
            make_chain(component="db", start=t0 + timedelta(hours=1)),
        ])
        assert storage.resolve_latest_spiral("BREAK", component="auth")["component"] == "auth"

    def test_intervention_log(self, storage):
        record = InterventionRecord(InterventionType.BREAK, "2024-03-04", spiral_pattern="OTHER")
        storage.append_intervention(record)
        assert storage.read_intervention_log() == [record]

    def test_status(self, storage):
        status = storage.get_status()
        assert status["profile"] is False
        assert status["data_dir"] == str(storage.data_dir)
