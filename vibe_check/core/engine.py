"""
vibe-check Engine

Main orchestrator that ties the commit reader, analyzers, learning layer and
storage together. Every run is a batch: read all state, compute, write all
state back.
"""

import logging
from dataclasses import replace
from datetime import date, datetime, timezone
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence, Tuple

from vibe_check.analyzers.metrics import calculate_metrics
from vibe_check.analyzers.pattern_score import PatternScoreCalculator
from vibe_check.analyzers.registry import SignalConfig
from vibe_check.analyzers.sessions import (
    active_hours,
    detect_flow_state,
    segment_sessions,
    sort_commits,
)
from vibe_check.analyzers.spirals import ComponentInferrer, SpiralDetector, summarize_patterns
from vibe_check.analyzers.velocity_anomaly import learn_baseline
from vibe_check.config.schema import VibeConfig
from vibe_check.core.models import (
    Commit,
    InterventionRecord,
    InterventionType,
    Lesson,
    LessonsDatabase,
    PatternScore,
    ProfileStats,
    Rating,
    RecoveryTrend,
    RegressionAnalysis,
    RepoStore,
    Session,
    StoredSession,
    SurfacedLesson,
    SynthesisResult,
    TrendReport,
    UserProfile,
    VelocityBaseline,
    VibeReport,
    WeeklyRetro,
)
from vibe_check.core.storage import VibeStorage
from vibe_check.insights.duplicates import merge_stored_sessions, record_session
from vibe_check.insights.regression import detect_regressions
from vibe_check.insights.trends import build_trends, recovery_trends
from vibe_check.learning import lessons as lessons_db
from vibe_check.learning.intervention_memory import (
    record_intervention,
    recommend_intervention,
)
from vibe_check.learning.pattern_memory import update_pattern_memory
from vibe_check.learning.retrospective import build_weekly_retro
from vibe_check.learning.synthesis import synthesize_lessons
from vibe_check.readers.base_reader import BaseCommitReader
from vibe_check.readers.git_reader import GitReader

logger = logging.getLogger(__name__)


def to_stored_session(session: Session, score: int) -> StoredSession:
    """Compress an analyzed Session for the per-repository timeline."""
    metrics = session.metrics
    spirals = session.spirals
    return StoredSession(
        id=f"{session.start.strftime('%Y%m%dT%H%M%S')}-{session.commits[0].hash}",
        date=session.start.date().isoformat(),
        start=session.start,
        end=session.end,
        duration_minutes=session.duration_minutes,
        commit_count=session.commit_count,
        commit_hashes=[c.hash for c in session.commits],
        rating=metrics.code_health if metrics else Rating.MEDIUM,
        score=score,
        velocity=metrics.iteration_velocity.value if metrics else 0.0,
        trust_pass_rate=metrics.trust_pass_rate.value if metrics else 100.0,
        rework_ratio=metrics.rework_ratio.value if metrics else 0.0,
        flow_state=session.flow_state,
        spiral_count=len(spirals),
        spiral_components=[c.component for c in spirals],
        spiral_minutes=[c.duration_minutes for c in spirals],
    )


def update_profile_stats(
    stats: ProfileStats,
    score: int,
    commit_count: int,
    spiral_count: int,
) -> ProfileStats:
    """Fold one recorded analysis into the running profile totals."""
    total = stats.total_sessions + 1
    return ProfileStats(
        total_sessions=total,
        total_commits_analyzed=stats.total_commits_analyzed + commit_count,
        avg_score=round((stats.avg_score * stats.total_sessions + score) / total, 1),
        best_score=max(stats.best_score, score),
        total_spirals_detected=stats.total_spirals_detected + spiral_count,
        spiral_free_sessions=stats.spiral_free_sessions + (1 if spiral_count == 0 else 0),
    )


class VibeEngine:
    """Main orchestrator for the vibe-check pipeline."""

    def __init__(
        self,
        storage: Optional[VibeStorage] = None,
        config: Optional[VibeConfig] = None,
        reader: Optional[BaseCommitReader] = None,
        inferrer: Optional[ComponentInferrer] = None,
    ):
        self.config = config or VibeConfig()
        self.storage = storage or VibeStorage(self.config.get_data_dir())
        self.inferrer = inferrer or ComponentInferrer()
        self.detector = SpiralDetector(self.inferrer, self.config.spiral_threshold)
        self._reader = reader
        self._readers: Dict[str, BaseCommitReader] = {}
        self._calculators: Dict[bool, PatternScoreCalculator] = {}

    # =========================================================================
    # Analysis
    # =========================================================================

    def analyze(
        self,
        repo_path: Optional[Path] = None,
        since: Optional[datetime] = None,
        until: Optional[datetime] = None,
        record: Optional[bool] = None,
    ) -> VibeReport:
        """
        Run the pipeline: read commits -> segment -> detect -> score -> record.

        Args:
            repo_path: Repository to read. Defaults to the working directory.
            since: Only analyze commits after this timestamp.
            until: Only analyze commits before this timestamp.
            record: Persist the result. Defaults to the ``record_sessions`` setting.

        Returns:
            VibeReport for the window.
        """
        repo_path = Path(repo_path) if repo_path else Path.cwd()
        record = self.config.record_sessions if record is None else record

        commits = self._get_reader(repo_path).read_commits(since=since, until=until)
        logger.info("Analyzing %d commits in %s", len(commits), repo_path)

        store = self.storage.load_repo_store(repo_path)
        baseline = learn_baseline([s.velocity for s in store.sessions])
        report = self.analyze_commits(commits, baseline)
        if since and report.period_start is None:
            report.period_start = since
        if until and report.period_end is None:
            report.period_end = until

        if report.spirals:
            report.lessons = self.surface_lessons(report)

        if record and commits:
            self.storage.append_commits(repo_path, commits)
            self._record(repo_path, store, report, commits, baseline)
        return report

    def analyze_commits(
        self,
        commits: Sequence[Commit],
        baseline: Optional[VelocityBaseline] = None,
    ) -> VibeReport:
        """Analyze an in-memory commit list. Touches no storage."""
        ordered = sort_commits(commits)
        gap = self.config.gap_minutes
        segmentation = segment_sessions(ordered, gap)

        chains = []
        for session in segmentation.sessions:
            self._analyze_session(session)
            chains.extend(session.chains)

        hours = active_hours(ordered, gap)
        metrics = calculate_metrics(
            ordered, hours, chains, self.config.trust_window_minutes, self.inferrer
        )
        pattern_score = self._get_calculator(ordered).calculate(ordered, baseline)
        logger.info(
            "Code health %s, pattern score %d%%, %d spirals",
            metrics.code_health.value, pattern_score.percent,
            sum(1 for c in chains if c.is_spiral),
        )

        return VibeReport(
            period_start=segmentation.range_start,
            period_end=segmentation.range_end,
            commit_count=len(ordered),
            fix_count=sum(1 for c in ordered if c.is_fix),
            active_hours=round(hours, 2),
            metrics=metrics,
            pattern_score=pattern_score,
            sessions=segmentation.sessions,
            stats=segmentation.stats,
            chains=chains,
            pattern_summary=summarize_patterns(chains),
            created_at=datetime.now(timezone.utc),
        )

    def get_sessions(
        self,
        repo_path: Optional[Path] = None,
        since: Optional[datetime] = None,
        until: Optional[datetime] = None,
    ) -> List[Session]:
        """Segment and analyze sessions without recording anything."""
        repo_path = Path(repo_path) if repo_path else Path.cwd()
        commits = self._get_reader(repo_path).read_commits(since=since, until=until)
        sessions = segment_sessions(commits, self.config.gap_minutes).sessions
        for session in sessions:
            self._analyze_session(session)
        return sessions

    # =========================================================================
    # Learning
    # =========================================================================

    def record_intervention(
        self,
        intervention_type: InterventionType,
        pattern: Optional[str] = None,
        component: Optional[str] = None,
        duration: Optional[int] = None,
        notes: Optional[str] = None,
        successful: bool = True,
        today: Optional[date] = None,
    ) -> InterventionRecord:
        """Record what broke a spiral.

        Missing spiral details are taken from the newest unresolved spiral in
        the history log, which is then marked resolved.
        """
        resolved = self.storage.resolve_latest_spiral(intervention_type.value, component)
        if resolved:
            pattern = pattern or resolved.get("pattern")
            component = component or resolved.get("component")
            if duration is None:
                duration = int(resolved.get("duration") or 0)

        profile = self.storage.load_profile()
        memory = record_intervention(
            profile.intervention_memory,
            intervention_type,
            spiral_pattern=pattern,
            spiral_component=component,
            spiral_duration=duration or 0,
            notes=notes,
            successful=successful,
            today=today,
        )
        self.storage.save_profile(replace(profile, intervention_memory=memory))

        entry = memory.records[-1]
        self.storage.append_intervention(entry)
        logger.info("Recorded intervention %s for %s", intervention_type.value, pattern or "unknown pattern")
        return entry

    def surface_lessons(self, report: VibeReport, now: Optional[datetime] = None) -> List[SurfacedLesson]:
        """Stored lessons for the patterns of this report's spirals, worst spiral first."""
        db = self.storage.load_lessons()
        surfaced: List[SurfacedLesson] = []
        seen = set()
        for chain in sorted(report.spirals, key=lambda c: -c.duration_minutes):
            pattern = chain.pattern.value
            if pattern in seen:
                continue
            seen.add(pattern)
            surfaced.extend(lessons_db.surface_lessons(db, pattern, now))
        if surfaced:
            logger.info("Surfacing %d lessons for %s", len(surfaced), ", ".join(sorted(seen)))
        return surfaced

    def recommend(self, pattern: Optional[str] = None) -> Optional[InterventionType]:
        return recommend_intervention(self.storage.load_profile().intervention_memory, pattern)

    def get_profile(self) -> UserProfile:
        return self.storage.load_profile()

    def retrospective(
        self,
        now: Optional[datetime] = None,
    ) -> Tuple[SynthesisResult, LessonsDatabase, UserProfile]:
        """Synthesize lessons from everything remembered so far."""
        profile = self.storage.load_profile()
        db = self.storage.load_lessons()
        db, result = synthesize_lessons(
            db,
            profile.pattern_memory,
            profile.intervention_memory,
            now=now,
        )
        db = self.storage.save_lessons(db)
        return result, db, profile

    def weekly_retro(
        self,
        repo_path: Optional[Path] = None,
        now: Optional[datetime] = None,
    ) -> WeeklyRetro:
        """Summarize the last week of recorded analyses for a repository."""
        repo_path = Path(repo_path) if repo_path else Path.cwd()
        profile = self.storage.load_profile()
        records = self.storage.load_repo_store(repo_path).records
        return build_weekly_retro(
            records, profile.pattern_memory, profile.intervention_memory, now=now
        )

    def list_lessons(
        self,
        include_dismissed: bool = False,
        pattern: Optional[str] = None,
    ) -> List[Lesson]:
        db = self.storage.load_lessons()
        if pattern:
            return lessons_db.get_lessons_for_pattern(db, pattern)
        if include_dismissed:
            return sorted(db.lessons, key=lambda lesson: (lesson.dismissed, -lesson.confidence))
        return lessons_db.get_active_lessons(db)

    def dismiss_lesson(self, lesson_id: str) -> Lesson:
        db = lessons_db.dismiss_lesson(self.storage.load_lessons(), lesson_id)
        db = self.storage.save_lessons(db)
        return db.get(lesson_id)

    def apply_lesson(self, lesson_id: str, effectiveness: int) -> Lesson:
        db = lessons_db.apply_lesson(self.storage.load_lessons(), lesson_id, effectiveness)
        db = self.storage.save_lessons(db)
        return db.get(lesson_id)

    # =========================================================================
    # Trends
    # =========================================================================

    def get_trends(
        self,
        repo_path: Optional[Path] = None,
    ) -> Tuple[TrendReport, RegressionAnalysis, List[RecoveryTrend]]:
        repo_path = Path(repo_path) if repo_path else Path.cwd()
        sessions = self.storage.load_repo_store(repo_path).sessions
        trends = build_trends(sessions)
        return trends, detect_regressions(trends.weekly), recovery_trends(sessions)

    def get_status(self, repo_path: Optional[Path] = None) -> Dict[str, Any]:
        repo_path = Path(repo_path) if repo_path else Path.cwd()
        profile = self.storage.load_profile()
        store = self.storage.load_repo_store(repo_path)
        return {
            "reader": self._get_reader(repo_path).get_status(),
            "storage": self.storage.get_status(),
            "stored_sessions": len(store.sessions),
            "session_records": len(store.records),
            "last_commit_hash": store.last_commit_hash,
            "profile": profile.stats.to_dict(),
            "config": self.config.model_dump(),
        }

    # =========================================================================
    # Internals
    # =========================================================================

    def _analyze_session(self, session: Session) -> None:
        gap = self.config.gap_minutes
        session.chains = self.detector.detect(session.commits)
        session.metrics = calculate_metrics(
            session.commits,
            active_hours(session.commits, gap),
            session.chains,
            self.config.trust_window_minutes,
            self.inferrer,
        )
        session.flow_state = detect_flow_state(session)

    def _record(
        self,
        repo_path: Path,
        store: RepoStore,
        report: VibeReport,
        commits: Sequence[Commit],
        baseline: VelocityBaseline,
    ) -> None:
        incoming = []
        for session in report.sessions:
            score = self._score_session(session, baseline)
            incoming.append(to_stored_session(session, score.percent))
        sessions, added = merge_stored_sessions(store.sessions, incoming)
        logger.info("Stored %d new sessions (%d total)", added, len(sessions))

        records, result = record_session(
            store.records,
            score=report.pattern_score.percent,
            rating=report.metrics.code_health,
            commits=report.commit_count,
            spirals=len(report.spirals),
            period_from=report.period_start,
            period_to=report.period_end,
            metrics=report.metrics.snapshot(),
        )
        report.record = result

        store = replace(
            store,
            sessions=sessions,
            records=records,
            last_commit_hash=sort_commits(commits)[-1].hash,
        )
        self.storage.save_repo_store(repo_path, store)

        if result.is_duplicate:
            return

        profile = self.storage.load_profile()
        profile = replace(
            profile,
            pattern_memory=update_pattern_memory(profile.pattern_memory, report.chains),
            stats=update_profile_stats(
                profile.stats,
                report.pattern_score.percent,
                report.commit_count,
                len(report.spirals),
            ),
        )
        self.storage.save_profile(profile)
        self.storage.append_spirals(report.chains, repo=str(repo_path))

    def _score_session(self, session: Session, baseline: VelocityBaseline) -> PatternScore:
        return self._get_calculator(session.commits).calculate(session.commits, baseline)

    def _get_calculator(self, commits: Sequence[Commit]) -> PatternScoreCalculator:
        has_diff_stats = any(c.files or c.lines_added or c.lines_deleted for c in commits)
        if has_diff_stats not in self._calculators:
            config = SignalConfig(
                enabled=self.config.enabled_signals,
                disabled=self.config.disabled_signals,
                has_diff_stats=has_diff_stats,
            )
            self._calculators[has_diff_stats] = PatternScoreCalculator(config)
        return self._calculators[has_diff_stats]

    def _get_reader(self, repo_path: Path) -> BaseCommitReader:
        if self._reader is not None:
            return self._reader
        key = str(repo_path)
        if key not in self._readers:
            self._readers[key] = GitReader(repo_path)
        return self._readers[key]
