"""
vibe-check Data Models

Core dataclasses and enums for the vibe-check analysis engine.
"""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple


def _iso(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat() if value else None


def parse_datetime(value: Optional[str]) -> Optional[datetime]:
    """Parse an ISO-8601 timestamp, accepting a trailing ``Z``."""
    if not value:
        return None
    if value.endswith("Z"):
        value = value[:-1] + "+00:00"
    return datetime.fromisoformat(value)


# =============================================================================
# Enums
# =============================================================================

class CommitType(str, Enum):
    """Conventional-commit classification."""
    FEAT = "feat"
    FIX = "fix"
    DOCS = "docs"
    CHORE = "chore"
    REFACTOR = "refactor"
    TEST = "test"
    STYLE = "style"
    OTHER = "other"


class Rating(str, Enum):
    """Four-tier rating shared by every metric and the Code Health grade."""
    ELITE = "ELITE"
    HIGH = "HIGH"
    MEDIUM = "MEDIUM"
    LOW = "LOW"


class PatternCategory(str, Enum):
    """Failure pattern tags assigned to fix chains."""
    SECRETS_AUTH = "SECRETS_AUTH"
    VOLUME_CONFIG = "VOLUME_CONFIG"
    API_MISMATCH = "API_MISMATCH"
    SSL_TLS = "SSL_TLS"
    IMAGE_REGISTRY = "IMAGE_REGISTRY"
    GITOPS_DRIFT = "GITOPS_DRIFT"
    OTHER = "OTHER"


class InterventionType(str, Enum):
    """Remediation actions a developer can record after a spiral."""
    TRACER_TEST = "TRACER_TEST"
    BREAK = "BREAK"
    DOCS = "DOCS"
    REFACTOR = "REFACTOR"
    HELP = "HELP"
    ROLLBACK = "ROLLBACK"
    OTHER = "OTHER"


class LessonSeverity(str, Enum):
    """Severity tier of a lesson, derived from time wasted."""
    CRITICAL = "critical"
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


class AlertSeverity(str, Enum):
    """Severity of a regression alert."""
    WARNING = "warning"
    CRITICAL = "critical"


class TrendDirection(str, Enum):
    """Direction of a metric trend."""
    IMPROVING = "improving"
    DECLINING = "declining"
    STABLE = "stable"
    INSUFFICIENT_DATA = "insufficient_data"


# =============================================================================
# Commits and Sessions
# =============================================================================

@dataclass(frozen=True)
class Commit:
    """A single commit as produced by a commit reader. Immutable."""
    hash: str
    timestamp: datetime
    author: str
    message: str
    type: CommitType = CommitType.OTHER
    scope: Optional[str] = None
    files: Tuple[str, ...] = ()
    lines_added: int = 0
    lines_deleted: int = 0

    @property
    def is_fix(self) -> bool:
        return self.type == CommitType.FIX


@dataclass
class FixChain:
    """A run of consecutive fix commits attributed to one component."""
    component: str
    commit_count: int
    duration_minutes: int
    pattern: PatternCategory
    is_spiral: bool
    first_commit: datetime
    last_commit: datetime
    commit_hashes: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "component": self.component,
            "commit_count": self.commit_count,
            "duration_minutes": self.duration_minutes,
            "pattern": self.pattern.value,
            "is_spiral": self.is_spiral,
            "first_commit": _iso(self.first_commit),
            "last_commit": _iso(self.last_commit),
            "commit_hashes": list(self.commit_hashes),
        }


@dataclass
class MetricResult:
    """One workflow-health metric with its rating band."""
    value: float
    unit: str
    rating: Rating
    description: str

    def to_dict(self) -> Dict[str, Any]:
        return {
            "value": self.value,
            "unit": self.unit,
            "rating": self.rating.value,
            "description": self.description,
        }


@dataclass
class SessionMetrics:
    """The five workflow-health metrics and their composite grade."""
    iteration_velocity: MetricResult
    rework_ratio: MetricResult
    trust_pass_rate: MetricResult
    debug_spiral_duration: MetricResult
    flow_efficiency: MetricResult
    code_health: Rating
    active_hours: float = 0.0

    def results(self) -> Dict[str, MetricResult]:
        return {
            "iteration_velocity": self.iteration_velocity,
            "rework_ratio": self.rework_ratio,
            "trust_pass_rate": self.trust_pass_rate,
            "debug_spiral_duration": self.debug_spiral_duration,
            "flow_efficiency": self.flow_efficiency,
        }

    def snapshot(self) -> Dict[str, float]:
        """Numeric values only, as persisted on a SessionRecord."""
        return {key: result.value for key, result in self.results().items()}

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {k: r.to_dict() for k, r in self.results().items()}
        data["code_health"] = self.code_health.value
        data["active_hours"] = self.active_hours
        return data


@dataclass
class SignalResult:
    """Output of one pattern-score signal analyzer."""
    key: str
    name: str
    score: float  # 0.0-1.0, higher is healthier
    rating: Rating
    description: str
    metrics: Dict[str, float] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "key": self.key,
            "name": self.name,
            "score": round(self.score, 3),
            "rating": self.rating.value,
            "description": self.description,
            "metrics": {k: round(v, 2) for k, v in self.metrics.items()},
        }


@dataclass(frozen=True)
class VelocityBaseline:
    """Personal commits/hour baseline used for anomaly detection."""
    mean: float
    stddev: float
    samples: int = 0


@dataclass
class PatternScore:
    """Weighted workflow-risk early warning score."""
    value: float  # 0.0-1.0
    rating: Rating
    signals: List[SignalResult] = field(default_factory=list)
    weights: Dict[str, float] = field(default_factory=dict)

    @property
    def percent(self) -> int:
        return int(round(self.value * 100))

    def to_dict(self) -> Dict[str, Any]:
        return {
            "value": self.value,
            "percent": self.percent,
            "rating": self.rating.value,
            "signals": [s.to_dict() for s in self.signals],
            "weights": dict(self.weights),
        }


@dataclass
class Session:
    """A maximal run of commits with no internal gap above the threshold."""
    session_id: int
    commits: List[Commit]
    start: datetime
    end: datetime
    duration_minutes: float
    chains: List[FixChain] = field(default_factory=list)
    metrics: Optional[SessionMetrics] = None
    flow_state: bool = False

    @property
    def commit_count(self) -> int:
        return len(self.commits)

    @property
    def spirals(self) -> List[FixChain]:
        return [c for c in self.chains if c.is_spiral]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "session_id": self.session_id,
            "start": _iso(self.start),
            "end": _iso(self.end),
            "duration_minutes": self.duration_minutes,
            "commit_count": self.commit_count,
            "commit_hashes": [c.hash for c in self.commits],
            "flow_state": self.flow_state,
            "spirals": [c.to_dict() for c in self.spirals],
            "metrics": self.metrics.to_dict() if self.metrics else None,
        }


@dataclass
class SessionStats:
    """Summary statistics over a segmentation result."""
    total_sessions: int = 0
    total_commits: int = 0
    avg_commits_per_session: float = 0.0
    avg_duration_minutes: float = 0.0
    median_duration_minutes: float = 0.0
    longest_session_minutes: float = 0.0
    shortest_session_minutes: float = 0.0

    def to_dict(self) -> Dict[str, Any]:
        return dict(self.__dict__)


@dataclass
class SegmentationResult:
    """Sessions produced by the segmenter plus summary statistics."""
    sessions: List[Session] = field(default_factory=list)
    stats: SessionStats = field(default_factory=SessionStats)
    range_start: Optional[datetime] = None
    range_end: Optional[datetime] = None


# =============================================================================
# Persisted Session History
# =============================================================================

@dataclass
class SessionRecord:
    """Compressed form of an analyzed period, used for duplicate detection."""
    date: str
    timestamp: datetime
    score: int
    rating: Rating
    commits: int
    spirals: int
    reward_units: int = 0
    period_from: Optional[datetime] = None
    period_to: Optional[datetime] = None
    metrics: Optional[Dict[str, float]] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "date": self.date,
            "timestamp": _iso(self.timestamp),
            "score": self.score,
            "rating": self.rating.value,
            "commits": self.commits,
            "spirals": self.spirals,
            "reward_units": self.reward_units,
            "period_from": _iso(self.period_from),
            "period_to": _iso(self.period_to),
            "metrics": self.metrics,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "SessionRecord":
        return cls(
            date=data["date"],
            timestamp=parse_datetime(data["timestamp"]),
            score=int(data.get("score", 0)),
            rating=Rating(data.get("rating", Rating.MEDIUM.value)),
            commits=int(data.get("commits", 0)),
            spirals=int(data.get("spirals", 0)),
            reward_units=int(data.get("reward_units", 0)),
            period_from=parse_datetime(data.get("period_from")),
            period_to=parse_datetime(data.get("period_to")),
            metrics=data.get("metrics"),
        )


@dataclass
class StoredSession:
    """Per-repository session summary used for trends and baselines."""
    id: str
    date: str
    start: datetime
    end: datetime
    duration_minutes: float
    commit_count: int
    commit_hashes: List[str] = field(default_factory=list)
    rating: Rating = Rating.MEDIUM
    score: int = 0
    velocity: float = 0.0
    trust_pass_rate: float = 100.0
    rework_ratio: float = 0.0
    flow_state: bool = False
    spiral_count: int = 0
    spiral_components: List[str] = field(default_factory=list)
    spiral_minutes: List[int] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "date": self.date,
            "start": _iso(self.start),
            "end": _iso(self.end),
            "duration_minutes": self.duration_minutes,
            "commit_count": self.commit_count,
            "commit_hashes": list(self.commit_hashes),
            "rating": self.rating.value,
            "score": self.score,
            "velocity": self.velocity,
            "trust_pass_rate": self.trust_pass_rate,
            "rework_ratio": self.rework_ratio,
            "flow_state": self.flow_state,
            "spiral_count": self.spiral_count,
            "spiral_components": list(self.spiral_components),
            "spiral_minutes": list(self.spiral_minutes),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "StoredSession":
        return cls(
            id=data["id"],
            date=data["date"],
            start=parse_datetime(data["start"]),
            end=parse_datetime(data["end"]),
            duration_minutes=float(data.get("duration_minutes", 0)),
            commit_count=int(data.get("commit_count", 0)),
            commit_hashes=list(data.get("commit_hashes", [])),
            rating=Rating(data.get("rating", Rating.MEDIUM.value)),
            score=int(data.get("score", 0)),
            velocity=float(data.get("velocity", 0)),
            trust_pass_rate=float(data.get("trust_pass_rate", 100)),
            rework_ratio=float(data.get("rework_ratio", 0)),
            flow_state=bool(data.get("flow_state", False)),
            spiral_count=int(data.get("spiral_count", 0)),
            spiral_components=list(data.get("spiral_components", [])),
            spiral_minutes=[int(m) for m in data.get("spiral_minutes", [])],
        )


@dataclass
class RepoStore:
    """Per-repository derived state: stored sessions and session records."""
    version: str
    last_updated: Optional[datetime] = None
    last_commit_hash: Optional[str] = None
    sessions: List[StoredSession] = field(default_factory=list)
    records: List[SessionRecord] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "version": self.version,
            "last_updated": _iso(self.last_updated),
            "last_commit_hash": self.last_commit_hash,
            "sessions": [s.to_dict() for s in self.sessions],
            "records": [r.to_dict() for r in self.records],
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "RepoStore":
        return cls(
            version=data["version"],
            last_updated=parse_datetime(data.get("last_updated")),
            last_commit_hash=data.get("last_commit_hash"),
            sessions=[StoredSession.from_dict(s) for s in data.get("sessions", [])],
            records=[SessionRecord.from_dict(r) for r in data.get("records", [])],
        )


@dataclass
class RecordResult:
    """Outcome of persisting (or refusing) a SessionRecord."""
    record: Optional[SessionRecord]
    reward_units: int
    is_duplicate: bool

    def to_dict(self) -> Dict[str, Any]:
        return {
            "record": self.record.to_dict() if self.record else None,
            "reward_units": self.reward_units,
            "is_duplicate": self.is_duplicate,
        }


# =============================================================================
# Pattern and Intervention Memory
# =============================================================================

@dataclass(frozen=True)
class PatternRecord:
    """One spiral occurrence as remembered across repositories."""
    pattern: str
    component: str
    duration: int
    commits: int
    date: str

    def to_dict(self) -> Dict[str, Any]:
        return dict(self.__dict__)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "PatternRecord":
        return cls(
            pattern=data["pattern"],
            component=data.get("component") or "unknown",
            duration=int(data.get("duration", 0)),
            commits=int(data.get("commits", 0)),
            date=data.get("date", ""),
        )


@dataclass(frozen=True)
class PatternMemory:
    """Rolling spiral log plus aggregates derived from it."""
    version: str
    records: List[PatternRecord] = field(default_factory=list)
    pattern_counts: Dict[str, int] = field(default_factory=dict)
    component_counts: Dict[str, int] = field(default_factory=dict)
    pattern_durations: Dict[str, int] = field(default_factory=dict)
    top_patterns: List[str] = field(default_factory=list)
    top_components: List[str] = field(default_factory=list)
    avg_recovery_time: int = 0
    total_spirals: int = 0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "version": self.version,
            "records": [r.to_dict() for r in self.records],
            "pattern_counts": dict(self.pattern_counts),
            "component_counts": dict(self.component_counts),
            "pattern_durations": dict(self.pattern_durations),
            "top_patterns": list(self.top_patterns),
            "top_components": list(self.top_components),
            "avg_recovery_time": self.avg_recovery_time,
            "total_spirals": self.total_spirals,
        }


@dataclass(frozen=True)
class InterventionRecord:
    """One recorded remediation action."""
    type: InterventionType
    date: str
    spiral_pattern: Optional[str] = None
    spiral_component: Optional[str] = None
    spiral_duration: int = 0
    notes: Optional[str] = None
    successful: bool = True

    def to_dict(self) -> Dict[str, Any]:
        return {
            "type": self.type.value,
            "date": self.date,
            "spiral_pattern": self.spiral_pattern,
            "spiral_component": self.spiral_component,
            "spiral_duration": self.spiral_duration,
            "notes": self.notes,
            "successful": self.successful,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "InterventionRecord":
        return cls(
            type=InterventionType(data["type"]),
            date=data.get("date", ""),
            spiral_pattern=data.get("spiral_pattern"),
            spiral_component=data.get("spiral_component"),
            spiral_duration=int(data.get("spiral_duration") or 0),
            notes=data.get("notes"),
            successful=bool(data.get("successful", True)),
        )


@dataclass(frozen=True)
class InterventionMemory:
    """Rolling intervention log plus aggregates derived from it."""
    version: str
    records: List[InterventionRecord] = field(default_factory=list)
    type_counts: Dict[str, int] = field(default_factory=dict)
    effective_by_pattern: Dict[str, List[str]] = field(default_factory=dict)
    top_interventions: List[str] = field(default_factory=list)
    avg_time_to_intervene: int = 0
    total_interventions: int = 0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "version": self.version,
            "records": [r.to_dict() for r in self.records],
            "type_counts": dict(self.type_counts),
            "effective_by_pattern": {k: list(v) for k, v in self.effective_by_pattern.items()},
            "top_interventions": list(self.top_interventions),
            "avg_time_to_intervene": self.avg_time_to_intervene,
            "total_interventions": self.total_interventions,
        }


@dataclass
class ProfileStats:
    """Running totals across every analyzed period."""
    total_sessions: int = 0
    total_commits_analyzed: int = 0
    avg_score: float = 0.0
    best_score: int = 0
    total_spirals_detected: int = 0
    spiral_free_sessions: int = 0

    def to_dict(self) -> Dict[str, Any]:
        return dict(self.__dict__)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ProfileStats":
        known = {k: v for k, v in data.items() if k in cls.__dataclass_fields__}
        return cls(**known)


@dataclass
class UserProfile:
    """Global user profile holding both memories."""
    version: str
    created_at: datetime
    updated_at: datetime
    pattern_memory: PatternMemory
    intervention_memory: InterventionMemory
    stats: ProfileStats = field(default_factory=ProfileStats)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "version": self.version,
            "created_at": _iso(self.created_at),
            "updated_at": _iso(self.updated_at),
            "pattern_memory": self.pattern_memory.to_dict(),
            "intervention_memory": self.intervention_memory.to_dict(),
            "stats": self.stats.to_dict(),
        }


# =============================================================================
# Lessons
# =============================================================================

@dataclass
class LessonIntervention:
    """Observed effectiveness of one intervention type for a lesson's pattern."""
    type: InterventionType
    success_count: int
    total_count: int
    effectiveness: int  # 0-100

    def to_dict(self) -> Dict[str, Any]:
        return {
            "type": self.type.value,
            "success_count": self.success_count,
            "total_count": self.total_count,
            "effectiveness": self.effectiveness,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "LessonIntervention":
        return cls(
            type=InterventionType(data["type"]),
            success_count=int(data.get("success_count", 0)),
            total_count=int(data.get("total_count", 0)),
            effectiveness=int(data.get("effectiveness", 0)),
        )


@dataclass
class Lesson:
    """A persistent, confidence-scored record synthesized from repeated spirals."""
    id: str
    version: int
    created_at: datetime
    updated_at: datetime
    pattern: str
    components: List[str]
    title: str
    description: str
    root_cause: str
    prevention: List[str]
    interventions: List[LessonIntervention] = field(default_factory=list)
    confidence: int = 0
    evidence_count: int = 0
    total_time_wasted: int = 0
    severity: LessonSeverity = LessonSeverity.LOW
    tags: List[str] = field(default_factory=list)
    dismissed: bool = False
    applied: bool = False
    applied_at: Optional[datetime] = None
    user_effectiveness: Optional[int] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "version": self.version,
            "created_at": _iso(self.created_at),
            "updated_at": _iso(self.updated_at),
            "pattern": self.pattern,
            "components": list(self.components),
            "title": self.title,
            "description": self.description,
            "root_cause": self.root_cause,
            "prevention": list(self.prevention),
            "interventions": [i.to_dict() for i in self.interventions],
            "confidence": self.confidence,
            "evidence_count": self.evidence_count,
            "total_time_wasted": self.total_time_wasted,
            "severity": self.severity.value,
            "tags": list(self.tags),
            "dismissed": self.dismissed,
            "applied": self.applied,
            "applied_at": _iso(self.applied_at),
            "user_effectiveness": self.user_effectiveness,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Lesson":
        return cls(
            id=data["id"],
            version=int(data.get("version", 1)),
            created_at=parse_datetime(data["created_at"]),
            updated_at=parse_datetime(data["updated_at"]),
            pattern=data["pattern"],
            components=list(data.get("components", [])),
            title=data.get("title", ""),
            description=data.get("description", ""),
            root_cause=data.get("root_cause", ""),
            prevention=list(data.get("prevention", [])),
            interventions=[LessonIntervention.from_dict(i) for i in data.get("interventions", [])],
            confidence=int(data.get("confidence", 0)),
            evidence_count=int(data.get("evidence_count", 0)),
            total_time_wasted=int(data.get("total_time_wasted", 0)),
            severity=LessonSeverity(data.get("severity", LessonSeverity.LOW.value)),
            tags=list(data.get("tags", [])),
            dismissed=bool(data.get("dismissed", False)),
            applied=bool(data.get("applied", False)),
            applied_at=parse_datetime(data.get("applied_at")),
            user_effectiveness=data.get("user_effectiveness"),
        )


@dataclass
class LessonsStats:
    """Summary statistics over the lessons database."""
    total_lessons: int = 0
    active_lessons: int = 0
    patterns_with_lessons: int = 0
    avg_confidence: int = 0
    total_time_wasted: int = 0

    def to_dict(self) -> Dict[str, Any]:
        return dict(self.__dict__)


@dataclass
class SynthesisLogEntry:
    """One synthesis run."""
    timestamp: datetime
    lessons_created: int
    lessons_updated: int
    patterns_processed: int

    def to_dict(self) -> Dict[str, Any]:
        return {
            "timestamp": _iso(self.timestamp),
            "lessons_created": self.lessons_created,
            "lessons_updated": self.lessons_updated,
            "patterns_processed": self.patterns_processed,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "SynthesisLogEntry":
        return cls(
            timestamp=parse_datetime(data["timestamp"]),
            lessons_created=int(data.get("lessons_created", 0)),
            lessons_updated=int(data.get("lessons_updated", 0)),
            patterns_processed=int(data.get("patterns_processed", 0)),
        )


@dataclass
class LessonsDatabase:
    """All lessons plus a pattern index, statistics and the synthesis log."""
    version: str
    last_updated: datetime
    lessons: List[Lesson] = field(default_factory=list)
    lessons_by_pattern: Dict[str, List[str]] = field(default_factory=dict)
    stats: LessonsStats = field(default_factory=LessonsStats)
    synthesis_log: List[SynthesisLogEntry] = field(default_factory=list)
    last_synthesis: Optional[datetime] = None

    def get(self, lesson_id: str) -> Optional[Lesson]:
        return next((lesson for lesson in self.lessons if lesson.id == lesson_id), None)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "version": self.version,
            "last_updated": _iso(self.last_updated),
            "last_synthesis": _iso(self.last_synthesis),
            "lessons": [lesson.to_dict() for lesson in self.lessons],
            "lessons_by_pattern": {k: list(v) for k, v in self.lessons_by_pattern.items()},
            "stats": self.stats.to_dict(),
            "synthesis_log": [e.to_dict() for e in self.synthesis_log],
        }


@dataclass
class SynthesisResult:
    """What a synthesis run did."""
    created: List[Lesson] = field(default_factory=list)
    updated: List[Lesson] = field(default_factory=list)
    patterns_processed: int = 0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "created": [lesson.id for lesson in self.created],
            "updated": [lesson.id for lesson in self.updated],
            "patterns_processed": self.patterns_processed,
        }


@dataclass
class SurfacedLesson:
    """A stored lesson shown because its pattern just spiralled again."""
    lesson: Lesson
    relevance: float  # 0-100
    reason: str
    suggested_intervention: Optional[InterventionType] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "lesson_id": self.lesson.id,
            "pattern": self.lesson.pattern,
            "title": self.lesson.title,
            "relevance": round(self.relevance, 1),
            "reason": self.reason,
            "suggested_intervention": (
                self.suggested_intervention.value if self.suggested_intervention else None
            ),
        }


@dataclass
class WeeklyRetro:
    """Summary of the last week of recorded analyses against the week before."""
    period_start: datetime
    period_end: datetime
    session_count: int = 0
    commit_count: int = 0
    spiral_count: int = 0
    avg_score: int = 0
    top_pattern: Optional[str] = None
    top_intervention: Optional[str] = None
    key_insight: str = ""
    trust_pass_rate_change: Optional[int] = None
    spiral_rate_change: Optional[int] = None  # positive means fewer spirals

    def to_dict(self) -> Dict[str, Any]:
        return {
            "period_start": _iso(self.period_start),
            "period_end": _iso(self.period_end),
            "session_count": self.session_count,
            "commit_count": self.commit_count,
            "spiral_count": self.spiral_count,
            "avg_score": self.avg_score,
            "top_pattern": self.top_pattern,
            "top_intervention": self.top_intervention,
            "key_insight": self.key_insight,
            "trust_pass_rate_change": self.trust_pass_rate_change,
            "spiral_rate_change": self.spiral_rate_change,
        }


# =============================================================================
# Trends
# =============================================================================

@dataclass
class TrendBucket:
    """Rollup of stored sessions over one calendar period."""
    key: str
    session_count: int = 0
    commit_count: int = 0
    flow_state_count: int = 0
    spiral_count: int = 0
    avg_score: float = 0.0
    active_minutes: float = 0.0

    @property
    def spiral_rate(self) -> float:
        return self.spiral_count / self.session_count if self.session_count else 0.0

    @property
    def flow_rate(self) -> float:
        return self.flow_state_count / self.session_count if self.session_count else 0.0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "key": self.key,
            "session_count": self.session_count,
            "commit_count": self.commit_count,
            "flow_state_count": self.flow_state_count,
            "spiral_count": self.spiral_count,
            "avg_score": self.avg_score,
            "active_minutes": self.active_minutes,
        }


@dataclass
class WeekTrend(TrendBucket):
    """ISO week bucket; ``key`` is the Monday date."""


@dataclass
class MonthTrend(TrendBucket):
    """Calendar month bucket; ``key`` is ``YYYY-MM``."""


@dataclass
class TrendImprovement:
    """Week-over-week change in one rolled-up metric."""
    metric: str
    direction: TrendDirection
    change_percent: int
    period: str

    def to_dict(self) -> Dict[str, Any]:
        return {
            "metric": self.metric,
            "direction": self.direction.value,
            "change_percent": self.change_percent,
            "period": self.period,
        }


@dataclass
class RecoveryTrend:
    """Whether spirals on one component are getting shorter."""
    component: str
    direction: TrendDirection
    avg_minutes: float
    recent_minutes: float
    samples: int

    def to_dict(self) -> Dict[str, Any]:
        return dict(self.__dict__, direction=self.direction.value)


@dataclass
class TrendReport:
    """Weekly and monthly rollups with derived improvements."""
    weekly: List[WeekTrend] = field(default_factory=list)
    monthly: List[MonthTrend] = field(default_factory=list)
    improvements: List[TrendImprovement] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "weekly": [w.to_dict() for w in self.weekly],
            "monthly": [m.to_dict() for m in self.monthly],
            "improvements": [i.to_dict() for i in self.improvements],
        }


@dataclass
class RegressionAlert:
    """A detected regression in the most recent weeks."""
    type: str  # "spiral_increase" or "flow_decrease"
    severity: AlertSeverity
    message: str
    metric: str
    current_value: float
    baseline_value: float
    change_percent: int
    period: str
    recommendation: str

    def to_dict(self) -> Dict[str, Any]:
        return dict(self.__dict__, severity=self.severity.value)


@dataclass
class RegressionAnalysis:
    """Regression alerts plus the current improvement streak."""
    has_regression: bool = False
    alerts: List[RegressionAlert] = field(default_factory=list)
    summary: str = ""
    improvement_streak: int = 0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "has_regression": self.has_regression,
            "alerts": [a.to_dict() for a in self.alerts],
            "summary": self.summary,
            "improvement_streak": self.improvement_streak,
        }


# =============================================================================
# Report
# =============================================================================

@dataclass
class VibeReport:
    """Complete analysis of one commit window."""
    period_start: Optional[datetime]
    period_end: Optional[datetime]
    commit_count: int = 0
    fix_count: int = 0
    active_hours: float = 0.0
    metrics: Optional[SessionMetrics] = None
    pattern_score: Optional[PatternScore] = None
    sessions: List[Session] = field(default_factory=list)
    stats: SessionStats = field(default_factory=SessionStats)
    chains: List[FixChain] = field(default_factory=list)
    pattern_summary: Dict[str, int] = field(default_factory=dict)
    lessons: List[SurfacedLesson] = field(default_factory=list)
    record: Optional[RecordResult] = None
    created_at: Optional[datetime] = None

    @property
    def spirals(self) -> List[FixChain]:
        return [c for c in self.chains if c.is_spiral]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "period_start": _iso(self.period_start),
            "period_end": _iso(self.period_end),
            "commit_count": self.commit_count,
            "fix_count": self.fix_count,
            "active_hours": self.active_hours,
            "metrics": self.metrics.to_dict() if self.metrics else None,
            "pattern_score": self.pattern_score.to_dict() if self.pattern_score else None,
            "stats": self.stats.to_dict(),
            "sessions": [s.to_dict() for s in self.sessions],
            "spirals": [c.to_dict() for c in self.spirals],
            "pattern_summary": dict(self.pattern_summary),
            "lessons": [s.to_dict() for s in self.lessons],
            "record": self.record.to_dict() if self.record else None,
            "created_at": _iso(self.created_at),
        }
