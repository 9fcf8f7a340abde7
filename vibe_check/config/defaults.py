"""
Default Configuration

Centralized defaults for the vibe-check engine.
"""

from pathlib import Path

# Storage
DEFAULT_DATA_DIR = Path.home() / ".vibe-check"
REPO_DATA_DIRNAME = ".vibe-check"
PROFILE_FILENAME = "profile.json"
LESSONS_FILENAME = "lessons.json"
CONFIG_FILENAME = "config.json"
SPIRAL_HISTORY_FILENAME = "spiral-history.ndjson"
INTERVENTION_LOG_FILENAME = "interventions.ndjson"
COMMIT_LOG_FILENAME = "commits.ndjson"
TIMELINE_FILENAME = "timeline.json"

# Store versions (bump together with a migration step in core/storage.py)
PROFILE_VERSION = "1.0.0"
LESSONS_VERSION = "1.0.0"
TIMELINE_VERSION = "1.0.0"
MEMORY_VERSION = "1.0.0"

# Session segmentation
DEFAULT_GAP_MINUTES = 90
MIN_MINUTES_PER_COMMIT = 10

# Flow state
FLOW_MIN_COMMITS = 5
FLOW_MAX_GAP_MINUTES = 30
FLOW_MIN_DURATION_MINUTES = 45

# Fix chains
SPIRAL_THRESHOLD = 3
TRUST_WINDOW_MINUTES = 30

# Pattern score signals
CHURN_MIN_TOUCHES = 3
CHURN_WINDOW_MINUTES = 60
RAPID_COMMIT_MINUTES = 5
BASELINE_VELOCITY_MEAN = 3.0
BASELINE_VELOCITY_STDDEV = 1.5
BASELINE_MIN_SESSIONS = 5
BASELINE_WINDOW_SESSIONS = 20

# Rolling caps
MAX_PATTERN_RECORDS = 100
MAX_INTERVENTION_RECORDS = 100
MAX_SESSION_RECORDS = 100
MAX_STORED_SESSIONS = 500
MAX_LESSONS = 100
MAX_SYNTHESIS_LOG = 10
TOP_N = 3

# Lesson synthesis
SYNTHESIS_THRESHOLD = 2
CONFIDENCE_BASE = 50
MAX_LESSON_COMPONENTS = 5

# Lesson surfacing
SURFACED_LESSONS_LIMIT = 2
SURFACING_RECENT_DAYS = 7
BEST_INTERVENTION_MIN_EFFECTIVENESS = 50

# Weekly retrospective
RETRO_WINDOW_DAYS = 7

# Trends
MAX_WEEKLY_BUCKETS = 12
MAX_MONTHLY_BUCKETS = 6
TREND_STABLE_PERCENT = 5
RECOVERY_STABLE_PERCENT = 15

# Duplicate detection
DUPLICATE_SCAN_WINDOW = 50
DUPLICATE_OVERLAP_RATIO = 0.8
SESSION_HASH_OVERLAP_RATIO = 0.8

# Reward units per Code Health rating
REWARD_UNITS = {
    "ELITE": 100,
    "HIGH": 75,
    "MEDIUM": 50,
    "LOW": 25,
}
