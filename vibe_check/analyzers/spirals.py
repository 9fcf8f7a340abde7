"""
Fix-Chain / Spiral Detector

Groups consecutive fix commits by component. A chain of SPIRAL_THRESHOLD or
more same-component fixes is a debug spiral. Each chain is tagged with a
failure pattern by matching its commit messages against an ordered rule table.

Component inference from free-text messages is a heuristic: a single keyword
is easy to get wrong. It lives behind ComponentInferrer so it can be replaced
without touching chain detection.
"""

import re
from dataclasses import dataclass
from typing import Dict, FrozenSet, List, Optional, Pattern, Sequence

from vibe_check.analyzers.sessions import sort_commits
from vibe_check.config.defaults import SPIRAL_THRESHOLD
from vibe_check.core.models import Commit, FixChain, PatternCategory

UNKNOWN_COMPONENT = "unknown"

STOP_WORDS = frozenset({
    "the", "a", "an", "for", "in", "on", "to", "with", "and", "or",
    "bug", "issue", "error", "problem", "handle", "add", "remove",
    "update", "change", "null", "undefined", "case", "typo",
})

_FIX_PREFIX = re.compile(r"^fix[:\s]*")


@dataclass(frozen=True)
class PatternRule:
    category: PatternCategory
    matcher: Pattern


# First match wins.
PATTERN_RULES: List[PatternRule] = [
    PatternRule(PatternCategory.SECRETS_AUTH,
                re.compile(r"secret|auth|oauth|token|credential|password|key", re.I)),
    PatternRule(PatternCategory.VOLUME_CONFIG,
                re.compile(r"volume|mount|path|permission|readonly|pvc|storage", re.I)),
    PatternRule(PatternCategory.API_MISMATCH,
                re.compile(r"api|version|field|spec|schema|crd|resource", re.I)),
    PatternRule(PatternCategory.SSL_TLS,
                re.compile(r"ssl|tls|cert|fips|handshake|https", re.I)),
    PatternRule(PatternCategory.IMAGE_REGISTRY,
                re.compile(r"image|pull|registry|docker|tag", re.I)),
    PatternRule(PatternCategory.GITOPS_DRIFT,
                re.compile(r"drift|sync|argocd|reconcil|outof", re.I)),
]


class ComponentInferrer:
    """Picks the component a commit is about.

    An explicit conventional-commit scope always wins. Otherwise the first
    meaningful word of the message after a leading ``fix``/``fix:`` is used.
    """

    def __init__(self, stop_words: FrozenSet[str] = STOP_WORDS, min_length: int = 3):
        self.stop_words = stop_words
        self.min_length = min_length

    def __call__(self, commit: Commit) -> Optional[str]:
        if commit.scope:
            return commit.scope.lower()
        return self.from_message(commit.message)

    def from_message(self, message: str) -> Optional[str]:
        text = _FIX_PREFIX.sub("", message.lower())
        for word in text.split():
            if len(word) >= self.min_length and word not in self.stop_words:
                return word
        return None


def classify_pattern(messages: Sequence[str]) -> PatternCategory:
    """Tag a chain using the first rule that matches its joined messages."""
    text = " ".join(messages)
    for rule in PATTERN_RULES:
        if rule.matcher.search(text):
            return rule.category
    return PatternCategory.OTHER


class SpiralDetector:
    """Finds fix chains in a commit sequence."""

    def __init__(
        self,
        inferrer: Optional[ComponentInferrer] = None,
        threshold: int = SPIRAL_THRESHOLD,
    ):
        self.inferrer = inferrer or ComponentInferrer()
        self.threshold = threshold

    def detect(self, commits: Sequence[Commit]) -> List[FixChain]:
        """Return every fix chain, each tagged ``is_spiral``.

        A chain ends at a non-fix commit or at a fix for another component.
        Commits with no inferable component share the ``unknown`` component.
        """
        chains: List[FixChain] = []
        run: List[Commit] = []
        run_component: Optional[str] = None

        for commit in sort_commits(commits):
            if not commit.is_fix:
                self._close(run, run_component, chains)
                run, run_component = [], None
                continue

            component = self.inferrer(commit) or UNKNOWN_COMPONENT
            if run and component != run_component:
                self._close(run, run_component, chains)
                run = []
            run.append(commit)
            run_component = component

        self._close(run, run_component, chains)
        return chains

    def _close(self, run: List[Commit], component: Optional[str], chains: List[FixChain]):
        if not run:
            return
        first, last = run[0], run[-1]
        chains.append(FixChain(
            component=component or UNKNOWN_COMPONENT,
            commit_count=len(run),
            duration_minutes=int(round((last.timestamp - first.timestamp).total_seconds() / 60.0)),
            pattern=classify_pattern([c.message for c in run]),
            is_spiral=len(run) >= self.threshold,
            first_commit=first.timestamp,
            last_commit=last.timestamp,
            commit_hashes=[c.hash for c in run],
        ))


def detect_fix_chains(
    commits: Sequence[Commit],
    threshold: int = SPIRAL_THRESHOLD,
) -> List[FixChain]:
    return SpiralDetector(threshold=threshold).detect(commits)


def summarize_patterns(chains: Sequence[FixChain]) -> Dict[str, int]:
    """Spiral commits per pattern category."""
    summary: Dict[str, int] = {}
    for chain in chains:
        if chain.is_spiral:
            key = chain.pattern.value
            summary[key] = summary.get(key, 0) + chain.commit_count
    return summary
