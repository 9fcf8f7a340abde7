"""
Pattern Knowledge

Fixed per-pattern knowledge used when presenting spirals and synthesizing
lessons, plus the catalogue of intervention types.
"""

from dataclasses import dataclass
from typing import Dict, List, Tuple

from vibe_check.core.models import InterventionType, PatternCategory


@dataclass(frozen=True)
class PatternKnowledge:
    display_name: str
    advice: str
    root_cause: str
    prevention: Tuple[str, ...]
    tags: Tuple[str, ...]


PATTERN_KNOWLEDGE: Dict[str, PatternKnowledge] = {
    PatternCategory.SECRETS_AUTH.value: PatternKnowledge(
        display_name="Secrets & Auth",
        advice="Consider using a secrets manager or validating auth configs before deploy",
        root_cause="Authentication configs often fail silently or have environment-specific behavior",
        prevention=(
            "Add secret validation to CI pipeline",
            "Use secret scanning tools",
            "Test auth flows in staging before prod",
        ),
        tags=("security", "auth", "secrets"),
    ),
    PatternCategory.VOLUME_CONFIG.value: PatternKnowledge(
        display_name="Volume Config",
        advice="Add volume mount tests to your CI pipeline and validate paths early",
        root_cause="Volume mounts have complex permission and path requirements that vary by platform",
        prevention=(
            "Add volume mount tests to CI",
            "Validate paths exist before mount",
            "Document platform-specific requirements",
        ),
        tags=("infrastructure", "storage", "kubernetes"),
    ),
    PatternCategory.API_MISMATCH.value: PatternKnowledge(
        display_name="API Mismatch",
        advice="Use schema validation and version checks before integration",
        root_cause="API contracts change without notice or documentation lags behind implementation",
        prevention=(
            "Use schema validation (OpenAPI, JSON Schema)",
            "Version APIs explicitly",
            "Add contract tests between services",
        ),
        tags=("api", "integration", "contracts"),
    ),
    PatternCategory.SSL_TLS.value: PatternKnowledge(
        display_name="SSL/TLS",
        advice="Test certificate chains in staging and automate renewal checks",
        root_cause="Certificate chains are complex and expiration or rotation is easy to miss",
        prevention=(
            "Automate certificate renewal",
            "Test certificate chains in staging",
            "Set up expiration monitoring",
        ),
        tags=("security", "certificates", "networking"),
    ),
    PatternCategory.IMAGE_REGISTRY.value: PatternKnowledge(
        display_name="Image/Registry",
        advice="Verify image tags exist before deploy, consider digest-based pulls",
        root_cause="Container registries have authentication and tagging edge cases",
        prevention=(
            "Use digest-based pulls instead of tags",
            "Verify images exist before deploy",
            "Cache images locally for reliability",
        ),
        tags=("containers", "docker", "registry"),
    ),
    PatternCategory.GITOPS_DRIFT.value: PatternKnowledge(
        display_name="GitOps Drift",
        advice="Run drift detection in CI and enforce reconciliation timeouts",
        root_cause="Manual changes bypass GitOps and cause state divergence",
        prevention=(
            "Enable drift detection in CI",
            "Block manual kubectl/oc commands",
            "Set reconciliation timeouts",
        ),
        tags=("gitops", "kubernetes", "drift"),
    ),
    PatternCategory.OTHER.value: PatternKnowledge(
        display_name="Other",
        advice="Consider adding pre-deployment validation for this component",
        root_cause="Complex interactions between components cause unexpected behavior",
        prevention=(
            "Add integration tests for the component",
            "Document failure modes",
            "Create runbook for common issues",
        ),
        tags=("general",),
    ),
}

INTERVENTION_INFO: Dict[InterventionType, Tuple[str, str]] = {
    InterventionType.TRACER_TEST: ("Tracer Test", "Wrote a test to validate assumptions"),
    InterventionType.BREAK: ("Take a Break", "Stepped away to clear your head"),
    InterventionType.DOCS: ("Read Docs", "Consulted documentation"),
    InterventionType.REFACTOR: ("Refactor", "Changed approach or architecture"),
    InterventionType.HELP: ("Ask for Help", "Asked a human or AI for assistance"),
    InterventionType.ROLLBACK: ("Rollback", "Reverted to a known good state"),
    InterventionType.OTHER: ("Other", "Custom intervention"),
}


def get_knowledge(pattern: str) -> PatternKnowledge:
    return PATTERN_KNOWLEDGE.get(pattern, PATTERN_KNOWLEDGE[PatternCategory.OTHER.value])


def get_pattern_display_name(pattern: str) -> str:
    known = PATTERN_KNOWLEDGE.get(pattern)
    return known.display_name if known else pattern


def get_pattern_advice(pattern: str) -> str:
    return get_knowledge(pattern).advice


def get_intervention_name(intervention: str) -> str:
    try:
        return INTERVENTION_INFO[InterventionType(intervention)][0]
    except ValueError:
        return intervention


def list_intervention_types() -> List[Dict[str, str]]:
    return [
        {"type": t.value, "name": name, "description": description}
        for t, (name, description) in INTERVENTION_INFO.items()
    ]


def parse_intervention_type(value: str) -> InterventionType:
    """Accept ``TRACER_TEST``, ``tracer-test`` or ``tracer_test``."""
    normalized = value.strip().upper().replace("-", "_")
    try:
        return InterventionType(normalized)
    except ValueError:
        valid = ", ".join(t.value.lower().replace("_", "-") for t in InterventionType)
        raise ValueError(f"Unknown intervention type: {value}. Valid types: {valid}") from None
