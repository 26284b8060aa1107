"""
Expert process step phases.

Used for the phase options when adding/editing an expert step and for ordering
phase groups when expert steps are displayed. The catalog is fixed at import
time and never mutated.
"""
from __future__ import annotations

from collections.abc import Callable, Iterable
from typing import NamedTuple, TypeVar

T = TypeVar("T")


class ExpertStepPhase(NamedTuple):
    value: str
    label: str


EXPERT_STEP_PHASES: tuple[ExpertStepPhase, ...] = (
    ExpertStepPhase("Client Intake", "Client Intake"),
    ExpertStepPhase("Application Preparation", "Application Preparation"),
    ExpertStepPhase("Application Submission", "Application Submission"),
    ExpertStepPhase("Survey Preparation", "Survey Preparation"),
    ExpertStepPhase("Survey Guidance", "Survey Guidance"),
)

DEFAULT_EXPERT_STEP_PHASE: str = EXPERT_STEP_PHASES[0].value

EXPERT_STEP_PHASE_ORDER: tuple[str, ...] = tuple(p.value for p in EXPERT_STEP_PHASES)

_PHASE_RANK: dict[str, int] = {value: rank for rank, value in enumerate(EXPERT_STEP_PHASE_ORDER)}


def phase_options() -> list[dict[str, str]]:
    return [{"value": p.value, "label": p.label} for p in EXPERT_STEP_PHASES]


def is_canonical_phase(value: str | None) -> bool:
    return value in _PHASE_RANK


def phase_rank(value: str | None) -> int:
    """Canonical position of a phase; legacy or unknown names rank after every canonical phase."""
    if value is None:
        return _PHASE_RANK[DEFAULT_EXPERT_STEP_PHASE]
    return _PHASE_RANK.get(value, len(EXPERT_STEP_PHASE_ORDER))


def _default_phase_of(step: object) -> str | None:
    if isinstance(step, dict):
        return step.get("phase")
    return getattr(step, "phase", None)


def group_steps_by_phase(
    steps: Iterable[T],
    key: Callable[[T], str | None] = _default_phase_of,
) -> list[tuple[str, list[T]]]:
    """
    Group expert steps by phase.

    Canonical phases come first in catalog order, followed by legacy phase names
    in the order they were first seen. Steps keep their input order inside a
    group, and a step with no phase falls into the default phase.
    """
    groups: dict[str, list[T]] = {}
    for step in steps:
        phase = (key(step) or "").strip() or DEFAULT_EXPERT_STEP_PHASE
        groups.setdefault(phase, []).append(step)

    # dicts keep insertion order, so the stable sort preserves encounter order among legacy names.
    return sorted(groups.items(), key=lambda item: phase_rank(item[0]))
