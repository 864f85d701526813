"""
Interactive approval of assessed updates.

Each candidate moves through a small state machine:

    PRESENTING -> AWAITING_DECISION -> APPROVED | SKIPPED | QUIT
                                    -> SHOWING_DETAILS -> AWAITING_DECISION

Details can be requested once per candidate. ``transition`` is pure; the
engine supplies rendering and input through injected callables.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Callable, Iterable, List, Optional, Tuple

from .config import RunConfig
from .models import Decision, RiskAssessment, RiskLevel, UpdateCandidate, Verbosity
from .reporting import assessments_frame, format_frame, render_assessment


logger = logging.getLogger(__name__)


class Phase(Enum):
    PRESENTING = "presenting"
    AWAITING_DECISION = "awaiting"
    SHOWING_DETAILS = "details"
    APPROVED = "approved"
    SKIPPED = "skipped"
    QUIT = "quit"


TERMINAL_PHASES = {Phase.APPROVED: Decision.APPROVED,
                   Phase.SKIPPED: Decision.SKIPPED,
                   Phase.QUIT: Decision.QUIT}

_APPROVE = {"y", "yes", "a", "approve"}
_SKIP = {"n", "no", "s", "skip"}
_DETAILS = {"d", "details"}
_QUIT = {"q", "quit"}


@dataclass(frozen=True)
class PromptState:
    phase: Phase = Phase.PRESENTING
    details_shown: bool = False

    @property
    def decision(self) -> Optional[Decision]:
        return TERMINAL_PHASES.get(self.phase)


def transition(state: PromptState, user_input: Optional[str] = None) -> PromptState:
    """Advance one step. Unrecognised input leaves the state unchanged."""
    if state.phase is Phase.PRESENTING:
        return replace(state, phase=Phase.AWAITING_DECISION)
    if state.phase is Phase.SHOWING_DETAILS:
        return PromptState(Phase.AWAITING_DECISION, details_shown=True)
    if state.phase is not Phase.AWAITING_DECISION:
        return state

    answer = (user_input or "").strip().lower()
    if answer in _APPROVE:
        return replace(state, phase=Phase.APPROVED)
    if answer in _SKIP:
        return replace(state, phase=Phase.SKIPPED)
    if answer in _QUIT:
        return replace(state, phase=Phase.QUIT)
    if answer in _DETAILS and not state.details_shown:
        return replace(state, phase=Phase.SHOWING_DETAILS)
    return state


def question_for(candidate: UpdateCandidate, state: PromptState) -> str:
    options = "[y]es / [n]o / [q]uit" if state.details_shown else "[y]es / [n]o / [d]etails / [q]uit"
    return f"Update {candidate.name}? {options}: "


@dataclass
class DecisionSummary:
    approved: List[UpdateCandidate] = field(default_factory=list)
    skipped: List[UpdateCandidate] = field(default_factory=list)
    cancelled: bool = False
    presented: int = 0


class DecisionEngine:
    """Drive the approval loop over assessments in discovery order."""

    def __init__(
        self,
        config: RunConfig,
        prompt: Callable[[str], str] = input,
        emit: Callable[[str], None] = print,
    ) -> None:
        self.config = config
        self.prompt = prompt
        self.emit = emit

    def _render(self, candidate, assessment, verbosity: Verbosity) -> None:
        self.emit(render_assessment(candidate, assessment, verbosity, self.config.use_color))

    def decide(self, candidate: UpdateCandidate, assessment: RiskAssessment) -> Decision:
        if self.config.non_interactive:
            self._render(candidate, assessment, self.config.verbosity)
            return Decision.APPROVED

        state = PromptState()
        while state.decision is None:
            if state.phase is Phase.PRESENTING:
                self._render(candidate, assessment, self.config.verbosity)
                state = transition(state)
            elif state.phase is Phase.SHOWING_DETAILS:
                self._render(candidate, assessment, Verbosity.VERBOSE)
                state = transition(state)
            else:
                answer = self.prompt(question_for(candidate, state))
                next_state = transition(state, answer)
                if next_state == state:
                    self.emit("Please answer y, n, d or q." if not state.details_shown
                              else "Please answer y, n or q.")
                state = next_state
        return state.decision

    def run(
        self, assessed: Iterable[Tuple[UpdateCandidate, RiskAssessment]]
    ) -> DecisionSummary:
        summary = DecisionSummary()
        for candidate, assessment in assessed:
            summary.presented += 1
            decision = self.decide(candidate, assessment)
            if decision is Decision.QUIT:
                logger.info("User quit at %s", candidate.name)
                summary.cancelled = True
                break
            if decision is Decision.APPROVED:
                summary.approved.append(candidate)
            else:
                summary.skipped.append(candidate)
            self.emit("")
        return summary

    def run_batch(
        self, assessed: List[Tuple[UpdateCandidate, RiskAssessment]]
    ) -> DecisionSummary:
        """Show every assessment first, then take one decision for the lot."""
        self.emit(format_frame(assessments_frame(assessed)))
        self.emit("")
        summary = DecisionSummary(presented=len(assessed))
        if self.config.non_interactive:
            summary.approved = [candidate for candidate, _ in assessed]
            return summary

        while True:
            answer = self.prompt("Apply [a]ll / [l]ow-risk only / [n]one / [q]uit: ")
            answer = (answer or "").strip().lower()
            if answer in {"a", "all"}:
                summary.approved = [c for c, _ in assessed]
            elif answer in {"l", "low"}:
                summary.approved = [c for c, a in assessed if a.risk is RiskLevel.LOW]
                summary.skipped = [c for c, a in assessed if a.risk is not RiskLevel.LOW]
            elif answer in {"n", "none"}:
                summary.skipped = [c for c, _ in assessed]
            elif answer in _QUIT:
                summary.cancelled = True
            else:
                self.emit("Please answer a, l, n or q.")
                continue
            return summary
