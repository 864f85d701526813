"""Tests for the approval state machine and engine."""

from dataclasses import replace

from tests.fakes import ScriptedPrompt

from update_advisor.assessment import compose_assessment
from update_advisor.decisions import (
    DecisionEngine,
    Phase,
    PromptState,
    transition,
)
from update_advisor.models import (
    Decision,
    ImpactReport,
    NEUTRAL_SIGNAL,
    Source,
    UpdateCandidate,
    Verbosity,
)


def assessed(*specs):
    pairs = []
    for name, current, latest in specs:
        candidate = UpdateCandidate(name, Source.PIP, current, latest)
        pairs.append((candidate, compose_assessment(candidate, ImpactReport(), NEUTRAL_SIGNAL)))
    return pairs


def test_transition_table():
    awaiting = transition(PromptState())
    assert awaiting.phase is Phase.AWAITING_DECISION
    assert transition(awaiting, "y").decision is Decision.APPROVED
    assert transition(awaiting, "No").decision is Decision.SKIPPED
    assert transition(awaiting, " q ").decision is Decision.QUIT
    assert transition(awaiting, "maybe") == awaiting

    details = transition(awaiting, "d")
    assert details.phase is Phase.SHOWING_DETAILS
    back = transition(details)
    assert back == PromptState(Phase.AWAITING_DECISION, details_shown=True)
    # Details are offered only once.
    assert transition(back, "d") == back


def test_terminal_states_are_absorbing():
    done = PromptState(Phase.APPROVED)
    assert transition(done, "n") is done


def test_unrecognized_input_reprompts_same_candidate(config):
    prompt = ScriptedPrompt(["huh", "", "y"])
    output = []
    engine = DecisionEngine(config, prompt=prompt, emit=output.append)

    summary = engine.run(assessed(("a", "1.0.0", "1.0.1")))

    assert [c.name for c in summary.approved] == ["a"]
    assert len(prompt.questions) == 3


def test_details_forces_verbose_and_is_not_offered_again(config):
    prompt = ScriptedPrompt(["d", "d", "n"])
    output = []
    engine = DecisionEngine(replace(config, verbosity=Verbosity.SUMMARY), prompt=prompt,
                            emit=output.append)

    summary = engine.run(assessed(("a", "1.0.0", "2.0.0")))

    assert [c.name for c in summary.skipped] == ["a"]
    assert "[d]etails" in prompt.questions[0]
    assert "[d]etails" not in prompt.questions[1]
    assert any("Risk factors:" in line for line in output)


def test_quit_aborts_all_remaining(config):
    prompt = ScriptedPrompt(["y", "q"])
    output = []
    engine = DecisionEngine(config, prompt=prompt, emit=output.append)
    presented = []

    def lazily(pairs):
        for pair in pairs:
            presented.append(pair[0].name)
            yield pair

    summary = engine.run(lazily(assessed(
        ("a", "1.0.0", "1.0.1"), ("b", "1.0.0", "1.1.0"), ("c", "1.0.0", "2.0.0")
    )))

    assert [c.name for c in summary.approved] == ["a"]
    assert summary.skipped == []
    assert summary.cancelled
    assert presented == ["a", "b"]
    assert not any("📦 c" in line for line in output)


def test_non_interactive_approves_without_prompting(auto_config):
    def no_prompt(question):
        raise AssertionError("prompted in non-interactive mode")

    engine = DecisionEngine(auto_config, prompt=no_prompt, emit=lambda line: None)
    summary = engine.run(assessed(("a", "1.0.0", "1.0.1"), ("b", "1.0.0", "3.0.0")))
    assert [c.name for c in summary.approved] == ["a", "b"]


def test_batch_low_risk_only(config):
    pairs = assessed(("a", "1.0.0", "1.0.1"), ("b", "1.0.0", "2.0.0"))
    output = []
    engine = DecisionEngine(config, prompt=ScriptedPrompt(["?", "l"]), emit=output.append)

    summary = engine.run_batch(pairs)

    assert [c.name for c in summary.approved] == ["a"]
    assert [c.name for c in summary.skipped] == ["b"]
    assert "package" in output[0] and "risk" in output[0]


def test_batch_quit_cancels(config):
    engine = DecisionEngine(config, prompt=ScriptedPrompt(["q"]), emit=lambda line: None)
    summary = engine.run_batch(assessed(("a", "1.0.0", "1.0.1")))
    assert summary.cancelled
    assert summary.approved == []
