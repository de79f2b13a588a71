"""Property-based tests for pipeline state, retry and failure containment."""

import asyncio

import pytest
from hypothesis import given, settings
from hypothesis import strategies as st

from rawi.models.errors import (
    ErrorKind,
    ErrorResponse,
    RawiError,
    RemoteError,
    RemoteFailureError,
    error_for_status,
)
from rawi.models.pipeline import (
    STAGE_ORDER,
    PipelineStage,
    PipelineState,
    RunStatus,
    StageStatus,
)
from rawi.pipeline.orchestrator import PipelineOrchestrator
from rawi.pipeline.retry import RetryPolicy, call_with_retry
from tests.conftest import FakeServiceClient, RecordingSleep, make_settings
from tests.property.conftest import remote_errors

pytestmark = pytest.mark.property

REMOTE_STAGES = {
    "image": PipelineStage.IMAGE_GENERATION,
    "voiceover": PipelineStage.VOICE_OVER,
    "music": PipelineStage.MUSIC,
}
LATER_ENDPOINTS = {
    "image": ["voiceover", "music"],
    "voiceover": ["music"],
    "music": [],
}


def assert_state_invariants(state: PipelineState) -> None:
    statuses = [state.stages[s] for s in STAGE_ORDER]
    assert statuses.count(StageStatus.ACTIVE) <= 1
    assert statuses.count(StageStatus.FAILED) <= 1
    for i, status in enumerate(statuses):
        if status != StageStatus.PENDING:
            assert all(s == StageStatus.COMPLETED for s in statuses[:i])


class TestStateMachineProperties:
    @given(
        moves=st.lists(
            st.tuples(st.sampled_from(list(PipelineStage)), st.sampled_from(list(StageStatus))),
            max_size=30,
        )
    )
    @settings(max_examples=200)
    def test_any_move_sequence_keeps_invariants(self, moves):
        """Legal moves are applied, illegal ones rejected; invariants always hold."""
        state = PipelineState(run_id="r").with_status(RunStatus.RUNNING)
        for stage, status in moves:
            try:
                state = state.with_stage(stage, status)
            except RawiError as e:
                assert e.kind == ErrorKind.PIPELINE
            assert_state_invariants(state)

    @given(n_completed=st.integers(min_value=0, max_value=len(STAGE_ORDER)))
    @settings(max_examples=20)
    def test_progress_matches_completed(self, n_completed):
        state = PipelineState(run_id="r").with_status(RunStatus.RUNNING)
        for stage in STAGE_ORDER[:n_completed]:
            state = state.with_stage(stage, StageStatus.ACTIVE)
            state = state.with_stage(stage, StageStatus.COMPLETED)
        assert state.progress == pytest.approx(n_completed / len(STAGE_ORDER))


class TestRetryProperties:
    @given(
        failures=st.integers(min_value=0, max_value=6),
        budget=st.integers(min_value=0, max_value=4),
        error=remote_errors,
    )
    @settings(max_examples=100, deadline=None)
    def test_attempts_bounded_by_budget(self, failures, budget, error):
        calls = 0

        async def operation():
            nonlocal calls
            calls += 1
            if calls <= failures:
                raise error
            return "ok"

        sleep = RecordingSleep()
        policy = RetryPolicy(max_retries=budget, backoff_seconds=2.0)

        async def attempt():
            return await call_with_retry(operation, policy, sleep)

        if failures <= budget:
            assert asyncio.run(attempt()) == "ok"
            assert calls == failures + 1
        else:
            with pytest.raises(RemoteError) as exc_info:
                asyncio.run(attempt())
            assert exc_info.value.kind == error.kind
            assert calls == budget + 1
        assert sleep.delays == [2.0] * (calls - 1)

    @given(status=st.integers(min_value=400, max_value=599))
    @settings(max_examples=100)
    def test_every_status_is_classified(self, status):
        err = error_for_status(status)
        expected = {429: ErrorKind.RATE_LIMITED, 402: ErrorKind.QUOTA_EXHAUSTED}
        assert err.kind == expected.get(status, ErrorKind.REMOTE_FAILURE)
        resp = ErrorResponse.from_exception(err)
        assert resp.kind == err.kind.value
        assert resp.model_dump_json()


class TestFailureContainmentProperties:
    @given(
        endpoint=st.sampled_from(sorted(REMOTE_STAGES)),
        error=remote_errors,
        n_scenes=st.integers(min_value=1, max_value=5),
    )
    @settings(max_examples=50, deadline=None)
    def test_failing_stage_stops_later_stages(self, endpoint, error, n_scenes):
        story = {
            "title": "T",
            "scenes": [{"text": f"scene {i}", "imagePrompt": f"p{i}"} for i in range(n_scenes)],
        }
        client = FakeServiceClient(story=story)
        client.fail(endpoint, error)
        orchestrator = PipelineOrchestrator(
            client=client, settings=make_settings(), sleep=RecordingSleep()
        )

        with pytest.raises(RemoteError):
            asyncio.run(orchestrator.run("T", 5))

        failed = REMOTE_STAGES[endpoint]
        state = orchestrator.state
        assert state.status == RunStatus.FAILED
        assert state.failed_stage == failed
        assert state.error.kind == error.kind
        index = STAGE_ORDER.index(failed)
        assert all(state.stages[s] == StageStatus.COMPLETED for s in STAGE_ORDER[:index])
        assert all(state.stages[s] == StageStatus.PENDING for s in STAGE_ORDER[index + 1 :])
        assert len(client.calls[endpoint]) == 3
        for later in LATER_ENDPOINTS[endpoint]:
            assert client.calls[later] == []
        assert_state_invariants(state)

    @given(fail_music=st.booleans(), resets=st.integers(min_value=1, max_value=3))
    @settings(max_examples=20, deadline=None)
    def test_reset_is_idempotent(self, fail_music, resets):
        client = FakeServiceClient()
        if fail_music:
            client.fail("music", RemoteFailureError("down"))
        orchestrator = PipelineOrchestrator(
            client=client, settings=make_settings(max_retries=0), sleep=RecordingSleep()
        )
        try:
            asyncio.run(orchestrator.run("T", 5))
        except RawiError:
            pass
        for _ in range(resets):
            orchestrator.reset()
            assert orchestrator.state == PipelineState()
            assert orchestrator.output.is_empty
