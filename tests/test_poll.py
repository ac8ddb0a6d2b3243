"""Tests for the submit-then-poll state machine."""

from unittest.mock import AsyncMock

import pytest

from conftest import FakeTransport, transport_error
from fireblocks_signer.asset import Asset
from fireblocks_signer.errors import (
    Outcome,
    RemoteTerminalFailure,
    SubmissionError,
    TimedOut,
)
from fireblocks_signer.models import TransactionResponse
from fireblocks_signer.signing.canonical import canonicalize
from fireblocks_signer.signing.poll import PollConfig, PollEngine, PollPhase
from fireblocks_signer.transport.base import TransportPort


@pytest.fixture
def request_for(keypair, message):
    return canonicalize(message, keypair.pubkey(), Asset.SOL_TEST, "0")


def make_engine(transport, clock, timeout=15.0, interval=3.0, callback=None):
    config = PollConfig(timeout=timeout, interval=interval, callback=callback or (lambda r: None))
    return PollEngine(transport, config, clock=clock, sleep=clock.sleep)


class TestPollConfig:
    """Tests for poll timing validation."""

    def test_defaults(self):
        config = PollConfig()
        assert config.timeout == 15.0
        assert config.interval == 5.0

    @pytest.mark.parametrize("timeout,interval", [(0, 1), (-1, 1), (10, 0), (10, -2)])
    def test_rejects_non_positive(self, timeout, interval):
        with pytest.raises(ValueError):
            PollConfig(timeout=timeout, interval=interval)


class TestSubmission:
    """Tests for submission and the SUBMITTED state."""

    @pytest.mark.asyncio
    async def test_submit_error_never_polls(self, keypair, clock, request_for):
        transport = FakeTransport(keypair, ["COMPLETED"], submit_error=transport_error(401))
        engine = make_engine(transport, clock)

        with pytest.raises(SubmissionError) as exc:
            await engine.run(request_for)

        assert transport.queries == []
        assert clock.sleeps == []
        assert exc.value.outcome is Outcome.NOT_SUBMITTED
        assert exc.value.retry_safe is True
        assert exc.value.__cause__.status_code == 401

    @pytest.mark.asyncio
    async def test_submit_sets_deadline_from_submission(self, keypair, clock, request_for):
        clock.now = 100.0
        transport = FakeTransport(keypair, ["COMPLETED"])
        engine = make_engine(transport, clock, timeout=15.0)

        state = await engine.submit(request_for)

        assert state.request_id == "tx-1"
        assert state.started_at == 100.0
        assert state.deadline == 115.0
        assert state.phase is PollPhase.SUBMITTED


class TestPolling:
    """Tests for the POLLING state and its terminal transitions."""

    @pytest.mark.asyncio
    async def test_pending_four_times_then_completed(self, keypair, clock, request_for):
        """timeout=15s, interval=3s, completed on the fifth poll."""
        statuses = ["PENDING_SIGNATURE"] * 4 + ["COMPLETED"]
        transport = FakeTransport(keypair, statuses, clock=clock)
        engine = make_engine(transport, clock)

        state, response = await engine.run(request_for)

        assert response.status == "COMPLETED"
        assert state.phase is PollPhase.SUCCEEDED
        assert state.polls == 5
        assert transport.query_times == [0.0, 3.0, 6.0, 9.0, 12.0]

    @pytest.mark.asyncio
    async def test_pending_forever_times_out(self, keypair, clock, request_for):
        """timeout=15s, interval=3s, pending on every poll."""
        transport = FakeTransport(keypair, ["PENDING_AUTHORIZATION"], clock=clock)
        engine = make_engine(transport, clock)

        with pytest.raises(TimedOut) as exc:
            await engine.run(request_for)

        assert exc.value.outcome is Outcome.UNKNOWN
        assert exc.value.retry_safe is False
        assert exc.value.last_status == "PENDING_AUTHORIZATION"
        assert exc.value.request_id == "tx-1"
        assert clock.now <= 15.0 + 3.0
        assert transport.query_times[-1] == 15.0

    @pytest.mark.asyncio
    async def test_timeout_overshoot_bounded_by_interval(self, keypair, clock, request_for):
        transport = FakeTransport(keypair, ["QUEUED"], clock=clock)
        engine = make_engine(transport, clock, timeout=10.0, interval=4.0)

        with pytest.raises(TimedOut):
            await engine.run(request_for)

        # Last sleep is clipped to the remaining time
        assert clock.sleeps == [4.0, 4.0, 2.0]
        assert clock.now - 10.0 <= 4.0

    @pytest.mark.asyncio
    async def test_blocked_fails_immediately(self, keypair, clock, request_for):
        transport = FakeTransport(keypair, ["BLOCKED"], clock=clock)
        engine = make_engine(transport, clock)

        with pytest.raises(RemoteTerminalFailure) as exc:
            await engine.run(request_for)

        assert exc.value.reason == "BLOCKED"
        assert exc.value.sub_status == "BLOCKED_BY_POLICY"
        assert exc.value.outcome is Outcome.FAILED
        assert len(transport.queries) == 1
        assert clock.sleeps == []

    @pytest.mark.asyncio
    @pytest.mark.parametrize("status", ["FAILED", "REJECTED", "CANCELLED", "CANCELLING"])
    async def test_terminal_failures_preserve_reason(self, keypair, clock, request_for, status):
        transport = FakeTransport(keypair, ["SUBMITTED", status], clock=clock)
        engine = make_engine(transport, clock)

        with pytest.raises(RemoteTerminalFailure) as exc:
            await engine.run(request_for)

        assert exc.value.reason == status
        assert len(transport.queries) == 2

    @pytest.mark.asyncio
    async def test_confirming_is_success(self, keypair, clock, request_for):
        transport = FakeTransport(keypair, ["BROADCASTING", "CONFIRMING"], clock=clock)
        engine = make_engine(transport, clock)

        state, response = await engine.run(request_for)

        assert response.status == "CONFIRMING"
        assert state.history == ["BROADCASTING", "CONFIRMING"]

    @pytest.mark.asyncio
    async def test_transport_errors_retried_until_success(self, keypair, clock, request_for):
        statuses = [transport_error(), transport_error(502), "PENDING_SIGNATURE", "COMPLETED"]
        transport = FakeTransport(keypair, statuses, clock=clock)
        engine = make_engine(transport, clock)

        state, response = await engine.run(request_for)

        assert response.status == "COMPLETED"
        assert state.polls == 4
        assert "502" in state.last_error

    @pytest.mark.asyncio
    async def test_transport_errors_until_deadline_time_out(self, keypair, clock, request_for):
        transport = FakeTransport(keypair, [transport_error()], clock=clock)
        engine = make_engine(transport, clock)

        with pytest.raises(TimedOut) as exc:
            await engine.run(request_for)

        assert exc.value.last_status is None
        assert clock.now == 15.0

    @pytest.mark.asyncio
    async def test_unknown_status_keeps_polling(self, keypair, clock, request_for):
        transport = FakeTransport(keypair, ["PENDING_NEW_FEATURE", "COMPLETED"], clock=clock)
        engine = make_engine(transport, clock)

        state, response = await engine.run(request_for)

        assert response.status == "COMPLETED"
        assert transport.query_times == [0.0, 3.0]

    @pytest.mark.asyncio
    async def test_callback_sees_in_flight_statuses(self, keypair, clock, request_for):
        seen = []
        transport = FakeTransport(keypair, ["SUBMITTED", "QUEUED", "COMPLETED"], clock=clock)
        engine = make_engine(transport, clock, callback=lambda r: seen.append(r.status))

        await engine.run(request_for)

        assert seen == ["SUBMITTED", "QUEUED"]


class TestTransportCalls:
    """Tests for the calls made on the transport port."""

    @pytest.mark.asyncio
    async def test_query_uses_submitted_id(self, clock, request_for):
        transport = AsyncMock(spec=TransportPort)
        transport.submit.return_value = "abc-123"
        transport.query.return_value = TransactionResponse(id="abc-123", status="COMPLETED", tx_hash="sig")
        engine = make_engine(transport, clock)

        state, response = await engine.run(request_for)

        transport.submit.assert_awaited_once_with(request_for)
        transport.query.assert_awaited_once_with("abc-123")
        transport.vault_address.assert_not_called()
        assert response.tx_hash == "sig"

    @pytest.mark.asyncio
    async def test_submit_error_skips_query(self, clock, request_for):
        transport = AsyncMock(spec=TransportPort)
        transport.submit.side_effect = transport_error(500)
        engine = make_engine(transport, clock)

        with pytest.raises(SubmissionError):
            await engine.run(request_for)

        transport.query.assert_not_called()


class TestPollPhases:
    """Tests for the phases a poll state passes through."""

    def test_phases(self):
        assert [phase.name for phase in PollPhase] == [
            "SUBMITTED",
            "POLLING",
            "SUCCEEDED",
            "FAILED",
            "TIMED_OUT",
        ]

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "statuses,expected",
        [
            (["COMPLETED"], PollPhase.SUCCEEDED),
            (["BLOCKED"], PollPhase.FAILED),
            (["QUEUED"], PollPhase.TIMED_OUT),
        ],
    )
    async def test_every_phase_reached(self, keypair, clock, request_for, statuses, expected):
        engine = make_engine(FakeTransport(keypair, statuses, clock=clock), clock)
        state = await engine.submit(request_for)
        assert state.phase is PollPhase.SUBMITTED

        try:
            await engine.poll(state)
        except (RemoteTerminalFailure, TimedOut):
            pass

        assert state.phase is expected
