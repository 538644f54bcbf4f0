"""
Tests for flow lifecycle callbacks: pass issuance, accrual and termination.
"""
import pytest

from streampass.conftest import FLOW_RATE, HOST, TOKEN
from streampass.core.database import MAX_UINT256
from streampass.core.errors import (
    AccrualOverflowError,
    DuplicateStreamError,
    FlowNotFoundError,
    NotFoundError,
    ValidationError,
)


class TestStreamCreation:
    def test_pass_id_starts_at_one(self, sub, streams):
        assert sub.balance_of("user1") == 0

        streams.create("user1")

        with pytest.raises(NotFoundError, match="invalid token ID"):
            sub.owner_of(0)
        assert sub.owner_of(1) == "user1"
        assert sub.token_of_owner_by_index("user1", 0) == 1

    def test_issue_pass_sets_active_pass(self, sub, streams):
        streams.create("user1")

        assert sub.balance_of("user1") == 1
        assert sub.active_pass("user1") == 1
        assert sub.pass_state(1) is True
        assert sub.ttv(1) == 0

    def test_pass_ids_increase_per_subscriber(self, sub, streams):
        streams.create("user1")
        streams.create("user2")

        assert sub.owner_of(2) == "user2"
        assert sub.active_pass("user2") == 2
        assert sub.total_supply() == 2

    def test_subscriber_cannot_create_two_streams(self, sub, streams):
        streams.create("user1")

        with pytest.raises(DuplicateStreamError, match="flow already exist"):
            streams.create("user1")
        assert sub.total_supply() == 1
        assert sub.active_pass("user1") == 1

    def test_subscriber_cannot_update_missing_stream(self, sub, streams):
        assert streams.rate("user1") == 0

        with pytest.raises(FlowNotFoundError, match="flow does not exist"):
            streams.update("user1", 100_000_000)
        assert sub.total_supply() == 0

    def test_activate_pass_if_subscriber_already_owns_one(self, sub, streams):
        streams.create("user1")
        sub.transfer_from("user1", "user1", "user2", 1)
        assert sub.owner_of(1) == "user2"
        assert sub.active_pass("user2") == 0
        assert sub.pass_state(1) is False

        streams.create("user2")

        assert sub.active_pass("user2") == 1
        assert sub.pass_state(1) is True
        assert sub.total_supply() == 1

    def test_resubscribe_reuses_most_recently_deactivated_pass(self, sub, streams, clock):
        streams.create("user1")
        streams.create("user2")
        # user1's own pass 1 is deactivated first
        streams.delete("user1")
        clock.advance(10)
        # then user2 hands over its active pass 2, which deactivates it later
        sub.transfer_from("user2", "user2", "user1", 2)
        assert sub.balance_of("user1") == 2

        streams.create("user1")

        assert sub.active_pass("user1") == 2
        assert sub.pass_state(2) is True
        assert sub.pass_state(1) is False
        assert sub.total_supply() == 2

    def test_resubscribe_after_termination_reuses_own_pass(self, sub, streams, clock):
        streams.create("user1")
        clock.advance(100)
        streams.delete("user1")
        frozen = sub.ttv(1)

        clock.advance(50)
        streams.create("user1", 200_000_000)

        assert sub.active_pass("user1") == 1
        assert sub.ttv(1) == frozen
        clock.advance(10)
        assert sub.ttv(1) == frozen + 200_000_000 * 10


class TestStreamUpdate:
    def test_update_logs_transmitted_value(self, sub, streams, clock):
        streams.create("user1")
        assert sub.ttv(1) == 0

        clock.advance(3600)
        streams.update("user1", 200_000_000)

        assert sub.ttv(1) > 200_000_000
        p = sub.get_pass(1)
        assert p.ttv == FLOW_RATE * 3600
        assert p.last_flow_rate == 200_000_000
        assert p.last_update == clock.now

    def test_value_after_an_hour_at_new_rate(self, sub, streams, clock):
        streams.create("user1", 200_000_000)

        # the block carrying the update lands one second after the hour
        clock.advance(3601)
        streams.update("user1", 250_000_000)

        assert sub.ttv(1) > 200_000_000 * 3600
        assert sub.get_pass(1).ttv == 200_000_000 * 3601

    def test_failed_accrual_commits_nothing(self, sub, streams, clock):
        huge_rate = MAX_UINT256 // 10
        streams.create("user1", huge_rate)
        before = sub.get_pass(1)

        clock.advance(100)
        with pytest.raises(AccrualOverflowError):
            streams.update("user1", 1)

        assert sub.get_pass(1) == before
        assert sub.active_pass("user1") == 1
        assert streams.rate("user1") == huge_rate


class TestStreamTermination:
    def test_deactivate_pass_state(self, sub, streams):
        streams.create("user1")
        assert sub.pass_state(1) is True

        streams.delete("user1")

        assert sub.pass_state(1) is False

    def test_remove_active_pass_from_subscriber(self, sub, streams):
        streams.create("user1")
        assert sub.active_pass("user1") == 1

        streams.delete("user1")

        assert sub.active_pass("user1") == 0
        assert sub.owner_of(1) == "user1"

    def test_termination_freezes_ttv(self, sub, streams, clock):
        streams.create("user1")
        clock.advance(3600)

        streams.delete("user1")

        assert sub.ttv(1) == FLOW_RATE * 3600
        assert sub.get_pass(1).last_flow_rate == 0
        clock.advance(7200)
        assert sub.ttv(1) == FLOW_RATE * 3600

    def test_repeated_termination_is_noop(self, sub, streams, clock):
        streams.create("user1")
        clock.advance(60)
        streams.delete("user1")
        before = sub.get_pass(1)

        clock.advance(60)
        assert sub.on_flow_terminated(TOKEN, "user1", 0, host=HOST) == 0

        assert sub.get_pass(1) == before
        assert sub.active_pass("user1") == 0


class TestCallbackOrigin:
    def test_unknown_token_rejected_before_any_change(self, sub):
        with pytest.raises(ValidationError, match="Token not accepted"):
            sub.on_flow_created("other-token", "user1", FLOW_RATE, host=HOST)

        assert sub.total_supply() == 0
        assert sub.active_pass("user1") == 0

    def test_unknown_host_rejected_before_any_change(self, sub, streams):
        streams.create("user1")
        before = sub.get_pass(1)

        with pytest.raises(ValidationError, match="Unsupported protocol host"):
            sub.on_flow_terminated(TOKEN, "user1", FLOW_RATE, host="impostor")

        assert sub.get_pass(1) == before
        assert sub.active_pass("user1") == 1

    def test_direct_callbacks_drive_state(self, sub, clock):
        assert sub.on_flow_created(TOKEN, "user1", FLOW_RATE, host=HOST) == 1
        clock.advance(10)
        assert sub.on_flow_updated(TOKEN, "user1", FLOW_RATE, 2 * FLOW_RATE, host=HOST) == 1
        clock.advance(10)
        assert sub.on_flow_terminated(TOKEN, "user1", 2 * FLOW_RATE, host=HOST) == 1

        assert sub.ttv(1) == FLOW_RATE * 10 + 2 * FLOW_RATE * 10
        assert sub.active_pass("user1") == 0
