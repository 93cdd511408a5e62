from datetime import date, timedelta

import pytest

from models.user import MEMBERSHIP_ACTIVE, MEMBERSHIP_INACTIVE
from services.membership import (
    MembershipState,
    NOTICE_EXPIRED,
    NOTICE_THRESHOLD,
    TRANSITION_EXPIRE,
    TRANSITION_NONE,
    TRANSITION_NOTIFY,
    TRANSITION_REARM,
    compute_expiry_action,
    days_left,
)

TODAY = date(2024, 6, 1)


def active(expiry_in, last=None):
    return MembershipState(MEMBERSHIP_ACTIVE, TODAY + timedelta(days=expiry_in), last)


def test_days_left_is_day_granular():
    assert days_left(TODAY, TODAY + timedelta(days=5)) == 5
    assert days_left("2024-06-01", "2024-05-31") == -1


@pytest.mark.parametrize("left", [5, 3, 1, 0])
def test_threshold_fires_once(left):
    action = compute_expiry_action(TODAY, active(left))

    assert action.transition == TRANSITION_NOTIFY
    assert action.notice.kind == NOTICE_THRESHOLD
    assert action.notice.days_left == left
    assert action.new_state.last_warning_day == left

    again = compute_expiry_action(TODAY, action.new_state)
    assert again.transition == TRANSITION_NONE
    assert again.notice is None
    assert again.new_state == action.new_state


def test_expired_deactivates_and_clears_warning():
    action = compute_expiry_action(TODAY, active(-1, last=0))

    assert action.transition == TRANSITION_EXPIRE
    assert action.notice.kind == NOTICE_EXPIRED
    assert action.new_state.status == MEMBERSHIP_INACTIVE
    assert action.new_state.last_warning_day is None


def test_inactive_or_undated_is_noop():
    inactive = MembershipState(MEMBERSHIP_INACTIVE, TODAY - timedelta(days=3), None)
    undated = MembershipState(MEMBERSHIP_ACTIVE, None, None)

    assert compute_expiry_action(TODAY, inactive).transition == TRANSITION_NONE
    assert compute_expiry_action(TODAY, undated).transition == TRANSITION_NONE


def test_between_thresholds_rearms():
    action = compute_expiry_action(TODAY, active(4, last=5))

    assert action.transition == TRANSITION_REARM
    assert action.notice is None
    assert action.new_state.last_warning_day is None


def test_between_thresholds_without_flag_is_noop():
    assert compute_expiry_action(TODAY, active(10)).transition == TRANSITION_NONE
    assert compute_expiry_action(TODAY, active(2)).transition == TRANSITION_NONE


def test_five_four_three_countdown():
    state = active(5)
    fired = []
    for offset in range(3):
        action = compute_expiry_action(TODAY + timedelta(days=offset), state)
        if action.notice:
            fired.append(action.notice.days_left)
        state = action.new_state

    assert fired == [5, 3]
    assert state.last_warning_day == 3


def test_stale_flag_from_previous_period_does_not_block():
    # flag set to 3 in an older period; new period is now at 3 days again
    action = compute_expiry_action(TODAY, active(3, last=5))
    assert action.transition == TRANSITION_NOTIFY
    assert action.new_state.last_warning_day == 3


def test_pure_function_leaves_input_untouched():
    state = active(5)
    compute_expiry_action(TODAY, state)
    assert state.last_warning_day is None
