from datetime import date

import pytest

from models import db
from models.booking import Booking
from models.join_request import JoinRequest, REQUEST_ACCEPTED, REQUEST_DECLINED, REQUEST_PENDING
from models.user import ROLE_PLAYER
from services.booking_service import cancel_booking, create_booking
from services.errors import AuthorizationError, ConflictError, NotFoundError, ValidationError
from services.join_requests import request_join, resolve_join_request

DAY = date(2024, 6, 1)


@pytest.fixture
def public_match(make_user, make_court):
    def _make(members=(), public=True, day=DAY):
        captain = make_user(token="captain-token")
        booking = create_booking(
            captain.id, make_court().id, [day], "10:00", "11:00",
            team_member_ids=[m.id for m in members], is_public=public,
        ).bookings[0]
        return captain, booking
    return _make


class TestRequestJoin:
    def test_creates_pending_request(self, public_match, make_user):
        _, booking = public_match()
        player = make_user()

        req = request_join(booking.id, player.id)

        assert req.status == REQUEST_PENDING
        assert req.requester_id == player.id

    def test_is_idempotent_while_pending(self, public_match, make_user):
        _, booking = public_match()
        player = make_user()

        first = request_join(booking.id, player.id)
        second = request_join(booking.id, player.id)

        assert first.id == second.id
        assert JoinRequest.query.filter_by(booking_id=booking.id).count() == 1

    def test_private_match_rejected(self, public_match, make_user):
        _, booking = public_match(public=False)
        with pytest.raises(ValidationError):
            request_join(booking.id, make_user().id)

    def test_captain_and_members_rejected(self, public_match, make_user):
        member = make_user()
        captain, booking = public_match(members=[member])
        with pytest.raises(ValidationError):
            request_join(booking.id, captain.id)
        with pytest.raises(ValidationError):
            request_join(booking.id, member.id)

    def test_full_match_rejected(self, public_match, make_user):
        _, booking = public_match(members=[make_user() for _ in range(5)])
        with pytest.raises(ValidationError):
            request_join(booking.id, make_user().id)

    def test_cancelled_match_rejected(self, public_match, make_user):
        captain, booking = public_match()
        cancel_booking(booking.id, captain.id, ROLE_PLAYER)
        with pytest.raises(ValidationError):
            request_join(booking.id, make_user().id)

    def test_pending_request_on_cancelled_match_rejected(self, public_match, make_user):
        captain, booking = public_match()
        player = make_user()
        pending = request_join(booking.id, player.id)
        cancel_booking(booking.id, captain.id, ROLE_PLAYER)

        with pytest.raises(ValidationError):
            request_join(booking.id, player.id)
        db.session.expire_all()
        assert db.session.get(JoinRequest, pending.id).status == REQUEST_DECLINED

    def test_missing_booking(self, make_user):
        with pytest.raises(NotFoundError):
            request_join(999, make_user().id)

    def test_after_decline_a_new_request_is_opened(self, public_match, make_user):
        captain, booking = public_match()
        player = make_user()
        declined = request_join(booking.id, player.id)
        resolve_join_request(booking.id, declined.id, captain.id, "Declined")

        again = request_join(booking.id, player.id)

        assert again.id != declined.id
        assert again.status == REQUEST_PENDING
        assert db.session.get(JoinRequest, declined.id).status == REQUEST_DECLINED


class TestResolveJoinRequest:
    def test_accept_adds_member(self, public_match, make_user):
        captain, booking = public_match()
        player = make_user()
        req = request_join(booking.id, player.id)

        resolved = resolve_join_request(booking.id, req.id, captain.id, "Accepted")

        booking = db.session.get(Booking, booking.id)
        assert resolved.status == REQUEST_ACCEPTED
        assert resolved.resolved_by == captain.id
        assert [m.user_id for m in booking.team_members] == [player.id]
        assert booking.total_players == 2

    def test_decline_leaves_roster(self, public_match, make_user):
        captain, booking = public_match()
        req = request_join(booking.id, make_user().id)

        resolve_join_request(booking.id, req.id, captain.id, "decline")

        assert db.session.get(JoinRequest, req.id).status == REQUEST_DECLINED
        assert db.session.get(Booking, booking.id).team_members == []

    def test_only_captain_resolves(self, public_match, make_user):
        _, booking = public_match()
        player = make_user()
        req = request_join(booking.id, player.id)

        with pytest.raises(AuthorizationError):
            resolve_join_request(booking.id, req.id, player.id, "Accepted")
        assert db.session.get(JoinRequest, req.id).status == REQUEST_PENDING

    def test_resolved_once(self, public_match, make_user):
        captain, booking = public_match()
        req = request_join(booking.id, make_user().id)
        resolve_join_request(booking.id, req.id, captain.id, "Accepted")

        with pytest.raises(ValidationError):
            resolve_join_request(booking.id, req.id, captain.id, "Declined")

    def test_accept_when_full_changes_nothing(self, public_match, make_user):
        captain, booking = public_match(members=[make_user() for _ in range(4)])
        first, second = make_user(), make_user()
        req1 = request_join(booking.id, first.id)
        req2 = request_join(booking.id, second.id)
        resolve_join_request(booking.id, req1.id, captain.id, "Accepted")

        with pytest.raises(ValidationError):
            resolve_join_request(booking.id, req2.id, captain.id, "Accepted")

        booking = db.session.get(Booking, booking.id)
        assert booking.total_players == 6
        assert len(booking.team_members) == 5
        assert db.session.get(JoinRequest, req2.id).status == REQUEST_PENDING

    def test_accept_respects_daily_quota(self, public_match, make_user, make_court):
        captain, booking = public_match()
        player = make_user()
        req = request_join(booking.id, player.id)
        create_booking(player.id, make_court().id, [DAY], "18:00", "19:00")

        with pytest.raises(ConflictError) as exc:
            resolve_join_request(booking.id, req.id, captain.id, "Accepted")

        assert exc.value.user_id == player.id
        assert db.session.get(Booking, booking.id).team_members == []

    def test_request_from_other_booking_not_found(self, public_match, make_user):
        captain, booking = public_match()
        _, other = public_match(day=date(2024, 6, 2))
        req = request_join(other.id, make_user().id)

        with pytest.raises(NotFoundError):
            resolve_join_request(booking.id, req.id, captain.id, "Accepted")

    def test_unknown_decision(self, public_match, make_user):
        captain, booking = public_match()
        req = request_join(booking.id, make_user().id)
        with pytest.raises(ValidationError):
            resolve_join_request(booking.id, req.id, captain.id, "Maybe")
