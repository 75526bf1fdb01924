"""Tests for lookup sessions."""

from datetime import timedelta

import pytest

from urgent_care_intake.errors import SessionExpired, SessionInvalid
from urgent_care_intake.session import LookupSession, SessionManager, SessionState


@pytest.fixture
def sessions(patient_repo, visit_repo, clock):
    return SessionManager(patient_repo, visit_repo, ttl_minutes=30, clock=clock)


@pytest.fixture
def visit(visit_repo, pat, client):
    return visit_repo.create_visit(pat.id, "returning", client)


class TestSessionLifecycle:
    """Tests for issue, expiry, extension and revocation."""

    def test_issue_sets_expiry(self, sessions, pat, visit, clock):
        session = sessions.issue(pat.id, visit.id)
        assert session.issued_at == clock.now
        assert session.expires_at == clock.now + timedelta(minutes=30)
        assert sessions.is_valid(session)

    def test_valid_until_expiry(self, sessions, pat, visit, clock):
        session = sessions.issue(pat.id, visit.id)
        clock.advance(minutes=29, seconds=59)
        assert sessions.is_valid(session)

    def test_expires_at_ttl(self, sessions, pat, visit, clock):
        session = sessions.issue(pat.id, visit.id)
        clock.advance(minutes=30)
        assert session.state(clock.now) is SessionState.EXPIRED
        assert sessions.is_valid(session) is False
        with pytest.raises(SessionExpired):
            sessions.require(session)

    def test_extend_resets_expiry(self, sessions, pat, visit, clock):
        session = sessions.issue(pat.id, visit.id)
        clock.advance(minutes=20)
        extended = sessions.extend(session)
        assert extended.expires_at == clock.now + timedelta(minutes=30)
        clock.advance(minutes=20)
        assert sessions.is_valid(extended)

    def test_extend_after_expiry_fails(self, sessions, pat, visit, clock):
        session = sessions.issue(pat.id, visit.id)
        clock.advance(minutes=31)
        with pytest.raises(SessionExpired):
            sessions.extend(session)

    def test_revoke_is_terminal(self, sessions, pat, visit):
        session = sessions.issue(pat.id, visit.id)
        sessions.revoke(session)
        assert session.state(session.issued_at) is SessionState.REVOKED
        assert sessions.is_valid(session) is False
        with pytest.raises(SessionInvalid):
            sessions.extend(session)

    def test_revoke_none_is_noop(self, sessions):
        sessions.revoke(None)

    def test_explicit_zero_ttl_expires_immediately(self, sessions, pat, visit, clock):
        session = sessions.issue(pat.id, visit.id, ttl_minutes=0)
        assert session.expires_at == clock.now
        assert sessions.is_valid(session) is False

    def test_extend_with_zero_ttl(self, sessions, pat, visit, clock):
        session = sessions.issue(pat.id, visit.id)
        clock.advance(minutes=5)
        assert sessions.extend(session, ttl_minutes=0).expires_at == clock.now


class TestSessionValidation:
    """Tests for sessions that no longer resolve."""

    def test_missing_session(self, sessions):
        with pytest.raises(SessionInvalid):
            sessions.require(None)

    def test_unknown_patient(self, sessions, visit):
        session = sessions.issue("p-missing", visit.id)
        with pytest.raises(SessionInvalid):
            sessions.require(session)

    def test_unknown_visit(self, sessions, pat):
        session = sessions.issue(pat.id, "v-missing")
        assert sessions.is_valid(session) is False


class TestSessionData:
    """Tests for converting sessions to and from plain session data."""

    def test_round_trip(self, sessions, pat, visit):
        session = sessions.issue(pat.id, visit.id)
        assert LookupSession.from_session_data(session.as_session_data()) == session

    def test_incomplete_data(self):
        assert LookupSession.from_session_data(None) is None
        assert LookupSession.from_session_data({"patient_id": "p-1"}) is None
