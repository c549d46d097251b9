"""
Tests for the login flow.

Tests cover:
- Correct and incorrect credentials
- Lockout as an ordinary outcome, not an exception
- A correct password does not get past an active lock
- Every attempt leaves an audit row
- Racing failures at the threshold lock the user exactly once
"""

import threading
from datetime import timedelta

from sqlalchemy import select

from cayden_core.models.audit_log import AuditLog
from cayden_core.models.enums import AuditAction
from cayden_core.models.user import User
from cayden_core.services.auth_service import AuthService, LoginOutcome
from cayden_core.services.user_service import UserService

PASSWORD = "s3cret-passphrase"


def make_user(db_session, email="login@test.com"):
    user = UserService(db_session).register(
        email=email, password=PASSWORD, first_name="Lo", last_name="Gin",
    )
    db_session.commit()
    return user


def actions(db_session, action):
    return db_session.execute(
        select(AuditLog).where(AuditLog.action == action).order_by(AuditLog.id)
    ).scalars().all()


class TestLogin:

    def test_correct_password(self, db_session, settings, clock):
        user = make_user(db_session)

        result = AuthService(db_session, settings, clock).login(
            "login@test.com", PASSWORD, ip_address="127.0.0.1"
        )

        assert result.outcome == LoginOutcome.ALLOWED
        assert result.user_id == user.id
        success = actions(db_session, AuditAction.LOGIN_SUCCESS)
        assert len(success) == 1
        assert success[0].ip_address == "127.0.0.1"

    def test_wrong_password(self, db_session, settings, clock):
        user = make_user(db_session)

        result = AuthService(db_session, settings, clock).login(
            "login@test.com", "nope"
        )

        assert result.outcome == LoginOutcome.REJECTED
        assert user.failed_login_attempts == 1
        failure = actions(db_session, AuditAction.LOGIN_FAILURE)[0]
        assert failure.user_id == user.id
        assert failure.details == {"attempts": 1, "reason": "invalid_credentials"}

    def test_unknown_email(self, db_session, settings, clock):
        result = AuthService(db_session, settings, clock).login(
            "ghost@test.com", PASSWORD
        )

        assert result.outcome == LoginOutcome.REJECTED
        assert result.user_id is None
        failure = actions(db_session, AuditAction.LOGIN_FAILURE)[0]
        assert failure.user_id is None
        assert failure.details["reason"] == "unknown_user"

    def test_success_resets_counter(self, db_session, settings, clock):
        user = make_user(db_session)
        service = AuthService(db_session, settings, clock)
        service.login("login@test.com", "nope")
        service.login("login@test.com", "nope")

        service.login("login@test.com", PASSWORD)

        assert user.failed_login_attempts == 0


class TestLockoutFlow:

    def test_threshold_failure_reports_locked(self, db_session, settings, clock):
        make_user(db_session)
        service = AuthService(db_session, settings, clock)

        results = [
            service.login("login@test.com", "nope")
            for _ in range(settings.MAX_LOGIN_ATTEMPTS)
        ]

        assert [r.outcome for r in results[:-1]] == [LoginOutcome.REJECTED] * 4
        assert results[-1].outcome == LoginOutcome.LOCKED
        assert results[-1].locked_until == clock.now + timedelta(minutes=15)
        assert len(actions(db_session, AuditAction.LOGIN_LOCKOUT)) == 1

    def test_correct_password_refused_while_locked(self, db_session, settings, clock):
        user = make_user(db_session)
        service = AuthService(db_session, settings, clock)
        for _ in range(settings.MAX_LOGIN_ATTEMPTS):
            service.login("login@test.com", "nope")

        result = service.login("login@test.com", PASSWORD)

        assert result.outcome == LoginOutcome.LOCKED
        assert result.retry_after_seconds(clock.now) == 15 * 60
        assert user.failed_login_attempts == settings.MAX_LOGIN_ATTEMPTS
        assert len(actions(db_session, AuditAction.LOGIN_BLOCKED)) == 1
        assert actions(db_session, AuditAction.LOGIN_SUCCESS) == []

    def test_login_after_lock_expires(self, db_session, settings, clock):
        user = make_user(db_session)
        service = AuthService(db_session, settings, clock)
        for _ in range(settings.MAX_LOGIN_ATTEMPTS):
            service.login("login@test.com", "nope")

        clock.advance(timedelta(minutes=15))
        result = service.login("login@test.com", PASSWORD)

        assert result.outcome == LoginOutcome.ALLOWED
        assert user.failed_login_attempts == 0
        assert user.locked_until is None

    def test_blocked_attempt_renews_when_configured(self, db_session, settings, clock):
        settings.LOCKOUT_RENEWS_ON_FAILURE = True
        make_user(db_session)
        service = AuthService(db_session, settings, clock)
        for _ in range(settings.MAX_LOGIN_ATTEMPTS):
            service.login("login@test.com", "nope")

        clock.advance(timedelta(minutes=10))
        result = service.login("login@test.com", PASSWORD)

        assert result.outcome == LoginOutcome.LOCKED
        assert result.locked_until == clock.now + timedelta(minutes=15)

    def test_retry_after_rounds_up(self, db_session, settings, clock):
        make_user(db_session)
        service = AuthService(db_session, settings, clock)
        for _ in range(settings.MAX_LOGIN_ATTEMPTS):
            service.login("login@test.com", "nope")

        result = service.login("login@test.com", PASSWORD)

        assert result.retry_after_seconds(
            clock.now + timedelta(minutes=14, seconds=59, milliseconds=500)
        ) == 1
        assert result.retry_after_seconds(clock.now + timedelta(minutes=20)) == 0


class TestConcurrentFailures:

    def test_racing_failures_at_threshold_lock_once(
        self, db_session, session_factory, settings, clock
    ):
        user = make_user(db_session)
        user_id = user.id
        service = AuthService(db_session, settings, clock)
        for _ in range(settings.MAX_LOGIN_ATTEMPTS - 1):
            service.login("login@test.com", "nope")

        barrier = threading.Barrier(2)
        outcomes = []
        lock = threading.Lock()

        def attempt():
            session = session_factory()
            try:
                barrier.wait()
                result = AuthService(session, settings, clock).login(
                    "login@test.com", "nope"
                )
            finally:
                session.close()
            with lock:
                outcomes.append(result.outcome)

        threads = [threading.Thread(target=attempt) for _ in range(2)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        # Whichever attempt lands second sees the locked row and is
        # refused without counting another failure
        assert outcomes == [LoginOutcome.LOCKED, LoginOutcome.LOCKED]
        db_session.expire_all()
        stored = db_session.get(User, user_id)
        assert stored.failed_login_attempts == settings.MAX_LOGIN_ATTEMPTS
        assert stored.locked_until == clock.now + timedelta(minutes=15)
        assert len(actions(db_session, AuditAction.LOGIN_LOCKOUT)) == 1
        assert len(actions(db_session, AuditAction.LOGIN_BLOCKED)) == 1
        assert len(actions(db_session, AuditAction.LOGIN_FAILURE)) == (
            settings.MAX_LOGIN_ATTEMPTS
        )
