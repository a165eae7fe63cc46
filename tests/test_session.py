# Tests for Session lifecycle and zeroization
# Covers: state machine, close/logout wiping, context manager exit on
#         error, __del__ fallback, use() exclusivity against close()

import gc
import threading

import pytest

from strongbox.core.exceptions import SessionClosedError
from strongbox.crypto.secret import SecretBytes, wipe
from strongbox.vault.session import LoginAttempt, SessionState, check_transition


def _all_zero(buffer):
    return len(buffer) > 0 and all(b == 0 for b in buffer)


# ── State machine ────────────────────────────────────────────────────


class TestStateMachine:
    def test_successful_attempt(self):
        attempt = LoginAttempt("alice")
        assert attempt.state is SessionState.ANONYMOUS
        attempt.begin()
        assert attempt.state is SessionState.AUTHENTICATING
        attempt.succeed()
        assert attempt.state is SessionState.AUTHENTICATED

    def test_failed_attempt_terminates(self):
        attempt = LoginAttempt("alice")
        attempt.begin()
        attempt.fail()
        assert attempt.state is SessionState.TERMINATED

    def test_cannot_skip_authenticating(self):
        with pytest.raises(RuntimeError):
            LoginAttempt("alice").succeed()

    def test_no_reentry_after_authenticated(self):
        with pytest.raises(RuntimeError):
            check_transition(SessionState.AUTHENTICATED, SessionState.AUTHENTICATING)

    def test_terminated_is_final(self):
        with pytest.raises(SessionClosedError):
            check_transition(SessionState.TERMINATED, SessionState.AUTHENTICATED)


# ── Zeroization ──────────────────────────────────────────────────────


class TestSessionClose:
    def test_new_session_is_authenticated(self, make_session):
        session = make_session()
        assert session.state is SessionState.AUTHENTICATED
        assert session.is_active

    def test_close_zeroizes_key_and_passphrase(self, make_session):
        session = make_session()
        key_buf, pass_buf = session._secret_buffers()
        assert key_buf == bytearray(b"\x11" * 32)
        assert pass_buf == bytearray(b"S3cret!")

        session.close()

        assert _all_zero(key_buf)
        assert _all_zero(pass_buf)
        assert session.state is SessionState.TERMINATED
        assert not session.is_active

    def test_close_is_idempotent(self, make_session):
        session = make_session()
        session.close()
        session.close()
        assert session.state is SessionState.TERMINATED

    def test_logout_is_close(self, make_session):
        session = make_session()
        session.logout()
        assert _all_zero(session._secret_buffers()[0])

    def test_context_manager_wipes_on_error(self, make_session):
        session = make_session()
        key_buf, pass_buf = session._secret_buffers()
        with pytest.raises(ZeroDivisionError):
            with session:
                1 / 0
        assert _all_zero(key_buf)
        assert _all_zero(pass_buf)

    def test_dropping_session_wipes(self):
        from strongbox.vault.session import Session
        import uuid

        session = Session(
            uuid.uuid4(), "carol", uuid.uuid4(),
            SecretBytes(b"\x22" * 32), SecretBytes.from_str("pw"),
        )
        key_buf, pass_buf = session._secret_buffers()
        del session
        gc.collect()
        assert _all_zero(key_buf)
        assert _all_zero(pass_buf)

    def test_use_after_close_fails(self, make_session):
        session = make_session()
        session.close()
        with pytest.raises(SessionClosedError):
            with session.use():
                pass

    def test_repr_hides_secrets(self, make_session):
        session = make_session()
        assert "S3cret" not in repr(session)


# ── Exclusive use ────────────────────────────────────────────────────


class TestSessionUse:
    def test_use_exposes_readonly_views(self, make_session):
        session = make_session()
        with session.use() as secrets:
            assert bytes(secrets.vault_key) == b"\x11" * 32
            assert bytes(secrets.passphrase) == b"S3cret!"
            with pytest.raises(TypeError):
                secrets.vault_key[0] = 0

    def test_views_are_released_after_use(self, make_session):
        session = make_session()
        with session.use() as secrets:
            pass
        with pytest.raises(ValueError):
            bytes(secrets.vault_key)

    def test_close_waits_for_in_flight_operation(self, make_session):
        session = make_session()
        entered = threading.Event()
        release = threading.Event()
        seen = []

        def worker():
            with session.use() as secrets:
                entered.set()
                release.wait(5)
                seen.append(bytes(secrets.vault_key))

        t = threading.Thread(target=worker)
        t.start()
        assert entered.wait(5)

        closer = threading.Thread(target=session.close)
        closer.start()
        closer.join(0.2)
        assert closer.is_alive()  # blocked behind the field operation

        release.set()
        t.join(5)
        closer.join(5)

        assert seen == [b"\x11" * 32]
        assert session.state is SessionState.TERMINATED

    def test_sessions_are_independent(self, make_session):
        first = make_session()
        second = make_session()
        first.close()
        assert second.is_active
        with second.use() as secrets:
            assert bytes(secrets.vault_key) == b"\x11" * 32


class TestSecretBytes:
    def test_wipe_helper_zeroes_in_place(self):
        buf = bytearray(b"secret")
        wipe(buf)
        assert buf == bytearray(6)

    def test_view_after_wipe_fails(self):
        secret = SecretBytes(b"abc")
        secret.wipe()
        with pytest.raises(ValueError):
            secret.view()

    def test_repr_is_masked(self):
        assert "abc" not in repr(SecretBytes(b"abc"))
