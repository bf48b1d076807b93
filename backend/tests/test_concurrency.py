"""
Transaction boundary tests: fail closed, bounded duration, retry on conflicts.
"""

import time

import pytest
from sqlalchemy.exc import OperationalError

from cyberphone.errors import TransactionTimeoutError, ValidationError
from cyberphone.models import WalletTransaction
from cyberphone.services import ledger_service
from cyberphone.services.concurrency import run_in_transaction, run_with_retry


class TestRunInTransaction:
    def test_error_rolls_back_everything(self, db_session, make_user):
        ana = make_user("ana", balance_cents=1000)

        def _op():
            ledger_service.post_adjustment(ana.id, 500, "First half")
            raise ValidationError("boom")

        with pytest.raises(ValidationError):
            run_in_transaction(_op)

        assert ledger_service.verify_ledger(ana.id)["stored_cents"] == 1000
        assert db_session.query(WalletTransaction).filter_by(user_id=ana.id).count() == 1

    def test_timeout_fails_closed(self, db_session, make_user):
        ana = make_user("ana", balance_cents=1000)

        def _slow():
            ledger_service.post_adjustment(ana.id, -300, "Slow debit")
            time.sleep(0.05)

        with pytest.raises(TransactionTimeoutError) as exc:
            run_in_transaction(_slow, timeout=0.01)

        assert exc.value.status_code == 503
        result = ledger_service.verify_ledger(ana.id)
        assert result["ok"] is True
        assert result["stored_cents"] == 1000

    def test_commits_result(self, make_user):
        ana = make_user("ana")

        tx = run_in_transaction(lambda: ledger_service.post_adjustment(ana.id, 250, "Bonus"))

        assert tx.amount_cents == 250
        assert ledger_service.verify_ledger(ana.id)["stored_cents"] == 250


class TestRunWithRetry:
    def test_retries_operational_errors(self, db_session):
        calls = {"n": 0}

        def _flaky():
            calls["n"] += 1
            if calls["n"] < 3:
                raise OperationalError("UPDATE users", {}, Exception("database is locked"))
            return "ok"

        assert run_with_retry(_flaky, attempts=3, backoff_base=0) == "ok"
        assert calls["n"] == 3

    def test_gives_up_after_attempts(self, db_session):
        def _always_locked():
            raise OperationalError("UPDATE users", {}, Exception("database is locked"))

        with pytest.raises(OperationalError):
            run_with_retry(_always_locked, attempts=2, backoff_base=0)

    def test_business_errors_not_retried(self, db_session):
        calls = {"n": 0}

        def _invalid():
            calls["n"] += 1
            raise ValidationError("bad input")

        with pytest.raises(ValidationError):
            run_with_retry(_invalid, attempts=3, backoff_base=0)
        assert calls["n"] == 1
