"""
Flask CLI tests: demo seeding and the ledger audit.
"""

from cyberphone.extensions import db
from cyberphone.models import AudioTrack, Post, Product, Store, User, WalletTransaction
from cyberphone.seed import DEFAULT_AUDIO_TRACKS, DEFAULT_USERS


class TestSystemCommands:
    def test_init_adds_audio_tracks_once(self, app, db_session):
        runner = app.test_cli_runner()

        result = runner.invoke(args=["system", "init"])
        assert result.exit_code == 0, result.output
        assert db_session.query(AudioTrack).count() == len(DEFAULT_AUDIO_TRACKS)

        result = runner.invoke(args=["system", "init"])
        assert "0 audio track(s) added" in result.output
        assert db_session.query(AudioTrack).count() == len(DEFAULT_AUDIO_TRACKS)

    def test_seed_is_idempotent_and_ledger_backed(self, app, db_session):
        runner = app.test_cli_runner()

        result = runner.invoke(args=["system", "seed"])
        assert result.exit_code == 0, result.output
        assert db_session.query(User).count() == len(DEFAULT_USERS)
        assert db_session.query(Store).count() == 2
        assert db_session.query(Product).count() == 3
        assert db_session.query(Post).count() == 7

        ana = db_session.query(User).filter_by(email="ana.silva@cyberphone.com").first()
        assert ana.balance_cents == 15075
        assert ana.store_id is not None

        result = runner.invoke(args=["system", "seed"])
        assert "Created 0 user(s)" in result.output
        assert db_session.query(User).count() == len(DEFAULT_USERS)

        result = runner.invoke(args=["ledger", "verify"])
        assert result.exit_code == 0, result.output
        assert f"PASS {len(DEFAULT_USERS)} wallet(s) verified" in result.output


class TestLedgerVerify:
    def test_reports_tampered_balance(self, app, db_session, make_user):
        user = make_user("ana", balance_cents=5000)
        # Simulate a write that bypassed the ledger
        db.session.query(User).filter_by(id=user.id).update({User.balance_cents: 9999})
        db.session.commit()

        result = app.test_cli_runner().invoke(args=["ledger", "verify", "--user-id", str(user.id)])

        assert result.exit_code != 0
        assert "stored 9999 != computed 5000" in result.output

    def test_single_user_pass(self, app, db_session, make_user):
        user = make_user("ana", balance_cents=5000)

        result = app.test_cli_runner().invoke(args=["ledger", "verify", "--user-id", str(user.id)])

        assert result.exit_code == 0
        assert f"PASS user {user.id}: 5000 cents" in result.output
        assert db_session.query(WalletTransaction).filter_by(user_id=user.id).count() == 1
