"""
Follow graph and notification feed tests.
"""

import pytest

from cyberphone.errors import ValidationError
from cyberphone.models import Notification
from cyberphone.services import notification_service, social_service


class TestToggleFollow:
    def test_two_toggles_restore_state_with_one_notification(self, db_session, make_user):
        ana = make_user("ana")
        bia = make_user("bia")

        assert social_service.toggle_follow(ana.id, bia.id) is True
        assert social_service.is_following(ana.id, bia.id) is True

        assert social_service.toggle_follow(ana.id, bia.id) is False
        assert social_service.is_following(ana.id, bia.id) is False

        notes = db_session.query(Notification).filter_by(recipient_id=bia.id).all()
        assert len(notes) == 1
        assert notes[0].notification_type == "NEW_FOLLOWER"
        assert notes[0].actor_id == ana.id

    def test_refollow_notifies_again(self, make_user):
        ana = make_user("ana")
        bia = make_user("bia")

        social_service.toggle_follow(ana.id, bia.id)
        social_service.toggle_follow(ana.id, bia.id)
        social_service.toggle_follow(ana.id, bia.id)

        assert notification_service.unread_count(bia.id) == 2

    def test_explicit_state_is_idempotent(self, make_user):
        ana = make_user("ana")
        bia = make_user("bia")

        assert social_service.toggle_follow(ana.id, bia.id, follow=True) is True
        assert social_service.toggle_follow(ana.id, bia.id, follow=True) is True
        assert social_service.list_following(ana.id) == [bia.id]
        assert notification_service.unread_count(bia.id) == 1

        assert social_service.toggle_follow(ana.id, bia.id, follow=False) is False
        assert social_service.toggle_follow(ana.id, bia.id, follow=False) is False
        assert social_service.list_following(ana.id) == []

    def test_missing_user_is_noop(self, db_session, make_user):
        ana = make_user("ana")

        assert social_service.toggle_follow(ana.id, 999999) is None
        assert social_service.toggle_follow(999999, ana.id) is None
        assert social_service.list_following(ana.id) == []
        assert db_session.query(Notification).count() == 0

    def test_self_follow_is_noop(self, db_session, make_user):
        ana = make_user("ana")

        assert social_service.toggle_follow(ana.id, ana.id) is None
        assert social_service.list_followers(ana.id) == []
        assert db_session.query(Notification).count() == 0

    def test_followers_and_following_lists(self, make_user):
        ana = make_user("ana")
        bia = make_user("bia")
        caio = make_user("caio")

        social_service.toggle_follow(bia.id, ana.id)
        social_service.toggle_follow(caio.id, ana.id)
        social_service.toggle_follow(ana.id, caio.id)

        assert social_service.list_followers(ana.id) == [bia.id, caio.id]
        assert social_service.list_following(ana.id) == [caio.id]


class TestNotificationBus:
    def test_self_action_never_notifies(self, db_session, make_user):
        ana = make_user("ana")

        result = notification_service.emit("LIKE", ana.id, ana.id)
        db_session.commit()

        assert result is None
        assert db_session.query(Notification).count() == 0

    def test_missing_party_dropped(self, db_session, make_user):
        ana = make_user("ana")
        assert notification_service.emit("LIKE", ana.id, None) is None
        assert notification_service.emit("LIKE", None, ana.id) is None

    def test_unknown_type_rejected(self, make_user):
        ana = make_user("ana")
        bia = make_user("bia")
        with pytest.raises(ValidationError):
            notification_service.emit("POKE", ana.id, bia.id)

    def test_list_newest_first_and_mark_all_read(self, db_session, make_user):
        ana = make_user("ana")
        bia = make_user("bia")
        caio = make_user("caio")

        notification_service.emit("NEW_FOLLOWER", ana.id, bia.id)
        notification_service.emit("NEW_FOLLOWER", ana.id, caio.id)
        notification_service.emit("NEW_FOLLOWER", bia.id, caio.id)
        db_session.commit()

        feed = notification_service.list_for(ana.id)
        assert [n.actor_id for n in feed] == [caio.id, bia.id]
        assert notification_service.unread_count(ana.id) == 2

        assert notification_service.mark_all_read(ana.id) == 2
        assert notification_service.unread_count(ana.id) == 0
        assert notification_service.list_for(ana.id, unread_only=True) == []
        # Other recipients untouched
        assert notification_service.unread_count(bia.id) == 1

        assert notification_service.mark_all_read(ana.id) == 0
