"""
Content store tests: payload variants, pinning, engagement toggles,
reactions, comments, scheduled visibility and deletion.
"""

from datetime import timedelta

import pytest

from cyberphone.errors import InsufficientFundsError, InvalidStateError, ValidationError
from cyberphone.models import LiveAccess, Notification, Post, PostEngagement
from cyberphone.services import content_service, ledger_service, notification_service
from cyberphone.time_utils import utcnow


# =============================================================================
# POST PAYLOADS
# =============================================================================


class TestCreatePost:
    def test_text_post(self, make_user):
        ana = make_user("ana")
        post = content_service.create_post(ana.id, "text", {"text": "  Black holes this week  "})

        assert post.post_type == "TEXT"
        assert post.payload == {"text": "Black holes this week"}
        assert post.content == "Black holes this week"
        assert post.is_pinned is False

    def test_live_post_paid_needs_price(self, make_user):
        ana = make_user("ana")
        with pytest.raises(ValidationError):
            content_service.create_post(ana.id, "LIVE", {
                "title": "Relativity", "stream_url": "https://example.com/live", "is_paid": True,
            })

        post = content_service.create_post(ana.id, "LIVE", {
            "title": "Relativity", "stream_url": "https://example.com/live", "is_paid": True, "price_cents": 1500,
        })
        assert post.payload["price_cents"] == 1500
        assert post.content == "Relativity"

    def test_fields_of_another_variant_rejected(self, make_user):
        ana = make_user("ana")
        with pytest.raises(ValidationError):
            content_service.create_post(ana.id, "TEXT", {"text": "hi", "stream_url": "https://example.com"})

    def test_unknown_type_rejected(self, make_user):
        ana = make_user("ana")
        with pytest.raises(ValidationError):
            content_service.create_post(ana.id, "STORY", {"text": "hi"})

    def test_reel_audio_track_must_exist(self, make_user, audio_track):
        ana = make_user("ana")
        reel = {"title": "Newton", "video_url": "https://example.com/v.mp4"}

        with pytest.raises(ValidationError):
            content_service.create_post(ana.id, "REEL", dict(reel, audio_track_id=audio_track.id + 1000))

        post = content_service.create_post(ana.id, "REEL", dict(reel, audio_track_id=audio_track.id))
        assert post.payload["audio_track_id"] == audio_track.id

    @pytest.mark.parametrize("payload", [["a"], "text", 5])
    def test_payload_must_be_an_object(self, make_user, payload):
        ana = make_user("ana")
        with pytest.raises(ValidationError):
            content_service.create_post(ana.id, "TEXT", payload)

    def test_text_fields_must_be_strings(self, db_session, make_user):
        ana = make_user("ana")
        with pytest.raises(ValidationError):
            content_service.create_post(ana.id, "IMAGE", {"image_url": "http://x", "text": 5})
        with pytest.raises(ValidationError):
            content_service.create_post(ana.id, "LIVE", {
                "title": "Relativity", "stream_url": "https://example.com/live", "description": ["x"],
            })
        with pytest.raises(ValidationError):
            content_service.create_post(ana.id, 7, {"text": "hi"})
        assert db_session.query(Post).count() == 0

    def test_missing_author_returns_none(self, db_session):
        assert content_service.create_post(999999, "TEXT", {"text": "ghost"}) is None
        assert db_session.query(Post).count() == 0


# =============================================================================
# PINNING
# =============================================================================


class TestPinning:
    def test_pin_moves_from_previous_post(self, make_user, make_post):
        ana = make_user("ana")
        x = make_post(ana, "X")
        y = make_post(ana, "Y")

        content_service.set_pinned(y.id, ana.id)
        assert content_service.pinned_post_ids(ana.id) == [y.id]

        content_service.set_pinned(x.id, ana.id)
        assert content_service.get_post(x.id).is_pinned is True
        assert content_service.get_post(y.id).is_pinned is False
        assert content_service.pinned_post_ids(ana.id) == [x.id]

    def test_redundant_pin_keeps_single_pin(self, make_user, make_post):
        ana = make_user("ana")
        x = make_post(ana, "X")

        content_service.set_pinned(x.id, ana.id)
        content_service.set_pinned(x.id, ana.id)
        assert content_service.pinned_post_ids(ana.id) == [x.id]

    def test_pins_are_per_author(self, make_user, make_post):
        ana = make_user("ana")
        bia = make_user("bia")
        a_post = make_post(ana)
        b_post = make_post(bia)

        content_service.set_pinned(a_post.id, ana.id)
        content_service.set_pinned(b_post.id, bia.id)

        assert content_service.pinned_post_ids(ana.id) == [a_post.id]
        assert content_service.pinned_post_ids(bia.id) == [b_post.id]

    def test_cannot_pin_someone_elses_post(self, make_user, make_post):
        ana = make_user("ana")
        bia = make_user("bia")
        post = make_post(ana)

        with pytest.raises(InvalidStateError):
            content_service.set_pinned(post.id, bia.id)
        assert content_service.pinned_post_ids(ana.id) == []

    def test_pin_missing_post_is_noop(self, make_user):
        ana = make_user("ana")
        assert content_service.set_pinned(999999, ana.id) is None

    def test_unpin_respects_owner(self, make_user, make_post):
        ana = make_user("ana")
        bia = make_user("bia")
        post = make_post(ana)
        content_service.set_pinned(post.id, ana.id)

        assert content_service.unpin(post.id, bia.id) is None
        assert content_service.get_post(post.id).is_pinned is True

        content_service.unpin(post.id, ana.id)
        assert content_service.get_post(post.id).is_pinned is False

    def test_unpin_without_user(self, make_user, make_post):
        ana = make_user("ana")
        post = make_post(ana)
        content_service.set_pinned(post.id, ana.id)

        content_service.unpin(post.id)
        assert content_service.pinned_post_ids(ana.id) == []


# =============================================================================
# ENGAGEMENT
# =============================================================================


class TestEngagement:
    def test_like_twice_restores_membership_one_notification(self, db_session, make_user, make_post):
        ana = make_user("ana")
        bia = make_user("bia")
        post = make_post(ana)

        first = content_service.toggle_engagement(post.id, bia.id, "like")
        assert first == {"post_id": post.id, "kind": "LIKE", "active": True, "count": 1}

        second = content_service.toggle_engagement(post.id, bia.id, "like")
        assert second["active"] is False
        assert second["count"] == 0
        assert content_service.engagement_members(post.id, "like") == []

        notes = db_session.query(Notification).filter_by(recipient_id=ana.id).all()
        assert [n.notification_type for n in notes] == ["LIKE"]
        assert notes[0].post_id == post.id

    def test_share_twice_leaves_one_record(self, db_session, make_user, make_post):
        ana = make_user("ana")
        bia = make_user("bia")
        post = make_post(ana)

        content_service.toggle_engagement(post.id, bia.id, "share")
        result = content_service.toggle_engagement(post.id, bia.id, "share")

        assert result["active"] is True
        assert result["count"] == 1
        assert db_session.query(PostEngagement).filter_by(post_id=post.id, kind="SHARE").count() == 1
        # Shares do not notify
        assert notification_service.unread_count(ana.id) == 0

    def test_share_cannot_be_withdrawn(self, make_user, make_post):
        ana = make_user("ana")
        post = make_post(ana)
        with pytest.raises(ValidationError):
            content_service.toggle_engagement(post.id, ana.id, "share", active=False)

    def test_save_toggles_silently(self, make_user, make_post):
        ana = make_user("ana")
        bia = make_user("bia")
        post = make_post(ana)

        assert content_service.toggle_engagement(post.id, bia.id, "save")["active"] is True
        assert content_service.engagement_members(post.id, "save") == [bia.id]
        assert content_service.toggle_engagement(post.id, bia.id, "save")["active"] is False
        assert notification_service.unread_count(ana.id) == 0

    def test_explicit_like_is_idempotent(self, make_user, make_post):
        ana = make_user("ana")
        bia = make_user("bia")
        post = make_post(ana)

        content_service.toggle_engagement(post.id, bia.id, "like", active=True)
        result = content_service.toggle_engagement(post.id, bia.id, "like", active=True)

        assert result["count"] == 1
        assert notification_service.unread_count(ana.id) == 1

    def test_own_like_does_not_notify(self, make_user, make_post):
        ana = make_user("ana")
        post = make_post(ana)

        content_service.toggle_engagement(post.id, ana.id, "like")
        assert notification_service.unread_count(ana.id) == 0

    def test_missing_post_is_noop(self, make_user):
        ana = make_user("ana")
        assert content_service.toggle_engagement(999999, ana.id, "like") is None

    def test_invalid_kind(self, make_user, make_post):
        ana = make_user("ana")
        post = make_post(ana)
        with pytest.raises(ValidationError):
            content_service.toggle_engagement(post.id, ana.id, "retweet")


class TestReactionsAndComments:
    def test_reaction_toggle_removes_empty_emoji(self, make_user, make_post):
        ana = make_user("ana")
        bia = make_user("bia")
        caio = make_user("caio")
        post = make_post(ana)

        content_service.toggle_reaction(post.id, bia.id, "🔥")
        reactions = content_service.toggle_reaction(post.id, caio.id, "🔥")
        assert reactions == {"🔥": [bia.id, caio.id]}

        reactions = content_service.toggle_reaction(post.id, bia.id, "🔥")
        assert reactions == {"🔥": [caio.id]}

        reactions = content_service.toggle_reaction(post.id, caio.id, "🔥")
        assert reactions == {}

        # Only the two add transitions notified
        assert notification_service.unread_count(ana.id) == 2

    def test_reaction_on_missing_post(self, make_user):
        ana = make_user("ana")
        assert content_service.toggle_reaction(999999, ana.id, "👍") is None

    def test_blank_emoji_rejected(self, make_user, make_post):
        ana = make_user("ana")
        post = make_post(ana)
        with pytest.raises(ValidationError):
            content_service.toggle_reaction(post.id, ana.id, "  ")

    def test_comments_append_in_order_and_notify(self, make_user, make_post):
        ana = make_user("ana")
        bia = make_user("bia")
        post = make_post(ana)

        content_service.add_comment(post.id, bia.id, "First!")
        content_service.add_comment(post.id, ana.id, "Thanks")
        content_service.add_comment(post.id, bia.id, "Great explanation")

        texts = [c.text for c in content_service.list_comments(post.id)]
        assert texts == ["First!", "Thanks", "Great explanation"]
        # The author's own reply does not notify
        notes = notification_service.list_for(ana.id)
        assert [n.notification_type for n in notes] == ["COMMENT", "COMMENT"]

    def test_comment_on_missing_post(self, make_user):
        ana = make_user("ana")
        assert content_service.add_comment(999999, ana.id, "hello?") is None

    def test_engagement_summary(self, make_user, make_post):
        ana = make_user("ana")
        bia = make_user("bia")
        post = make_post(ana)

        content_service.toggle_engagement(post.id, bia.id, "like")
        content_service.toggle_engagement(post.id, bia.id, "share")
        content_service.toggle_reaction(post.id, bia.id, "😂")
        content_service.add_comment(post.id, bia.id, "lol")

        summary = content_service.get_post_engagement(post.id)
        assert summary["likes"] == [bia.id]
        assert summary["shares"] == [bia.id]
        assert summary["saves"] == []
        assert summary["reactions"] == {"😂": [bia.id]}
        assert summary["counts"] == {"likes": 1, "saves": 0, "shares": 1, "comments": 1, "reactions": 1}
        assert summary["comments"][0]["user_name"] == "Bia Tester"

        assert content_service.get_post_engagement(999999) is None


# =============================================================================
# VISIBILITY
# =============================================================================


class TestVisibility:
    def test_future_post_hidden_from_others_visible_to_author(self, make_user, make_post):
        ana = make_user("ana")
        bia = make_user("bia")
        now = utcnow()
        public = make_post(ana, "now")
        scheduled = make_post(ana, "later", scheduled_at=now + timedelta(hours=1))

        seen_by_bia = [p.id for p in content_service.list_visible(now, bia.id)]
        assert public.id in seen_by_bia
        assert scheduled.id not in seen_by_bia

        seen_by_ana = [p.id for p in content_service.list_visible(now, ana.id)]
        assert scheduled.id in seen_by_ana

        anonymous = [p.id for p in content_service.list_visible(now)]
        assert scheduled.id not in anonymous

    def test_scheduled_post_appears_once_due(self, make_user, make_post):
        ana = make_user("ana")
        bia = make_user("bia")
        now = utcnow()
        scheduled = make_post(ana, "later", scheduled_at=now + timedelta(hours=1))

        later = now + timedelta(hours=2)
        assert scheduled.id in [p.id for p in content_service.list_visible(later, bia.id)]
        assert content_service.is_visible_to(content_service.get_post(scheduled.id), bia.id, later) is True
        assert content_service.is_visible_to(content_service.get_post(scheduled.id), bia.id, now) is False

    def test_profile_lists_pinned_first(self, make_user, make_post):
        ana = make_user("ana")
        bia = make_user("bia")
        first = make_post(ana, "first")
        second = make_post(ana, "second")
        make_post(bia, "other author")

        content_service.set_pinned(first.id, ana.id)

        ids = [p.id for p in content_service.list_visible(viewer_id=bia.id, author_id=ana.id)]
        assert ids == [first.id, second.id]


# =============================================================================
# DELETION
# =============================================================================


class TestDeletePost:
    def test_author_deletes_post_and_engagement(self, db_session, make_user, make_post):
        ana = make_user("ana")
        bia = make_user("bia")
        post = make_post(ana)
        content_service.toggle_engagement(post.id, bia.id, "like")
        content_service.add_comment(post.id, bia.id, "nice")

        assert content_service.delete_post(post.id, ana.id) is True

        assert content_service.get_post(post.id) is None
        assert db_session.query(PostEngagement).count() == 0
        # Notifications survive without their subject
        notes = notification_service.list_for(ana.id)
        assert len(notes) == 2
        assert all(n.post_id is None for n in notes)

    def test_only_author_deletes(self, make_user, make_post):
        ana = make_user("ana")
        bia = make_user("bia")
        post = make_post(ana)

        with pytest.raises(InvalidStateError):
            content_service.delete_post(post.id, bia.id)
        assert content_service.get_post(post.id) is not None

    def test_missing_post(self, make_user):
        ana = make_user("ana")
        assert content_service.delete_post(999999, ana.id) is False


# =============================================================================
# PAID LIVE STREAMS
# =============================================================================


def _live(author, *, price_cents=1500, scheduled_at=None):
    payload = {"title": "Relativity Live", "stream_url": "https://example.com/live"}
    if price_cents:
        payload.update(is_paid=True, price_cents=price_cents)
    return content_service.create_post(author.id, "LIVE", payload, scheduled_at=scheduled_at)


class TestLiveAccess:
    def test_viewer_pays_author_once(self, db_session, make_user):
        ana = make_user("ana")
        bia = make_user("bia", balance_cents=5000)
        live = _live(ana)
        assert content_service.has_live_access(live, bia.id) is False

        first = content_service.purchase_live_access(live.id, bia.id)
        second = content_service.purchase_live_access(live.id, bia.id)

        assert first["charged_cents"] == 1500
        assert second == {"post_id": live.id, "user_id": bia.id, "has_access": True, "charged_cents": 0}
        assert ledger_service.verify_ledger(bia.id)["stored_cents"] == 3500
        assert ledger_service.verify_ledger(ana.id)["stored_cents"] == 1500
        assert db_session.query(LiveAccess).filter_by(post_id=live.id).count() == 1
        assert content_service.has_live_access(content_service.get_post(live.id), bia.id) is True

        debit = ledger_service.list_transactions(bia.id)[0]
        assert debit.transaction_type == "DEBIT"
        assert "Relativity Live" in debit.description

    def test_insufficient_funds_changes_nothing(self, db_session, make_user):
        ana = make_user("ana")
        bia = make_user("bia", balance_cents=1000)
        live = _live(ana)

        with pytest.raises(InsufficientFundsError) as exc:
            content_service.purchase_live_access(live.id, bia.id)

        assert exc.value.details == {"balance_cents": 1000, "price_cents": 1500}
        assert ledger_service.verify_ledger(bia.id)["stored_cents"] == 1000
        assert ledger_service.verify_ledger(ana.id)["stored_cents"] == 0
        assert db_session.query(LiveAccess).count() == 0

    def test_free_stream_and_author_are_never_charged(self, make_user):
        ana = make_user("ana", balance_cents=100)
        bia = make_user("bia")
        free = _live(ana, price_cents=0)
        paid = _live(ana)

        assert content_service.purchase_live_access(free.id, bia.id)["charged_cents"] == 0
        assert content_service.purchase_live_access(paid.id, ana.id)["charged_cents"] == 0
        assert ledger_service.verify_ledger(ana.id)["stored_cents"] == 100

    def test_only_live_posts_sell_access(self, make_user, make_post):
        ana = make_user("ana")
        bia = make_user("bia", balance_cents=5000)
        with pytest.raises(InvalidStateError):
            content_service.purchase_live_access(make_post(ana).id, bia.id)

    def test_missing_or_scheduled_stream(self, make_user):
        ana = make_user("ana")
        bia = make_user("bia", balance_cents=5000)
        upcoming = _live(ana, scheduled_at=utcnow() + timedelta(days=1))

        assert content_service.purchase_live_access(999999, bia.id) is None
        assert content_service.purchase_live_access(upcoming.id, 999999) is None
        assert content_service.purchase_live_access(upcoming.id, bia.id) is None
        assert ledger_service.verify_ledger(bia.id)["stored_cents"] == 5000

    def test_deleting_stream_drops_tickets(self, db_session, make_user):
        ana = make_user("ana")
        bia = make_user("bia", balance_cents=5000)
        live = _live(ana)
        content_service.purchase_live_access(live.id, bia.id)

        assert content_service.delete_post(live.id, ana.id) is True
        assert db_session.query(LiveAccess).count() == 0
        assert ledger_service.verify_ledger(bia.id)["stored_cents"] == 3500
