"""
Affiliate referral links and community events.
"""

from datetime import datetime

import pytest

from cyberphone.errors import ValidationError
from cyberphone.services import affiliate_service, event_service


class TestAffiliateLinks:
    def test_link_is_stable_per_affiliate_and_product(self, make_user, make_store, make_product):
        product = make_product(make_store(make_user("seller")))
        affiliate = make_user("affiliate")

        first = affiliate_service.get_or_create_link(affiliate.id, product.id)
        second = affiliate_service.get_or_create_link(affiliate.id, product.id)

        assert first.id == second.id
        assert first.code == second.code
        assert [link.id for link in affiliate_service.list_links_for_affiliate(affiliate.id)] == [first.id]

    def test_different_affiliates_get_different_codes(self, make_user, make_store, make_product):
        product = make_product(make_store(make_user("seller")))
        a = affiliate_service.get_or_create_link(make_user("a").id, product.id)
        b = affiliate_service.get_or_create_link(make_user("b").id, product.id)
        assert a.code != b.code

    def test_resolve_counts_clicks(self, make_user, make_store, make_product):
        product = make_product(make_store(make_user("seller")))
        affiliate = make_user("affiliate")
        link = affiliate_service.get_or_create_link(affiliate.id, product.id)

        affiliate_service.resolve_link(link.code)
        resolved = affiliate_service.resolve_link(link.code)

        assert resolved.click_count == 2
        assert resolved.product_id == product.id
        assert resolved.affiliate_user_id == affiliate.id
        assert resolved.to_dict()["store_id"] == product.store_id

    def test_unknown_code_and_missing_entities(self, make_user):
        affiliate = make_user("affiliate")
        assert affiliate_service.resolve_link("nope") is None
        assert affiliate_service.get_or_create_link(affiliate.id, 999999) is None

    def test_product_id_must_be_integer(self, make_user):
        affiliate = make_user("affiliate")
        with pytest.raises(ValidationError):
            affiliate_service.get_or_create_link(affiliate.id, "1.5")


class TestEvents:
    def test_creator_attends_and_join_toggles(self, make_user):
        host = make_user("host")
        guest = make_user("guest")

        event = event_service.create_event(
            host.id, "Relativity Q&A", datetime(2026, 11, 1, 18, 0), location="Online", event_type="online"
        )
        assert event.to_dict()["attendee_ids"] == [host.id]
        assert event.event_type == "ONLINE"

        assert event_service.toggle_join(event.id, guest.id) is True
        assert sorted(u.id for u in event_service.get_event(event.id).attendees) == sorted([host.id, guest.id])

        assert event_service.toggle_join(event.id, guest.id) is False
        assert [u.id for u in event_service.get_event(event.id).attendees] == [host.id]

    def test_events_ordered_by_start(self, make_user):
        host = make_user("host")
        later = event_service.create_event(host.id, "Later", datetime(2026, 12, 1, 9, 0))
        sooner = event_service.create_event(host.id, "Sooner", datetime(2026, 11, 1, 9, 0))

        assert [e.id for e in event_service.list_events()] == [sooner.id, later.id]

    def test_validation_and_missing(self, make_user):
        host = make_user("host")
        with pytest.raises(ValidationError):
            event_service.create_event(host.id, "  ", datetime(2026, 11, 1))
        with pytest.raises(ValidationError):
            event_service.create_event(host.id, "Meetup", datetime(2026, 11, 1), event_type="HYBRID")

        assert event_service.create_event(999999, "Ghost", datetime(2026, 11, 1)) is None
        assert event_service.toggle_join(999999, host.id) is None
