"""
Catalog tests: stores, products and rating aggregation.
"""

import pytest

from cyberphone.errors import AlreadyRatedError, InvalidStateError, NotFoundError, ValidationError
from cyberphone.models import ProductRating
from cyberphone.services import catalog_service, commerce_service


# =============================================================================
# STORES & PRODUCTS
# =============================================================================


class TestStores:
    def test_create_store_sets_user_store_id(self, make_user):
        ana = make_user("ana", user_type="CREATOR")

        store = catalog_service.create_store(ana.id, {"name": "Physics Made Simple", "description": "Kits"})

        assert store.owner_user_id == ana.id
        assert ana.store_id == store.id
        assert catalog_service.get_store_for_owner(ana.id).id == store.id

    def test_one_store_per_user(self, make_user, make_store):
        ana = make_user("ana")
        make_store(ana)
        with pytest.raises(InvalidStateError):
            catalog_service.create_store(ana.id, {"name": "Second"})

    def test_store_for_missing_user(self, db_session):
        with pytest.raises(NotFoundError):
            catalog_service.create_store(999999, {"name": "Ghost"})

    def test_name_required(self, make_user):
        ana = make_user("ana")
        with pytest.raises(ValidationError):
            catalog_service.create_store(ana.id, {"description": "no name"})

    def test_only_owner_updates_store(self, make_user, make_store):
        ana = make_user("ana")
        bia = make_user("bia")
        store = make_store(ana)

        with pytest.raises(InvalidStateError):
            catalog_service.update_store(store.id, {"name": "Hijacked"}, actor_id=bia.id)

        updated = catalog_service.update_store(store.id, {"name": "Renamed"}, actor_id=ana.id)
        assert updated.name == "Renamed"
        assert catalog_service.update_store(999999, {"name": "x"}) is None


class TestProducts:
    def test_product_requires_existing_store(self, db_session):
        with pytest.raises(NotFoundError):
            catalog_service.create_product(999999, {"name": "Orphan", "price_cents": 100})

    def test_price_must_be_positive(self, make_user, make_store):
        store = make_store(make_user("ana"))
        with pytest.raises(ValidationError):
            catalog_service.create_product(store.id, {"name": "Free", "price_cents": 0})

    def test_commission_rate_range(self, make_user, make_store):
        store = make_store(make_user("ana"))
        with pytest.raises(ValidationError):
            catalog_service.create_product(
                store.id, {"name": "Greedy", "price_cents": 100, "affiliate_commission_rate": 1.5}
            )

    @pytest.mark.parametrize("rate", ["nan", float("nan"), "inf", float("-inf")])
    def test_commission_rate_must_be_finite(self, db_session, make_user, make_store, rate):
        store = make_store(make_user("ana"))
        with pytest.raises(ValidationError):
            catalog_service.create_product(
                store.id, {"name": "Odd", "price_cents": 100, "affiliate_commission_rate": rate}
            )
        assert catalog_service.list_products(store.id) == []

    def test_invalid_product_type(self, make_user, make_store):
        store = make_store(make_user("ana"))
        with pytest.raises(ValidationError):
            catalog_service.create_product(store.id, {"name": "X", "price_cents": 100, "product_type": "SERVICE"})

    def test_unknown_field_rejected(self, make_user, make_store):
        store = make_store(make_user("ana"))
        with pytest.raises(ValidationError):
            catalog_service.create_product(store.id, {"name": "X", "price_cents": 100, "average_rating": 5})

    def test_store_lists_its_products(self, make_user, make_store, make_product):
        store = make_store(make_user("ana"))
        a = make_product(store, name="Course")
        b = make_product(store, name="Kit", product_type="PHYSICAL")

        assert store.to_dict()["product_ids"] == [a.id, b.id]
        assert [p.id for p in catalog_service.list_products(store.id)] == [a.id, b.id]

    def test_inactive_products_hidden(self, make_user, make_store, make_product):
        ana = make_user("ana")
        store = make_store(ana)
        product = make_product(store)

        catalog_service.update_product(product.id, {"is_active": False}, actor_id=ana.id)

        assert catalog_service.list_products(store.id) == []
        assert len(catalog_service.list_products(store.id, include_inactive=True)) == 1

    def test_search_products(self, make_user, make_store, make_product):
        store = make_store(make_user("ana"))
        relativity = make_product(store, name="Foundations of Relativity")
        make_product(store, name="Calculus Course")

        assert [p.id for p in catalog_service.search_products("relativ")] == [relativity.id]
        assert catalog_service.search_products("   ") == []

    def test_only_owner_updates_product(self, make_user, make_store, make_product):
        ana = make_user("ana")
        bia = make_user("bia")
        product = make_product(make_store(ana))

        with pytest.raises(InvalidStateError):
            catalog_service.update_product(product.id, {"price_cents": 1}, actor_id=bia.id)


# =============================================================================
# RATINGS
# =============================================================================


class TestRatings:
    def _buy(self, make_user, product, name="buyer"):
        buyer = make_user(name, balance_cents=100000)
        (sale,) = commerce_service.checkout([{"product_id": product.id, "quantity": 1}], buyer.id)
        return buyer, sale

    def test_rating_twice_fails_and_counts_once(self, make_user, make_store, make_product):
        product = make_product(make_store(make_user("ana")))
        buyer, sale = self._buy(make_user, product)

        catalog_service.add_rating(sale.id, 5, "x")
        with pytest.raises(AlreadyRatedError):
            catalog_service.add_rating(sale.id, 5, "x")

        refreshed = catalog_service.get_product(product.id)
        assert refreshed.rating_count == 1
        assert refreshed.average_rating == 5.0
        assert commerce_service.get_sale(sale.id).is_rated is True

    def test_missing_sale_is_already_rated(self, db_session):
        with pytest.raises(AlreadyRatedError):
            catalog_service.add_rating(999999, 4)

    def test_average_is_fold_over_all_ratings(self, make_user, make_store, make_product):
        product = make_product(make_store(make_user("ana")))
        for i, value in enumerate((5, 4, 4)):
            _buyer, sale = self._buy(make_user, product, name=f"buyer{i}")
            catalog_service.add_rating(sale.id, value)

        refreshed = catalog_service.get_product(product.id)
        assert refreshed.rating_count == 3
        assert refreshed.average_rating == 4.33
        assert [r.rating for r in catalog_service.list_ratings(product.id)] == [5, 4, 4]

    def test_recompute_matches_stored_aggregate(self, db_session, make_user, make_store, make_product):
        product = make_product(make_store(make_user("ana")))
        for i, value in enumerate((2, 3)):
            _buyer, sale = self._buy(make_user, product, name=f"buyer{i}")
            catalog_service.add_rating(sale.id, value)

        stored = (product.average_rating, product.rating_count)
        catalog_service.recompute_rating_aggregate(product)
        assert (product.average_rating, product.rating_count) == stored == (2.5, 2)
        db_session.rollback()

    def test_rating_range(self, make_user, make_store, make_product):
        product = make_product(make_store(make_user("ana")))
        _buyer, sale = self._buy(make_user, product)

        with pytest.raises(ValidationError):
            catalog_service.add_rating(sale.id, 6)
        with pytest.raises(ValidationError):
            catalog_service.add_rating(sale.id, 0)
        assert commerce_service.get_sale(sale.id).is_rated is False

    def test_only_buyer_rates(self, db_session, make_user, make_store, make_product):
        product = make_product(make_store(make_user("ana")))
        _buyer, sale = self._buy(make_user, product)
        stranger = make_user("stranger")

        with pytest.raises(InvalidStateError):
            catalog_service.add_rating(sale.id, 1, actor_id=stranger.id)
        assert db_session.query(ProductRating).count() == 0
