"""Tests for the in-memory collaborator stores, focused on the conditional inventory decrement."""

import threading

import pytest
from checkout.errors import ConfigError
from checkout.stores import Stores, get_stores, reset_stores, set_stores
from checkout.stores.fake_adapter import InMemoryAddressBook, InMemoryCouponUsageCounter, InMemoryInventoryStore
from checkout.stores.port import Address


class TestConditionalDecrement:
    def test_decrement_moves_stock_to_reserved(self):
        store = InMemoryInventoryStore()
        store.set_stock("prod-001", "var-001", available=5)
        assert store.decrement_if_available("prod-001", "var-001", 2) is True
        level = store.get_level("prod-001", "var-001")
        assert level.available == 3
        assert level.reserved == 2

    def test_insufficient_stock_leaves_level_untouched(self):
        store = InMemoryInventoryStore()
        store.set_stock("prod-001", "var-001", available=1)
        assert store.decrement_if_available("prod-001", "var-001", 2) is False
        assert store.get_level("prod-001", "var-001").available == 1

    def test_exact_quantity_allowed(self):
        store = InMemoryInventoryStore()
        store.set_stock("prod-002", None, available=3)
        assert store.decrement_if_available("prod-002", None, 3) is True
        assert store.get_level("prod-002", None).available == 0

    def test_unknown_sku(self):
        store = InMemoryInventoryStore()
        assert store.get_level("prod-404", None) is None
        assert store.decrement_if_available("prod-404", None, 1) is False

    def test_variant_and_product_levels_are_separate(self):
        store = InMemoryInventoryStore()
        store.set_stock("prod-001", None, available=1)
        store.set_stock("prod-001", "var-001", available=9)
        assert store.get_level("prod-001", None).available == 1
        assert store.get_level("prod-001", "var-001").available == 9

    def test_release_returns_stock(self):
        store = InMemoryInventoryStore()
        store.set_stock("prod-001", "var-001", available=5)
        store.decrement_if_available("prod-001", "var-001", 2)
        store.release("prod-001", "var-001", 2)
        level = store.get_level("prod-001", "var-001")
        assert level.available == 5
        assert level.reserved == 0

    def test_concurrent_buyers_for_last_units(self):
        store = InMemoryInventoryStore()
        store.set_stock("prod-001", "var-001", available=5)
        barrier = threading.Barrier(2)
        results = []

        def buy():
            barrier.wait()
            results.append(store.decrement_if_available("prod-001", "var-001", 3))

        threads = [threading.Thread(target=buy) for _ in range(2)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        assert sorted(results) == [False, True]
        assert store.get_level("prod-001", "var-001").available == 2


class TestCouponUsageCounter:
    def test_counts_up_to_limit(self):
        counter = InMemoryCouponUsageCounter()
        assert counter.increment_if_below("coupon-1", 2) == 1
        assert counter.increment_if_below("coupon-1", 2) == 2
        assert counter.increment_if_below("coupon-1", 2) is None
        assert counter.count("coupon-1") == 2

    def test_unlimited_coupon_always_counts(self):
        counter = InMemoryCouponUsageCounter()
        for _ in range(3):
            counter.increment_if_below("coupon-1", None)
        assert counter.count("coupon-1") == 3

    def test_starts_from_recorded_usage(self):
        counter = InMemoryCouponUsageCounter()
        assert counter.increment_if_below("coupon-1", 5, recorded=4) == 5
        assert counter.increment_if_below("coupon-1", 5, recorded=4) is None

    def test_release_gives_use_back(self):
        counter = InMemoryCouponUsageCounter()
        counter.increment_if_below("coupon-1", 1)
        counter.release("coupon-1")
        assert counter.count("coupon-1") == 0
        assert counter.increment_if_below("coupon-1", 1) == 1

    def test_release_never_goes_negative(self):
        counter = InMemoryCouponUsageCounter()
        counter.release("coupon-1")
        assert counter.count("coupon-1") == 0

    def test_concurrent_checkouts_for_last_use(self):
        counter = InMemoryCouponUsageCounter()
        barrier = threading.Barrier(8)
        results = []

        def redeem():
            barrier.wait()
            results.append(counter.increment_if_below("coupon-1", 1))

        threads = [threading.Thread(target=redeem) for _ in range(8)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        assert [result for result in results if result is not None] == [1]
        assert counter.count("coupon-1") == 1


class TestAddressBook:
    def test_only_owner_finds_address(self):
        book = InMemoryAddressBook()
        book.add_address(
            Address(
                id="addr-1",
                user_id="buyer-001",
                full_name="Asha Rao",
                line1="12 MG Road",
                city="Bengaluru",
                postal_code="560001",
                country="IN",
            )
        )
        assert book.find_owned_address("buyer-001", "addr-1").line1 == "12 MG Road"
        assert book.find_owned_address("buyer-002", "addr-1") is None
        assert book.find_owned_address("buyer-001", "addr-404") is None


class TestStoresFactory:
    def test_stores_are_shared_until_reset(self):
        active = get_stores()
        assert get_stores() is active
        reset_stores()
        assert get_stores() is not active

    def test_set_stores_overrides(self):
        custom = Stores()
        set_stores(custom)
        assert get_stores() is custom

    def test_unknown_adapter(self, monkeypatch):
        monkeypatch.setenv("CHECKOUT_STORES", "postgres")
        reset_stores()
        with pytest.raises(ConfigError):
            get_stores()


class TestDemoSeed:
    def test_seeded_stores_can_price_and_reserve(self):
        from checkout.stores.demo import (
            SCARCE_PRODUCT_ID,
            SCARCE_STOCK,
            demo_address_id,
            demo_buyer_id,
            demo_product_id,
            demo_variant_id,
            seed_demo_stores,
        )

        stores = Stores()
        seed_demo_stores(stores)

        assert stores.addresses.find_owned_address(demo_buyer_id(7), demo_address_id(7)) is not None
        assert stores.catalogue.find_variant(demo_variant_id(0)).product_id == demo_product_id(0)
        assert stores.catalogue.find_variant(demo_variant_id(1)) is None
        assert stores.inventory.get_level(SCARCE_PRODUCT_ID, None).available == SCARCE_STOCK
