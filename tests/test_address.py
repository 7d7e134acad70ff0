from __future__ import annotations

from kungfu import Error, Ok

from farmsplit.address import (
    ADDRESS_SAVE_FAILED,
    AddressResolver,
    CreateAddress,
    ReuseAddress,
)
from farmsplit.store import Operation
from tests.factories import BUYER, draft


class TestAddressResolver:
    async def test_reuse_performs_no_write(self, store):
        result = await AddressResolver(store).resolve(BUYER, ReuseAddress("addr-7"))

        assert result == Ok("addr-7")
        assert store.count(Operation.CREATE_ADDRESS) == 0

    async def test_create_saves_default_address(self, store):
        result = await AddressResolver(store).resolve(BUYER, CreateAddress(draft()))

        assert isinstance(result, Ok)
        saved = await store.get_address(result.value)
        assert saved is not None
        assert saved.is_default
        assert saved.district == saved.city == "Mysuru"
        assert saved.buyer_id == BUYER

    async def test_new_default_demotes_previous(self, store):
        resolver = AddressResolver(store)

        first = await resolver.resolve(BUYER, CreateAddress(draft(label="Home")))
        second = await resolver.resolve(BUYER, CreateAddress(draft(label="Farm")))

        assert isinstance(first, Ok) and isinstance(second, Ok)
        defaults = [a for a in store.addresses() if a.is_default]
        assert [a.id for a in defaults] == [second.value]

    async def test_store_failure(self, store):
        store.fail(Operation.CREATE_ADDRESS)

        result = await AddressResolver(store).resolve(BUYER, CreateAddress(draft()))

        assert isinstance(result, Error)
        assert result.error.message == ADDRESS_SAVE_FAILED
        assert store.addresses() == ()

    async def test_timeout_is_a_failure(self, store):
        store.slow(Operation.CREATE_ADDRESS, seconds=0.2)

        result = await AddressResolver(store, timeout=0.05).resolve(BUYER, CreateAddress(draft()))

        assert isinstance(result, Error)
        assert result.error.message == ADDRESS_SAVE_FAILED


class TestAddressDraft:
    def test_missing_fields_listed_in_order(self):
        assert draft(phone="", pincode=" ").missing_fields() == ("phone", "pincode")

    def test_location_needs_both_coordinates(self):
        assert not draft(longitude=None).has_location
