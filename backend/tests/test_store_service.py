import pytest

from shopfloor.errors import StorageError
from shopfloor.models import Product, Store, StoreProduct, StoreUser
from shopfloor.services import gateway, store_service
from shopfloor.services.gateway import DataAccessError
from shopfloor.validation import ConflictError, ValidationError


def test_create_store_returns_full_refetched_list(db_session, store):
    stores = store_service.create_store(42)

    assert [s.location for s in stores] == [42, 101]


def test_assign_user_and_refetch_embeds_user(db_session, store, user):
    stores = store_service.assign_user(store.id, user.id)

    [fresh] = stores
    assert [u.email for u in fresh.users] == [user.email]
    assert fresh.to_dict()["users"][0]["id"] == user.id


def test_duplicate_user_link_is_conflict(db_session, store, user):
    store_service.assign_user(store.id, user.id)

    with pytest.raises(ConflictError):
        store_service.assign_user(store.id, user.id)
    assert len(gateway.select(StoreUser)) == 1


def test_unknown_user_or_store(db_session, store):
    with pytest.raises(ValidationError):
        store_service.assign_user(store.id, 9999)
    with pytest.raises(ValidationError):
        store_service.assign_user(9999, 1)


def test_store_product_quantity_is_independent(db_session, store, product_a1):
    stores = store_service.add_product_to_store(store.id, product_a1.id, 4)
    assert stores[0].product_links[0].quantity == 4

    stores = store_service.update_product_in_store(store.id, product_a1.id, 9)
    assert stores[0].to_dict()["products"][0]["quantity"] == 9
    assert gateway.get_by_id(Product, product_a1.id).quantity == 10

    with pytest.raises(ValidationError):
        store_service.update_product_in_store(store.id, product_a1.id, -1)
    with pytest.raises(ConflictError):
        store_service.add_product_to_store(store.id, product_a1.id)

    stores = store_service.remove_product_from_store(store.id, product_a1.id)
    assert stores[0].product_links == []


def test_remove_user_and_stores_for_user(db_session, store, user):
    other = gateway.insert(Store, {"location": 7})
    store_service.assign_user(store.id, user.id)
    store_service.assign_user(other.id, user.id)

    assert [s.location for s in store_service.stores_for_user(user.id)] == [7, 101]

    store_service.remove_user(other.id, user.id)
    assert [s.id for s in store_service.stores_for_user(user.id)] == [store.id]


def test_delete_store_removes_links(db_session, store, user, product_a1):
    store_service.assign_user(store.id, user.id)
    store_service.add_product_to_store(store.id, product_a1.id, 1)

    assert store_service.delete_store(store.id) == []
    assert gateway.select(StoreUser) == []
    assert gateway.select(StoreProduct) == []


def test_write_failure_skips_refetch(db_session, store, user, monkeypatch):
    def failing_insert(*args, **kwargs):
        raise DataAccessError("locked", operation="insert", table="store_users")

    monkeypatch.setattr(gateway, "insert", failing_insert)

    with pytest.raises(StorageError) as exc:
        store_service.assign_user(store.id, user.id)
    assert exc.value.failed_step == "insert_store_user"
    assert exc.value.stale is False


def test_refetch_failure_is_flagged_stale(db_session, store, user, monkeypatch):
    original_select = gateway.select

    def failing_store_select(model, **kwargs):
        if model is Store and kwargs.get("joins"):
            raise DataAccessError("timeout", operation="select", table="stores")
        return original_select(model, **kwargs)

    monkeypatch.setattr(gateway, "select", failing_store_select)

    with pytest.raises(StorageError) as exc:
        store_service.assign_user(store.id, user.id)

    assert exc.value.stale is True
    assert exc.value.committed_steps == ("insert_store_user",)
    monkeypatch.setattr(gateway, "select", original_select)
    assert len(gateway.select(StoreUser)) == 1
