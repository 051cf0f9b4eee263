import pytest

from marketplace import models
from marketplace.services import orders
from marketplace.services.errors import (
    Forbidden,
    InvalidArgument,
    InvalidTransition,
    NotFound,
    SupplierNotFound,
)


@pytest.fixture
def order(db_session, client_user, supplier):
    return orders.create_order(
        db=db_session,
        client_id=client_user.id,
        supplier_short_code=supplier.short_code,
        description="500 silicone phone cases",
        value_foreign=1000,
    )


def _ship(db, order, supplier, tracking="CN123"):
    return orders.mark_shipped(
        db=db,
        order_id=order.id,
        actor_id=supplier.id,
        tracking_code=tracking,
        shipping_photos=["photos/box-1.jpg"],
    )


def test_create_order_is_pending_and_uses_internal_id(order, supplier, client_user):
    assert order.status == models.OrderStatus.PENDING
    assert order.supplier_id == supplier.id
    assert order.client_id == client_user.id
    assert order.value_foreign == 1000
    assert order.tracking_code is None
    assert order.created_at is not None


def test_create_order_against_unapproved_supplier(db_session, client_user, user_factory):
    s = user_factory(models.UserRole.SUPPLIER, short_code="654321", is_approved=False)
    o = orders.create_order(
        db=db_session,
        client_id=client_user.id,
        supplier_short_code="654321",
        description="Sneakers",
        value_foreign=10,
    )
    assert o.supplier_id == s.id


def test_create_order_validation(db_session, client_user, supplier):
    with pytest.raises(SupplierNotFound):
        orders.create_order(
            db=db_session,
            client_id=client_user.id,
            supplier_short_code="999999",
            description="x",
            value_foreign=1,
        )
    with pytest.raises(InvalidArgument):
        orders.create_order(
            db=db_session,
            client_id=client_user.id,
            supplier_short_code=supplier.short_code,
            description="   ",
            value_foreign=1,
        )
    for bad in (0, -5):
        with pytest.raises(InvalidArgument):
            orders.create_order(
                db=db_session,
                client_id=client_user.id,
                supplier_short_code=supplier.short_code,
                description="x",
                value_foreign=bad,
            )
    with pytest.raises(Forbidden):
        orders.create_order(
            db=db_session,
            client_id=supplier.id,
            supplier_short_code=supplier.short_code,
            description="x",
            value_foreign=1,
        )
    assert db_session.query(models.Order).count() == 0


def test_full_happy_path(db_session, order, supplier):
    shipped = _ship(db_session, order, supplier)
    assert shipped.status == models.OrderStatus.SENT
    assert shipped.tracking_code == "CN123"
    assert shipped.shipping_photos == ["photos/box-1.jpg"]

    done = orders.finalize(db=db_session, order_id=order.id)
    assert done.status == models.OrderStatus.FINALIZED
    assert done.value_foreign == 1000


def test_mark_shipped_requires_both_fields(db_session, order, supplier):
    with pytest.raises(InvalidArgument):
        orders.mark_shipped(
            db=db_session, order_id=order.id, actor_id=supplier.id, tracking_code="CN1", shipping_photos=[]
        )
    with pytest.raises(InvalidArgument):
        orders.mark_shipped(
            db=db_session, order_id=order.id, actor_id=supplier.id, tracking_code=" ", shipping_photos=["a.jpg"]
        )

    db_session.expire_all()
    fresh = orders.get_order(db=db_session, order_id=order.id)
    assert fresh.status == models.OrderStatus.PENDING
    assert fresh.tracking_code is None
    assert fresh.shipping_photos is None


def test_mark_shipped_only_by_own_supplier(db_session, order, user_factory, client_user):
    other = user_factory(models.UserRole.SUPPLIER, is_approved=True)
    with pytest.raises(Forbidden):
        _ship(db_session, order, other)
    with pytest.raises(Forbidden):
        _ship(db_session, order, client_user)


def test_mark_shipped_twice_fails(db_session, order, supplier):
    _ship(db_session, order, supplier)
    with pytest.raises(InvalidTransition) as exc:
        _ship(db_session, order, supplier, tracking="CN999")
    assert exc.value.current == models.OrderStatus.SENT
    assert exc.value.attempted == models.OrderStatus.SENT

    fresh = orders.get_order(db=db_session, order_id=order.id)
    assert fresh.tracking_code == "CN123"


def test_dispute_from_pending_fails(db_session, order, client_user):
    with pytest.raises(InvalidTransition) as exc:
        orders.raise_dispute(db=db_session, order_id=order.id, actor_id=client_user.id, reason="late")
    assert exc.value.current == models.OrderStatus.PENDING
    assert orders.get_order(db=db_session, order_id=order.id).dispute_reason is None


def test_dispute_from_sent_keeps_shipping_data(db_session, order, supplier, client_user):
    _ship(db_session, order, supplier)
    disputed = orders.raise_dispute(
        db=db_session, order_id=order.id, actor_id=client_user.id, reason="Wrong colour"
    )
    assert disputed.status == models.OrderStatus.DISPUTE
    assert disputed.dispute_reason == "Wrong colour"
    assert disputed.tracking_code == "CN123"
    assert disputed.shipping_photos == ["photos/box-1.jpg"]
    assert disputed.value_foreign == 1000


def test_dispute_from_finalized_by_supplier(db_session, order, supplier):
    _ship(db_session, order, supplier)
    orders.finalize(db=db_session, order_id=order.id)
    disputed = orders.raise_dispute(
        db=db_session, order_id=order.id, actor_id=supplier.id, reason="Client chargeback"
    )
    assert disputed.status == models.OrderStatus.DISPUTE


def test_dispute_is_terminal(db_session, order, supplier, client_user):
    _ship(db_session, order, supplier)
    orders.raise_dispute(db=db_session, order_id=order.id, actor_id=client_user.id, reason="broken")

    with pytest.raises(InvalidTransition):
        orders.raise_dispute(db=db_session, order_id=order.id, actor_id=client_user.id, reason="again")
    with pytest.raises(InvalidTransition):
        orders.finalize(db=db_session, order_id=order.id)
    with pytest.raises(InvalidTransition):
        _ship(db_session, order, supplier)
    assert orders.get_order(db=db_session, order_id=order.id).dispute_reason == "broken"


def test_dispute_requires_party_and_reason(db_session, order, supplier, user_factory):
    _ship(db_session, order, supplier)
    stranger = user_factory(models.UserRole.CLIENT)
    with pytest.raises(Forbidden):
        orders.raise_dispute(db=db_session, order_id=order.id, actor_id=stranger.id, reason="?")
    with pytest.raises(InvalidArgument):
        orders.raise_dispute(db=db_session, order_id=order.id, actor_id=supplier.id, reason="")


def test_finalize_only_from_sent(db_session, order, supplier):
    with pytest.raises(InvalidTransition) as exc:
        orders.finalize(db=db_session, order_id=order.id)
    assert exc.value.current == models.OrderStatus.PENDING

    _ship(db_session, order, supplier)
    orders.finalize(db=db_session, order_id=order.id)
    with pytest.raises(InvalidTransition):
        orders.finalize(db=db_session, order_id=order.id)


def test_unknown_order(db_session, supplier):
    with pytest.raises(NotFound):
        orders.get_order(db=db_session, order_id=404)
    with pytest.raises(NotFound):
        orders.finalize(db=db_session, order_id=404)
    with pytest.raises(NotFound):
        orders.raise_dispute(db=db_session, order_id=404, actor_id=supplier.id, reason="x")


def test_transition_table():
    S = models.OrderStatus
    legal = {(S.PENDING, S.SENT), (S.SENT, S.FINALIZED), (S.SENT, S.DISPUTE), (S.FINALIZED, S.DISPUTE)}
    for current in S:
        for target in S:
            assert orders.can_transition(current, target) is ((current, target) in legal)


def test_listing(db_session, order, supplier, client_user, user_factory):
    other_client = user_factory(models.UserRole.CLIENT)
    other = orders.create_order(
        db=db_session,
        client_id=other_client.id,
        supplier_short_code=supplier.short_code,
        description="Bags",
        value_foreign=20,
    )
    _ship(db_session, order, supplier)

    assert [o.id for o in orders.list_orders_for_client(db=db_session, client_id=client_user.id)] == [order.id]
    assert {o.id for o in orders.list_orders_for_supplier(db=db_session, supplier_id=supplier.id)} == {
        order.id,
        other.id,
    }
    assert [o.id for o in orders.list_orders(db=db_session, status=models.OrderStatus.SENT)] == [order.id]
