"""Shared BDD fixtures and step definitions for the order lifecycle."""

import pytest
from ordering.order.cancellation import cancel_order
from ordering.order.order import Order
from ordering.order.returns import ReturnOrder
from ordering.order.status import UpdateOrderStatus
from protean import current_domain
from protean.exceptions import ValidationError
from pytest_bdd import given, parsers, then, when

_PATH = ["pending", "confirmed", "processing", "shipped", "delivered"]


@pytest.fixture()
def error():
    """Container for a rejected move."""
    return {"exc": None}


def _capture(error, fn, *args, **kwargs):
    try:
        fn(*args, **kwargs)
    except ValidationError as exc:
        error["exc"] = exc


def _move(order_id, status):
    current_domain.process(UpdateOrderStatus(order_id=order_id, status=status), asynchronous=False)


# ---------------------------------------------------------------------------
# Given steps
# ---------------------------------------------------------------------------
@given("a cash on delivery order", target_fixture="order_id")
def _(cod_order):
    return cod_order


@given(parsers.parse('the order has been moved to "{status}"'))
def _(order_id, status):
    for step in _PATH[1 : _PATH.index(status) + 1]:
        _move(order_id, step)


@given("the customer has cancelled the order")
def _(order_id):
    cancel_order(order_id, reason="Changed my mind")


# ---------------------------------------------------------------------------
# When steps
# ---------------------------------------------------------------------------
@when(parsers.parse('the order is moved to "{status}"'))
def _(order_id, status, error):
    _capture(error, _move, order_id, status)


@when("the customer cancels the order")
def _(order_id, error):
    _capture(error, cancel_order, order_id, reason="Changed my mind")


@when("the order is returned")
def _(order_id, error):
    _capture(
        error,
        current_domain.process,
        ReturnOrder(order_id=order_id, reason="Wrong size"),
        asynchronous=False,
    )


# ---------------------------------------------------------------------------
# Then steps
# ---------------------------------------------------------------------------
@then(parsers.parse('the order status is "{status}"'))
def _(order_id, status):
    assert current_domain.repository_for(Order).get(order_id).status == status


@then(parsers.parse('the last history entry is "{status}"'))
def _(order_id, status):
    assert current_domain.repository_for(Order).get(order_id).history[-1].state == status


@then("the move is rejected")
def _(error):
    assert isinstance(error["exc"], ValidationError)


@then(parsers.parse('the stock of "{product_id}" is {quantity:d}'))
def _(catalogue, product_id, quantity):
    assert catalogue.find_product(product_id).stock_quantity == quantity
