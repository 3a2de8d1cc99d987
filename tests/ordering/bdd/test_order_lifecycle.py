"""BDD tests for the order lifecycle guard."""

from pytest_bdd import scenarios

scenarios("features/order_lifecycle.feature")
