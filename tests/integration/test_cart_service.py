"""
Integration tests for the cart aggregate.
"""

import pytest
from decimal import Decimal

from pharmastore.models import Cart, CartItem, Product
from pharmastore.exceptions import (
    InsufficientStockError, ProductUnavailableError, EmptyCartError,
    CartItemsUnavailableError, NotFoundError, ValidationError
)
from pharmastore.services import cart_service


class TestGetOrCreateCart:

    def test_creates_once_per_customer_and_pharmacy(self, session, customer, pharmacy):
        """A second call returns the same cart."""
        cart = cart_service.get_or_create_cart(session, customer.id, pharmacy.id)
        session.commit()
        again = cart_service.get_or_create_cart(session, customer.id, pharmacy.id)

        assert cart.id == again.id
        assert session.query(Cart).filter_by(customer_id=customer.id).count() == 1

    def test_separate_carts_per_pharmacy(self, session, customer, pharmacy, pharmacy2):
        """A customer has one cart per pharmacy."""
        cart1 = cart_service.get_or_create_cart(session, customer.id, pharmacy.id)
        cart2 = cart_service.get_or_create_cart(session, customer.id, pharmacy2.id)
        assert cart1.id != cart2.id

    def test_get_cart_or_404(self, session, customer, pharmacy):
        """A missing cart raises NotFoundError."""
        with pytest.raises(NotFoundError):
            cart_service.get_cart_or_404(session, customer.id, pharmacy.id)


class TestAddItem:

    def test_add_new_item(self, session, customer, pharmacy, product, fill_cart):
        """Adding a product creates a line with the quantity."""
        cart = fill_cart(customer, pharmacy, (product, 2))
        assert len(cart.items) == 1
        assert cart.items[0].quantity == 2

    def test_adding_same_product_sums_quantities(self, session, customer, pharmacy, product, fill_cart):
        """Adding an existing product increases that line."""
        cart = fill_cart(customer, pharmacy, (product, 2), (product, 3))
        assert len(cart.items) == 1
        assert cart.items[0].quantity == 5

    def test_combined_quantity_is_revalidated(self, session, customer, pharmacy, product, fill_cart):
        """The summed quantity is checked against stock."""
        cart = fill_cart(customer, pharmacy, (product, 6))
        with pytest.raises(InsufficientStockError):
            cart_service.add_item(session, cart, session.get(Product, product.id), 5)
        assert session.query(CartItem).filter_by(cart_id=cart.id).one().quantity == 6

    def test_quantity_above_stock_rejected(self, session, customer, pharmacy, product):
        """More than the stock raises InsufficientStockError."""
        cart = cart_service.get_or_create_cart(session, customer.id, pharmacy.id)
        with pytest.raises(InsufficientStockError) as exc:
            cart_service.add_item(session, cart, session.get(Product, product.id), 11)
        assert exc.value.payload['available'] == 10

    def test_inactive_product_rejected(self, session, customer, pharmacy, make_product):
        """Inactive products cannot be added."""
        inactive = make_product(pharmacy, active=False)
        cart = cart_service.get_or_create_cart(session, customer.id, pharmacy.id)
        with pytest.raises(ProductUnavailableError):
            cart_service.add_item(session, cart, inactive, 1)

    def test_zero_quantity_rejected(self, session, customer, pharmacy, product):
        """Quantities below one are rejected."""
        cart = cart_service.get_or_create_cart(session, customer.id, pharmacy.id)
        with pytest.raises(ValidationError):
            cart_service.add_item(session, cart, session.get(Product, product.id), 0)

    def test_product_of_other_pharmacy_rejected(self, session, customer, pharmacy, product2):
        """Products from another pharmacy cannot enter the cart."""
        cart = cart_service.get_or_create_cart(session, customer.id, pharmacy.id)
        with pytest.raises(NotFoundError):
            cart_service.add_item(session, cart, session.get(Product, product2.id), 1)


class TestUpdateAndRemove:

    def test_update_quantity(self, session, customer, pharmacy, product, fill_cart):
        """A line quantity can be changed."""
        cart = fill_cart(customer, pharmacy, (product, 2))
        item = cart_service.update_quantity(session, cart, cart.items[0].id, 4)
        assert item.quantity == 4

    def test_zero_quantity_removes_item(self, session, customer, pharmacy, product, fill_cart):
        """Setting quantity to zero removes the line."""
        cart = fill_cart(customer, pharmacy, (product, 2))
        assert cart_service.update_quantity(session, cart, cart.items[0].id, 0) is None
        assert session.query(CartItem).filter_by(cart_id=cart.id).count() == 0

    def test_update_beyond_stock_rejected(self, session, customer, pharmacy, product, fill_cart):
        """A new quantity above the stock is rejected."""
        cart = fill_cart(customer, pharmacy, (product, 2))
        with pytest.raises(InsufficientStockError):
            cart_service.update_quantity(session, cart, cart.items[0].id, 11)

    def test_unknown_item(self, session, customer, pharmacy, product, fill_cart):
        """Unknown line ids raise NotFoundError."""
        cart = fill_cart(customer, pharmacy, (product, 2))
        with pytest.raises(NotFoundError):
            cart_service.update_quantity(session, cart, 9999, 1)

    def test_remove_and_clear(self, session, customer, pharmacy, product, make_product, fill_cart):
        """Lines are removed one by one or all at once."""
        other = make_product(pharmacy, name='Vitamin C')
        cart = fill_cart(customer, pharmacy, (product, 1), (other, 1))

        cart_service.remove_item(session, cart, cart.items[0].id)
        assert len(cart.items) == 1

        cart_service.clear_cart(session, cart)
        assert cart.is_empty
        assert session.query(CartItem).count() == 0


class TestValidationAndTotals:

    def test_empty_cart_invalid(self, session, customer, pharmacy):
        """An empty cart fails validation."""
        cart = cart_service.get_or_create_cart(session, customer.id, pharmacy.id)
        with pytest.raises(EmptyCartError):
            cart_service.validate_cart(cart)
        with pytest.raises(EmptyCartError):
            cart_service.validate_cart(None)

    def test_items_becoming_unavailable_are_reported_not_corrected(
            self, session, customer, pharmacy, product, make_product, fill_cart):
        """Unavailable lines are reported while quantities stay as they were."""
        other = make_product(pharmacy, name='Vitamin C')
        cart = fill_cart(customer, pharmacy, (product, 3), (other, 1))

        session.get(Product, product.id).stock_quantity = 2
        session.get(Product, other.id).active = False
        session.commit()

        unavailable = cart_service.unavailable_items(cart)
        assert {i.product_id for i in unavailable} == {product.id, other.id}
        with pytest.raises(CartItemsUnavailableError) as exc:
            cart_service.validate_cart(cart)
        assert set(exc.value.payload['unavailableProductIds']) == {product.id, other.id}
        # quantities untouched
        assert cart.items[0].quantity == 3

    def test_totals_use_live_prices(self, session, customer, pharmacy, product, make_product, fill_cart):
        """Totals follow the current product prices."""
        discounted = make_product(pharmacy, name='Ibuprofen', price='50.00', discounted='40.00')
        cart = fill_cart(customer, pharmacy, (product, 2), (discounted, 3))

        totals = cart_service.calculate_cart_totals(cart)
        assert totals['subtotal'] == Decimal('320.00')
        assert totals['item_count'] == 5
        assert totals['line_count'] == 2

        session.get(Product, product.id).price = Decimal('110.00')
        session.commit()
        assert cart_service.calculate_cart_totals(cart)['subtotal'] == Decimal('340.00')
