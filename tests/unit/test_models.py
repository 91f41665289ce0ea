"""
Unit tests for model helpers (no database access).
"""

import pytest
from decimal import Decimal
from pharmastore.models import (
    Pharmacy, Product, CartItem, Cart, Order, OrderItem, OrderStatus, Payment, PaymentStatus, AppUser
)


def _product(price='100.00', discounted=None, stock=10, active=True, threshold=10):
    return Product(
        name='Paracetamol',
        sku='PARA-1',
        price=Decimal(price),
        discounted_price=Decimal(discounted) if discounted else None,
        stock_quantity=stock,
        low_stock_threshold=threshold,
        active=active
    )


class TestProductModel:
    """Tests for Product pricing and stock helpers."""

    def test_effective_price_without_discount(self):
        """Without a discount the effective price is the price."""
        product = _product()
        assert product.has_discount is False
        assert product.effective_price == Decimal('100.00')
        assert product.discount_percentage == Decimal('0')

    def test_effective_price_uses_lower_discounted_price(self):
        """A lower discounted price wins."""
        product = _product(discounted='80.00')
        assert product.has_discount is True
        assert product.effective_price == Decimal('80.00')
        assert product.discount_percentage == Decimal('20.00')

    def test_discount_not_lower_than_price_is_ignored(self):
        """A discount that is not lower is ignored."""
        product = _product(discounted='120.00')
        assert product.has_discount is False
        assert product.effective_price == Decimal('100.00')

    def test_stock_flags(self):
        """In-stock and low-stock flags follow the quantity."""
        assert _product(stock=0).is_in_stock is False
        assert _product(stock=3).is_low_stock is True
        assert _product(stock=50).is_low_stock is False


class TestCartItemModel:
    """Tests for live cart item pricing and availability."""

    def test_prices_follow_product(self):
        """Cart line prices come from the live product."""
        product = _product(discounted='90.00')
        item = CartItem(product=product, quantity=3)
        assert item.unit_price == Decimal('90.00')
        assert item.total_price == Decimal('270.00')

        product.discounted_price = None
        assert item.total_price == Decimal('300.00')

    def test_available_requires_active_product_and_stock(self):
        """A line is available only for an active product with enough stock."""
        assert CartItem(product=_product(stock=5), quantity=5).is_available is True
        assert CartItem(product=_product(stock=4), quantity=5).is_available is False
        assert CartItem(product=_product(active=False), quantity=1).is_available is False

    def test_empty_cart(self):
        """A cart without lines is empty."""
        assert Cart().is_empty is True


class TestOrderModel:
    """Tests for Order helpers."""

    @pytest.mark.parametrize('status,expected', [
        (OrderStatus.PENDING, True),
        (OrderStatus.CONFIRMED, True),
        (OrderStatus.PREPARING, False),
        (OrderStatus.SHIPPED, False),
        (OrderStatus.DELIVERED, False),
        (OrderStatus.CANCELLED, False),
        (OrderStatus.PAYMENT_FAILED, False),
    ])
    def test_is_cancellable(self, status, expected):
        """Only PENDING and CONFIRMED orders are cancellable."""
        assert Order(status=status).is_cancellable is expected

    def test_completed_and_cancelled(self):
        """Completion and cancellation flags follow the status."""
        assert Order(status=OrderStatus.DELIVERED).is_completed is True
        assert Order(status=OrderStatus.CANCELLED).is_cancelled is True
        assert Order(status=OrderStatus.PENDING).is_completed is False

    def test_total_item_count(self):
        """The item count sums line quantities."""
        order = Order(status=OrderStatus.PENDING)
        order.items.append(OrderItem(product_name='A', product_sku='A', quantity=2,
                                     unit_price=Decimal('1'), total_price=Decimal('2')))
        order.items.append(OrderItem(product_name='B', product_sku='B', quantity=3,
                                     unit_price=Decimal('1'), total_price=Decimal('3')))
        assert order.total_item_count == 5


class TestPaymentModel:
    """Tests for Payment helpers."""

    def test_net_amount_and_partial_refund(self):
        """Net amount subtracts refunds; a partial refund is flagged."""
        payment = Payment(amount=Decimal('320.00'), refunded_amount=Decimal('200.00'), status=PaymentStatus.SUCCESS)
        assert payment.is_successful is True
        assert payment.is_partially_refunded is True
        assert payment.net_amount == Decimal('120.00')

    def test_fully_refunded_is_not_partial(self):
        """A full refund is not reported as partial."""
        payment = Payment(amount=Decimal('320.00'), refunded_amount=Decimal('320.00'), status=PaymentStatus.REFUNDED)
        assert payment.is_refunded is True
        assert payment.is_partially_refunded is False
        assert payment.net_amount == Decimal('0.00')

    def test_failed(self):
        """FAILED payments report is_failed."""
        assert Payment(amount=Decimal('1'), status=PaymentStatus.FAILED).is_failed is True


class TestPharmacyAndUser:

    def test_suspended_pharmacy_is_closed(self):
        """A suspended pharmacy is not open."""
        assert Pharmacy(active=True, is_suspended=False).is_open is True
        assert Pharmacy(active=True, is_suspended=True).is_open is False
        assert Pharmacy(active=False, is_suspended=False).is_open is False

    def test_password_hashing(self):
        """Passwords are hashed and checked."""
        user = AppUser(email='someone@test.com')
        user.set_password('s3cret')
        assert user.password_hash != 's3cret'
        assert user.check_password('s3cret') is True
        assert user.check_password('wrong') is False
