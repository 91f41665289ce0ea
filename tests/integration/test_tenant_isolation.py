"""
Critical integration tests for pharmacy isolation.
Staff of one pharmacy must never read or change another pharmacy's data,
and customers only ever see their own carts, orders and payments.
"""

import pytest
from decimal import Decimal

from pharmastore.models import Product, Order, OrderStatus
from pharmastore.exceptions import NotFoundError
from pharmastore.services import cart_service, order_service, payment_service
from pharmastore.services.cache_service import CacheService


ORDER_BODY = {
    'deliveryType': 'COURIER',
    'shippingAddress': 'Bagdat Cd. 1',
    'shippingCity': 'Istanbul',
    'shippingDistrict': 'Kadikoy',
    'shippingPhone': '5550000000',
}


@pytest.fixture
def order(session, customer, pharmacy, product, fill_cart):
    cart = fill_cart(customer, pharmacy, (product, 2))
    return order_service.create_order_from_cart(session, cart, 'COURIER', {'address': 'Somewhere 1'})


class TestCatalogIsolation:

    def test_same_sku_in_two_pharmacies(self, session, pharmacy, pharmacy2, make_product):
        """Two pharmacies may use the same SKU and only see their own."""
        first = make_product(pharmacy)
        second = make_product(pharmacy2)
        session.query(Product).filter(Product.id == second.id).update({'sku': first.sku}, synchronize_session=False)
        session.commit()

        scoped = session.query(Product).filter(Product.pharmacy_id == pharmacy.id, Product.sku == first.sku).all()
        assert [p.id for p in scoped] == [first.id]

    def test_public_listing_only_shows_own_products(self, client, pharmacy, product, product2):
        """The storefront lists only the pharmacy's products."""
        response = client.get(f'/api/public/pharmacies/{pharmacy.id}/products')
        assert response.status_code == 200
        assert [p['id'] for p in response.get_json()['data']] == [product.id]

    def test_staff_cannot_restock_foreign_product(self, owner2_client, session, product):
        """Restocking another pharmacy's product is 404."""
        response = owner2_client.post(f'/api/staff/products/{product.id}/restock', json={'quantity': 5})
        assert response.status_code == 404
        assert session.query(Product.stock_quantity).filter(Product.id == product.id).scalar() == 10


class TestCartIsolation:

    def test_product_from_other_pharmacy_rejected(self, session, customer, pharmacy, product2):
        """The cart service refuses a foreign product."""
        cart = cart_service.get_or_create_cart(session, customer.id, pharmacy.id)
        with pytest.raises(NotFoundError):
            cart_service.add_item(session, cart, session.get(Product, product2.id), 1)

    def test_api_rejects_product_from_other_pharmacy(self, customer_client, pharmacy, product2):
        """The cart API answers 404 for a foreign product."""
        response = customer_client.post(
            f'/api/customer/cart/{pharmacy.id}/items', json={'productId': product2.id, 'quantity': 1}
        )
        assert response.status_code == 404

    def test_carts_are_per_pharmacy(self, session, customer, pharmacy, pharmacy2, product, product2, fill_cart):
        """Each pharmacy gets its own cart and lines."""
        fill_cart(customer, pharmacy, (product, 2))
        fill_cart(customer, pharmacy2, (product2, 1))

        first = cart_service.get_cart(session, customer.id, pharmacy.id)
        second = cart_service.get_cart(session, customer.id, pharmacy2.id)
        assert first.id != second.id
        assert [i.product_id for i in first.items] == [product.id]
        assert [i.product_id for i in second.items] == [product2.id]

    def test_customers_do_not_share_carts(self, session, customer, customer2, pharmacy, product, fill_cart):
        """Another customer has no cart at the same pharmacy."""
        fill_cart(customer, pharmacy, (product, 2))
        assert cart_service.get_cart(session, customer2.id, pharmacy.id) is None


class TestOrderIsolation:

    def test_other_pharmacy_staff_cannot_read_order(self, owner2_client, order):
        """Staff of another pharmacy get ACCESS_DENIED."""
        response = owner2_client.get(f'/api/staff/orders/{order.order_number}')
        assert response.status_code == 403
        assert response.get_json()['errorCode'] == 'ACCESS_DENIED'

    def test_other_pharmacy_staff_cannot_change_status(self, owner2_client, session, order):
        """Staff of another pharmacy cannot change the status."""
        response = owner2_client.patch(f'/api/staff/orders/{order.order_number}/status', json={'status': 'CONFIRMED'})
        assert response.status_code == 403
        assert session.get(Order, order.id).status == OrderStatus.PENDING

    def test_other_pharmacy_staff_cannot_cancel(self, owner2_client, session, order, product):
        """Staff of another pharmacy cannot cancel or touch stock."""
        response = owner2_client.post(f'/api/staff/orders/{order.order_number}/cancel', json={'reason': 'nope'})
        assert response.status_code == 403
        assert session.get(Order, order.id).status == OrderStatus.PENDING
        assert session.query(Product.stock_quantity).filter(Product.id == product.id).scalar() == 8

    def test_other_customer_cannot_read_or_cancel(self, login, customer2, session, order):
        """Another customer cannot open or cancel the order."""
        client = login(customer2)

        assert client.get(f'/api/customer/orders/{order.order_number}').status_code == 403
        response = client.post(f'/api/customer/orders/{order.order_number}/cancel', json={'reason': 'mine now'})
        assert response.status_code == 403
        assert session.get(Order, order.id).status == OrderStatus.PENDING

    def test_staff_listings_are_scoped(self, owner_client, owner2_client, order):
        """Staff listings only contain the pharmacy's orders."""
        mine = owner_client.get('/api/staff/orders').get_json()['data']
        theirs = owner2_client.get('/api/staff/orders').get_json()['data']
        assert [o['orderNumber'] for o in mine['content']] == [order.order_number]
        assert theirs['content'] == []
        assert theirs['totalElements'] == 0

    def test_stats_are_scoped(self, session, order, pharmacy, pharmacy2):
        """Stats count only the pharmacy's orders."""
        assert order_service.get_order_stats(session, pharmacy.id)['totalOrders'] == 1
        assert order_service.get_order_stats(session, pharmacy2.id)['totalOrders'] == 0


class TestPaymentIsolation:

    def test_other_pharmacy_owner_cannot_refund(self, owner2_client, session, order):
        """An owner of another pharmacy cannot refund."""
        payment = payment_service.create_payment(session, order)
        payment_service.process_successful_payment(session, payment.conversation_id, transaction_id='TX-1')

        response = owner2_client.post(
            '/api/staff/payments/refund', json={'paymentId': payment.id, 'fullRefund': True}
        )
        assert response.status_code == 403
        stored = payment_service.get_payment_by_id(session, payment.id)
        assert stored.refunded_amount == Decimal('0.00')

    def test_other_customer_cannot_read_payment(self, login, customer2, session, order):
        """Another customer cannot read the payment."""
        payment = payment_service.create_payment(session, order)
        client = login(customer2)
        assert client.get(f'/api/customer/payments/{payment.id}').status_code == 403
        assert client.get(f'/api/customer/payments/order/{order.order_number}').status_code == 403


class TestCacheKeyIsolation:

    def test_keys_are_namespaced_per_pharmacy(self, app):
        """Cache keys carry the pharmacy id."""
        cache = CacheService()
        cache._prefix = 'pharmastore'
        assert cache.build_key(1, 'orders', 'stats') != cache.build_key(2, 'orders', 'stats')
        assert cache.build_key(1, 'orders', 'stats').startswith('pharmastore:pharmacy:1:orders:')
