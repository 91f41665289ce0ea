"""
Integration tests for application-level endpoints: health, CSRF token,
metrics, public catalog and restocking.
"""

from pharmastore.models import Product, StockMovement, StockMovementReason


class TestHealth:

    def test_health_ok(self, client):
        """Health reports database and cache state."""
        response = client.get('/health')
        assert response.status_code == 200
        body = response.get_json()
        assert body['status'] == 'ok'
        assert body['database'] == 'ok'
        assert body['cache'] == 'disabled'

    def test_csrf_token(self, client):
        """The CSRF endpoint hands out a token."""
        response = client.get('/api/csrf-token')
        assert response.status_code == 200
        assert response.get_json()['csrfToken']

    def test_unknown_route_is_json(self, client):
        """Unknown routes answer with a JSON 404."""
        response = client.get('/api/nothing-here')
        assert response.status_code == 404
        assert response.get_json()['errorCode'] == 'NOT_FOUND'


class TestMetrics:

    def test_exposes_domain_counters(self, client, customer, pharmacy, product, fill_cart, session):
        """Prometheus output includes the order and stock counters."""
        from pharmastore.services import order_service
        cart = fill_cart(customer, pharmacy, (product, 1))
        order_service.create_order_from_cart(session, cart, 'CARGO', {})

        response = client.get('/metrics')
        assert response.status_code == 200
        text = response.get_data(as_text=True)
        assert 'orders_created_total{delivery_type="CARGO"}' in text
        assert 'http_requests_total' in text
        assert 'stock_conflicts_total' in text


class TestCatalog:

    def test_public_products(self, client, pharmacy, product, make_product):
        """The storefront lists only the active products of the pharmacy."""
        make_product(pharmacy, name='Hidden', active=False)
        response = client.get(f'/api/public/pharmacies/{pharmacy.id}/products')
        assert response.status_code == 200
        products = response.get_json()['data']
        assert [p['id'] for p in products] == [product.id]
        assert products[0]['price'] == '100.00'
        assert products[0]['stockQuantity'] == 10

    def test_suspended_pharmacy_hidden(self, client, session, make_pharmacy):
        """A suspended pharmacy has no public catalog."""
        closed = make_pharmacy('Closed', is_suspended=True)
        assert client.get(f'/api/public/pharmacies/{closed.id}/products').status_code == 404

    def test_restock(self, staff_client, session, product):
        """Staff restock adds stock and records a RESTOCK movement."""
        response = staff_client.post(f'/api/staff/products/{product.id}/restock', json={'quantity': 15})
        assert response.status_code == 200
        assert response.get_json()['data']['stockQuantity'] == 25

        movement = session.query(StockMovement).filter(StockMovement.product_id == product.id).one()
        assert (movement.delta, movement.reason) == (15, StockMovementReason.RESTOCK)

    def test_restock_requires_positive_quantity(self, staff_client, session, product):
        """Zero or negative restock quantities are rejected."""
        response = staff_client.post(f'/api/staff/products/{product.id}/restock', json={'quantity': 0})
        assert response.status_code == 400
        assert session.query(Product.stock_quantity).filter(Product.id == product.id).scalar() == 10

    def test_restock_requires_staff(self, customer_client, product):
        """Customers cannot restock."""
        response = customer_client.post(f'/api/staff/products/{product.id}/restock', json={'quantity': 1})
        assert response.status_code == 403
