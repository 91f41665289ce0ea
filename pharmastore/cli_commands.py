"""
Flask CLI commands.

Commands:
- flask init-db: Create all tables
- flask seed-demo: Create a demo pharmacy with staff, a customer and products
"""
from decimal import Decimal

import click

from pharmastore.database import create_all, get_session
from pharmastore.models import (
    Pharmacy, AppUser, PharmacyMember, MemberRole, Category, Product
)

DEMO_PRODUCTS = [
    # name, sku, price, discounted price, stock
    ('Paracetamol 500mg 20 tabs', 'PARA-500-20', '100.00', None, 10),
    ('Ibuprofen 400mg 10 tabs', 'IBU-400-10', '85.50', '79.90', 25),
    ('Vitamin C 1000mg Effervescent', 'VITC-1000', '140.00', None, 4),
    ('Sunscreen SPF 50 200ml', 'SUN-50-200', '320.00', '289.00', 0),
]


def init_cli_commands(app):
    """Register CLI commands with Flask app."""

    @app.cli.command('init-db')
    def init_db_command():
        """Create all database tables."""
        create_all()
        click.echo(click.style('Database tables created.', fg='green'))

    @app.cli.command('seed-demo')
    @click.option('--slug', default='demo-pharmacy', show_default=True, help='Pharmacy slug')
    @click.option('--password', default='demo1234', show_default=True, help='Password for the demo users')
    def seed_demo(slug, password):
        """Create a demo pharmacy, its owner, a customer and a few products."""
        db_session = get_session()

        if db_session.query(Pharmacy).filter_by(slug=slug).first():
            click.echo(click.style(f'Pharmacy "{slug}" already exists, nothing to do.', fg='yellow'))
            return

        try:
            pharmacy = Pharmacy(slug=slug, name='Demo Pharmacy')
            owner = AppUser(email=f'owner@{slug}.test', full_name='Demo Owner')
            owner.set_password(password)
            customer = AppUser(email=f'customer@{slug}.test', full_name='Demo Customer')
            customer.set_password(password)
            db_session.add_all([pharmacy, owner, customer])
            db_session.flush()

            db_session.add(PharmacyMember(user_id=owner.id, pharmacy_id=pharmacy.id, role=MemberRole.OWNER.value))
            category = Category(pharmacy_id=pharmacy.id, name='General', slug='general')
            db_session.add(category)
            db_session.flush()

            for name, sku, price, discounted, stock in DEMO_PRODUCTS:
                db_session.add(Product(
                    pharmacy_id=pharmacy.id,
                    category_id=category.id,
                    name=name,
                    slug=f'{slug}-{sku.lower()}',
                    sku=sku,
                    price=Decimal(price),
                    discounted_price=Decimal(discounted) if discounted else None,
                    stock_quantity=stock
                ))
            db_session.commit()
        except Exception as e:
            db_session.rollback()
            click.echo(click.style(f'Seeding failed: {e}', fg='red'))
            raise click.Abort()

        click.echo(click.style('Demo data created.', fg='green', bold=True))
        click.echo(f'   Pharmacy: {pharmacy.name} (id {pharmacy.id})')
        click.echo(f'   Owner:    {owner.email}')
        click.echo(f'   Customer: {customer.email}')
        click.echo(f'   Products: {len(DEMO_PRODUCTS)}')
