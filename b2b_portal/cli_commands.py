"""
Flask CLI commands for portal maintenance.

Commands:
- flask init-db: Create the portal tables
- flask check-entitlement EMAIL: Look up a Shopify customer and show its B2B discount
"""

import click
import requests
from flask import current_app

from b2b_portal.database import create_tables
from b2b_portal.services.entitlement_service import resolve_discount, has_ima_tag


def init_cli_commands(app):
    """Register CLI commands with Flask app."""

    @app.cli.command('init-db')
    def init_db_command():
        """Create user_profiles and order_history tables if missing."""
        create_tables()
        click.echo(click.style('✅ Tablas creadas (user_profiles, order_history)', fg='green'))

    @app.cli.command('check-entitlement')
    @click.argument('email')
    def check_entitlement(email):
        """Show the B2B entitlement a Shopify customer's tags grant."""
        shopify = current_app.extensions['b2b_portal']['shopify']

        try:
            customer = shopify.find_customer_by_email(email)
        except requests.RequestException as e:
            click.echo(click.style(f'❌ Error consultando Shopify: {e}', fg='red'))
            raise SystemExit(1)

        if not customer:
            click.echo(click.style(f'❌ Cliente no encontrado: {email}', fg='red'))
            raise SystemExit(1)

        tags = customer.get('tags') or ''
        discount = resolve_discount(tags)
        click.echo(f'   Cliente: {email} (ID: {customer.get("id")})')
        click.echo(f'   Etiquetas: {tags or "-"}')

        if discount is None:
            click.echo(click.style('⚠️ Sin acceso B2B (ninguna etiqueta b2bNN / imaNN)', fg='yellow'))
            raise SystemExit(2)

        kind = 'IMA' if has_ima_tag(tags) else 'B2B'
        click.echo(click.style(f'✅ Descuento {kind}: {discount}%', fg='green', bold=True))
