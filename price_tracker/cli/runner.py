# price_tracker/cli/runner.py

"""Headless maintenance commands sharing the TUI's data layer."""

import getpass
import logging

from rich.console import Console
from rich.table import Table

from price_tracker.data.client import DataClient, DataClientError
from price_tracker.data.factory import create_client
from price_tracker.filters.product_validator import (
    ProductValidationError,
    ProductValidator,
)
from price_tracker.models.product import Product
from price_tracker.services.tracker_service import TrackerService

logger = logging.getLogger("price_tracker.cli")

# Stderr console for status messages so stdout stays clean
_err = Console(stderr=True)


def _signed_in_client(
    email: str | None, password: str | None,
) -> DataClient | None:
    """Return a client with a session, prompting for a missing password."""
    client = create_client()
    if client.get_current_user() is not None:
        return client
    if not email:
        _err.print("[red]--email is required to sign in.[/red]")
        client.close()
        return None
    if password is None:
        password = getpass.getpass("Password: ")
    try:
        client.sign_in(email, password)
    except DataClientError as exc:
        _err.print(f"[red]Sign-in failed: {exc}[/red]")
        client.close()
        return None
    return client


def _print_products(products: list[Product]) -> None:
    """Render a Rich table of products to stdout."""
    table = Table(
        title="Tracked Products",
        show_lines=True,
        title_style="bold cyan",
    )
    table.add_column("ID", style="dim", overflow="fold")
    table.add_column("Name", max_width=40)
    table.add_column("Price", justify="right", style="green")
    table.add_column("Category", style="magenta")
    table.add_column("♥", justify="center")
    table.add_column("Added", style="dim")
    table.add_column("URL", overflow="fold", style="dim")

    for p in products:
        table.add_row(
            p.id,
            p.name,
            f"${p.current_price:,.2f}",
            p.category or "—",
            "♥" if p.is_in_wishlist else "",
            p.created_at.strftime("%Y-%m-%d"),
            p.url,
        )

    Console().print(table)


def run_list_products(email: str | None, password: str | None) -> int:
    """Print the user's products, newest first."""
    client = _signed_in_client(email, password)
    if client is None:
        return 1
    try:
        products = TrackerService(client).load_products() or []
    except DataClientError as exc:
        logger.error("Listing products failed", exc_info=True)
        _err.print(f"[red]Error: {exc}[/red]")
        return 1
    finally:
        client.close()

    if not products:
        _err.print("[yellow]No products tracked yet.[/yellow]")
        return 0
    _print_products(products)
    return 0


def run_record_price(product_id: str, price_text: str) -> int:
    """Set a product's price on the local platform, recording history."""
    from price_tracker.storage.local_backend import LocalDataClient

    try:
        price = ProductValidator.parse_price(price_text)
    except ProductValidationError as exc:
        _err.print(f"[red]{exc}[/red]")
        return 1

    db = LocalDataClient()
    try:
        point = db.record_price(product_id, price)
    except DataClientError as exc:
        logger.error("Recording price failed", exc_info=True)
        _err.print(f"[red]Error: {exc}[/red]")
        return 1
    finally:
        db.close()

    _err.print(
        f"[green]✓ Recorded ${price:,.2f} for {product_id}"
        f" at {point['recorded_at']}[/green]"
    )
    return 0


def run_export_chart(
    product_id: str, email: str | None, password: str | None,
) -> int:
    """Write a product's price history as an HTML chart."""
    from price_tracker.storage.chart_exporter import export_price_chart

    client = _signed_in_client(email, password)
    if client is None:
        return 1
    service = TrackerService(client)
    try:
        products = service.load_products() or []
        history = service.load_history(product_id)
    except DataClientError as exc:
        logger.error("Loading history failed", exc_info=True)
        _err.print(f"[red]Error: {exc}[/red]")
        return 1
    finally:
        client.close()

    name = next((p.name for p in products if p.id == product_id), product_id)
    path = export_price_chart(history, name, open_browser=False)
    if path is None:
        _err.print("[yellow]No price history for that product.[/yellow]")
        return 1
    _err.print(f"[green]✓ Chart saved to {path}[/green]")
    return 0
