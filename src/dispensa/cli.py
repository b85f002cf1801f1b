"""Command-line interface for Dispensa."""

from __future__ import annotations

import json
from dataclasses import dataclass
from typing import List, Optional

import typer

from dispensa.client import ApiClient, ApiError, Dashboard, DashboardError
from dispensa.config import get_settings
from dispensa.expiry import expiry_label, expiry_level
from dispensa.models.product import STORAGE_LABELS

app = typer.Typer(help="Fridge and pantry inventory commands.")
products_app = typer.Typer(help="Manage fridge and pantry products.")
shopping_app = typer.Typer(help="Manage the shopping list.")
app.add_typer(products_app, name="products")
app.add_typer(shopping_app, name="shopping")

_LEVEL_COLORS = {
    "expired": typer.colors.RED,
    "critical": typer.colors.YELLOW,
    "warning": typer.colors.BRIGHT_YELLOW,
    "ok": typer.colors.GREEN,
}


@dataclass
class CliState:
    server: str
    user: Optional[str]
    token: Optional[str]


def build_api_client(server: str, token: Optional[str] = None) -> ApiClient:
    return ApiClient(server, token=token)


def _dashboard(ctx: typer.Context) -> Dashboard:
    state: CliState = ctx.obj
    if not state.user:
        typer.secho("No user given: pass --user or set DISPENSA_USER.", fg=typer.colors.RED, err=True)
        raise typer.Exit(code=2)
    api = build_api_client(state.server, state.token)
    ctx.call_on_close(api.close)
    return Dashboard(api, state.user)


def _fail(message: str) -> None:
    typer.secho(message, fg=typer.colors.RED, err=True)
    raise typer.Exit(code=1)


@app.callback()
def main_options(
    ctx: typer.Context,
    server: Optional[str] = typer.Option(None, "--server", help="Base URL of the Dispensa server."),
    user: Optional[str] = typer.Option(None, "--user", "-u", help="Username owning the lists."),
    token: Optional[str] = typer.Option(None, "--token", help="API token, if the server requires one."),
) -> None:
    settings = get_settings()
    ctx.obj = CliState(
        server=server or settings.client_server_url,
        user=(user or settings.client_username or "").strip() or None,
        token=token or settings.api_token,
    )


@app.command()
def serve(
    host: Optional[str] = typer.Option(None, "--host", help="Interface to bind."),
    port: Optional[int] = typer.Option(None, "--port", help="Port to listen on."),
    reload: bool = typer.Option(False, "--reload", help="Restart on code changes."),
) -> None:
    """Run the API server and web UI."""

    from dispensa.server.run import main as run_server

    run_server(host=host, port=port, reload=reload)


@products_app.command("list")
def products_list(
    ctx: typer.Context,
    storage: Optional[str] = typer.Option(None, "--storage", help="Only 'frigo' or 'dispensa'."),
    as_json: bool = typer.Option(False, "--json", help="Print raw JSON."),
) -> None:
    """List products, soonest expiry first."""

    dashboard = _dashboard(ctx)
    if not dashboard.load_products():
        _fail(dashboard.error or "")
    products = dashboard.visible_products(storage)

    if as_json:
        payload = [product.model_dump(mode="json", by_alias=True) for product in products]
        typer.echo(json.dumps(payload, indent=2))
        return
    if not products:
        typer.echo("Nessun prodotto ancora.")
        return
    for product in products:
        level = expiry_level(product.expiry_date)
        typer.echo(
            f"{product.id}  {product.name} ({product.category})  "
            f"{product.quantity:g} {product.unit}  {STORAGE_LABELS[product.storage_type]}  ",
            nl=False,
        )
        typer.secho(expiry_label(product.expiry_date), fg=_LEVEL_COLORS[level])


@products_app.command("add")
def products_add(
    ctx: typer.Context,
    name: str = typer.Argument(..., help="Product name."),
    expiry: str = typer.Option(..., "--expiry", help="Expiry date, YYYY-MM-DD or DD/MM/YYYY."),
    category: Optional[str] = typer.Option(None, "--category"),
    quantity: float = typer.Option(1.0, "--quantity", "-q"),
    unit: str = typer.Option("pz", "--unit"),
    storage: str = typer.Option("frigo", "--storage", help="'frigo' or 'dispensa'."),
    barcode: Optional[str] = typer.Option(None, "--barcode"),
) -> None:
    """Add a product to the fridge or the pantry."""

    dashboard = _dashboard(ctx)
    fields = {
        "name": name,
        "expiryDate": expiry,
        "quantity": quantity,
        "unit": unit,
        "storageType": storage,
    }
    if category:
        fields["category"] = category
    if barcode:
        fields["barcode"] = barcode
    try:
        product = dashboard.add_product(**fields)
    except DashboardError as exc:
        _fail(str(exc))
    typer.echo(f"Aggiunto {product.name} [{product.id}]")


@products_app.command("use")
def products_use(
    ctx: typer.Context,
    product_id: str = typer.Argument(...),
    amount: float = typer.Option(1.0, "--amount", "-n"),
) -> None:
    """Decrease a product's quantity (never below zero)."""

    _change_quantity(ctx, product_id, -amount)


@products_app.command("restock")
def products_restock(
    ctx: typer.Context,
    product_id: str = typer.Argument(...),
    amount: float = typer.Option(1.0, "--amount", "-n"),
) -> None:
    """Increase a product's quantity."""

    _change_quantity(ctx, product_id, amount)


def _change_quantity(ctx: typer.Context, product_id: str, delta: float) -> None:
    dashboard = _dashboard(ctx)
    if not dashboard.load_products():
        _fail(dashboard.error or "")
    try:
        if delta < 0:
            product = dashboard.decrement(product_id, -delta)
        else:
            product = dashboard.increment(product_id, delta)
    except DashboardError as exc:
        _fail(str(exc))
    typer.echo(f"{product.name}: {product.quantity:g} {product.unit}")


@products_app.command("remove")
def products_remove(ctx: typer.Context, product_id: str = typer.Argument(...)) -> None:
    """Delete a product."""

    dashboard = _dashboard(ctx)
    try:
        dashboard.delete_product(product_id)
    except DashboardError as exc:
        _fail(str(exc))
    typer.echo(f"Eliminato {product_id}")


@shopping_app.command("list")
def shopping_list(ctx: typer.Context) -> None:
    """Show the shopping list, open items first."""

    dashboard = _dashboard(ctx)
    if not dashboard.load_shopping_list():
        _fail(dashboard.error or "")
    if not dashboard.shopping_items:
        typer.echo("La lista è vuota.")
        return
    for item in dashboard.active_items:
        typer.echo(f"[ ] {item.id}  {item.name}" + (f" ({item.quantity})" if item.quantity else ""))
    for item in dashboard.completed_items:
        typer.secho(
            f"[x] {item.id}  {item.name}" + (f" ({item.quantity})" if item.quantity else ""),
            dim=True,
        )


@shopping_app.command("add")
def shopping_add(
    ctx: typer.Context,
    name: str = typer.Argument(...),
    quantity: Optional[str] = typer.Option(None, "--quantity", "-q", help="Free text, e.g. '2 kg'."),
) -> None:
    """Add an item to the shopping list."""

    dashboard = _dashboard(ctx)
    try:
        item = dashboard.add_shopping_item(name, quantity)
    except DashboardError as exc:
        _fail(str(exc))
    typer.echo(f"Aggiunto {item.name} [{item.id}]")


@shopping_app.command("done")
def shopping_done(ctx: typer.Context, item_id: str = typer.Argument(...)) -> None:
    """Mark an item as bought."""

    _toggle(ctx, item_id, True)


@shopping_app.command("undo")
def shopping_undo(ctx: typer.Context, item_id: str = typer.Argument(...)) -> None:
    """Put a bought item back on the list."""

    _toggle(ctx, item_id, False)


def _toggle(ctx: typer.Context, item_id: str, completed: bool) -> None:
    dashboard = _dashboard(ctx)
    try:
        item = dashboard.toggle_shopping_item(item_id, completed)
    except DashboardError as exc:
        _fail(str(exc))
    typer.echo(f"{'[x]' if item.completed else '[ ]'} {item.name}")


@shopping_app.command("remove")
def shopping_remove(ctx: typer.Context, item_id: str = typer.Argument(...)) -> None:
    """Delete an item from the shopping list."""

    dashboard = _dashboard(ctx)
    try:
        dashboard.delete_shopping_item(item_id)
    except DashboardError as exc:
        _fail(str(exc))
    typer.echo(f"Eliminato {item_id}")


@shopping_app.command("clear")
def shopping_clear(ctx: typer.Context) -> None:
    """Drop every completed item."""

    dashboard = _dashboard(ctx)
    try:
        remaining = dashboard.clear_completed()
    except DashboardError as exc:
        _fail(str(exc))
    typer.echo(f"{len(remaining)} articoli rimasti.")


@app.command()
def recipe(
    ctx: typer.Context,
    product_ids: Optional[List[str]] = typer.Argument(None, help="Product ids to cook with."),
    ingredient: Optional[List[str]] = typer.Option(None, "--ingredient", "-i", help="Extra ingredient name."),
) -> None:
    """Ask the AI chef for a recipe using the selected products."""

    dashboard = _dashboard(ctx)
    try:
        suggestion = dashboard.suggest_recipe(product_ids or [], ingredient or [])
    except DashboardError as exc:
        _fail(str(exc))
    typer.secho(suggestion.title, bold=True)
    typer.echo(f"Difficoltà: {suggestion.difficulty}  Tempo: {suggestion.time}")
    typer.echo("")
    typer.echo(suggestion.procedure)


@app.command()
def barcode(ctx: typer.Context, code: str = typer.Argument(...)) -> None:
    """Look a barcode up on Open Food Facts."""

    state: CliState = ctx.obj
    api = build_api_client(state.server, state.token)
    try:
        result = api.lookup_barcode(code)
    except ApiError as exc:
        _fail(str(exc))
    finally:
        api.close()
    typer.echo(json.dumps(result.model_dump(mode="json"), indent=2))


def main(argv: Optional[list[str]] = None) -> None:
    """Entry point for `python -m dispensa`."""
    app(prog_name="dispensa", args=argv)


if __name__ == "__main__":
    main()
