"""CLI entry point for Kitchen Matcher."""

import asyncio
import json
import logging
from pathlib import Path

import click

from . import __version__
from .catalog import CatalogError
from .config import CATALOG_FILE, DATABASE_FILE, DEFAULT_MAX_RESULTS, DEFAULT_MIN_CONFIDENCE, DEFAULT_USER_ID
from .converter import ConversionResult
from .db import StoreError
from .models import MatchCandidate
from .service import IngredientService, create_service
from .units import get_conversion_suggestions, get_unit_type, normalize_unit

# Shared service instance
_service: IngredientService | None = None


def get_service(catalog_path: Path | None = None, db_path: Path | None = None) -> IngredientService:
    """Get or create the service instance."""
    global _service
    if _service is None:
        _service = create_service(catalog_path, db_path)
    return _service


def _service_from(ctx: click.Context) -> IngredientService:
    obj = ctx.obj or {}
    return get_service(obj.get("catalog"), obj.get("db"))


user_option = click.option(
    "--user",
    "-u",
    "user_id",
    default=DEFAULT_USER_ID,
    envvar="KITCHEN_MATCHER_USER",
    show_default=True,
    help="User whose catalog, cache and rules to use",
)
json_option = click.option("--json", "as_json", is_flag=True, help="Print results as JSON")


def match_options(func):
    """Options shared by match and batch-match."""
    func = click.option("--no-cache", is_flag=True, help="Neither read nor write the match cache")(func)
    func = click.option("--no-semantic", is_flag=True, help="Skip the semantic matching stage")(func)
    func = click.option(
        "--max-results", "-n", default=DEFAULT_MAX_RESULTS, show_default=True, help="Maximum matches"
    )(func)
    func = click.option(
        "--min-confidence",
        "-c",
        default=DEFAULT_MIN_CONFIDENCE,
        show_default=True,
        type=click.FloatRange(0.0, 1.0),
        help="Minimum confidence (0-1)",
    )(func)
    return func


def display_candidates(name: str, candidates: list[MatchCandidate]) -> None:
    """Display ranked matches for one ingredient."""
    click.echo(f"\n{name}")
    if not candidates:
        click.echo("   ✗ No match found")
        return

    for i, candidate in enumerate(candidates, 1):
        flag = "  ⚠️  review" if candidate.needs_review else ""
        click.echo(
            f"   {i}. {candidate.catalog_item_name} [{candidate.catalog_item_id}] "
            f"{candidate.confidence:.0%} ({candidate.match_type}){flag}"
        )
        if candidate.reason:
            click.echo(f"      {candidate.reason}")


def display_conversion(amount: float, result: ConversionResult) -> None:
    """Display a conversion result."""
    if not result.success:
        click.echo(f"✗ {result.notes}", err=True)
        return

    click.echo(f"{amount:g} {result.from_unit} = {result.converted_amount:.4g} {result.to_unit}")
    click.echo(f"   Type: {result.conversion_type} | Confidence: {result.confidence:.0%}")
    if result.notes:
        click.echo(f"   {result.notes}")


@click.group()
@click.version_option(version=__version__, prog_name="kitchen-matcher")
@click.option(
    "--catalog",
    type=click.Path(dir_okay=False, path_type=Path),
    help=f"Inventory catalog JSON file [default: {CATALOG_FILE}]",
)
@click.option(
    "--db",
    type=click.Path(dir_okay=False, path_type=Path),
    help=f"SQLite database for cache and rules [default: {DATABASE_FILE}]",
)
@click.option("--verbose", "-v", is_flag=True, help="Show matching and conversion logs")
@click.pass_context
def cli(ctx: click.Context, catalog: Path | None, db: Path | None, verbose: bool):
    """Kitchen Matcher: ingredient matching and unit conversion.

    Match recipe ingredient names to inventory catalog items and convert
    quantities between units.
    """
    ctx.ensure_object(dict)
    ctx.obj["catalog"] = catalog
    ctx.obj["db"] = db
    if verbose:
        logging.basicConfig(level=logging.INFO, format="%(levelname)s %(name)s: %(message)s")


# ============================================================================
# Matching Commands
# ============================================================================


@cli.command("match")
@click.argument("name")
@user_option
@match_options
@json_option
@click.pass_context
def match_cmd(
    ctx: click.Context,
    name: str,
    user_id: str,
    min_confidence: float,
    max_results: int,
    no_semantic: bool,
    no_cache: bool,
    as_json: bool,
):
    """Match an ingredient name to catalog items.

    Examples:
        kitchen-matcher match "fresh roma tomatoes"
        kitchen-matcher match chicken --max-results 3 --json
    """
    service = _service_from(ctx)
    try:
        candidates = asyncio.run(
            service.match_ingredient(
                name,
                user_id,
                min_confidence=min_confidence,
                max_results=max_results,
                enable_semantic=not no_semantic,
                use_cache=not no_cache,
            )
        )
    except ValueError as e:
        click.echo(f"✗ {e}", err=True)
        raise SystemExit(1) from None

    if as_json:
        click.echo(json.dumps([c.to_dict() for c in candidates], indent=2, ensure_ascii=False))
        return

    display_candidates(name, candidates)


@cli.command("batch-match")
@click.argument("names", nargs=-1)
@click.option("--file", "-f", "file_path", type=click.Path(exists=True, dir_okay=False), help="One name per line")
@click.option("--batch-size", "-b", type=click.IntRange(min=1), help="Names matched concurrently")
@user_option
@match_options
@json_option
@click.pass_context
def batch_match_cmd(
    ctx: click.Context,
    names: tuple[str, ...],
    file_path: str | None,
    batch_size: int | None,
    user_id: str,
    min_confidence: float,
    max_results: int,
    no_semantic: bool,
    no_cache: bool,
    as_json: bool,
):
    """Match several ingredient names at once.

    Examples:
        kitchen-matcher batch-match tomato onion garlic
        kitchen-matcher batch-match --file ingredients.txt
    """
    all_names = list(names)
    if file_path:
        lines = Path(file_path).read_text(encoding="utf-8").splitlines()
        all_names.extend(line.strip() for line in lines if line.strip())

    if not all_names:
        click.echo("✗ Provide ingredient names or --file.", err=True)
        raise SystemExit(1)

    service = _service_from(ctx)
    results = asyncio.run(
        service.batch_match_ingredients(
            all_names,
            user_id,
            batch_size=batch_size,
            min_confidence=min_confidence,
            max_results=max_results,
            enable_semantic=not no_semantic,
            use_cache=not no_cache,
        )
    )

    if as_json:
        payload = {name: [c.to_dict() for c in candidates] for name, candidates in results.items()}
        click.echo(json.dumps(payload, indent=2, ensure_ascii=False))
        return

    for name, candidates in results.items():
        display_candidates(name, candidates)

    matched = sum(1 for candidates in results.values() if candidates)
    click.echo()
    click.echo("-" * 60)
    click.echo(f"Matched: {matched} | Unmatched: {len(results) - matched}")


# ============================================================================
# Conversion Commands
# ============================================================================


@cli.command("convert")
@click.argument("amount", type=float)
@click.argument("from_unit")
@click.argument("to_unit")
@click.option("--ingredient", "-i", help="Ingredient name, enables density estimates")
@user_option
@json_option
@click.pass_context
def convert_cmd(
    ctx: click.Context,
    amount: float,
    from_unit: str,
    to_unit: str,
    ingredient: str | None,
    user_id: str,
    as_json: bool,
):
    """Convert a quantity between units.

    Examples:
        kitchen-matcher convert 2 kg g
        kitchen-matcher convert 2 cups g --ingredient flour
        kitchen-matcher convert 350 f c
    """
    service = _service_from(ctx)
    result = asyncio.run(
        service.convert_unit(amount, from_unit, to_unit, user_id=user_id, ingredient=ingredient)
    )

    if as_json:
        click.echo(json.dumps(result.to_dict(), indent=2))
    else:
        display_conversion(amount, result)

    if not result.success:
        raise SystemExit(1)


@cli.group()
def conversions():
    """Manage custom unit conversions (e.g. 1 case = 24 units)."""
    pass


@conversions.command("add")
@click.argument("from_unit")
@click.argument("to_unit")
@click.argument("factor", type=float)
@click.option("--notes", help="Why this conversion holds")
@user_option
@click.pass_context
def conversions_add(
    ctx: click.Context, from_unit: str, to_unit: str, factor: float, notes: str | None, user_id: str
):
    """Store a custom conversion: 1 FROM_UNIT = FACTOR TO_UNIT.

    Examples:
        kitchen-matcher conversions add case units 24
        kitchen-matcher conversions add bunch g 40 --notes "Parsley bunch"
    """
    service = _service_from(ctx)
    try:
        stored = asyncio.run(
            service.store_custom_conversion(from_unit, to_unit, factor, user_id, notes=notes)
        )
    except ValueError as e:
        click.echo(f"✗ {e}", err=True)
        raise SystemExit(1) from None

    if not stored:
        click.echo("✗ Failed to store conversion.", err=True)
        raise SystemExit(1)

    click.echo(f"✓ Stored: 1 {normalize_unit(from_unit)} = {factor:g} {normalize_unit(to_unit)}")


@conversions.command("remove")
@click.argument("from_unit")
@click.argument("to_unit")
@user_option
@click.pass_context
def conversions_remove(ctx: click.Context, from_unit: str, to_unit: str, user_id: str):
    """Deactivate a custom conversion."""
    service = _service_from(ctx)
    if asyncio.run(service.deactivate_custom_conversion(from_unit, to_unit, user_id)):
        click.echo(f"✓ Removed conversion {normalize_unit(from_unit)} -> {normalize_unit(to_unit)}")
    else:
        click.echo(f"No active conversion {normalize_unit(from_unit)} -> {normalize_unit(to_unit)}")


@conversions.command("list")
@user_option
@click.pass_context
def conversions_list(ctx: click.Context, user_id: str):
    """List custom conversions (yours and global ones)."""
    service = _service_from(ctx)
    try:
        rules = asyncio.run(service.list_custom_conversions(user_id))
    except StoreError as e:
        click.echo(f"✗ {e}", err=True)
        raise SystemExit(1) from None

    click.echo()
    click.echo("CUSTOM CONVERSIONS")
    click.echo("=" * 50)

    if not rules:
        click.echo("  (none)")
    for rule in rules:
        scope = "global" if rule.user_id is None else rule.user_id
        line = f"  1 {rule.from_unit} = {rule.factor:g} {rule.to_unit} ({rule.category}, {scope})"
        if rule.notes:
            line += f" - {rule.notes}"
        click.echo(line)
    click.echo()


@cli.group()
def units():
    """Inspect known units."""
    pass


@units.command("suggest")
@click.argument("unit")
def units_suggest(unit: str):
    """Show common target units for UNIT."""
    canonical = normalize_unit(unit)
    unit_type = get_unit_type(canonical)
    suggestions = get_conversion_suggestions(canonical)

    click.echo(f"{canonical} ({unit_type})")
    if suggestions:
        click.echo(f"   Convert to: {', '.join(suggestions)}")
    else:
        click.echo("   No suggestions")


# ============================================================================
# Cache Commands
# ============================================================================


@cli.group()
def cache():
    """Manage the match cache."""
    pass


@cache.command("clear")
@user_option
@click.option("--yes", "-y", is_flag=True, help="Skip confirmation")
@click.pass_context
def cache_clear(ctx: click.Context, user_id: str, yes: bool):
    """Forget every cached match for a user."""
    if not yes and not click.confirm(f"Clear all cached matches for {user_id}?"):
        click.echo("Cancelled.")
        return

    service = _service_from(ctx)
    try:
        removed = asyncio.run(service.clear_match_cache(user_id))
    except StoreError as e:
        click.echo(f"✗ {e}", err=True)
        raise SystemExit(1) from None

    click.echo(f"✓ Cleared {removed} cached matches")


@cache.command("invalidate")
@click.argument("item_id")
@user_option
@click.pass_context
def cache_invalidate(ctx: click.Context, item_id: str, user_id: str):
    """Forget cached matches pointing at a catalog item (after renaming or removing it)."""
    service = _service_from(ctx)
    try:
        removed = asyncio.run(service.invalidate_catalog_item(user_id, item_id))
    except StoreError as e:
        click.echo(f"✗ {e}", err=True)
        raise SystemExit(1) from None

    click.echo(f"✓ Invalidated {removed} cached matches for item {item_id}")


# ============================================================================
# Catalog Commands
# ============================================================================


@cli.command("catalog")
@user_option
@click.pass_context
def catalog_cmd(ctx: click.Context, user_id: str):
    """List the active catalog items for a user."""
    service = _service_from(ctx)
    try:
        items = asyncio.run(service.catalog.list_active(user_id))
    except CatalogError as e:
        click.echo(f"✗ {e}", err=True)
        raise SystemExit(1) from None

    click.echo()
    click.echo("CATALOG")
    click.echo("=" * 50)
    if not items:
        click.echo("  (empty)")
    for item in items:
        brand = f" ({item.brand})" if item.brand else ""
        category = f" [{item.category}]" if item.category else ""
        click.echo(f"  {item.id}: {item.name}{brand}{category}")
    click.echo()
    click.echo(f"Total: {len(items)} items")


# ============================================================================
# Entry Point
# ============================================================================


def main():
    """Main entry point."""
    cli()


if __name__ == "__main__":
    main()
