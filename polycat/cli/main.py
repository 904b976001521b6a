"""Command line interface for polycat.

Provides commands:
- detect
- locales
- load
- translate
- switch
- config show
"""

from __future__ import annotations

import asyncio

import click
from rich.console import Console
from rich.table import Table

from polycat.catalog.fetcher import build_fetcher
from polycat.catalog.loader import SOURCE_DEDICATED, SOURCE_INDEX, CatalogLoader
from polycat.catalog.locales import SUPPORTED_LOCALES, locale_name
from polycat.config.config import ConfigManager
from polycat.models import LogLevel
from polycat.runtime.detector import LocaleDetector
from polycat.runtime.preferences import JsonPreferenceStore
from polycat.runtime.runtime import LocaleRuntime, StaticAuthStatus
from polycat.runtime.title import StaticNavigation
from polycat.utils.exceptions import ConfigurationError
from polycat.utils.logging_config import setup_logging

console = Console()


def _load_config_manager(ctx: click.Context) -> ConfigManager:
    try:
        cm = ConfigManager(ctx.obj.get("config"), configure_logging=False)
    except ConfigurationError as e:
        raise click.ClickException(str(e)) from e

    verbosity = ctx.obj.get("verbosity", 0)
    if verbosity >= 2:
        cm.apply_overrides({"observability.log_level": LogLevel.DEBUG.value})
    elif verbosity == 1:
        cm.apply_overrides({"observability.log_level": LogLevel.INFO.value})
    setup_logging(cm.config.observability)
    return cm


def _config(ctx: click.Context) -> ConfigManager:
    if "config_manager" not in ctx.obj:
        ctx.obj["config_manager"] = _load_config_manager(ctx)
    return ctx.obj["config_manager"]


@click.group()
@click.option(
    "--config",
    "-c",
    type=click.Path(exists=True),
    help="Configuration file path",
)
@click.option(
    "--verbose",
    "-v",
    count=True,
    help="Increase verbosity (-v: info, -vv: debug)",
)
@click.pass_context
def cli(ctx, config, verbose):
    """Polycat - locale resolution and message catalogs."""
    ctx.ensure_object(dict)
    ctx.obj["config"] = config
    ctx.obj["verbosity"] = verbose


@cli.command("locales")
def locales_cmd():
    """List the supported locales."""
    table = Table(title="Supported locales")
    table.add_column("Locale", style="cyan")
    table.add_column("Name")
    for locale_id in SUPPORTED_LOCALES:
        table.add_row(locale_id, locale_name(locale_id))
    console.print(table)


@cli.command("detect")
@click.pass_context
def detect_cmd(ctx):
    """Show the locale that would be activated at startup."""
    cfg = _config(ctx).config
    detector = LocaleDetector(JsonPreferenceStore(cfg.locale.preference_file), cfg.locale)
    locale_id = detector.resolve_initial_locale()
    console.print(f"{locale_id} (from {detector.last_source})")


@cli.command("load")
@click.option("--authenticated", "-a", is_flag=True, help="Load authenticated catalogs")
@click.pass_context
def load_cmd(ctx, authenticated):
    """Load every catalog and report where each one came from."""
    cfg = _config(ctx).config

    async def _load():
        async with build_fetcher(cfg.catalogs) as fetcher:
            loader = CatalogLoader(fetcher, cfg.locale.fallback_locale)
            return await loader.load_catalogs(authenticated)

    report = asyncio.run(_load())

    table = Table(title=f"Catalogs ({report.context.value})")
    table.add_column("Locale", style="cyan")
    table.add_column("Name")
    table.add_column("Source")
    table.add_column("Messages", justify="right")
    for locale_id in SUPPORTED_LOCALES:
        source = report.sources.get(locale_id, "missing")
        style = "green" if source in (SOURCE_INDEX, SOURCE_DEDICATED) else "yellow"
        table.add_row(
            locale_id,
            locale_name(locale_id),
            f"[{style}]{source}[/{style}]",
            str(report.message_counts.get(locale_id, 0)),
        )
    console.print(table)
    if not report.index_available:
        console.print("[yellow]Catalog index unavailable[/yellow]")
    if report.missing:
        raise click.ClickException(
            "No catalog available for: " + ", ".join(sorted(report.missing))
        )


async def _run_runtime(cfg, authenticated: bool, target: str | None, title_key: str | None):
    runtime = LocaleRuntime.from_config(
        cfg,
        StaticAuthStatus(authenticated),
        navigation=StaticNavigation(title_key) if title_key else None,
    )
    async with runtime:
        result = await runtime.initialize()
        if target is not None:
            result = await runtime.switch_locale(target)
        await runtime.wait_idle()
    return runtime, result


@cli.command("translate")
@click.argument("key")
@click.option("--locale", "locale_id", default=None, help="Locale to translate into")
@click.option("--authenticated", "-a", is_flag=True, help="Use authenticated catalogs")
@click.pass_context
def translate_cmd(ctx, key, locale_id, authenticated):
    """Translate KEY in the detected locale, or in --locale."""
    cfg = _config(ctx).config
    runtime, _result = asyncio.run(_run_runtime(cfg, authenticated, None, None))
    if locale_id is None:
        click.echo(runtime.translate(key))
    else:
        click.echo(runtime.translate_in(locale_id, key))


@cli.command("switch")
@click.argument("locale_id")
@click.option("--authenticated", "-a", is_flag=True, help="Use authenticated catalogs")
@click.option("--title-key", default=None, help="Title key of the current view")
@click.pass_context
def switch_cmd(ctx, locale_id, authenticated, title_key):
    """Switch to LOCALE_ID and remember it as the preferred locale."""
    cfg = _config(ctx).config
    runtime, result = asyncio.run(_run_runtime(cfg, authenticated, locale_id, title_key))
    console.print(f"Active locale: [cyan]{result.active_locale}[/cyan]")
    console.print("Available: " + ", ".join(result.available_locales))
    if result.substituted:
        console.print(
            "[yellow]Substituted with fallback:[/yellow] " + ", ".join(result.substituted)
        )
    if title_key:
        click.echo(f"Title: {runtime.document.title}")
    if not result.success:
        raise click.ClickException(f"Locale switch to {locale_id} did not complete")


@cli.group("config")
def config_group():
    """Configuration commands."""


@config_group.command("show")
@click.option(
    "--format",
    "format_",
    type=click.Choice(["toml", "json"]),
    default="toml",
    help="Output format",
)
@click.pass_context
def config_show(ctx, format_):
    """Show the effective configuration."""
    cm = _config(ctx)
    try:
        click.echo(cm.export(format_))
    except ConfigurationError as e:
        raise click.ClickException(str(e)) from e


def main() -> int:
    """Entry point for the ``polycat`` console script."""
    try:
        cli(obj={})
    except SystemExit as e:
        return e.code if isinstance(e.code, int) else 0
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
