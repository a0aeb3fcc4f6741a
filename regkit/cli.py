"""regkit CLI — build, inspect, and install component registries."""

import functools
import sys
import traceback

import click
from rich.console import Console
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table

from regkit import __version__
from regkit.config import DEFAULT_BUNDLE_OUTPUT
from regkit.errors import RegkitError
from regkit.log import configure_logging, is_debug_env

console = Console()

DEFAULT_FIX_COMMAND = "regkit artifacts build"


def handle_errors(func):
    """Report RegkitErrors as a single ``Error:`` line and exit 1."""

    @functools.wraps(func)
    def wrapper(*args, **kwargs):
        try:
            return func(*args, **kwargs)
        except RegkitError as e:
            console.print(f"[red]Error:[/] {escape(e.message)}")
            ctx = click.get_current_context(silent=True)
            debug = bool(ctx and ctx.find_root().params.get("debug")) or is_debug_env()
            if debug:
                console.print(escape(traceback.format_exc()))
            sys.exit(1)

    return wrapper


@click.group()
@click.version_option(version=__version__)
@click.option("--silent", is_flag=True, help="Only print errors")
@click.option("--debug", is_flag=True, help="Verbose logging and full tracebacks")
def main(silent: bool, debug: bool):
    """regkit — component registry bundler and installer.

    Compile a source registry into one integrity-checked bundle, then
    install items from it (with their dependencies) into a project.
    """
    configure_logging(silent=silent, debug=debug or is_debug_env())


def _open_bundle(bundle_path: str):
    from regkit.registry.loader import BundleCache

    return BundleCache(bundle_path)


# ── Init ─────────────────────────────────────────────────────────────


@main.command()
@click.option("--cwd", default=".", help="Project directory")
@click.option("--install-dir", default=None, help="Install directory alias (default: @/components/ui)")
@click.option("--force", is_flag=True, help="Replace an existing config")
@handle_errors
def init(cwd: str, install_dir: str | None, force: bool):
    """Create regkit.json in a consuming project."""
    from pathlib import Path

    from regkit.config import PROJECT_CONFIG_FILE, ProjectConfig, write_json_config

    if (Path(cwd) / PROJECT_CONFIG_FILE).exists() and not force:
        console.print(f"[yellow]{PROJECT_CONFIG_FILE} already exists.[/] Use --force to replace it.")
        return

    config = ProjectConfig()
    if install_dir:
        config.install_dir = install_dir
    path = write_json_config(cwd, config.to_dict())
    console.print(f"[green]Created[/] {path}")


# ── Bundle ───────────────────────────────────────────────────────────


@main.command()
@click.option("--root", default=".", help="Registry package root")
@click.option("--output", "-o", default=None, help="Bundle output path (relative to root)")
@handle_errors
def bundle(root: str, output: str | None):
    """Compile the source registry into a single bundle file."""
    from regkit.bundler.builder import build_bundle
    from regkit.config import load_build_config

    build_config = load_build_config(root)
    if output:
        build_config.output = output

    result = build_bundle(build_config.to_bundler_config(root))
    console.print(
        f"[green]Bundled[/] {len(result.items)} {build_config.item_label}s -> {result.output_path}"
    )


# ── Inspect ──────────────────────────────────────────────────────────


@main.command(name="list")
@click.option("--bundle", "bundle_path", default=DEFAULT_BUNDLE_OUTPUT, help="Bundle file")
@click.option("--all", "show_all", is_flag=True, help="Include hidden items")
@handle_errors
def list_items(bundle_path: str, show_all: bool):
    """List the items available in a bundle."""
    loaded = _open_bundle(bundle_path).get_or_load()
    items = [i for i in loaded.items if show_all or not (i.meta and i.meta.hidden)]

    if not items:
        console.print("[yellow]Bundle has no items.[/]")
        return

    table = Table(title=f"Registry ({len(items)} items)")
    table.add_column("Name", style="cyan")
    table.add_column("Type")
    table.add_column("Files", justify="right")
    table.add_column("Depends on")
    table.add_column("Description")

    for item in items:
        table.add_row(
            item.name,
            item.type,
            str(len(item.files)),
            ", ".join(item.registry_dependencies),
            item.description[:50],
        )

    console.print(table)


@main.command()
@click.argument("name")
@click.option("--bundle", "bundle_path", default=DEFAULT_BUNDLE_OUTPUT, help="Bundle file")
@handle_errors
def show(name: str, bundle_path: str):
    """Show one item's files and dependencies."""
    from regkit.registry.resolver import get_item_or_raise

    cache = _open_bundle(bundle_path)
    item = get_item_or_raise(name, cache.get_item, "item")

    lines = [item.description or "(no description)", ""]
    lines.append(f"[bold]Type:[/] {item.type}")
    if item.dependencies:
        lines.append(f"[bold]npm:[/] {', '.join(item.dependencies)}")
    if item.registry_dependencies:
        lines.append(f"[bold]Registry:[/] {', '.join(item.registry_dependencies)}")
    lines.append("[bold]Files:[/]")
    for file in item.files:
        target = f" -> {file.target_path}" if file.target_path else ""
        lines.append(f"  {escape(file.path)}{escape(target)}")

    console.print(Panel("\n".join(lines), title=item.title or item.name))


@main.command()
@click.argument("names", nargs=-1, required=True)
@click.option("--bundle", "bundle_path", default=DEFAULT_BUNDLE_OUTPUT, help="Bundle file")
@handle_errors
def resolve(names: tuple, bundle_path: str):
    """Print the install order for NAMES and everything they depend on."""
    from regkit.registry.resolver import collect_npm_deps, resolve_registry_deps, validate_items

    cache = _open_bundle(bundle_path)
    validate_items(list(names), cache.get_item)
    order = resolve_registry_deps(list(names), cache.get_item)

    for i, name in enumerate(order, 1):
        console.print(f"  {i}. [cyan]{name}[/]")

    npm = collect_npm_deps(order, cache.get_item)
    if npm:
        console.print(f"\n  npm: {', '.join(npm)}")


# ── Add ──────────────────────────────────────────────────────────────


@main.command()
@click.argument("names", nargs=-1, required=True)
@click.option("--bundle", "bundle_path", default=DEFAULT_BUNDLE_OUTPUT, help="Bundle file")
@click.option("--cwd", default=".", help="Project directory")
@click.option("--overwrite", is_flag=True, help="Replace files that already exist")
@click.option("--dry-run", is_flag=True, help="Show what would change without writing")
@click.pass_context
@handle_errors
def add(ctx, names: tuple, bundle_path: str, cwd: str, overwrite: bool, dry_run: bool):
    """Install NAMES (and their registry dependencies) into a project."""
    from regkit.install.installer import add_items
    from regkit.install.transaction import ACTION_MARKS, format_write_summary

    debug = bool(ctx.find_root().params.get("debug")) or is_debug_env()
    result = add_items(
        list(names),
        _open_bundle(bundle_path),
        cwd,
        overwrite=overwrite,
        dry_run=dry_run,
        debug=debug,
    )

    if result.dry_run:
        console.print("[bold]Dry run:[/] no files were written.")
        for action, label in result.preview:
            console.print(f"  {ACTION_MARKS[action]} {escape(label)}")
        if result.installed_deps:
            console.print(f"  npm: {', '.join(result.installed_deps)}")
        return

    console.print(f"[green]{format_write_summary(result.write_result)}[/]")


# ── Artifacts ────────────────────────────────────────────────────────


@main.group()
def artifacts():
    """Build and verify publishable registry artifacts."""


@artifacts.command(name="build")
@click.option("--root", default=".", help="Registry package root")
@handle_errors
def artifacts_build(root: str):
    """Run the artifact pipeline configured in regkit.yaml."""
    from regkit.artifacts.pipeline import artifact_options_from_config, build_registry_artifacts
    from regkit.config import load_build_config
    from regkit.errors import ConfigError

    build_config = load_build_config(root)
    if not build_config.artifacts:
        raise ConfigError("No `artifacts` section in regkit.yaml.")

    result = build_registry_artifacts(artifact_options_from_config(root, build_config.artifacts))
    console.print(f"[green]Artifacts written to[/] {result.artifact_root}")
    console.print(f"  origin: {result.origin}")
    console.print(f"  fingerprint: {result.fingerprint}")


@artifacts.command(name="check")
@click.option("--root", default=".", help="Registry package root")
@click.option("--source", default="registry/registry.json", help="Source registry path")
@click.option("--public-dir", default="public/r", help="Published registry directory")
@click.option("--fix-command", default=DEFAULT_FIX_COMMAND, help="Command suggested when stale")
@handle_errors
def artifacts_check(root: str, source: str, public_dir: str, fix_command: str):
    """Verify that the published registry matches the source registry."""
    from regkit.artifacts.freshness import validate_public_registry_fresh

    validate_public_registry_fresh(
        root, fix_command, source_registry_path=source, public_registry_dir=public_dir
    )
    console.print("  [green]v[/] Public registry is up to date")


@artifacts.command(name="fingerprint")
@click.argument("inputs", nargs=-1, required=True)
@click.option("--root", default=".", help="Directory the inputs are relative to")
def artifacts_fingerprint(inputs: tuple, root: str):
    """Print the SHA-256 fingerprint of INPUTS."""
    from regkit.artifacts.fingerprint import compute_inputs_fingerprint

    console.print(compute_inputs_fingerprint(root, list(inputs)))


@artifacts.command(name="rewrite-origin")
@click.argument("directory")
@click.option("--from", "from_origin", default=None, help="Origin to replace")
@click.option("--to", "to_origin", default=None, help="New origin (default: $REGISTRY_ORIGIN)")
@handle_errors
def artifacts_rewrite_origin(directory: str, from_origin: str | None, to_origin: str | None):
    """Replace the registry origin in every JSON file under DIRECTORY."""
    from regkit.artifacts.origin import DEFAULT_REGISTRY_ORIGIN, normalize_origin, rewrite_origins_in_dir

    origin = normalize_origin(to_origin)
    stats = rewrite_origins_in_dir(directory, from_origin or DEFAULT_REGISTRY_ORIGIN, origin)
    console.print(f"  Rewrote {stats.changed}/{stats.total} files -> {origin}")


# ── Schema ───────────────────────────────────────────────────────────


@main.command(name="schema")
@click.option(
    "--name", default="bundle", type=click.Choice(["source", "bundle", "project"]),
    help="Which document schema to print",
)
def dump_schema(name: str):
    """Print the JSON Schema for a registry document."""
    import json

    from regkit.schema.definitions import get_schema

    console.print_json(json.dumps(get_schema(name)))


if __name__ == "__main__":
    main()
