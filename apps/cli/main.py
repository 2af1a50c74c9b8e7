"""CLI application for depmirror."""

import json
import logging
from pathlib import Path

import typer
from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table

from depmirror import detect, pipeline
from depmirror.config import DEFAULT_CONFIG_PATH, ErrorPolicy, load_config
from depmirror.errors import ConfigError, MirrorError
from depmirror.models import AuditReport, Dependency
from depmirror.parse_gomod import parse_gomod, read_manifest

console = Console()


def configure_logging(verbose: bool = False, quiet: bool = False) -> None:
    """Route library logging through rich."""
    level = logging.DEBUG if verbose else logging.WARNING if quiet else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=console, show_path=False)],
        force=True,
    )


def format_audit_table(audits: list[AuditReport]) -> Table:
    table = Table(title="Audit")
    table.add_column("Folder")
    table.add_column("Files", justify="right")
    table.add_column("Bytes", justify="right")
    table.add_column("Thinnable", justify="right")
    table.add_column("Top extensions")
    for audit in audits:
        top = ", ".join(f"{ext} ({count})" for ext, count in audit.top_extensions())
        table.add_row(audit.folder, str(audit.file_count), str(audit.total_bytes), str(audit.thinnable_count), top)
    return table


def format_dependencies_json(deps: list[Dependency]) -> str:
    """Format JSON output."""
    reports = []
    for dep in deps:
        reports.append({
            "repository": dep.repository,
            "version": dep.version.full,
            "kind": dep.version.kind.value,
            "checkout": dep.version.checkout,
            "key": dep.key,
        })

    return json.dumps({"dependencies": reports}, indent=2)


def format_dependencies_table(deps: list[Dependency]) -> Table:
    table = Table(title="Dependencies")
    for column in ("Repository", "Version", "Kind", "Checkout", "Folder"):
        table.add_column(column)
    for dep in deps:
        table.add_row(dep.repository, dep.version.full, dep.version.kind.value, dep.version.checkout, dep.key)
    return table


app = typer.Typer(
    name="depmirror",
    help="depmirror - Mirror repositories and their manifest dependencies into a thinned source archive",
    add_completion=False,
)


@app.command()
def run(
    config_path: str = typer.Argument(DEFAULT_CONFIG_PATH, help="Path to the JSON config file"),
    output: str | None = typer.Option(None, "--output", "-o", help="Override the configured output folder"),
    best_effort: bool = typer.Option(False, "--best-effort", help="Record dependency failures and keep going"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Log every file operation"),
    quiet: bool = typer.Option(False, "--quiet", "-q", help="Only log warnings and errors"),
) -> None:
    """Mirror, discover dependencies, and thin every configured repository."""
    configure_logging(verbose, quiet)

    try:
        config = load_config(config_path)
        if output:
            config = config.model_copy(update={"output": output})
        policy = ErrorPolicy.CONTINUE if best_effort else None
        result = pipeline.run(config, policy=policy)
    except MirrorError as e:
        console.print(f"Error: {e}", style="red", markup=False)
        raise typer.Exit(1)

    if result.audits:
        console.print(format_audit_table(result.audits))

    if result.errors:
        console.print("There were errors:", style="yellow")
        for error in result.errors:
            console.print(f"  {error}", style="yellow", markup=False)
        raise typer.Exit(2)

    console.print("Done")


@app.command(name="list")
def list_repos(
    config_path: str = typer.Argument(DEFAULT_CONFIG_PATH, help="Path to the JSON config file"),
) -> None:
    """List configured repositories with their local folder and remote addresses."""
    try:
        config = load_config(config_path)
    except ConfigError as e:
        console.print(f"Error: {e}", style="red", markup=False)
        raise typer.Exit(1)

    resolver = config.resolver()
    for repo in config.repos:
        if repo.disabled:
            console.print(f"{repo.name}\tdisabled", soft_wrap=True, markup=False)
            continue
        try:
            local = str(config.local_repo(repo.name))
        except ConfigError as e:
            local = f"<{e}>"
        fields = (
            repo.name,
            detect.identify(repo.language),
            local,
            resolver.ssh_address(repo.name),
            resolver.https_address(repo.name),
        )
        console.print("\t".join(fields), soft_wrap=True, markup=False)


@app.command()
def deps(
    manifest_path: str = typer.Argument(help="Path to a go.mod file"),
    format_type: str = typer.Option("table", "--format", help="Output format: table or json"),
) -> None:
    """Show the dependencies a go.mod declares."""
    path = Path(manifest_path)
    if not path.exists():
        console.print(f"Error: File {manifest_path} not found", style="red")
        raise typer.Exit(1)

    try:
        dependencies = parse_gomod(read_manifest(path))
    except MirrorError as e:
        console.print(f"Error: {e}", style="red", markup=False)
        raise typer.Exit(1)

    if format_type == "json":
        print(format_dependencies_json(dependencies))
    else:
        console.print(format_dependencies_table(dependencies))


if __name__ == "__main__":
    app()
