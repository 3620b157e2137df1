"""
AssetForge CLI.

Command-line interface for revisioning assets and rewriting references.
"""

import click
import yaml

from assetforge import __version__


@click.group()
@click.version_option(version=__version__)
def main() -> None:
    """AssetForge: content-revisioned assets and asset:// rewriting."""
    pass


@main.command()
@click.option("--config", "-c", "config_path", help="Path to build config YAML")
@click.option("--cwd", default=".", help="Directory src and dest are relative to")
@click.option("--rev", "rev_patterns", multiple=True, help="Glob of assets to revision")
@click.option("--replace", "replace_patterns", multiple=True, help="Glob of files to rewrite")
@click.option("--allow-unresolved", is_flag=True, help="Exit 0 even if references stay unresolved")
@click.option(
    "--log-level",
    type=click.Choice(["critical", "error", "warning", "info", "debug"], case_sensitive=False),
    default=None,
    help="Logging level (default: INFO, or ASSETFORGE_LOG_LEVEL)",
)
@click.option("--verbose", "-v", count=True, help="More output; -v shows retries and renames")
@click.option("--report", "report_path", default=None, help="Write resolution reports as JSON")
def build(
    config_path: str | None,
    cwd: str,
    rev_patterns: tuple[str, ...],
    replace_patterns: tuple[str, ...],
    allow_unresolved: bool,
    log_level: str | None,
    verbose: int,
    report_path: str | None,
) -> None:
    """Revision assets and rewrite asset:// references."""
    from pathlib import Path

    from rich.console import Console
    from rich.table import Table

    from assetforge.core.config import AssetConfig, BranchSpec, load_config
    from assetforge.core.json_canonical import canonical_json_dumps
    from assetforge.core.log import setup_logging
    from assetforge.pipelines.runner import create_pipeline

    setup_logging(log_level, verbose)
    console = Console()

    config = AssetConfig()
    if config_path:
        path = Path(config_path)
        if not path.exists():
            click.echo(f"Error: Config file not found: {config_path}", err=True)
            raise SystemExit(1)
        try:
            config = load_config(path)
        except (ValueError, yaml.YAMLError) as e:
            click.echo(f"Error parsing config: {e}", err=True)
            raise SystemExit(1)

    specs = list(config.branches)
    if rev_patterns:
        specs.append(BranchSpec(name="rev (cli)", patterns=list(rev_patterns), stages=["rev"]))
    if replace_patterns:
        specs.append(
            BranchSpec(name="replace (cli)", patterns=list(replace_patterns), stages=["replace"])
        )

    if not specs:
        click.echo("Error: Nothing to build; pass --rev/--replace or configure branches", err=True)
        raise SystemExit(1)

    pipeline = create_pipeline(config, Path(cwd))
    result = pipeline.build(specs)

    table = Table(title="Build")
    table.add_column("Branch", style="cyan")
    table.add_column("Files", justify="right")
    table.add_column("Errors", justify="right")
    for name, branch in result.branches.items():
        errors = f"[red]{len(branch.errors)}[/red]" if branch.errors else "0"
        table.add_row(name, str(len(branch.outputs)), errors)
    console.print(table)

    if result.manifest_path:
        console.print(f"Manifest: [cyan]{result.manifest_path}[/cyan] ({len(pipeline.store)} assets)")
    elif pipeline.writer.failed_writes:
        console.print("[red]Manifest could not be written[/red]")

    if report_path:
        report = Path(report_path)
        report.parent.mkdir(parents=True, exist_ok=True)
        report.write_text(canonical_json_dumps([r.to_dict() for r in result.reports], indent=True))
        console.print(f"Report: [cyan]{report}[/cyan] ({len(result.reports)} files)")

    if result.errors:
        for error in result.errors:
            console.print(f"  [red]✗[/red] {error}")
        if not allow_unresolved:
            raise SystemExit(1)


@main.command()
@click.argument("files", nargs=-1, required=True)
def fingerprint(files: tuple[str, ...]) -> None:
    """Print each file's fingerprint and revisioned name."""
    from pathlib import Path

    from assetforge.core.fingerprint import compute_file_fingerprint, revisioned_name

    for name in files:
        path = Path(name)
        try:
            fp = compute_file_fingerprint(path)
        except OSError as e:
            click.echo(f"Error: {e}", err=True)
            raise SystemExit(1)
        click.echo(f"{fp}  {revisioned_name(path.name, fp)}")


@main.command()
@click.argument("files", nargs=-1, required=True)
def scan(files: tuple[str, ...]) -> None:
    """List the asset:// references in text files."""
    from pathlib import Path

    from assetforge.pipelines.stages.replace import find_references

    for name in files:
        path = Path(name)
        try:
            text = path.read_text(encoding="utf-8", errors="surrogateescape")
        except OSError as e:
            click.echo(f"Error: {e}", err=True)
            raise SystemExit(1)

        references = find_references(text)
        click.echo(f"{path}: {len(references)} reference(s)")
        for reference in dict.fromkeys(references):
            click.echo(f"  {reference}")


if __name__ == "__main__":
    main()
