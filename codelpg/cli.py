"""
Command-line interface for the code property graph extractor.

Provides commands for extracting graphs, computing Halstead metrics
and managing configuration.
"""

import sys
from pathlib import Path

import click

from codelpg import __version__
from codelpg.core.config import Config
from codelpg.graph.schema import SCHEMAS
from codelpg.utils.logging_config import setup_logging


@click.group()
@click.version_option(version=__version__)
@click.option(
    "--verbose", "-v",
    is_flag=True,
    help="Enable verbose output"
)
@click.option(
    "--log-file",
    type=click.Path(),
    help="Path to log file"
)
@click.option(
    "--config", "config_path",
    type=click.Path(exists=True, dir_okay=False),
    help="Configuration file created by 'init'"
)
@click.pass_context
def cli(ctx, verbose, log_file, config_path):
    """
    Code Property Graph Extractor

    Turn source code into a labeled property graph with structural,
    logical and behavioral edges plus software metrics.
    """
    ctx.ensure_object(dict)

    config = Config.load_from_file(config_path) if config_path else Config.load_from_env()
    verbose = verbose or config.verbose
    ctx.obj["verbose"] = verbose
    ctx.obj["config"] = config

    log_level = "DEBUG" if verbose else "INFO"
    setup_logging(level=log_level, log_file=Path(log_file) if log_file else None)


@cli.command()
@click.argument("sources", nargs=-1, required=True)
@click.option(
    "--output", "-o",
    type=click.Path(),
    help="Output file for the graph document (default: stdout)"
)
@click.option(
    "--name",
    help="Graph name (default: name of the first source)"
)
@click.option(
    "--include-external/--no-include-external",
    default=None,
    help="Also emit namespaces and types declared outside the sources"
)
@click.option(
    "--schema",
    type=click.Choice(sorted(SCHEMAS)),
    help="Label vocabulary of the graph"
)
@click.option(
    "--halstead/--no-halstead",
    default=None,
    help="Fold Halstead metrics into the graph"
)
@click.pass_context
def extract(ctx, sources, output, name, include_external, schema, halstead):
    """
    Extract the property graph of one or more source roots.

    Examples:

        codelpg extract ./my-project

        codelpg extract ./my-project -o graph.json --schema compact
    """
    config = ctx.obj["config"]
    if include_external is not None:
        config.extraction.include_external = include_external
    if schema is not None:
        config.extraction.schema = schema
    if halstead is not None:
        config.extraction.include_halstead = halstead

    from codelpg.engine import GraphExtractionEngine

    try:
        engine = GraphExtractionEngine(config)
        graph = engine.extract(list(sources), name=name)
        engine.write(graph, output)
    except Exception as e:
        _fail(ctx, e)

    if output:
        click.echo(
            f"Graph '{graph.name}' ({graph.node_count} nodes, "
            f"{graph.edge_count} edges) saved to: {output}",
            err=True,
        )


@cli.command()
@click.argument("sources", nargs=-1, required=True)
@click.option(
    "--output", "-o",
    type=click.Path(),
    help="Output file for the records (default: stdout)"
)
@click.option(
    "--nan-replacement",
    type=float,
    help="Value written for undefined measures"
)
@click.pass_context
def halstead(ctx, sources, output, nan_replacement):
    """
    Compute Halstead metrics per operation, type and namespace.

    Writes a JSON list of records, operations first.
    """
    config = ctx.obj["config"]
    if nan_replacement is not None:
        config.metrics.nan_replacement = nan_replacement

    from codelpg.engine import GraphExtractionEngine

    try:
        engine = GraphExtractionEngine(config)
        records = engine.halstead(list(sources))
        engine.write_records(records, output)
    except Exception as e:
        _fail(ctx, e)

    if output:
        click.echo(f"{len(records)} records saved to: {output}", err=True)


@cli.command()
@click.option(
    "--output", "-o",
    type=click.Path(),
    default="config.json",
    help="Output path for configuration file"
)
def init(output):
    """
    Initialize configuration file.

    Creates a default configuration file that can be customized.
    """
    Config.save_to_file(output)
    click.echo(f"Configuration saved to: {output}")


@cli.command()
def list_providers():
    """List languages with a registered semantic-model provider."""
    from codelpg.semantic import ProviderRegistry

    click.echo("Supported Languages:")
    click.echo("-" * 40)
    for language in sorted(ProviderRegistry.list_languages()):
        provider_class = ProviderRegistry.get_provider_class(language)
        click.echo(f"  {language}: {', '.join(provider_class.SUPPORTED_EXTENSIONS)}")


def _fail(ctx, error: Exception) -> None:
    click.echo(f"Error: {error}", err=True)
    if ctx.obj.get("verbose"):
        import traceback
        traceback.print_exc()
    sys.exit(1)


def main():
    """Entry point for the CLI."""
    cli(obj={})


if __name__ == "__main__":
    main()
