"""Main Click application root."""

from __future__ import annotations

import asyncio
import logging
from pathlib import Path
from typing import Any, Awaitable, Callable

import click
from pydantic import ValidationError

from graphdeploy.core.config import PipelineConfig
from graphdeploy.core.exceptions import ConfigurationError, GraphDeployError
from graphdeploy.pipeline import PipelineDriver

logger = logging.getLogger(__name__)

EXIT_CONFIG_ERROR = 2
EXIT_INTERRUPTED = 130

ARGV_META_KEY = "graphdeploy.argv"
CONFIG_META_KEY = "graphdeploy.config"


def setup_logging(config: PipelineConfig) -> None:
    fmt = "%(levelname)s %(name)s: %(message)s" if config.verbosity == "debug" else "%(message)s"
    logging.basicConfig(level=config.log_level, format=fmt, force=True)

    # Suppress verbose HTTP logging unless debugging
    http_level = logging.DEBUG if config.verbosity == "debug" else logging.WARNING
    logging.getLogger("httpx").setLevel(http_level)
    logging.getLogger("httpcore").setLevel(http_level)


def configuration_summary(config: PipelineConfig) -> str:
    """Configuration section shown alongside the help text."""
    lines = ["", "Configuration:", ""]
    if config.subgraph_name is None:
        lines.append("  Subgraph name: No name defined with -n/--subgraph-name")
    else:
        lines.append(f"  Subgraph name: {config.subgraph_name}")
    if config.node is None:
        lines.append("  Graph node:    No node defined with -g/--node")
    else:
        lines.append(f"  Graph node:    {config.node}")
    if config.ipfs is None:
        lines.append("  IPFS:          No node defined with -i/--ipfs")
    else:
        lines.append(f"  IPFS:          {config.ipfs}")
    lines.append("")
    return "\n".join(lines)


def load_config(ctx: click.Context, manifest: str) -> PipelineConfig:
    obj = ctx.ensure_object(dict)
    overrides = dict(obj.get("overrides", {}))
    overrides["manifest"] = Path(manifest)
    try:
        return PipelineConfig.load(obj.get("config_path"), overrides)
    except ValidationError as e:
        raise click.UsageError(f"Invalid configuration:\n{e}", ctx=ctx) from e


def run_pipeline(
    ctx: click.Context,
    config: PipelineConfig,
    operation: Callable[[PipelineDriver], Awaitable[int]],
) -> None:
    """Single top-level handler: runs the pipeline and owns the exit status."""
    driver = PipelineDriver(config)
    try:
        status = asyncio.run(operation(driver))
    except ConfigurationError as e:
        for line in str(e).splitlines():
            click.echo(f"Error: {line}", err=True)
        click.echo("--", err=True)
        root = ctx.find_root()
        root.meta[CONFIG_META_KEY] = config
        click.echo(root.get_help(), err=True)
        ctx.exit(EXIT_CONFIG_ERROR)
    except GraphDeployError as e:
        logger.error("%s", e)
        logger.debug("Failure details", exc_info=True)
        ctx.exit(1)
    except KeyboardInterrupt:
        logger.info("Interrupted")
        ctx.exit(EXIT_INTERRUPTED)
    ctx.exit(status)


class ConfiguredGroup(click.Group):
    """Group whose help ends with the effective deploy configuration."""

    def parse_args(self, ctx: click.Context, args: list[str]) -> list[str]:
        # --help is eager, so options after it are not parsed yet when help renders
        ctx.meta[ARGV_META_KEY] = list(args)
        return super().parse_args(ctx, args)

    def format_epilog(self, ctx: click.Context, formatter: click.HelpFormatter) -> None:
        super().format_epilog(ctx, formatter)
        config = ctx.meta.get(CONFIG_META_KEY) or self._help_config(ctx)
        formatter.write(configuration_summary(config))

    def _help_config(self, ctx: click.Context) -> PipelineConfig:
        try:
            opts, _, _ = self.make_parser(ctx).parse_args(list(ctx.meta.get(ARGV_META_KEY, ())))
        except click.UsageError:
            opts = {}
        overrides = {name: opts.get(name) for name in ("subgraph_name", "node", "ipfs")}
        try:
            return PipelineConfig.load(opts.get("config_path"), overrides)
        except ValidationError as e:
            logger.debug("Showing command line settings only: %s", e)
            return PipelineConfig.model_validate(
                {k: v for k, v in overrides.items() if v is not None}
            )


@click.group(cls=ConfiguredGroup)
@click.version_option(package_name="graphdeploy")
@click.option(
    "--verbosity",
    type=click.Choice(["info", "verbose", "debug"]),
    default=None,
    help="The log level to use (default: LOG_LEVEL or info)",
)
@click.option(
    "-o",
    "--output-dir",
    type=click.Path(file_okay=False, path_type=Path),
    default=None,
    help="Output directory for build artifacts (default: ./dist)",
)
@click.option("-w", "--watch", is_flag=True, help="Rebuild automatically when files change")
@click.option("-g", "--node", metavar="URL[:PORT]", default=None, help="Graph node")
@click.option(
    "-t",
    "--output-format",
    type=click.Choice(["wasm", "wast"]),
    default=None,
    help="Output format (default: wasm)",
)
@click.option("-i", "--ipfs", metavar="ADDR", default=None, help="IPFS node to use for uploading files")
@click.option("-n", "--subgraph-name", metavar="NAME", default=None, help="Subgraph name")
@click.option("--api-key", metavar="KEY", default=None, help="Graph API key corresponding to the subgraph name")
@click.option(
    "--config",
    "config_path",
    type=click.Path(exists=True, dir_okay=False),
    help="Path to settings.toml",
)
@click.pass_context
def cli(ctx: click.Context, config_path: str | None, **options: Any) -> None:
    """Build subgraphs and deploy them to a Graph node.

    Settings not given on the command line are read from GRAPHDEPLOY_*
    environment variables, falling back to settings.toml.
    """
    obj = ctx.ensure_object(dict)
    obj["config_path"] = config_path
    # An absent flag must not override GRAPHDEPLOY_WATCH or settings.toml
    if not options.get("watch"):
        options["watch"] = None
    obj["overrides"] = options


@cli.command()
@click.argument("subgraph_manifest", type=click.Path(dir_okay=False))
@click.pass_context
def build(ctx: click.Context, subgraph_manifest: str) -> None:
    """Compiles a subgraph and uploads it to IPFS."""
    config = load_config(ctx, subgraph_manifest)
    setup_logging(config)
    run_pipeline(ctx, config, lambda driver: driver.build())


@cli.command()
@click.argument("subgraph_manifest", type=click.Path(dir_okay=False))
@click.pass_context
def deploy(ctx: click.Context, subgraph_manifest: str) -> None:
    """Deploys the subgraph to a graph node."""
    config = load_config(ctx, subgraph_manifest)
    setup_logging(config)
    run_pipeline(ctx, config, lambda driver: driver.deploy())
