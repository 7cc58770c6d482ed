"""
hybridkg CLI

    hybridkg search "help building search with neural embeddings"
    hybridkg setup
    hybridkg reset
"""

import asyncio
import logging
import sys

import click
import structlog

from hybridkg.core.knowledge_base import BACKENDS, HybridKGConfig, HybridKnowledgeBase
from hybridkg.data.professional_network import EXAMPLE_QUERY
from hybridkg.display import SEPARATOR, render_json, render_response, section
from hybridkg.errors import HybridSearchError
from hybridkg.retrieval.models import EXPANSION_SCORING_MODES, HybridSearchConfig, SearchLimits

USAGE = f"""
❌ No search query provided.

Usage:
  hybridkg search "your query"        - Search the knowledge base
  hybridkg --backend external setup   - Load the sample network into FalkorDB and Qdrant
  hybridkg --backend external reset   - Drop the external stores and start fresh

Search Examples:
  hybridkg search "{EXAMPLE_QUERY}"

  This query demonstrates all 3 search types:
    • BM25 finds exact keywords ("neural", "embeddings")
    • Vector understands semantic meaning (search systems, ML expertise)
    • Graph discovers collaborators (people who work together)
"""


def configure_logging(verbose: bool) -> None:
    """structlog to stderr; debug when verbose, warnings only otherwise."""
    structlog.configure(
        processors=[
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.dev.ConsoleRenderer()
        ],
        wrapper_class=structlog.make_filtering_bound_logger(
            logging.DEBUG if verbose else logging.WARNING
        ),
        logger_factory=structlog.PrintLoggerFactory(file=sys.stderr),
    )


def run_async(coro):
    """Run async coroutine and return result."""
    return asyncio.run(coro)


def fail(message: str) -> None:
    click.echo(f"❌ {message}", err=True)
    sys.exit(1)


@click.group()
@click.version_option(version="0.1.0", prog_name="hybridkg")
@click.option("--backend", type=click.Choice(BACKENDS), default=None,
              help="Storage backend (default: $HYBRIDKG_BACKEND or memory)")
@click.option("--verbose", "-v", is_flag=True, help="Show debug logs")
@click.pass_context
def cli(ctx, backend, verbose):
    """Hybrid search over a knowledge graph: BM25 + vectors + RRF + graph expansion."""
    configure_logging(verbose)
    ctx.ensure_object(dict)
    ctx.obj["backend"] = backend


def _build_config(backend, search_config=None) -> HybridKGConfig:
    kwargs = {}
    if backend:
        kwargs["backend"] = backend
    if search_config is not None:
        kwargs["search"] = search_config
    return HybridKGConfig(**kwargs)


@cli.command("search")
@click.argument("query", required=False)
@click.option("--lexical-limit", default=3, type=click.IntRange(min=1), help="BM25 hits to fuse")
@click.option("--vector-limit", default=3, type=click.IntRange(min=1), help="Vector hits to fuse")
@click.option("--fused-limit", default=3, type=click.IntRange(min=1), help="Direct hits kept after RRF")
@click.option("--depth", default=1, type=click.IntRange(min=1), help="Graph expansion depth")
@click.option("--no-expansion", is_flag=True, help="Skip graph expansion")
@click.option("--expansion-scoring", type=click.Choice(EXPANSION_SCORING_MODES), default="fixed",
              help="Score expansion hits with a fixed weight or by connecting edges")
@click.option("--allow-degraded", is_flag=True,
              help="Tolerate an unavailable lexical or vector backend")
@click.option("--json", "as_json", is_flag=True, help="Print results as JSON")
@click.pass_context
def search_cmd(ctx, query, lexical_limit, vector_limit, fused_limit, depth,
               no_expansion, expansion_scoring, allow_degraded, as_json):
    """Search the knowledge base (sets it up first when empty).

    Example:
        hybridkg search "help building search with neural embeddings"
    """
    if not query:
        click.echo(USAGE)
        return

    try:
        search_config = HybridSearchConfig(
            enable_graph_expansion=not no_expansion,
            expansion_depth=depth,
            expansion_scoring=expansion_scoring,
            allow_degraded=allow_degraded,
        )
        config = _build_config(ctx.obj.get("backend"), search_config)
        limits = SearchLimits(
            lexical_limit=lexical_limit,
            vector_limit=vector_limit,
            fused_limit=fused_limit,
        )
    except ValueError as e:
        fail(f"Invalid configuration: {e}")

    async def run():
        kb = HybridKnowledgeBase(config)
        await kb.connect()
        try:
            if not await kb.is_setup():
                click.echo("🔧 Knowledge base not found. Setting up first...", err=True)
                result = await kb.setup()
                click.echo(
                    f"✓ Setup complete: {result.entities_loaded} entities, "
                    f"{result.edges_loaded} relationships",
                    err=True,
                )

            if not as_json:
                click.echo(section("🔍 HYBRID SEARCH"))
                click.echo(f'Query: "{query}"\n')
                click.echo("🔄 Executing multi-model search...")
                click.echo("   → BM25 keyword search")
                click.echo("   → Vector semantic search")
                click.echo("   → RRF fusion")
                click.echo("   → Graph expansion\n")
            return await kb.search_detailed(query, limits)
        finally:
            await kb.close()

    try:
        response = run_async(run())
    except HybridSearchError as e:
        fail(f"Search failed: {e}")

    if as_json:
        click.echo(render_json(response))
    else:
        click.echo(f"   ✓ Search complete ({len(response.results)} results found)")
        click.echo(render_response(response))


def _persistent_config(ctx, command: str) -> HybridKGConfig:
    """Config for commands that only make sense against stores that outlive the process."""
    try:
        config = _build_config(ctx.obj.get("backend"))
    except ValueError as e:
        fail(f"Invalid configuration: {e}")
    if config.backend == "memory":
        fail(
            f"`hybridkg {command}` needs the external backend: in-memory stores last "
            f"for a single run. Use --backend external (or HYBRIDKG_BACKEND=external); "
            f"`hybridkg search` loads the sample network on its own."
        )
    return config


@cli.command("setup")
@click.pass_context
def setup_cmd(ctx):
    """(Re)load the sample professional network into FalkorDB and Qdrant."""
    config = _persistent_config(ctx, "setup")

    async def run():
        kb = HybridKnowledgeBase(config)
        await kb.connect()
        try:
            return await kb.setup()
        finally:
            await kb.close()

    click.echo(section("🔧 SETUP"))
    try:
        result = run_async(run())
    except HybridSearchError as e:
        fail(f"Setup failed: {e}")

    for key, value in result.summary().items():
        click.echo(f"  {key}: {value}")
    click.echo("\n✓ Setup complete")
    click.echo(SEPARATOR)


@cli.command("reset")
@click.pass_context
def reset_cmd(ctx):
    """Drop the FalkorDB graph and the Qdrant collection."""
    config = _persistent_config(ctx, "reset")

    async def run():
        kb = HybridKnowledgeBase(config)
        await kb.connect()
        try:
            return await kb.reset()
        finally:
            await kb.close()

    click.echo(section("🗑️  RESET"))
    try:
        dropped = run_async(run())
    except HybridSearchError as e:
        fail(f"Reset failed: {e}")

    if dropped:
        click.echo("✓ Knowledge base dropped successfully\n")
        click.echo("Run search again to recreate it automatically.\n")
    else:
        click.echo("⚠️  Knowledge base does not exist (already clean)\n")
    click.echo(SEPARATOR)


if __name__ == "__main__":
    cli()
