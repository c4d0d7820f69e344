"""
Main entry point for Reka Research MCP Server.

This module provides the command-line interface for the MCP server,
handling startup, configuration, and transport selection.
"""

import asyncio
import sys
from pathlib import Path
from typing import Optional

import click
import structlog

from .config.settings import load_config
from .server import RekaResearchMCPServer
from .utils.logging import setup_logging


@click.command()
@click.option(
    "--config",
    "-c",
    type=click.Path(exists=True, path_type=Path),
    help="Path to configuration file",
)
@click.option(
    "--log-level",
    type=click.Choice(["DEBUG", "INFO", "WARNING", "ERROR"], case_sensitive=False),
    help="Set logging level",
)
@click.option(
    "--transport",
    "-t",
    type=click.Choice(["stdio", "http"], case_sensitive=False),
    default="stdio",
    show_default=True,
    help="Transport used to serve MCP requests",
)
@click.option("--host", help="Bind address for the HTTP transport")
@click.option("--port", type=int, help="Port for the HTTP transport")
@click.version_option(package_name="reka-research-mcp-server")
def main(
    config: Optional[Path] = None,
    log_level: Optional[str] = None,
    transport: str = "stdio",
    host: Optional[str] = None,
    port: Optional[int] = None,
) -> None:
    """
    Reka Research MCP Server - claim verification and similarity search.

    Serves the verify_claim and find_similar tools over stdio, or over HTTP
    at /mcp (stateless) and /sse (streaming).
    """
    logger = structlog.get_logger()
    try:
        config_data = load_config(config_path=config)

        if log_level:
            config_data.server.log_level = log_level.upper()
        if host:
            config_data.server.host = host
        if port:
            config_data.server.port = port

        setup_logging(config_data.server.log_level, config_data.server.log_format)

        logger.info(
            "Starting Reka Research MCP Server",
            version=config_data.version,
            config_file=str(config) if config else "default",
            log_level=config_data.server.log_level,
            transport=transport,
        )

        # A key can still arrive per request via the Authorization header
        if not config_data.reka.api_key:
            logger.warning("REKA_API_KEY is not set; requests must carry a bearer token")

        server = RekaResearchMCPServer(config_data, transport=transport.lower())
        asyncio.run(server.run())

    except KeyboardInterrupt:
        logger.info("Server shutdown requested")
        sys.exit(0)
    except Exception as e:
        logger.error("Server startup failed", error=str(e), exc_info=True)
        sys.exit(1)


@click.command()
@click.option(
    "--config",
    "-c",
    type=click.Path(path_type=Path),
    help="Path to save configuration file",
)
def init_config(config: Optional[Path] = None) -> None:
    """Initialize a configuration file with default settings."""
    from .config.settings import create_default_config

    config_path = config or Path("config.json")

    if config_path.exists():
        click.echo(f"Configuration file already exists: {config_path}")
        if not click.confirm("Overwrite?"):
            return

    try:
        create_default_config(config_path)
        click.echo(f"Created configuration file: {config_path}")
        click.echo("\nNext steps:")
        click.echo("1. Set environment variables:")
        click.echo("   export REKA_API_KEY='your-api-key'")
        click.echo("2. Start the server:")
        click.echo(f"   reka-research-mcp-server serve --config {config_path} --transport http")
    except Exception as e:
        click.echo(f"Failed to create configuration file: {e}", err=True)
        sys.exit(1)


@click.group()
def cli() -> None:
    """Reka Research MCP Server CLI."""
    pass


cli.add_command(main, name="serve")
cli.add_command(init_config, name="init")


if __name__ == "__main__":
    cli()
