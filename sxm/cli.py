"""
Command-line interface for the SXM telemetry client
"""

import asyncio
import json
import logging
import sys
from typing import Optional

import click

from sxm.config.settings import get_settings, load_settings_from_file, validate_settings
from sxm.logger import setup_logging, get_logger
from sxm.commands.run import run_command
from sxm.session import SessionTopics

logger = get_logger(__name__)


def get_settings_with_config(config_file: Optional[str] = None):
    """Get settings with optional config file."""
    if config_file:
        return load_settings_from_file(config_file)
    else:
        return get_settings()


@click.group()
@click.option(
    '--config',
    '-c',
    type=click.Path(exists=True),
    help='Path to configuration (.env) file'
)
@click.option(
    '--verbose',
    '-v',
    is_flag=True,
    help='Enable verbose logging'
)
@click.option(
    '--debug',
    is_flag=True,
    help='Enable debug mode'
)
@click.pass_context
def cli(ctx, config: Optional[str], verbose: bool, debug: bool):
    """SXM telemetry client command line interface."""

    # Ensure context object exists
    ctx.ensure_object(dict)

    # Store CLI options in context
    ctx.obj['config_file'] = config
    ctx.obj['verbose'] = verbose
    ctx.obj['debug'] = debug


def _load_settings(ctx, **overrides):
    settings = get_settings_with_config(ctx.obj.get('config_file'))
    if ctx.obj.get('debug'):
        overrides.setdefault('debug', True)
        overrides.setdefault('log_level', 'DEBUG')
    elif ctx.obj.get('verbose'):
        overrides.setdefault('log_level', 'INFO')
    return settings.with_overrides(**overrides)


@cli.command()
@click.option(
    '--room',
    '-r',
    default=None,
    help='Room id of the touch table (default: SXM_ROOM_ID)'
)
@click.option(
    '--broker',
    '-u',
    default=None,
    help='Broker address as host[:port] (default: SXM_BROKER_HOST:SXM_BROKER_PORT)'
)
@click.option(
    '--device-id',
    default=None,
    help='Device id (default: SXM_DEVICE_ID or a new UUID)'
)
@click.option(
    '--interval',
    default=None,
    type=float,
    help='Status interval in seconds (default: 0.2)'
)
@click.option(
    '--duration',
    default=None,
    type=float,
    help='Stop after this many seconds (default: run until interrupted)'
)
@click.option(
    '--simulate',
    is_flag=True,
    help='Feed the classifier from the simulated sensor source'
)
@click.option(
    '--seed',
    default=42,
    type=int,
    help='Random seed for the simulated sensor source (default: 42)'
)
@click.pass_context
def run(ctx, room: Optional[str], broker: Optional[str], device_id: Optional[str],
        interval: Optional[float], duration: Optional[float], simulate: bool, seed: int):
    """Connect to the broker and publish the device status."""

    try:
        settings = _load_settings(ctx, room_id=room, device_id=device_id)
        if broker:
            settings = settings.with_broker_address(broker)
        setup_logging(settings)

        for issue in validate_settings(settings):
            logger.warning("Configuration: %s", issue)

        asyncio.run(run_command(
            settings=settings,
            device_id=device_id,
            interval=interval,
            duration=duration,
            simulate=simulate,
            seed=seed,
        ))

    except KeyboardInterrupt:
        logger.info("Received interrupt signal, shutting down...")
        sys.exit(0)
    except ValueError as e:
        click.echo(f"Invalid configuration: {e}", err=True)
        sys.exit(2)
    except Exception as e:
        logger.error("Session failed: %s", e)
        sys.exit(1)


@cli.command()
@click.option(
    '--room',
    '-r',
    default=None,
    help='Room id (default: SXM_ROOM_ID)'
)
@click.option(
    '--device-id',
    default='<device_id>',
    help='Device id used in the per-device topics'
)
@click.option(
    '--format',
    'output_format',
    type=click.Choice(['text', 'json']),
    default='text',
    help='Output format (default: text)'
)
@click.pass_context
def topics(ctx, room: Optional[str], device_id: str, output_format: str):
    """Show the topic map for a room and device."""

    settings = _load_settings(ctx, room_id=room)
    topic_map = SessionTopics.build(settings.topic_namespace, settings.room_id, device_id)

    rows = {
        "status (publish)": topic_map.status,
        "start (subscribe)": topic_map.start,
        "shutdown (subscribe)": topic_map.shutdown,
        "down (subscribe)": topic_map.down,
        "up (subscribe)": topic_map.up,
    }
    if output_format == 'json':
        click.echo(json.dumps(rows, indent=2))
    else:
        for label, topic in rows.items():
            click.echo(f"{label:<22} {topic}")


@cli.group()
def config():
    """Configuration management commands."""
    pass


@config.command()
@click.pass_context
def show(ctx):
    """Show current configuration (secrets masked)."""

    try:
        settings = _load_settings(ctx)
        click.echo(json.dumps(settings.masked_dump(), indent=2, default=str))

    except Exception as e:
        logger.error("Failed to show configuration: %s", e)
        sys.exit(1)


@config.command()
@click.pass_context
def validate(ctx):
    """Validate configuration."""

    try:
        settings = _load_settings(ctx)
    except ValueError as e:
        click.echo(f"✗ Configuration invalid: {e}")
        sys.exit(1)

    issues = validate_settings(settings)
    if issues:
        for issue in issues:
            click.echo(f"✗ {issue}")
        sys.exit(1)

    click.echo(f"✓ Broker: {settings.broker_url}")
    click.echo(f"✓ Room: {settings.room_id}")
    click.echo("\n✓ Configuration validation passed")


@cli.command()
@click.pass_context
def version(ctx):
    """Show version information."""

    from sxm import get_package_info

    try:
        settings = _load_settings(ctx)
    except ValueError as e:
        logger.error("Failed to load configuration: %s", e)
        sys.exit(1)

    info = get_package_info()
    click.echo(f"{settings.app_name} ({info['name']}) version {info['version']}")
    click.echo(f"Environment: {settings.environment}")
    click.echo(f"Python: {sys.version.split()[0]}")


if __name__ == '__main__':
    logging.basicConfig(level=logging.INFO)
    cli()
