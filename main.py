#!/usr/bin/env python3
"""
Command line tools for warming and auditioning PhomShah audio resources.
"""

import asyncio
import sys
import logging
from pathlib import Path
from typing import List, Optional, Tuple
from dotenv import load_dotenv

import click
from tqdm import tqdm

from phomshah import __version__
from phomshah.resources import AudioResourceManager
from phomshah.utils.logger import setup_logger
from config.settings import Config


class CLIManager:
    """Manages CLI operations and the audio manager lifecycle."""

    def __init__(self):
        self.logger = setup_logger(
            "phomshah",
            level="INFO",
            use_colors=True
        )
        self.manager: Optional[AudioResourceManager] = None

    def create_manager(self, config: Config) -> AudioResourceManager:
        self.manager = AudioResourceManager.from_config(config)
        return self.manager

    async def preload(self, urls: List[str], high_priority: bool) -> dict:
        if not self.manager:
            raise RuntimeError("Audio manager not initialized")

        with tqdm(total=100, desc="Preloading", unit="%") as bar:
            def on_progress(percentage: float) -> None:
                bar.update(round(percentage) - bar.n)

            try:
                result = await self.manager.preload_batch(
                    urls,
                    high_priority=high_priority,
                    on_progress=on_progress
                )
            finally:
                await self.manager.aclose()

        return {
            'loaded': result.loaded,
            'skipped': result.skipped,
            'failed': [self.manager.failure_for(url) for url in result.failed]
        }

    async def play(self, url: str, wait: float) -> None:
        if not self.manager:
            raise RuntimeError("Audio manager not initialized")

        try:
            self.manager.initialize_context()
            await self.manager.play(url)
            await asyncio.sleep(wait)
        finally:
            await self.manager.aclose()

    def set_logging_level(self, debug: bool, verbose: bool):
        """Set appropriate logging level."""
        if debug:
            self.logger.setLevel(logging.DEBUG)
        elif verbose:
            self.logger.setLevel(logging.INFO)
        else:
            self.logger.setLevel(logging.WARNING)


def _load_configuration(config_path: Optional[str]) -> Config:
    """Load configuration from file or environment."""
    if config_path:
        click.echo(f"Loading configuration from: {config_path}")
        return Config.from_yaml(Path(config_path))
    else:
        return Config.from_env()


def _read_urls(urls: Tuple[str, ...], url_file: Optional[str]) -> List[str]:
    collected = list(urls)
    if url_file:
        for line in Path(url_file).read_text(encoding="utf-8").splitlines():
            line = line.strip()
            if line and not line.startswith('#'):
                collected.append(line)
    return collected


@click.group()
def cli():
    """PhomShah audio tools."""
    load_dotenv()


@cli.command()
@click.argument('urls', nargs=-1)
@click.option('--file', '-f', 'url_file', type=click.Path(exists=True),
              help='Text file with one URL per line')
@click.option('--high-priority', is_flag=True, default=False,
              help='Load the first batch ahead of queued requests')
@click.option('--max-concurrent', type=int, default=None, help='Maximum parallel downloads')
@click.option('--max-retries', type=int, default=None, help='Retries per URL after the first failure')
@click.option('--config', '-c', type=click.Path(exists=True), help='Path to configuration file (YAML)')
@click.option('--verbose', '-v', is_flag=True, help='Enable verbose output')
@click.option('--debug', is_flag=True, help='Enable debug mode')
def preload(urls, url_file, high_priority, max_concurrent, max_retries, config, verbose, debug):
    """Download and decode URLS into the audio cache and report failures."""
    all_urls = _read_urls(urls, url_file)
    if not all_urls:
        raise click.UsageError("No URLs given")

    cli_manager = CLIManager()
    cli_manager.set_logging_level(debug, verbose)

    try:
        app_config = _load_configuration(config)
        if max_concurrent is not None:
            app_config.preload.max_concurrent = max_concurrent
        if max_retries is not None:
            app_config.preload.max_retries = max_retries
        app_config.preload.debug = app_config.preload.debug or debug

        cli_manager.create_manager(app_config)
        summary = asyncio.run(cli_manager.preload(all_urls, high_priority))

    except KeyboardInterrupt:
        click.echo("\n" + click.style("Preloading interrupted by user", fg='yellow'))
        sys.exit(130)

    except ValueError as e:
        click.echo(click.style(f"Invalid configuration: {e}", fg='red'))
        sys.exit(2)

    click.echo(f"Loaded: {len(summary['loaded'])}  "
               f"Already cached: {len(summary['skipped'])}  "
               f"Failed: {len(summary['failed'])}")

    for failure in summary['failed']:
        click.echo(click.style(f"  {failure}", fg='red'))

    if summary['failed']:
        sys.exit(1)


@cli.command()
@click.argument('url')
@click.option('--wait', type=float, default=3.0, help='Seconds to keep the output open')
@click.option('--config', '-c', type=click.Path(exists=True), help='Path to configuration file (YAML)')
@click.option('--debug', is_flag=True, help='Enable debug mode')
def play(url, wait, config, debug):
    """Load URL on demand and play it."""
    cli_manager = CLIManager()
    cli_manager.set_logging_level(debug, verbose=True)

    try:
        app_config = _load_configuration(config)
        app_config.preload.debug = app_config.preload.debug or debug
        cli_manager.create_manager(app_config)
        asyncio.run(cli_manager.play(url, wait))

    except KeyboardInterrupt:
        sys.exit(130)

    except ValueError as e:
        click.echo(click.style(f"Invalid configuration: {e}", fg='red'))
        sys.exit(2)


@cli.command()
def version():
    """Show version information."""
    click.echo(f"PhomShah audio v{__version__}")
    click.echo("Python " + sys.version)


@cli.command()
@click.option('--output', '-o', type=click.Path(), default='config.yaml', help='Output path for config file')
def generate_config(output):
    """Generate a sample configuration file."""
    app_config = Config()
    app_config.to_yaml(Path(output))
    click.echo(click.style(f"Configuration file generated: {output}", fg='green'))
    click.echo("Edit this file to customize preloading and playback settings.")


if __name__ == '__main__':
    cli()
