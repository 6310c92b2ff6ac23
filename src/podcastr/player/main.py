"""CLI entry point for the podcastr player.

Provides the `podcastr` command for listing episodes and launching the
Textual player.
"""

import os
import subprocess
import tomllib
from pathlib import Path
from typing import Optional

import typer
from rich.console import Console
from rich.table import Table

from podcastr.player import __version__
from podcastr.player.config import PlayerConfig, ensure_config_exists, get_config_path
from podcastr.player.logging_config import LOG_FILENAME, setup_logging
from podcastr.player.models import Episode, EpisodeFileError, load_episodes
from podcastr.player.utils import format_duration

app = typer.Typer(
    name="podcastr",
    help="Podcastr - podcast episode player",
    no_args_is_help=True,
)
console = Console()


def _version_callback(value: bool) -> None:
    if value:
        console.print(f"podcastr version {__version__}")
        raise typer.Exit()


@app.callback()
def main(
    version: bool = typer.Option(
        False,
        "--version",
        "-v",
        help="Show version and exit",
        callback=_version_callback,
        is_eager=True,
    ),
) -> None:
    """Podcastr - play a queue of podcast episodes."""


def _load_config(config_path: Optional[Path]) -> PlayerConfig:
    """Load the config from an explicit path or the default location."""
    try:
        if config_path:
            return PlayerConfig.load(config_path)
        return ensure_config_exists()
    except FileNotFoundError as e:
        console.print(f"[red]{e}[/red]")
        raise typer.Exit(1)
    except Exception as e:
        console.print(f"[red]Error loading config: {e}[/red]")
        raise typer.Exit(1)


def _load_episodes(episodes_path: Path) -> list[Episode]:
    """Load episodes, exiting with a message on failure."""
    try:
        episodes = load_episodes(episodes_path)
    except FileNotFoundError as e:
        console.print(f"[red]{e}[/red]")
        raise typer.Exit(1)
    except EpisodeFileError as e:
        console.print(f"[red]Invalid episode file: {e}[/red]")
        raise typer.Exit(1)

    if not episodes:
        console.print(f"[yellow]No episodes in {episodes_path}[/yellow]")
        raise typer.Exit(1)
    return episodes


@app.command()
def episodes(
    episodes_path: Path = typer.Argument(..., help="JSON file with the episode list"),
) -> None:
    """List the episodes in an episode file."""
    episode_list = _load_episodes(episodes_path)

    table = Table(title=f"Episodes ({len(episode_list)})")
    table.add_column("#", justify="right", style="dim")
    table.add_column("Title", style="bold")
    table.add_column("Members")
    table.add_column("Duration", justify="right")

    for index, episode in enumerate(episode_list):
        table.add_row(str(index), episode.title, episode.members, format_duration(episode.duration))

    console.print(table)


@app.command()
def run(
    episodes_path: Path = typer.Argument(..., help="JSON file with the episode list"),
    index: int = typer.Option(0, "--index", "-i", help="Episode to start playing"),
    shuffle: bool = typer.Option(False, "--shuffle", help="Start with shuffle on"),
    loop: bool = typer.Option(False, "--loop", help="Loop the first episode"),
    config_path: Optional[Path] = typer.Option(
        None,
        "--config",
        "-c",
        help="Path to config file",
    ),
) -> None:
    """Launch the player with an episode queue."""
    config = _load_config(config_path)
    episode_list = _load_episodes(episodes_path)

    if not 0 <= index < len(episode_list):
        console.print(f"[red]Index {index} out of range (0-{len(episode_list) - 1})[/red]")
        raise typer.Exit(1)

    logger = setup_logging(config.log_dir)
    logger.info(f"Loaded {len(episode_list)} episode(s) from {episodes_path}")
    console.print(f"[dim]Session log: {config.log_dir / LOG_FILENAME}[/dim]")

    # Imported here so listing episodes does not pull in the audio stack
    from podcastr.player.app import PodcastrApp

    try:
        app_instance = PodcastrApp(
            config,
            episode_list,
            start_index=index,
            shuffle=shuffle,
            loop=loop,
        )
        logger.info("Launching TUI application")
        app_instance.run()
        logger.info("Application exited normally")
    except KeyboardInterrupt:
        logger.info("Application interrupted by user (Ctrl+C)")
        console.print("\n[yellow]Interrupted by user[/yellow]")
        raise typer.Exit(0)
    except Exception as e:
        logger.exception(f"Application error: {e}")
        console.print(f"[red]Error running app: {e}[/red]")
        raise typer.Exit(1)


@app.command()
def config(
    show: bool = typer.Option(
        False,
        "--show",
        help="Show current configuration",
    ),
    edit: bool = typer.Option(
        False,
        "--edit",
        help="Open config in editor",
    ),
) -> None:
    """Manage the player configuration."""
    config_path = get_config_path()

    if show or not edit:
        if config_path.exists():
            try:
                player_config = PlayerConfig.load(config_path)
            except (tomllib.TOMLDecodeError, ValueError, TypeError) as e:
                console.print(f"[red]Error loading config {config_path}: {e}[/red]")
                raise typer.Exit(1)
            console.print(f"[bold]Config file:[/bold] {config_path}")
            console.print(f"[bold]Log dir:[/bold] {player_config.log_dir}")
            console.print(f"[bold]Volume:[/bold] {player_config.volume}")
            console.print(f"[bold]Buffer:[/bold] {player_config.buffer_ms} ms")
            console.print(f"[bold]Position interval:[/bold] {player_config.position_interval_ms} ms")
            console.print(f"[bold]Seek step:[/bold] {player_config.seek_step_seconds} s")
            console.print(f"[bold]Shuffle seed:[/bold] {player_config.shuffle_seed}")
        else:
            console.print(f"[yellow]No config file at {config_path}[/yellow]")
            console.print("Run [bold]podcastr run[/bold] to create the default config.")

    if edit:
        editor = os.environ.get("EDITOR", "nano")
        subprocess.call([editor, str(config_path)])


def cli_entry() -> None:
    """Entry point for the CLI."""
    app()


if __name__ == "__main__":
    cli_entry()
