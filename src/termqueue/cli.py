"""CLI entry point for termqueue."""

from __future__ import annotations

import asyncio
import logging

import typer
from pydantic import ValidationError

from termqueue import __version__
from termqueue.config import TermQueueConfig
from termqueue.terminal import Terminal

app = typer.Typer(
    name="termqueue",
    help="Drive an interactive program through a queue of send/wait steps.",
    no_args_is_help=True,
)


def setup_logging(verbose: bool = False) -> None:
    level = logging.DEBUG if verbose else logging.WARNING
    logging.basicConfig(
        level=level,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%H:%M:%S",
    )


async def _run_script(
    command: list[str],
    prompt: str,
    inputs: list[str],
    retries: int,
    config: TermQueueConfig,
) -> bool:
    """Wait for the first prompt, then send each input and wait for the next.

    Returns False as soon as a step times out.
    """
    async with await Terminal.spawn(command, config) as terminal:
        banner = await terminal.wait_for(prompt, since=0)
        if banner is None:
            typer.echo(f"Error: no prompt matching {prompt!r}", err=True)
            return False
        typer.echo(banner, nl=False)

        for text in inputs:
            output = await terminal.expect(text + "\n", prompt, retries=retries)
            if output is None:
                typer.echo(f"\nError: timed out after sending {text!r}", err=True)
                return False
            typer.echo(output, nl=False)
    typer.echo()
    return True


@app.command()
def run(
    command: list[str] = typer.Argument(
        help="Program to drive, with its arguments (put it after --)."
    ),
    prompt: str = typer.Option(
        r"[$#>] ?$",
        "--prompt",
        "-p",
        help="Regex matching the program's prompt.",
    ),
    send: list[str] = typer.Option(
        [],
        "--send",
        "-s",
        help="Line to send once the prompt appears (repeatable).",
    ),
    timeout: float | None = typer.Option(
        None,
        "--timeout",
        "-t",
        help="Seconds to wait for a response before giving up on a step.",
    ),
    stable_delay: float | None = typer.Option(
        None,
        "--stable-delay",
        help="Quiet period (seconds) before output counts as settled.",
    ),
    retries: int = typer.Option(
        0, "--retries", "-r", help="Re-send a line this many times on timeout."
    ),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Debug logging."),
    config_file: str | None = typer.Option(
        None, "--config", "-c", help="Path to config JSON file."
    ),
) -> None:
    """Run a program in a PTY and feed it lines, one prompt at a time."""
    setup_logging(verbose)

    config = TermQueueConfig.load(config_file)
    try:
        if timeout is not None:
            config.queue.timeout = timeout
        if stable_delay is not None:
            config.queue.stable_delay = stable_delay
    except ValidationError as e:
        error = e.errors()[0]
        option = "--" + str(error["loc"][0]).replace("_", "-")
        raise typer.BadParameter(error["msg"], param_hint=option)

    try:
        ok = asyncio.run(_run_script(command, prompt, send, retries, config))
    except OSError as e:
        typer.echo(f"Error: cannot start {command[0]}: {e}", err=True)
        raise typer.Exit(2)
    if not ok:
        raise typer.Exit(1)


@app.command()
def version() -> None:
    """Print the termqueue version."""
    typer.echo(f"termqueue v{__version__}")


def main() -> None:
    app()


if __name__ == "__main__":
    main()
