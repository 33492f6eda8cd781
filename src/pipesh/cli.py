# cli.py
from __future__ import annotations

import sys

import click

from pipesh.config import load_settings
from pipesh.errors import ParseError
from pipesh.executor import Executor
from pipesh.parser import parse_all
from pipesh.reader import LineReader
from pipesh.shell import PARSE_FAILURE, Shell
from pipesh.ui.console import Console, get_console, set_console


@click.group(invoke_without_command=True)
@click.option(
    "--debug",
    is_flag=True,
    default=False,
    help="Enable debug mode (trace spawned processes, show stack traces)",
)
@click.option(
    "--quiet-status",
    is_flag=True,
    default=False,
    help="Do not print the exit status after each foreground job",
)
@click.pass_context
def cli(ctx, debug, quiet_status):
    """pipesh: a small command interpreter with pipes and redirections."""
    settings = load_settings()
    debug = debug or settings.debug
    show_status = settings.show_status and not quiet_status

    set_console(Console(debug=debug, show_status=show_status))
    ctx.ensure_object(dict)
    ctx.obj["settings"] = settings

    if ctx.invoked_subcommand is None:
        ctx.invoke(repl)


@cli.command()
@click.option("--prompt", default=None, help="Prompt shown before each line (env: PIPESH_PROMPT)")
@click.pass_context
def repl(ctx, prompt):
    """Read lines from the terminal (or stdin) and run them."""
    settings = ctx.obj["settings"]
    prompt = settings.prompt if prompt is None else prompt

    # a prompt only makes sense on a terminal
    stream = None if sys.stdin.isatty() else sys.stdin
    shell = Shell(LineReader(prompt=prompt, stream=stream))
    sys.exit(shell.repl())


@cli.command()
@click.argument("line")
@click.option(
    "--wait-background/--no-wait-background",
    default=False,
    help="Wait for background jobs started by LINE before exiting",
)
def run(line, wait_background):
    """Parse and execute a single LINE."""
    shell = Shell(LineReader(stream=sys.stdin), Executor())
    try:
        shell.run_line(line)
        if wait_background:
            shell.wait_background()
    except KeyboardInterrupt:
        get_console().print_info("\nInterrupted by user")
        sys.exit(130)
    sys.exit(shell.last_code)


@cli.command()
@click.argument("line")
def parse(line):
    """Print how LINE is parsed, one job per line."""
    console = get_console()
    try:
        jobs = parse_all(line)
    except ParseError as e:
        console.print_error("syntax error", str(e))
        sys.exit(PARSE_FAILURE)

    for job in jobs:
        stages = job.stages()
        console.print_info(str(job))
        console.print_debug(f"{len(stages)} stage(s), {job.mode.value}")


def main() -> None:
    cli()


if __name__ == "__main__":
    main()
