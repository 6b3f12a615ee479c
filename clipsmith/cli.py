"""Command-line entry point for clipsmith.

Reads clipboard text from a file or stdin, loads it into a snapshot, runs
one completion strategy and prints the result plus the resulting formats.

Usage:
    clipsmith formats --input notes.csv
    clipsmith cloud "Paste as markdown table" --input notes.csv
    echo "<a><b>1</b></a>" | clipsmith agent "Paste as JSON"
    clipsmith --offline local "Paste as bulleted list" --input todo.txt
"""

import argparse
import asyncio
import logging
import sys
from pathlib import Path

from dotenv import load_dotenv
from rich.console import Console
from rich.logging import RichHandler
from rich.markup import escape

from clipsmith import __version__
from clipsmith.clipboard import ClipboardSnapshot, MemoryClipboard
from clipsmith.config import load_config
from clipsmith.config.schema import Config
from clipsmith.core.errors import ClipsmithError
from clipsmith.credentials import StaticCredentialStore, create_credential_store
from clipsmith.engine import CompletionEngine
from clipsmith.provider import SimulatedProvider

logger = logging.getLogger(__name__)

console = Console()


def configure_logging(verbose: bool = False) -> None:
    """Send clipsmith.* logs to stderr through rich."""
    level = logging.DEBUG if verbose else logging.WARNING
    handler = RichHandler(console=Console(stderr=True), show_path=verbose)
    handler.setLevel(level)

    clipsmith_logger = logging.getLogger("clipsmith")
    clipsmith_logger.setLevel(level)
    clipsmith_logger.handlers.clear()
    clipsmith_logger.addHandler(handler)
    # Don't propagate to root logger
    clipsmith_logger.propagate = False


def add_input_arg(parser: argparse.ArgumentParser) -> None:
    """Add --input argument to a parser."""
    parser.add_argument(
        "--input", "-i",
        type=Path,
        help="File holding the clipboard text (default: stdin)",
    )


def add_instructions_arg(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("instructions", help="What to do, e.g. 'Paste as markdown table'")


def add_timeout_arg(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "--timeout",
        type=float,
        default=None,
        help="Give up after this many seconds",
    )


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    """Parse command line arguments."""
    parser = argparse.ArgumentParser(
        prog="clipsmith",
        description="Clipboard-aware AI transformations",
    )
    parser.add_argument("--version", action="version", version=f"clipsmith {__version__}")
    parser.add_argument("--config", type=Path, help="Config file (default: layered lookup)")
    parser.add_argument("--verbose", "-v", action="store_true", help="Debug logging")
    parser.add_argument(
        "--offline",
        action="store_true",
        help="Use the simulated backend instead of any real model",
    )

    subparsers = parser.add_subparsers(dest="command", required=True)

    formats_parser = subparsers.add_parser("formats", help="Show the clipboard formats")
    add_input_arg(formats_parser)

    local_parser = subparsers.add_parser("local", help="Stream a transformation from the local model")
    add_instructions_arg(local_parser)
    add_input_arg(local_parser)

    cloud_parser = subparsers.add_parser("cloud", help="Transform with one cloud completion")
    add_instructions_arg(cloud_parser)
    add_input_arg(cloud_parser)
    add_timeout_arg(cloud_parser)

    agent_parser = subparsers.add_parser("agent", help="Let the agent transform the clipboard")
    add_instructions_arg(agent_parser)
    add_input_arg(agent_parser)
    add_timeout_arg(agent_parser)

    return parser.parse_args(argv)


def read_input(path: Path | None) -> str:
    if path is None:
        return sys.stdin.read()
    return path.read_text(encoding="utf-8")


def build_engine(
    config: Config,
    snapshot: ClipboardSnapshot,
    offline: bool,
) -> CompletionEngine:
    """Create the engine, swapping every backend for the simulator when offline."""
    if not offline:
        return CompletionEngine(config, snapshot, create_credential_store(config))

    simulator = SimulatedProvider(delay=0.05)
    return CompletionEngine(
        config,
        snapshot,
        StaticCredentialStore("offline"),
        cloud_provider=simulator,
        chat_provider=simulator,
        local_backend=simulator,
    )


async def run_command(args: argparse.Namespace, config: Config) -> int:
    snapshot = ClipboardSnapshot()
    text = read_input(args.input)
    await snapshot.reset(MemoryClipboard(text=text))

    if args.command == "formats":
        await print_snapshot(snapshot, show_text=False)
        return 0

    async with build_engine(config, snapshot, args.offline) as engine:
        if args.command == "local":
            shown = ""

            def show_progress(accumulated: str) -> None:
                nonlocal shown
                console.print(accumulated[len(shown):], end="", markup=False, highlight=False)
                shown = accumulated

            session = engine.start_local_streaming(args.instructions, text)
            result = await session.run(show_progress)
            console.print(result[len(shown):], markup=False, highlight=False)
            if session.error is not None:
                console.print(f"[red]Local model failed:[/red] {escape(session.error)}")
                return 1
            snapshot.set_text(result)

        elif args.command == "cloud":
            if not engine.is_ai_enabled:
                console.print("[red]AI is not enabled:[/red] set an API key first")
                return 1
            completion = await engine.run_cloud_completion(args.instructions, text, args.timeout)
            if not completion.ok:
                console.print(f"[red]Completion failed[/red] (status {completion.status})")
                return 1
            if completion.truncated:
                console.print("[yellow]Output was cut off at the token limit[/yellow]")
            snapshot.set_text(completion.text)

        else:
            answer = await engine.run_agent_completion(args.instructions, args.timeout)
            console.print(f"[bold]Agent:[/bold] {escape(answer)}", highlight=False)

    await print_snapshot(snapshot, show_text=args.command != "local")
    return 0


async def print_snapshot(snapshot: ClipboardSnapshot, show_text: bool = True) -> None:
    names = await snapshot.format_names()
    console.print(f"[dim]Formats:[/dim] {', '.join(names) or '(empty)'}")
    for item in snapshot.get_storage_items():
        console.print(f"[dim]File:[/dim] {escape(item.path)}", highlight=False)
    text = snapshot.get_text()
    if show_text and text is not None:
        console.print(text, markup=False, highlight=False)


def main(argv: list[str] | None = None) -> int:
    """Entry point for the clipsmith console script."""
    load_dotenv()
    args = parse_args(argv)
    configure_logging(args.verbose)

    try:
        config = load_config(args.config)
        return asyncio.run(run_command(args, config))
    except ClipsmithError as e:
        console.print(f"[red]Error:[/red] {escape(e.message)}")
        return 1
    except OSError as e:
        console.print(f"[red]Error:[/red] {escape(str(e))}")
        return 1
    except KeyboardInterrupt:
        return 1


if __name__ == "__main__":
    sys.exit(main())
