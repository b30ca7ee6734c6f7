"""Pipeworks CLI entry point.

Provides subcommands for serving the HTTP API, generating a single level to
the terminal, and inspecting or advancing the saved campaign progress.
Accepts configuration via flags and environment variables, with optional
.env loading.

Run `python run.py --help` for details.
"""

import argparse
import json
import os
import signal
import sys
from textwrap import dedent

from colorama import Fore, Style
from colorama import init as _color_init
from dotenv import load_dotenv

_color_init()

# Disable colors if output is not a real terminal (e.g., during pytest capture)
try:
    _COLOR_ENABLED = sys.stdout.isatty()
except (AttributeError, ValueError):  # pragma: no cover - environment dependent
    _COLOR_ENABLED = False


def _load_version() -> str:
    try:
        with open(os.path.join(os.path.dirname(os.path.abspath(__file__)), "VERSION"), "r", encoding="utf-8") as f:
            return f.read().strip()
    except OSError:
        return "0.1.0"


__version__ = _load_version()


def parse_args(argv: list[str]) -> argparse.Namespace:
    description = """
    Pipeworks Puzzle Server

    Serve the level/progress HTTP API, or generate a pipe-rotation level
    straight to the terminal. Configuration can be provided via CLI flags or
    environment variables. If both are present, CLI flags take precedence.
    """

    epilog = dedent(
        """
        Environment variables:
          HOST                     Bind address for the web server (default: 0.0.0.0)
          PORT                     Port for the web server (default: 5000)
          DATABASE_URL             SQLAlchemy database URI (default: sqlite:///instance/pipeworks.db)
          PIPEWORKS_LEVEL_COUNT    Levels in the campaign before progress wraps (default: 30)
          PIPEWORKS_LOG_LEVEL      debug | info | warn | error (default: info)

        Examples:
          # Run the server on the default host and port
          python run.py serve

          # Print a 10x8 difficulty-7 level and its solution
          python run.py generate --width 10 --height 8 --difficulty 7 --seed 42 --solution

          # Machine-readable output
          python run.py generate --seed 42 --json

          # Show or advance the saved level
          python run.py progress show
          python run.py progress complete
        """
    )

    parser = argparse.ArgumentParser(
        prog="Pipeworks",
        description=dedent(description),
        epilog=epilog,
        formatter_class=argparse.RawTextHelpFormatter,
    )

    parser.add_argument(
        "--env-file",
        dest="env_file",
        help="Path to a .env file to load before processing flags",
    )

    parser.add_argument(
        "--version",
        action="version",
        version=f"Pipeworks {__version__}",
    )

    subparsers = parser.add_subparsers(dest="command")

    serve_parser = subparsers.add_parser(
        "serve",
        help="Run the HTTP API server",
        formatter_class=argparse.RawTextHelpFormatter,
        description="Run the Flask level/progress API",
    )
    serve_parser.add_argument(
        "--host",
        default=None,
        help="Host interface to bind (default: env HOST or 0.0.0.0)",
    )
    serve_parser.add_argument(
        "--port",
        type=int,
        default=None,
        help="Port to listen on (default: env PORT or 5000)",
    )
    serve_parser.add_argument(
        "--db",
        dest="db_uri",
        default=None,
        help="Database URI (default: env DATABASE_URL or sqlite:///instance/pipeworks.db)",
    )
    serve_parser.add_argument(
        "--debug",
        action="store_true",
        help="Enable Flask debug mode with verbose error pages",
    )
    serve_parser.set_defaults(command="serve")

    gen_parser = subparsers.add_parser(
        "generate",
        help="Generate one level and print it",
        formatter_class=argparse.RawTextHelpFormatter,
        description="Generate a level and print the scrambled board plus generation stats.",
    )
    gen_parser.add_argument("--width", type=int, default=8, help="Grid width (min 4, default 8)")
    gen_parser.add_argument("--height", type=int, default=8, help="Grid height (min 4, default 8)")
    gen_parser.add_argument("--difficulty", type=int, default=5, help="Difficulty 1..10 (default 5)")
    gen_parser.add_argument("--seed", type=int, default=None, help="RNG seed (default: random)")
    gen_parser.add_argument("--json", action="store_true", help="Emit JSON instead of a board drawing")
    gen_parser.add_argument("--solution", action="store_true", help="Also show the solved board")
    gen_parser.set_defaults(command="generate")

    progress_parser = subparsers.add_parser(
        "progress",
        help="Show, advance, or reset the saved level",
        formatter_class=argparse.RawTextHelpFormatter,
    )
    progress_parser.add_argument(
        "action",
        nargs="?",
        default="show",
        choices=["show", "complete", "reset"],
        help="show (default), complete (advance with wrap), reset (back to level 1)",
    )
    progress_parser.set_defaults(command="progress")

    # If no subcommand provided, default to serve
    if len(argv) == 0:
        argv = ["serve"]

    args = parser.parse_args(argv)
    return args


def label(text: str) -> str:
    return f"{Fore.YELLOW}{text}{Style.RESET_ALL}" if _COLOR_ENABLED else text


def value(val: str | int) -> str:
    return f"{Fore.GREEN}{val}{Style.RESET_ALL}" if _COLOR_ENABLED else str(val)


def _water(ch: str) -> str:
    return f"{Fore.CYAN}{Style.BRIGHT}{ch}{Style.RESET_ALL}" if _COLOR_ENABLED else ch


def _run_generate(args) -> int:
    from pipeworks.level import InvalidLevelSize, Level, render_ascii
    from pipeworks.logging_utils import redirect

    # --json owns stdout; generation events go to stderr
    log_stream = sys.stderr if args.json else None
    try:
        with redirect(log_stream):
            level = Level(seed=args.seed, width=args.width, height=args.height, difficulty=args.difficulty)
    except InvalidLevelSize as e:
        print(f"[ERROR] {e}", file=sys.stderr)
        return 2

    if args.json:
        payload = level.to_dict()
        payload["metrics"] = level.metrics
        if args.solution and level.main_solution is not None:
            payload["solution"] = level.main_solution.to_dict()
        print(json.dumps(payload, indent=2, default=str))
        return 0

    board = level.board
    print(render_ascii(board, level.initial_rotations, level.flow(level.initial_rotations), _water))
    print()
    stats = [
        ("Seed:", level.seed),
        ("Size:", f"{level.width}x{level.height}"),
        ("Difficulty:", level.difficulty),
        ("Start/End:", f"{board.start} -> {board.end}"),
        ("Max fill:", level.max_fillable_tiles),
        ("Fallback:", "YES" if level.fallback_used else "NO"),
    ]
    for key in ("attempts", "solution_paths", "critical_path_length", "key_tiles", "dead_ends", "runtime_ms"):
        if key in level.metrics:
            stats.append((key.replace("_", " ").capitalize() + ":", level.metrics[key]))
    for k, v in stats:
        print(f"  {label(k):14} {value(v)}")

    if args.solution:
        solved = level.solution_rotations()
        print()
        print(render_ascii(board, solved, level.flow(solved), _water))
    return 0


def _run_progress(args) -> int:
    from pipeworks import create_app
    from pipeworks.models.progress import complete_level, current_level, level_settings, reset_progress

    app = create_app()
    with app.app_context():
        if args.action == "complete":
            index = complete_level()
        elif args.action == "reset":
            index = reset_progress()
        else:
            index = current_level()
        settings = level_settings(index)
    print(f"  {label('Level:'):14} {value(index)}")
    print(f"  {label('Difficulty:'):14} {value(settings['difficulty'])}")
    print(f"  {label('Seed:'):14} {value(settings['seed'])}")
    return 0


def main(argv: list[str]) -> int:
    args = parse_args(argv)
    if getattr(args, "env_file", None):
        load_dotenv(args.env_file)
    else:
        # Load default .env if present (no error if missing)
        load_dotenv()

    mode = (getattr(args, "command", None) or "serve").lower()
    if mode == "generate":
        return _run_generate(args)

    db_uri_cli = getattr(args, "db_uri", None)
    # Make DATABASE_URL available to the Flask app BEFORE importing it
    if db_uri_cli:
        os.environ["DATABASE_URL"] = db_uri_cli

    if mode == "progress":
        return _run_progress(args)

    env_host = os.getenv("HOST", "0.0.0.0")
    env_port = int(os.getenv("PORT", "5000"))
    host = getattr(args, "host", None) or env_host
    port = int(getattr(args, "port", None) or env_port)
    db_banner = db_uri_cli or os.getenv("DATABASE_URL") or "auto (instance/pipeworks.db)"

    def handle_sigint(sig, frame):
        print("\n[INFO] Shutting down server...")
        sys.exit(0)

    signal.signal(signal.SIGINT, handle_sigint)

    # Import server entrypoints only after environment is ready
    from pipeworks import server

    title = (
        f"{Fore.CYAN}{Style.BRIGHT}Pipeworks Server Bootup{Style.RESET_ALL}"
        if _COLOR_ENABLED
        else "Pipeworks Server Bootup"
    )
    divider = (Fore.MAGENTA + "=" * 40 + Style.RESET_ALL) if _COLOR_ENABLED else "=" * 40
    lines = [
        divider,
        f"  {title}",
        divider,
        f"  {label('Mode:'):12} {value(mode.upper())}",
        f"  {label('Host:'):12} {value(host)}",
        f"  {label('Port:'):12} {value(port)}",
        f"  {label('Database:'):12} {value(db_banner)}",
        f"  {label('Version:'):12} {value(__version__)}",
        divider,
        "",
    ]
    print("\n".join(lines))
    from pipeworks.logging_utils import log

    log.info(event="startup", mode=mode, host=host, port=port, db=db_banner)

    server.start_server(host=host, port=port, debug=bool(getattr(args, "debug", False)))
    return 0


if __name__ == "__main__":
    raise SystemExit(main(sys.argv[1:]))
