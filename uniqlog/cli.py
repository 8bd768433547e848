"""CLI entry point for uniqlog: compact similar lines in log files."""

import argparse
import json
import logging
import os
import sys

from uniqlog import __version__, config, data_dir
from uniqlog.engine import compact_stream
from uniqlog.stats import format_summary

_log = logging.getLogger("uniqlog.cli")


def _setup_logging(debug: bool):
    """Warnings and errors go to stderr; debug mode also logs to ~/.uniqlog/uniqlog.log."""
    root = logging.getLogger("uniqlog")
    root.setLevel(logging.DEBUG if debug else logging.WARNING)
    root.handlers.clear()
    stderr_handler = logging.StreamHandler(sys.stderr)
    stderr_handler.setLevel(logging.WARNING)
    stderr_handler.setFormatter(logging.Formatter("uniqlog: %(levelname)s: %(message)s"))
    root.addHandler(stderr_handler)
    if debug:
        try:
            log_dir = data_dir()
            os.makedirs(log_dir, exist_ok=True)
            handler = logging.FileHandler(os.path.join(log_dir, "uniqlog.log"))
        except OSError:
            _log.warning("Cannot open debug log in %s", data_dir())
            return
        handler.setFormatter(
            logging.Formatter("%(asctime)s [%(name)s] %(levelname)s: %(message)s")
        )
        root.addHandler(handler)


def _threshold(value: str | None, key: str) -> float:
    """Parse a threshold flag; anything unusable falls back to the configured value."""
    fallback = float(config.get(key))
    if value is None:
        return fallback
    try:
        parsed = float(value)
    except ValueError:
        _log.warning("Invalid %s %r, using %s", key, value, fallback)
        return fallback
    if not 0.0 <= parsed <= 1.0:
        _log.warning("%s %s is outside [0, 1], using %s", key, parsed, fallback)
        return fallback
    return parsed


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="uniqlog",
        description="uniqlog: find similar lines in log files and collapse repeating blocks",
    )
    parser.add_argument(
        "files",
        nargs="*",
        metavar="FILE",
        help="log files to read in order; '-' or no file reads standard input",
    )
    parser.add_argument(
        "-fst",
        "--first-similarity-threshold",
        dest="fst",
        metavar="X",
        help="similarity needed to start a block "
        f"(default {config.get('first_similarity_threshold')})",
    )
    parser.add_argument(
        "-kst",
        "--keep-similarity-threshold",
        dest="kst",
        metavar="X",
        help="similarity needed to stay in a block "
        f"(default {config.get('keep_similarity_threshold')})",
    )
    parser.add_argument(
        "-d",
        "--debug",
        action="count",
        default=0,
        help="debug mode (print more information when a line mismatches)",
    )
    parser.add_argument("--no-color", action="store_true", help="plain output, no ANSI colors")
    parser.add_argument("--stats", action="store_true", help="print a summary per input to stderr")
    parser.add_argument("--json", action="store_true", help="print the --stats summary as JSON")
    parser.add_argument("--version", action="version", version=f"uniqlog v{__version__}")
    return parser


def _report(name: str, stats, as_json: bool):
    if as_json:
        print(json.dumps({"source": name, **stats.as_dict()}), file=sys.stderr)
    else:
        print(format_summary(name, stats), file=sys.stderr)


def main(argv=None):
    """CLI entry point."""
    args = _build_parser().parse_args(argv)

    debug = bool(args.debug) or bool(config.get("debug"))
    _setup_logging(debug)

    first = _threshold(args.fst, "first_similarity_threshold")
    keep = _threshold(args.kst, "keep_similarity_threshold")
    color = config.get("color") and not args.no_color
    show_stats = args.stats or bool(config.get("stats"))
    _log.debug("Thresholds: first=%s keep=%s debug=%s", first, keep, debug)

    failed = False
    try:
        for source in args.files or ["-"]:
            if source == "-":
                if hasattr(sys.stdin, "reconfigure"):
                    sys.stdin.reconfigure(errors="replace")
                name = "<stdin>"
                stats = compact_stream(
                    sys.stdin, first_threshold=first, keep_threshold=keep, debug=debug, color=color
                )
            else:
                name = source
                try:
                    f = open(source, encoding="utf-8", errors="replace")  # noqa: SIM115
                except OSError as e:
                    _log.error("Unable to open file %s - %s", source, e)
                    failed = True
                    continue
                with f:
                    stats = compact_stream(
                        f, first_threshold=first, keep_threshold=keep, debug=debug, color=color
                    )
            sys.stdout.flush()
            if show_stats:
                _report(name, stats, args.json)
    except BrokenPipeError:
        # stdout closed early (e.g. piped into head)
        devnull = os.open(os.devnull, os.O_WRONLY)
        os.dup2(devnull, sys.stdout.fileno())
        sys.exit(1)
    except KeyboardInterrupt:
        sys.exit(130)

    sys.exit(1 if failed else 0)


if __name__ == "__main__":
    main()
