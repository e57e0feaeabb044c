"""Command line interface.

Usage:
    pyapsp graph.txt                      # JSON to stdout
    pyapsp graph.txt --block-size 8 -v    # smaller tiles, INFO logging
    pyapsp graph.txt --verify --summary   # check the result, print reports

The exit status is the :class:`~pyapsp.core.exceptions.RunStatus` value of
the run (0 on success).
"""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path
from typing import Sequence

from pyapsp import __version__
from pyapsp.algorithms.floyd_warshall import calculate_apsp
from pyapsp.config import BACKENDS, EngineConfig
from pyapsp.core.exceptions import APSPError, RunStatus
from pyapsp.io.formatter import format_result
from pyapsp.io.loader import read_graph
from pyapsp.verify import verify_result

logger = logging.getLogger("pyapsp")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="pyapsp",
        description="All-pairs shortest paths with blocked Floyd-Warshall",
    )
    parser.add_argument("graph_file", type=Path, help="Edge list: 'n m' then m lines 'src dst weight'")
    parser.add_argument(
        "--block-size", type=int, default=None, help="Tile side B (default: 16, or PYAPSP_BLOCK_SIZE)"
    )
    parser.add_argument("--backend", choices=BACKENDS, default=None, help="Parallel substrate")
    parser.add_argument("--threads", type=int, default=None, help="Worker threads for the cpu backend")
    parser.add_argument("--output", type=Path, default=None, help="Write JSON here instead of stdout")
    parser.add_argument("--verify", action="store_true", help="Cross-check the result against scipy")
    parser.add_argument("--summary", action="store_true", help="Print a run report to stderr")
    parser.add_argument("-v", "--verbose", action="count", default=0, help="-v for INFO, -vv for DEBUG")
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    return parser


def _configure_logging(verbosity: int) -> None:
    level = logging.WARNING
    if verbosity == 1:
        level = logging.INFO
    elif verbosity > 1:
        level = logging.DEBUG
    logging.basicConfig(
        level=level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        stream=sys.stderr,
    )


def main(argv: Sequence[str] | None = None) -> int:
    """Run the CLI and return the exit status."""
    args = build_parser().parse_args(argv)
    _configure_logging(args.verbose)

    try:
        config = EngineConfig.from_env(
            block_size=args.block_size,
            backend=args.backend,
            num_threads=args.threads,
        )
        graph = read_graph(args.graph_file, sentinel=config.sentinel)
        original = graph.copy() if args.verify else None
        result = calculate_apsp(graph, config)
    except APSPError as exc:
        logger.error("%s", exc)
        return int(exc.status)

    if args.summary:
        print(result.summary(), file=sys.stderr)

    status = result.status
    if original is not None:
        report = verify_result(original, graph, sentinel=config.sentinel)
        if args.summary:
            print(report.summary(), file=sys.stderr)
        if not report.is_valid:
            logger.error("Verification failed")
            status = RunStatus.VERIFICATION_FAILED

    text = format_result(graph, sentinel=config.sentinel)
    if args.output is not None:
        try:
            args.output.write_text(text + "\n", encoding="utf-8")
        except OSError as exc:
            logger.error("Cannot write %s: %s", args.output, exc)
            return int(RunStatus.IO_FAILED)
    else:
        print(text)
    return int(status)


if __name__ == "__main__":
    sys.exit(main())
