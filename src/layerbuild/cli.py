"""Command-line interface for layerbuild."""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path

from layerbuild.config import BUILD_TYPES, CONFIGURATIONS, GENERATORS, LIBRARY_TYPES, PLATFORMS
from layerbuild.errors import LayerbuildError
from layerbuild.pipeline import run

logger = logging.getLogger("layerbuild")


def main(argv: list[str] | None = None) -> None:
    parser = argparse.ArgumentParser(
        prog="layerbuild",
        description="Meta-build tool: resolve a module tree and generate CMake or Visual Studio solutions.",
    )
    parser.add_argument(
        "module_dir",
        type=Path,
        help="Path to the directory holding the root module.yaml",
    )
    parser.add_argument(
        "-g",
        "--generator",
        choices=GENERATORS,
        default=None,
        help="Build backend (default: cmake)",
    )
    parser.add_argument(
        "-p",
        "--platform",
        choices=PLATFORMS,
        default=None,
        help="Target platform (default: linux)",
    )
    parser.add_argument(
        "-c",
        "--configuration",
        choices=CONFIGURATIONS,
        default=None,
        help="Build configuration (default: release)",
    )
    parser.add_argument(
        "--build",
        choices=BUILD_TYPES,
        default=None,
        help="Build type; shipment builds drop dev-only and test projects",
    )
    parser.add_argument(
        "--libs",
        choices=LIBRARY_TYPES,
        default=None,
        help="How auto libraries are built (default: static)",
    )
    parser.add_argument(
        "--static",
        action="store_true",
        dest="static_build",
        default=None,
        help="Run generators (reflection, parsers, media) now instead of at build time",
    )
    parser.add_argument(
        "-o",
        "--output",
        type=Path,
        default=None,
        dest="output_path",
        help="Output directory (default: <module>/.build)",
    )
    parser.add_argument(
        "-j",
        "--workers",
        type=int,
        default=None,
        help="Worker threads for scanning and embedding",
    )
    parser.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        help="Enable verbose (debug) output",
    )

    args = parser.parse_args(argv)

    logging.basicConfig(level=logging.WARNING, format="%(message)s")
    logger.setLevel(logging.DEBUG if args.verbose else logging.INFO)

    try:
        run(
            args.module_dir,
            generator=args.generator,
            platform=args.platform,
            configuration=args.configuration,
            build=args.build,
            libs=args.libs,
            static_build=args.static_build,
            output_path=args.output_path,
            workers=args.workers,
        )
    except LayerbuildError as e:
        for message in e.messages:
            logger.error(message)
        sys.exit(1)
