"""Media files packed into C++ byte-array units."""

from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from pathlib import Path

from layerbuild.codegen.build import embedded_symbol
from layerbuild.output import FileGenerator
from layerbuild.solution import GraphNode

logger = logging.getLogger(__name__)

LINE_BYTES = 4096

CRC64_POLY = 0x95AC9329AC4BC9B5  # Jones polynomial, reflected
CRC64_SEED = 0xCBF29CE484222325


def _crc64_table() -> list[int]:
    table = []
    for index in range(256):
        crc = index
        for _ in range(8):
            crc = (crc >> 1) ^ CRC64_POLY if crc & 1 else crc >> 1
        table.append(crc)
    return table


_CRC64_TABLE = _crc64_table()


def crc64(data: bytes, crc: int = CRC64_SEED) -> int:
    """CRC-64/Jones as checked by the runtime file registry."""
    for byte in data:
        crc = _CRC64_TABLE[(crc ^ byte) & 0xFF] ^ (crc >> 8)
    return crc


@dataclass(frozen=True)
class EmbedJob:
    source: Path
    scan_relative_path: str
    output: Path


def embedded_unit_path(node: GraphNode, scan_relative_path: str) -> Path:
    return node.generated_path / "media" / f"{scan_relative_path}.cxx"


def embedded_unit_lines(node: GraphNode, source: Path, scan_relative_path: str) -> list[str]:
    data = source.read_bytes()
    symbol = embedded_symbol(node, scan_relative_path)
    relative = scan_relative_path.replace("\\", "/")
    source_path = str(source).replace("\\", "\\\\")

    lines = [
        "/***",
        "* Embedded File",
        "* Auto generated, do not modify",
        "***/",
        "",
        "#include <stdint.h>",
        f'const char* {symbol}_PATH = "{node.symbol}/{relative}";',
        f'const char* {symbol}_SPATH = "{source_path}";',
        f"extern const unsigned int {symbol}_SIZE = {len(data)};",
        f"extern const uint64_t {symbol}_CRC = 0x{crc64(data):016X};",
        f"extern const uint8_t* {symbol}_DATA = (const uint8_t*)",
    ]

    if not data:
        lines.append('"";')
        return lines

    chunks = [data[i:i + LINE_BYTES] for i in range(0, len(data), LINE_BYTES)]
    for index, chunk in enumerate(chunks):
        text = "".join(f"\\x{b:02X}" for b in chunk)
        end = ";" if index == len(chunks) - 1 else ""
        lines.append(f'"{text}"{end}')
    return lines


def write_embedded_files(
    node: GraphNode, jobs: list[EmbedJob], files: FileGenerator, workers: int = 1
) -> list[str]:
    """Write every job on a thread pool; return the problems encountered."""

    def write(job: EmbedJob) -> str | None:
        try:
            lines = embedded_unit_lines(node, job.source, job.scan_relative_path)
        except OSError as e:
            return f"Failed to embed '{job.scan_relative_path}': {e}"
        files.create_file(job.output).extend(lines)
        return None

    with ThreadPoolExecutor(max_workers=max(1, workers)) as pool:
        results = list(pool.map(write, jobs))

    problems = [r for r in results if r is not None]
    logger.debug("Embedded %d media file(s) for %s", len(jobs) - len(problems), node.name)
    return problems
