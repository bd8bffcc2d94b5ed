"""Glue header: linkage macros plus the public declarations of every dependency."""

from __future__ import annotations

from layerbuild.config import Configuration
from layerbuild.model import ProjectType, SuiteFramework
from layerbuild.solution import GraphNode

HEADER_BANNER = [
    "/***",
    "* Precompiled Header",
    "* Auto generated, do not modify - add stuff to public.h instead",
    "***/",
    "",
]


def glue_file_name(node: GraphNode) -> str:
    return f"{node.symbol}_glue.inl"


def api_macro(node: GraphNode) -> str:
    return f"{node.symbol.upper()}_API"


def glue_header_lines(node: GraphNode, config: Configuration) -> list[str]:
    api = api_macro(node)
    exports = f"{node.symbol.upper()}_EXPORTS"

    lines = list(HEADER_BANNER)
    lines += ["#pragma once", ""]

    # test builds get their macro first so headers can reconfigure themselves
    if node.type is ProjectType.TEST_APPLICATION:
        macro = "WITH_GTEST" if node.test_framework is SuiteFramework.GTEST else "WITH_CATCH2"
        lines += ["// We are running tests", f"#define {macro}", ""]

    if config.platform == "windows" and node.type is ProjectType.SHARED_LIBRARY:
        if node.detached:
            lines += [
                "// Detached shared library API macro",
                f"#ifdef {exports}",
                f"    #define {api} __declspec( dllexport )",
                "#else",
                f"    #define {api}",
                "#endif",
                "",
            ]
        else:
            lines += [
                "// Shared library API macro",
                f"#ifdef {exports}",
                f"    #define {api} __declspec( dllexport )",
                "#else",
                f"    #define {api} __declspec( dllimport )",
                "#endif",
                "",
            ]
    elif config.platform == "windows" and node.type is ProjectType.STATIC_LIBRARY:
        lines += ["// Static library dummy API macro", f"#define {api}", ""]
    else:
        lines += ["// Library dummy API macro", f"#define {api}", ""]

    if node.all_dependencies:
        lines.append("// Glue header from project dependencies")
        for dep in node.all_dependencies:
            if dep.glue_header is None:
                lines.append(f"// Project {dep.symbol} has no glue header")
            elif dep.type.is_binary_library:
                lines.append(f'#include "{dep.glue_header.as_posix()}"')
            else:
                lines.append(f"// Project {dep.symbol} is not a library")
        lines.append("")

    if node.public_header is not None:
        lines += [
            "// Local public header",
            f'#include "{node.public_header.as_posix()}"',
            "",
        ]

    return lines
