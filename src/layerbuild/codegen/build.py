"""Precompiled aggregation units: build.h, build.cpp and the module definition file."""

from __future__ import annotations

import re
from dataclasses import dataclass

from layerbuild.config import Configuration
from layerbuild.model import FileType, ProjectType, SuiteFramework
from layerbuild.solution import SYSTEM_PROVIDER, GraphNode, symbol_name


@dataclass(frozen=True)
class LinkedProject:
    node: GraphNode
    statically_linked: bool


def collect_linked_projects(node: GraphNode) -> list[LinkedProject]:
    """Projects linked into *node*'s binary, excluding *node* itself.

    Static libraries are followed all the way down since they have to be
    linked together at the top-level binary. Shared libraries are recorded
    without descending into them, and a static library never pulls in the
    shared libraries it uses.
    """
    visited: set[int] = set()
    linked: list[LinkedProject] = []

    def visit(current: GraphNode, depth: int, recurse: bool) -> None:
        if id(current) in visited:
            return
        visited.add(id(current))

        if depth:
            linked.append(
                LinkedProject(current, current.type is ProjectType.STATIC_LIBRARY)
            )

        if not recurse:
            return
        for dep in current.direct_dependencies:
            if dep.type is ProjectType.STATIC_LIBRARY:
                visit(dep, depth + 1, True)
            elif (
                dep.type is ProjectType.SHARED_LIBRARY
                and current.type is not ProjectType.STATIC_LIBRARY
            ):
                visit(dep, depth + 1, False)

    visit(node, 0, True)
    return linked


def embedded_symbol(node: GraphNode, scan_relative_path: str) -> str:
    return f"EMBED_{node.symbol}_" + re.sub(r"[^0-9A-Za-z_]", "_", scan_relative_path)


def build_header_lines(node: GraphNode) -> list[str]:
    lines = [
        "/***",
        "* Precompiled Header",
        "* Auto generated, do not modify - add stuff to public.h instead",
        "***/",
        "",
        "#pragma once",
        "",
    ]
    if node.glue_header is not None:
        lines += ["// Glue file", f'#include "{node.glue_header.as_posix()}"', ""]
    if node.private_header is not None:
        lines += [
            "// Local private header",
            f'#include "{node.private_header.as_posix()}"',
            "",
        ]
    if node.type is ProjectType.TEST_APPLICATION:
        if node.test_framework is SuiteFramework.GTEST:
            lines += ["// Google Test Suite", '#include "gtest/gtest.h"', ""]
        else:
            lines += ["// Catch2 Test Suite", '#include "catch2/catch2.hpp"', ""]
    return lines


def build_source_lines() -> list[str]:
    return [
        "/***",
        "* Precompiled Header",
        "* Auto generated, do not modify",
        "***/",
        "",
        '#include "build.h"',
        "",
    ]


def module_source_lines(node: GraphNode, config: Configuration) -> list[str]:
    """Definitions unit: library pulls, init chain of static deps, self registration."""
    ns = node.namespace
    has_system = node.provides_or_depends_on(SYSTEM_PROVIDER)

    lines = [
        "/***",
        "* Module definition file",
        "* Auto generated, do not modify",
        "***/",
        "",
        '#include "build.h"',
        "",
    ]

    linked = collect_linked_projects(node)
    ordered: list[LinkedProject] = []
    for dep in node.all_dependencies:
        for entry in linked:
            if entry.node is dep:
                ordered.append(entry)
                break

    if config.generator == "vs2022":
        link_files = []
        libraries = list(node.libraries)
        for entry in linked:
            if entry.statically_linked:
                libraries.extend(entry.node.libraries)
        for library in libraries:
            for path in library.link_files:
                if path not in link_files:
                    link_files.append(path)
        if link_files:
            lines.append("// Libraries")
            lines += [f'#pragma comment( lib, "{p.as_posix()}" )' for p in link_files]
            lines.append("")

    if node.has_pre_init:
        lines += ["// Module Pre-Initialization", f"extern void PreInit_{node.symbol}();", ""]
    if node.use_reflection:
        lines += [
            "// Initialization for reflection",
            f"extern void InitializeReflection_{node.symbol}();",
            "",
        ]
    if node.has_init:
        lines += ["// Module Initialization", f"extern void Init_{node.symbol}();", ""]

    if node.use_embedded_files:
        lines += _embedded_registration_lines(node)

    if node.type is not ProjectType.STATIC_LIBRARY:
        lines += ["// Local shared library handle", "void* GModuleHandle = nullptr;", ""]

    lines.append("// Project initialization code")
    lines.append(f"void InitModule_{node.symbol}(void* handle) {{")
    if node.type is not ProjectType.STATIC_LIBRARY:
        lines.append("    GModuleHandle = handle;")
        for entry in ordered:
            dep = entry.node
            if dep.detached or dep.third_party or dep.type is ProjectType.HEADER_LIBRARY:
                continue
            if entry.statically_linked:
                lines.append(f"    extern void InitModule_{dep.symbol}(void*);")
                lines.append(f"    InitModule_{dep.symbol}(handle);")
            elif has_system:
                lines.append(f'    {ns}::modules::LoadDynamicModule("{dep.symbol}");')
    else:
        lines.append("    (void)handle;")

    if node.use_static_init and has_system:
        lines += _registration_lines(node)
    lines += ["}", ""]

    if node.type is ProjectType.SHARED_LIBRARY and config.platform == "windows":
        lines += [
            "unsigned char __stdcall DllMain(void* moduleInstance, unsigned long nReason, void*) {",
            f"    if (nReason == 1) InitModule_{node.symbol}(moduleInstance);",
            "    return 1;",
            "}",
            "",
        ]

    return lines


def _registration_lines(node: GraphNode) -> list[str]:
    ns = node.namespace
    system = symbol_name(SYSTEM_PROVIDER)

    # direct dependencies that take part in module registration themselves
    deps = []
    for dep in node.all_dependencies:
        if dep not in node.direct_dependencies:
            continue
        if dep.symbol == system or dep.type is ProjectType.HEADER_LIBRARY:
            continue
        if dep.has_dependency(SYSTEM_PROVIDER):
            deps.append(dep.symbol)

    calls = []
    if node.has_pre_init:
        calls.append(f"PreInit_{node.symbol}();")
    if node.use_reflection:
        calls.append(f"InitializeReflection_{node.symbol}();")
    if node.use_embedded_files:
        calls.append(f"InitializeEmbeddedFiles_{node.symbol}();")
    if node.has_init:
        calls.append(f"Init_{node.symbol}();")

    return [
        f'    const char* deps = "{";".join(deps)}";',
        f"    {ns}::modules::TModuleInitializationFunc initFunc = []() {{ {' '.join(calls)} }};",
        f'    {ns}::modules::RegisterModule("{node.symbol}", __DATE__, __TIME__, initFunc, deps);',
        f"    {ns}::modules::InitializePendingModules();",
    ]


def _embedded_registration_lines(node: GraphNode) -> list[str]:
    media = [f for f in node.files if f.type is FileType.MEDIA]
    lines = ['#include "core/file/include/embeddedFile.h"', ""]
    for file in media:
        symbol = embedded_symbol(node, file.scan_relative_path)
        lines += [
            f"// File: '{file.project_relative_path}'",
            f"extern const char* {symbol}_PATH;",
            f"extern const uint8_t* {symbol}_DATA;",
            f"extern const unsigned int {symbol}_SIZE;",
            f"extern const uint64_t {symbol}_CRC;",
            "",
        ]
    lines.append("// Embedded media files registration")
    lines.append(f"void InitializeEmbeddedFiles_{node.symbol}() {{")
    for file in media:
        symbol = embedded_symbol(node, file.scan_relative_path)
        lines.append(
            f"    {node.namespace}::EmbeddedFiles().registerFile("
            f"{symbol}_PATH, {symbol}_DATA, {symbol}_SIZE, {symbol}_CRC);"
        )
    lines += ["}", ""]
    return lines
