"""Render a SolutionGraph as a tree of CMakeLists.txt files."""

from __future__ import annotations

import logging
from pathlib import Path
from string import Template

from layerbuild.config import Configuration
from layerbuild.model import FileType, ProjectType
from layerbuild.output import FileGenerator
from layerbuild.solution import GraphNode, SolutionGraph, collect_defines, collect_include_paths

logger = logging.getLogger(__name__)

_SOLUTION_TEMPLATE = Template("""\
# AutoGenerated file. Please DO NOT MODIFY.

cmake_minimum_required(VERSION 3.22)
project($name)

set(CMAKE_CONFIGURATION_TYPES "Debug;Checked;Release;Profile;Final")
set(CMAKE_ARCHIVE_OUTPUT_DIRECTORY "$lib_path")
set(CMAKE_LIBRARY_OUTPUT_DIRECTORY "$lib_path")
set(CMAKE_RUNTIME_OUTPUT_DIRECTORY "$bin_path")
set_property(GLOBAL PROPERTY USE_FOLDERS ON)

$subdirectories
""")

_PROJECT_TEMPLATE = Template("""\
# AutoGenerated file. Please DO NOT MODIFY.

project($target)

set(CMAKE_CXX_STANDARD 17)
set(CMAKE_CXX_STANDARD_REQUIRED ON)
set(CMAKE_CXX_EXTENSIONS OFF)
$flags

# Project definitions
$definitions

# Project include directories
$includes

# Project files
$files

# Project output
$output

# Project dependencies
$links
""")


def cmake_path(path: Path) -> str:
    return '"' + path.as_posix() + '"'


def cmake_target(node: GraphNode) -> str:
    return node.symbol


class CMakeRenderer:
    """Script backend."""

    def __init__(self, config: Configuration):
        self.config = config

    def generate_solution(self, graph: SolutionGraph, files: FileGenerator) -> Path:
        path = self.config.solution_path / "CMakeLists.txt"
        subdirectories = [
            f"add_subdirectory({cmake_path(node.generated_path)})"
            for node in graph.nodes
            if node.type.is_buildable
        ]
        content = _SOLUTION_TEMPLATE.safe_substitute(
            name=graph.name,
            lib_path=(self.config.solution_path / "lib" / "${CMAKE_BUILD_TYPE}").as_posix(),
            bin_path=(self.config.binary_path / "${CMAKE_BUILD_TYPE}").as_posix(),
            subdirectories="\n".join(subdirectories),
        )
        files.create_file(path).extend(content.splitlines())
        logger.debug("CMake solution: %s", path)
        return path

    def generate_projects(self, graph: SolutionGraph, files: FileGenerator) -> None:
        for node in graph.nodes:
            if not node.type.is_buildable:
                continue
            path = node.generated_path / "CMakeLists.txt"
            files.create_file(path).extend(self.project_lines(graph, node))

    def project_lines(self, graph: SolutionGraph, node: GraphNode) -> list[str]:
        target = cmake_target(node)
        windows = self.config.platform == "windows"

        definitions = [f"add_definitions(-DPROJECT_NAME={node.symbol})"]
        if node.type is ProjectType.STATIC_LIBRARY:
            definitions.append("add_definitions(-DBUILD_AS_LIBS)")
        else:
            definitions.append(f"add_definitions(-D{node.symbol.upper()}_EXPORTS)")
            if node.type is ProjectType.SHARED_LIBRARY:
                definitions.append("add_definitions(-DBUILD_DLL)")
        for dep in node.all_dependencies:
            if dep.type.is_binary_library:
                definitions.append(f"add_definitions(-DHAS_{dep.symbol.upper()})")
        for key, value in collect_defines(node):
            definitions.append(f"add_definitions(-D{key}={value})" if value else f"add_definitions(-D{key})")

        if windows:
            flags = ['set(CMAKE_CXX_FLAGS "${CMAKE_CXX_FLAGS} /MP")']
            if not node.use_window_subsystem:
                flags.append("add_definitions(-DCONSOLE)")
        else:
            exceptions = "-fexceptions" if node.use_exceptions else "-fno-exceptions"
            flags = [
                'set(CMAKE_CXX_FLAGS "${CMAKE_CXX_FLAGS} -pthread")',
                f'set(CMAKE_CXX_FLAGS "${{CMAKE_CXX_FLAGS}} {exceptions}")',
            ]

        includes = [
            f"include_directories({cmake_path(p)})" for p in collect_include_paths(graph, node)
        ]

        sources = []
        for file in node.files:
            if file.type is FileType.SOURCE:
                sources.append(f"list(APPEND FILE_SOURCES {cmake_path(file.absolute_path)})")
            elif file.type is FileType.HEADER:
                sources.append(f"list(APPEND FILE_HEADERS {cmake_path(file.absolute_path)})")

        if node.type.is_executable:
            win32 = " WIN32" if windows and node.use_window_subsystem else ""
            output = [f"add_executable({target}{win32} ${{FILE_SOURCES}} ${{FILE_HEADERS}})"]
        elif node.type is ProjectType.STATIC_LIBRARY:
            output = [f"add_library({target} STATIC ${{FILE_SOURCES}} ${{FILE_HEADERS}})"]
        else:
            output = [f"add_library({target} SHARED ${{FILE_SOURCES}} ${{FILE_HEADERS}})"]

        links = [
            f"target_link_libraries({target} {cmake_target(dep)})"
            for dep in node.direct_dependencies
            if dep.type.is_binary_library
        ]
        for library in node.libraries:
            links += [f"target_link_libraries({target} {cmake_path(p)})" for p in library.link_files]
        if self.config.platform == "linux":
            links.append(f"target_link_libraries({target} dl rt)")
        elif self.config.platform == "darwin":
            links.append(f"target_link_libraries({target} dl stdc++)")

        content = _PROJECT_TEMPLATE.safe_substitute(
            target=target,
            flags="\n".join(flags),
            definitions="\n".join(definitions),
            includes="\n".join(includes),
            files="\n".join(sources),
            output="\n".join(output),
            links="\n".join(links),
        )
        return content.splitlines()
