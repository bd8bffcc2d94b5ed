"""Automatic code generation: decides which synthetic units every node needs."""

from __future__ import annotations

import logging
import os
from pathlib import Path

from layerbuild.codegen.build import (
    build_header_lines,
    build_source_lines,
    module_source_lines,
)
from layerbuild.codegen.embed import EmbedJob, embedded_unit_path, write_embedded_files
from layerbuild.codegen.entry import entry_point_lines, needs_entry_point
from layerbuild.codegen.glue import glue_file_name, glue_header_lines
from layerbuild.codegen.tools import CommandReflectionTool, ParserGenerator, ReflectionTool
from layerbuild.config import CONFIGURATIONS, Configuration
from layerbuild.errors import GenerationError, LayerbuildError
from layerbuild.files import FileRepository
from layerbuild.model import FileType, ProjectFile, ProjectType, SuiteFramework
from layerbuild.output import FileGenerator
from layerbuild.solution import GraphNode, SolutionGraph

logger = logging.getLogger(__name__)

GTEST_SOURCES = (
    "gtest-assertion-result.cc",
    "gtest-death-test.cc",
    "gtest-filepath.cc",
    "gtest-matchers.cc",
    "gtest-port.cc",
    "gtest-printers.cc",
    "gtest-test-part.cc",
    "gtest-typed-test.cc",
    "gtest.cc",
    "gtest-internal-inl.h",
)
CATCH2_SOURCES = ("catch2.cpp",)

GENERATED_FILTER = "_generated"


def _generated_file(path: Path, file_type: FileType, filter_path: str = GENERATED_FILTER) -> ProjectFile:
    return ProjectFile(name=path.name, absolute_path=path, type=file_type, filter_path=filter_path)


class CodeGenerator:
    """Adds generated units to every node of a solution graph."""

    def __init__(
        self,
        config: Configuration,
        file_repository: FileRepository,
        reflection_tool: ReflectionTool | None = None,
        parser_generator: ParserGenerator | None = None,
    ):
        self.config = config
        self.file_repository = file_repository
        self.reflection_tool = reflection_tool or CommandReflectionTool(config.reflection_tool)
        self._parser_generator = parser_generator

    @property
    def parser_generator(self) -> ParserGenerator:
        if self._parser_generator is None:
            self._parser_generator = ParserGenerator.locate(self.config, self.file_repository)
        return self._parser_generator

    def generate(self, graph: SolutionGraph, files: FileGenerator) -> None:
        """Generate code for every node in build order.

        Nodes are processed one after another since glue headers of earlier
        nodes are referenced by later ones. A failing node does not stop its
        siblings; all failures are raised together as a GenerationError.
        """
        failures: dict[str, list[str]] = {}
        for node in graph.nodes:
            problems = self.generate_node(node, files)
            if problems:
                for problem in problems:
                    logger.error("Failed to generate code for project '%s': %s", node.name, problem)
                failures[node.name] = problems

        for configuration in CONFIGURATIONS:
            binary_path = self.config.binary_path / configuration
            files.create_file(binary_path / "fstab.cfg").extend(fstab_lines(graph, binary_path))

        files.create_file(self.config.solution_path / "reflection.list").extend(
            reflection_list_lines(graph)
        )

        if failures:
            raise GenerationError(failures)

    def generate_node(self, node: GraphNode, files: FileGenerator) -> list[str]:
        """Generate every unit *node* needs; return the problems found."""
        if node.third_party or node.type is ProjectType.HEADER_LIBRARY:
            return []

        problems: list[str] = []

        def step(func) -> None:
            try:
                func(node, files)
            except LayerbuildError as e:
                problems.extend(e.messages)

        if node.type is ProjectType.TEST_APPLICATION:
            step(self._add_test_framework)
        if node.use_reflection:
            step(self._add_reflection)
        step(self._add_glue)
        step(self._add_embedded_files)
        if node.use_precompiled_headers:
            step(self._add_precompiled)
        if needs_entry_point(node):
            step(self._add_entry_point)
        for file in list(node.files):
            if file.type is FileType.GRAMMAR:
                try:
                    self._process_grammar(node, file)
                except LayerbuildError as e:
                    problems.extend(
                        f"Grammar file '{file.scan_relative_path or file.name}': {m}"
                        for m in e.messages
                    )

        for index, file in enumerate(node.files):
            if file.name in ("build.cpp", "build.cxx"):
                node.files.insert(0, node.files.pop(index))
                break

        logger.debug("Generated code for %s (%d file(s))", node.name, len(node.files))
        return problems

    # -- steps ----------------------------------------------------------------

    def _add_test_framework(self, node: GraphNode, files: FileGenerator) -> None:
        if node.test_framework is SuiteFramework.GTEST:
            framework, filter_path, sources = "gtest", "_gtest", GTEST_SOURCES
        else:
            framework, filter_path, sources = "catch2", "_catch2", CATCH2_SOURCES

        include = self.file_repository.resolve_directory(f"tools/{framework}/include")
        resolved = [
            self.file_repository.resolve_file(f"tools/{framework}/src/{name}") for name in sources
        ]

        node.include_paths.append(include)
        for path in resolved:
            file_type = FileType.HEADER if path.suffix == ".h" else FileType.SOURCE
            node.files.append(_generated_file(path, file_type, filter_path))

    def _add_reflection(self, node: GraphNode, files: FileGenerator) -> None:
        path = node.generated_path / "reflection.cpp"
        if self.config.static_build:
            sources = [f.absolute_path for f in node.files if f.type is FileType.SOURCE]
            self.reflection_tool.run_static(sources, node.name, node.namespace, path)

        # written by the reflection tool, never by us
        node.files.append(_generated_file(path, FileType.SOURCE))
        node.reflection_file = path

    def _add_glue(self, node: GraphNode, files: FileGenerator) -> None:
        path = self.config.shared_glue_path / glue_file_name(node)
        node.files.append(_generated_file(path, FileType.HEADER))
        node.glue_header = path
        files.create_file(path).extend(glue_header_lines(node, self.config))

    def _add_embedded_files(self, node: GraphNode, files: FileGenerator) -> None:
        jobs: list[EmbedJob] = []
        for file in list(node.files):
            if file.type is not FileType.MEDIA:
                continue
            output = embedded_unit_path(node, file.scan_relative_path)
            generated = _generated_file(output, FileType.SOURCE, "_packed_media")
            generated.project_relative_path = f"generated/{file.scan_relative_path}"
            node.files.append(generated)
            if self.config.static_build:
                jobs.append(EmbedJob(file.absolute_path, file.scan_relative_path, output))

        if jobs:
            problems = write_embedded_files(node, jobs, files, self.config.worker_count)
            if problems:
                raise LayerbuildError(problems)

    def _add_precompiled(self, node: GraphNode, files: FileGenerator) -> None:
        header = node.generated_path / "build.h"
        node.files.append(_generated_file(header, FileType.HEADER))
        node.build_header = header
        files.create_file(header).extend(build_header_lines(node))

        source = node.generated_path / "build.cpp"
        node.files.append(_generated_file(source, FileType.SOURCE))
        files.create_file(source).extend(build_source_lines())

        module = node.generated_path / "module.cpp"
        node.files.append(_generated_file(module, FileType.SOURCE))
        files.create_file(module).extend(module_source_lines(node, self.config))

    def _add_entry_point(self, node: GraphNode, files: FileGenerator) -> None:
        path = node.generated_path / "main.cpp"
        node.files.append(_generated_file(path, FileType.SOURCE))
        files.create_file(path).extend(entry_point_lines(node, self.config))

    def _process_grammar(self, node: GraphNode, file: ProjectFile) -> None:
        stem = file.name.split(".")[0]
        parser_file = node.generated_path / f"{stem}_Parser.cpp"
        symbols_file = node.generated_path / f"{stem}_Symbols.h"
        report_file = node.generated_path / f"{stem}_Report.txt"

        if self.config.static_build:
            self.parser_generator.generate(file.absolute_path, parser_file, symbols_file, report_file)

        node.files.append(_generated_file(parser_file, FileType.SOURCE))
        node.files.append(_generated_file(symbols_file, FileType.HEADER))


def fstab_lines(graph: SolutionGraph, binary_path: Path) -> list[str]:
    """Data mounts as seen from a binary directory, relative where possible."""
    lines: list[str] = []
    for folder in graph.data_folders:
        try:
            relative = os.path.relpath(folder.data_path, binary_path)
        except ValueError:
            lines += ["DATA_ABSOLUTE", folder.mount_path, str(folder.data_path)]
        else:
            lines += ["DATA_RELATIVE", folder.mount_path, relative]
    lines.append("EOF")
    return lines


def reflection_list_lines(graph: SolutionGraph) -> list[str]:
    """Nodes whose reflection unit is produced later by the build itself."""
    lines: list[str] = []
    for node in graph.nodes:
        if node.reflection_file is None or node.root_path is None or node.third_party:
            continue
        lines += [
            "PROJECT",
            node.name,
            node.namespace,
            "".join(f"{cls};" for cls in node.app_systems) or ";",
            str(node.project_path),
            str(node.root_path / "src"),
            str(node.reflection_file),
        ]
    return lines
