"""Orchestrator: configure → load → resolve → graph → generate → render."""

from __future__ import annotations

import logging
from pathlib import Path

from layerbuild.codegen import CodeGenerator
from layerbuild.codegen.tools import ParserGenerator, ReflectionTool
from layerbuild.collection import ProjectCollection
from layerbuild.config import load_configuration
from layerbuild.errors import CycleError, GenerationError, PipelineError, ResolutionError
from layerbuild.files import FileRepository
from layerbuild.libraries import LibraryRegistry
from layerbuild.manifest import load_modules
from layerbuild.output import FileGenerator
from layerbuild.renderer import create_renderer
from layerbuild.solution import SolutionGraph

logger = logging.getLogger(__name__)


def run(
    module_path: Path,
    *,
    name: str | None = None,
    reflection_tool: ReflectionTool | None = None,
    parser_generator: ParserGenerator | None = None,
    **overrides,
) -> Path:
    """Run the full layerbuild pipeline and return the solution file path.

    Resolution, scanning and generation problems are collected while the
    later stages keep going; if any were found nothing is written and a
    PipelineError carrying all of them is raised. A dependency cycle stops
    the run right away, reported along with the problems found before it.
    """
    config = load_configuration(module_path, **overrides)
    logger.debug("Building %s", config.merged_name)

    modules = load_modules(config.module_path, config.cache_path)
    solution_name = name or modules[0].name

    diagnostics: list[str] = []

    collection = ProjectCollection()
    try:
        collection.populate_from_modules(modules)
    except ResolutionError as e:
        diagnostics.extend(e.messages)

    collection.filter_projects(config)

    try:
        collection.resolve_dependencies()
    except ResolutionError as e:
        diagnostics.extend(e.messages)

    try:
        collection.resolve_libraries(LibraryRegistry.from_paths(config.library_paths))
    except ResolutionError as e:
        diagnostics.extend(e.messages)

    try:
        total = collection.scan_content(config.worker_count)
    except ResolutionError as e:
        diagnostics.extend(e.messages)
    else:
        logger.info(
            "Found %d total file(s) across %d project(s) from %d module(s)",
            total,
            len(collection),
            len(modules),
        )

    graph = SolutionGraph(config, solution_name)
    try:
        graph.extract_projects(collection)
    except ResolutionError as e:
        diagnostics.extend(e.messages)
    except CycleError as e:
        diagnostics.extend(e.messages)
        diagnostics.extend(
            "Dependency cycle between: " + ", ".join(cycle) for cycle in e.cycles
        )
        raise PipelineError(diagnostics) from e

    files = FileGenerator()
    repository = FileRepository(config.tool_paths)
    generator = CodeGenerator(config, repository, reflection_tool, parser_generator)
    try:
        generator.generate(graph, files)
    except GenerationError as e:
        diagnostics.extend(e.messages)

    if diagnostics:
        raise PipelineError(diagnostics)

    renderer = create_renderer(config)
    solution_path = renderer.generate_solution(graph, files)
    renderer.generate_projects(graph, files)
    files.save_files()

    logger.info("Generated %s", solution_path)
    return solution_path
