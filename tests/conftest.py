from pathlib import Path

import pytest

from layerbuild.collection import ProjectCollection
from layerbuild.config import Configuration
from layerbuild.model import ModuleRecord, ProjectRecord, ProjectType
from layerbuild.solution import SolutionGraph

STATIC = ProjectType.STATIC_LIBRARY
SHARED = ProjectType.SHARED_LIBRARY
APP = ProjectType.APPLICATION
TEST = ProjectType.TEST_APPLICATION
HEADER = ProjectType.HEADER_LIBRARY


def project(name, type=STATIC, deps=(), **kwargs) -> ProjectRecord:
    return ProjectRecord(name=name, type=type, dependencies=tuple(deps), **kwargs)


def module(root: Path, projects, name="main", **kwargs) -> ModuleRecord:
    return ModuleRecord(
        name=name,
        root_path=root,
        source_root=root / "src",
        projects=tuple(projects),
        **kwargs,
    )


def write(path: Path, text: str = "") -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(text)
    return path


@pytest.fixture
def config(tmp_path):
    return Configuration(module_path=tmp_path)


@pytest.fixture
def make_collection(tmp_path):
    def _make(records, modules=None) -> ProjectCollection:
        collection = ProjectCollection()
        collection.populate_from_modules(modules or [module(tmp_path, records)])
        return collection

    return _make


@pytest.fixture
def make_graph(tmp_path):
    """Resolve *records* into a SolutionGraph, skipping disk scanning."""

    def _make(records, *, modules=None, scan=False, **config_values) -> SolutionGraph:
        config = Configuration(module_path=tmp_path, **config_values)
        collection = ProjectCollection()
        collection.populate_from_modules(modules or [module(tmp_path, records)])
        collection.filter_projects(config)
        collection.resolve_dependencies()
        if scan:
            collection.scan_content()
        return SolutionGraph.build(collection, config, "demo")

    return _make
