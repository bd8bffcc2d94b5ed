import pytest

from conftest import write
from layerbuild.errors import ManifestError
from layerbuild.manifest import load_module_manifest, load_modules
from layerbuild.model import ProjectType, SuiteFramework

GAME_MANIFEST = """\
name: game
dependencies:
  - path: ../engine
  - repo: https://example.com/org/zlib.git
    branch: main
data:
  - mount: /data/
    path: data
projects:
  - name: game
    type: app
    generate_main: true
    dependencies: [engine/core, third/zlib]
    app_systems: [engine/render]
    defines:
      GAME_NAME: demo
      NO_VALUE:
  - name: game_tests
    type: test
    test_framework: catch2
    dependencies: [engine/core]
    global_defines: ["WITH_TESTS=1", "PLAIN"]
  - name: tools/unused
"""


def _write_workspace(tmp_path):
    write(tmp_path / "game" / "module.yaml", GAME_MANIFEST)
    write(
        tmp_path / "engine" / "module.yaml",
        "name: engine\nprojects:\n  - {name: engine/core, type: static, static_init: false}\n",
    )
    write(
        tmp_path / "cache" / "modules" / "zlib" / "module.yaml",
        "projects:\n  - {name: third/zlib, type: static, third_party: true}\n",
    )


def test_load_modules_follows_path_and_repo_dependencies(tmp_path):
    _write_workspace(tmp_path)
    modules = load_modules(tmp_path / "game", tmp_path / "cache")

    assert [m.name for m in modules] == ["game", "engine", "zlib"]
    assert [m.local for m in modules] == [True, True, False]
    assert modules[0].source_root == (tmp_path / "game" / "src").resolve()
    assert modules[0].data_mounts[0].mount_path == "/data/"
    assert modules[2].projects[0].third_party


def test_project_entries_are_parsed(tmp_path):
    _write_workspace(tmp_path)
    module = load_module_manifest(tmp_path / "game" / "module.yaml")
    game, tests, unused = module.projects

    assert game.type is ProjectType.APPLICATION
    assert game.generate_main
    assert game.dependencies == ("engine/core", "third/zlib")
    assert game.app_systems == ("engine/render",)
    assert game.local_defines == (("GAME_NAME", "demo"), ("NO_VALUE", ""))

    assert tests.type is ProjectType.TEST_APPLICATION
    assert tests.test_framework is SuiteFramework.CATCH2
    assert tests.global_defines == (("WITH_TESTS", "1"), ("PLAIN", ""))

    assert unused.type is ProjectType.DISABLED


def test_missing_repo_checkout_is_an_error(tmp_path):
    _write_workspace(tmp_path)
    with pytest.raises(ManifestError, match="zlib.git"):
        load_modules(tmp_path / "game", tmp_path / "elsewhere")


def test_bad_project_entries_are_reported_together(tmp_path):
    write(
        tmp_path / "module.yaml",
        "name: broken\nprojects:\n"
        "  - {name: a, type: plugin}\n"
        "  - {name: b, type: test, test_framework: nunit}\n"
        "  - {type: static}\n",
    )
    with pytest.raises(ManifestError) as info:
        load_module_manifest(tmp_path / "module.yaml")
    assert len(info.value.messages) == 3
    assert all(m.startswith("Module 'broken'") for m in info.value.messages)


def test_dependency_needs_repo_or_path(tmp_path):
    write(tmp_path / "module.yaml", "dependencies:\n  - branch: main\n")
    with pytest.raises(ManifestError, match="needs a 'repo' or a 'path'"):
        load_module_manifest(tmp_path / "module.yaml")


def test_shared_libraries_are_detached(tmp_path):
    write(
        tmp_path / "module.yaml",
        "projects:\n"
        "  - {name: plug, type: shared}\n"
        "  - {name: auto, type: library}\n"
        "  - {name: core, type: static}\n",
    )
    plug, auto, core = load_module_manifest(tmp_path / "module.yaml").projects
    assert plug.detached
    assert auto.type is ProjectType.AUTO_LIBRARY and not auto.detached
    assert not core.detached
