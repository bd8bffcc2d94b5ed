import logging

import pytest

from conftest import write
from layerbuild.cli import main
from layerbuild.errors import CycleError, PipelineError
from layerbuild.pipeline import run

MANIFEST = """\
name: demo
projects:
  - name: core/math
    type: static
    global_defines: [USE_MATH]
  - name: game
    type: app
    generate_main: true
    dependencies: [core/math]
"""


def _workspace(tmp_path, manifest=MANIFEST):
    write(tmp_path / "module.yaml", manifest)
    write(tmp_path / "src" / "core" / "math" / "include" / "public.h", "#pragma once\n")
    write(tmp_path / "src" / "core" / "math" / "src" / "vector.cpp", "int dot() { return 0; }\n")
    write(tmp_path / "src" / "game" / "src" / "game.cpp", "int demo_main() { return 0; }\n")
    return tmp_path


def test_cmake_solution_end_to_end(tmp_path):
    _workspace(tmp_path)
    solution = run(tmp_path)

    build = tmp_path / ".build" / "linux.cmake.dev.release" / "build"
    assert solution == build / "CMakeLists.txt"
    root = solution.read_text()
    assert "project(demo)" in root
    assert root.index("generated/core/math") < root.index("generated/game")

    game = (build / "generated" / "game" / "CMakeLists.txt").read_text()
    assert "add_executable(game ${FILE_SOURCES} ${FILE_HEADERS})" in game
    assert "target_link_libraries(game core_math)" in game
    assert "add_definitions(-DUSE_MATH)" in game
    assert "add_definitions(-DHAS_CORE_MATH)" in game

    math = (build / "generated" / "core" / "math" / "CMakeLists.txt").read_text()
    assert "add_library(core_math STATIC" in math
    assert "vector.cpp" in math

    assert (build / "generated" / "game" / "main.cpp").is_file()
    assert (build / "generated" / "core" / "math" / "module.cpp").is_file()
    assert (build / "generated" / "_shared" / "core_math_glue.inl").is_file()
    assert (build / "reflection.list").is_file()
    assert (tmp_path / ".build" / "linux.cmake.dev.release" / "bin" / "debug" / "fstab.cfg").is_file()


def test_visual_studio_solution(tmp_path):
    _workspace(tmp_path)
    solution = run(tmp_path, generator="vs2022", platform="windows", name="Demo")

    assert solution.name == "Demo.sln"
    text = solution.read_text()
    assert '"core_math"' in text and '"game"' in text
    assert "Final|x64 = Final|x64" in text

    projects = solution.parent / "projects"
    vcxproj = (projects / "game" / "game.vcxproj").read_text()
    assert "<ConfigurationType>Application</ConfigurationType>" in vcxproj
    assert "$(VCTargetsPath)" in vcxproj
    assert (projects / "game" / "game.vcxproj.filters").is_file()


def test_second_run_rewrites_nothing(tmp_path, caplog):
    _workspace(tmp_path)
    run(tmp_path)
    with caplog.at_level(logging.INFO, logger="layerbuild"):
        run(tmp_path)
    assert "Saved 0 files" in caplog.text


def test_all_problems_reported_and_nothing_written(tmp_path):
    _workspace(
        tmp_path,
        "name: demo\nprojects:\n"
        "  - {name: game, type: app, dependencies: [core/missing], libraries: [zlib]}\n"
        "  - {name: tool, type: app, dependencies: [core/missing, game]}\n",
    )
    with pytest.raises(PipelineError) as info:
        run(tmp_path)

    messages = info.value.messages
    assert "Missing project 'core/missing' referenced by 2 project(s): 'game', 'tool'" in messages
    assert "Missing library 'zlib' referenced in project 'game'" in messages
    assert any("not linkable" in m for m in messages)
    assert not (tmp_path / ".build").exists()


def test_cycle_stops_the_run(tmp_path):
    _workspace(
        tmp_path,
        "name: demo\nprojects:\n"
        "  - {name: a, type: static, dependencies: [b]}\n"
        "  - {name: b, type: static, dependencies: [a]}\n",
    )
    with pytest.raises(PipelineError) as info:
        run(tmp_path)
    assert isinstance(info.value.__cause__, CycleError)
    assert info.value.__cause__.cycles == [["a", "b"]]
    assert info.value.messages == [
        "Recursive project dependencies: a -> b -> a",
        "Dependency cycle between: a, b",
    ]
    assert not (tmp_path / ".build").exists()


def test_cycle_keeps_earlier_problems(tmp_path):
    _workspace(
        tmp_path,
        "name: demo\nprojects:\n"
        "  - {name: a, type: static, dependencies: [b, missing]}\n"
        "  - {name: b, type: static, dependencies: [a]}\n",
    )
    with pytest.raises(PipelineError) as info:
        run(tmp_path)

    messages = info.value.messages
    assert messages[0] == "Missing project 'missing' referenced by 1 project(s): 'a'"
    assert "Recursive project dependencies: a -> b -> a" in messages
    assert not (tmp_path / ".build").exists()


def test_auto_library_follows_library_mode(tmp_path):
    _workspace(
        tmp_path,
        "name: demo\nprojects:\n"
        "  - {name: core/math, type: library}\n"
        "  - {name: game, type: app, dependencies: [core/math]}\n",
    )
    build = tmp_path / ".build" / "linux.cmake.dev.release" / "build"

    run(tmp_path)
    math = (build / "generated" / "core" / "math" / "CMakeLists.txt").read_text()
    assert "add_library(core_math STATIC" in math

    run(tmp_path, libs="shared")
    math = (build / "generated" / "core" / "math" / "CMakeLists.txt").read_text()
    assert "add_library(core_math SHARED" in math
    assert "target_link_libraries(game core_math)" in (build / "generated" / "game" / "CMakeLists.txt").read_text()


def test_cli_generates_solution(tmp_path):
    _workspace(tmp_path)
    main([str(tmp_path), "-o", str(tmp_path / "out"), "-j", "2"])
    assert (tmp_path / "out" / "linux.cmake.dev.release" / "build" / "CMakeLists.txt").is_file()


def test_cli_exits_with_error_on_failure(tmp_path, caplog):
    _workspace(tmp_path, "name: demo\nprojects:\n  - {name: game, type: app, dependencies: [nope]}\n")
    with pytest.raises(SystemExit) as info:
        main([str(tmp_path)])
    assert info.value.code == 1
    assert "Missing project 'nope'" in caplog.text
