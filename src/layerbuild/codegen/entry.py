"""Generated process entry points for applications and test runners."""

from __future__ import annotations

from layerbuild.config import Configuration
from layerbuild.model import ProjectType, SuiteFramework
from layerbuild.solution import SYSTEM_PROVIDER, GraphNode, symbol_name

BANNER = [
    "/***",
    "* Application entry point",
    "* Auto generated, do not modify",
    "***/",
    "",
]


def needs_entry_point(node: GraphNode) -> bool:
    return node.type.is_executable and node.generate_main


def active_subsystems(node: GraphNode) -> list[str]:
    """Symbols of the requested subsystems this node can actually reach."""
    return [
        symbol_name(name)
        for name in node.app_systems
        if node.provides_or_depends_on(name)
    ]


def entry_point_lines(node: GraphNode, config: Configuration) -> list[str]:
    if node.type is ProjectType.TEST_APPLICATION:
        return test_main_lines(node)
    return app_main_lines(node, config)


def app_main_lines(node: GraphNode, config: Configuration) -> list[str]:
    ns = node.namespace
    windows = config.platform == "windows"
    winmain = windows and node.use_window_subsystem
    has_system = node.provides_or_depends_on(SYSTEM_PROVIDER)
    subsystems = active_subsystems(node)

    lines = list(BANNER)
    lines.append('#include "build.h"')
    if node.app_header:
        lines.append(f'#include "{node.app_header}"')
    lines.append("")

    if not node.app_class:
        lines += [f"extern int {ns}_main(int argc, char** argv);", ""]
    if node.pre_main:
        lines += ["extern bool pre_main(int argc, char** argv, int* exitCode);", ""]
    for symbol in subsystems:
        lines.append(f"extern bool Startup_{symbol}(int argc, char** argv);")
        lines.append(f"extern void Shutdown_{symbol}();")
    if subsystems:
        lines.append("")

    if winmain:
        lines += [
            "#include <Windows.h>",
            "",
            "int __stdcall wWinMain(HINSTANCE hInstance, HINSTANCE hPrevInstance, PWSTR pCmdLine, int nCmdShow) {",
            "    int argc = __argc;",
            "    char** argv = __argv;",
        ]
        handle = "(void*)hInstance"
    else:
        lines.append("int main(int argc, char** argv) {")
        handle = "(void*)GetModuleHandle(NULL)" if windows else "nullptr"

    lines.append(f"    extern void InitModule_{node.symbol}(void*);")
    lines.append(f"    InitModule_{node.symbol}({handle});")
    lines.append("")

    if has_system:
        lines.append(f"    if (!{ns}::modules::HasAllModulesInitialize()) {{")
        lines.append('        TRACE_ERROR("No all required modules were initialized, application cannot start");')
        if winmain:
            lines.append(
                '        MessageBoxA(NULL, "No all required modules (DLLs) were initialized, '
                'application cannot start.", "Startup error", MB_ICONERROR | MB_TASKMODAL);'
            )
        lines += ["        return 5;", "    }", ""]

    lines.append("    int ret = 0;")
    if node.pre_main:
        lines += ["    if (pre_main(argc, argv, &ret))", "        return ret;"]
    lines.append("")

    for symbol in subsystems:
        lines.append(f"    if (!Startup_{symbol}(argc, argv))")
        lines.append("        return 6;")
    if subsystems:
        lines.append("")

    if node.app_class:
        lines += [
            "    {",
            f"        {node.app_class} app;",
            "        ret = platform_main(argc, argv, app);",
            "    }",
        ]
    else:
        lines.append(f"    ret = {ns}_main(argc, argv);")
    lines.append("")

    for symbol in reversed(subsystems):
        lines.append(f"    Shutdown_{symbol}();")

    lines += ["    return ret;", "}"]
    return lines


def test_main_lines(node: GraphNode) -> list[str]:
    lines = list(BANNER)
    lines += ['#include "build.h"', ""]
    if node.test_framework is SuiteFramework.GTEST:
        lines.append('#include "gtest/gtest.h"')
    else:
        lines += ["#define CATCH_CONFIG_RUNNER", '#include "catch2/catch2.hpp"']
    lines.append("")

    if node.pre_main:
        lines += ["extern bool pre_main(int argc, char** argv, int* exitCode);", ""]

    lines += [
        "int main(int argc, char** argv) {",
        f"    extern void InitModule_{node.symbol}(void*);",
        f"    InitModule_{node.symbol}(nullptr);",
        "",
        "    int ret = 0;",
    ]

    indent = "    "
    if node.pre_main:
        lines.append("    if (!pre_main(argc, argv, &ret)) {")
        indent = "        "

    if node.test_framework is SuiteFramework.GTEST:
        lines.append(f"{indent}testing::InitGoogleTest(&argc, argv);")
        lines.append(f"{indent}ret = RUN_ALL_TESTS();")
    else:
        lines.append(f"{indent}ret = Catch::Session().run(argc, argv);")

    if node.pre_main:
        lines.append("    }")

    lines += ["    return ret;", "}"]
    return lines
