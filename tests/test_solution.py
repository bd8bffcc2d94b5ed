import pytest

from conftest import APP, HEADER, SHARED, STATIC, TEST, module, project, write
from layerbuild.errors import CycleError, ResolutionError
from layerbuild.model import DataMount
from layerbuild.solution import CACHE_MOUNT, collect_defines, collect_include_paths, guid_from_text


def _names(nodes):
    return [n.name for n in nodes]


def test_core_util_app_scenario(make_graph):
    graph = make_graph(
        [
            project("app", APP, deps=["util"], generate_main=True),
            project("util", STATIC, deps=["core"]),
            project("core", STATIC),
        ]
    )
    assert _names(graph.nodes) == ["core", "util", "app"]
    assert _names(graph.find("app").all_dependencies) == ["core", "util"]
    assert _names(graph.find("app").direct_dependencies) == ["util"]
    assert graph.find("core").all_dependencies == []


def test_order_and_guids_are_deterministic(make_graph):
    records = [
        project("game", APP, deps=["engine/render", "engine/audio"]),
        project("engine/render", SHARED, deps=["engine/core"]),
        project("engine/audio", SHARED, deps=["engine/core"]),
        project("engine/core", STATIC),
    ]
    first = make_graph(records)
    second = make_graph(list(reversed(records)))
    assert _names(first.nodes) == _names(second.nodes)
    assert [n.guid for n in first.nodes] == [n.guid for n in second.nodes]
    assert [g.guid for g in first.groups()] == [g.guid for g in second.groups()]


def test_build_order_is_topologically_sound(make_graph):
    graph = make_graph(
        [
            project("a", APP, deps=["b", "c"]),
            project("b", deps=["d"]),
            project("c", deps=["d", "e"]),
            project("d", deps=["e"]),
            project("e"),
        ]
    )
    position = {n.name: i for i, n in enumerate(graph.nodes)}
    for node in graph.nodes:
        for dep in node.all_dependencies:
            assert position[dep.name] < position[node.name]


def test_cycle_fails_construction_with_components(make_graph):
    with pytest.raises(CycleError) as info:
        make_graph(
            [
                project("a", deps=["b"]),
                project("b", deps=["c"]),
                project("c", deps=["a"]),
            ]
        )
    assert sorted(info.value.chain) == ["a", "b", "c"]
    assert len(set(info.value.chain)) == 3
    assert info.value.cycles == [["a", "b", "c"]]


def test_reflection_cleared_without_object_provider(make_graph):
    graph = make_graph(
        [
            project("core/object"),
            project("engine", deps=["core/object"]),
            project("standalone"),
        ]
    )
    assert graph.find("engine").use_reflection
    assert graph.find("core/object").use_reflection
    assert not graph.find("standalone").use_reflection


def test_static_init_cleared_without_system_provider(make_graph):
    graph = make_graph(
        [
            project("core/system"),
            project("engine", deps=["core/system"]),
            project("standalone"),
        ]
    )
    assert graph.find("core/system").use_static_init
    assert graph.find("engine").use_static_init
    assert not graph.find("standalone").use_static_init


def test_embedded_files_need_file_provider(make_graph, tmp_path):
    write(tmp_path / "src" / "game" / "media" / "logo.png", "png")
    write(tmp_path / "src" / "tool" / "media" / "icon.png", "png")
    graph = make_graph(
        [
            project("core/file"),
            project("game", APP, deps=["core/file"]),
            project("tool", APP),
        ],
        scan=True,
    )
    assert graph.find("game").use_embedded_files
    assert not graph.find("tool").use_embedded_files


def test_node_flags_from_files(make_graph, tmp_path):
    write(tmp_path / "src" / "lib" / "src" / "init.cpp")
    write(tmp_path / "src" / "lib" / "src" / "private.h")
    write(tmp_path / "src" / "lib" / "include" / "public.h")
    graph = make_graph([project("lib")], scan=True)
    node = graph.find("lib")
    assert node.has_init and node.has_pre_init
    assert node.public_header == tmp_path / "src" / "lib" / "include" / "public.h"
    assert node.private_header == tmp_path / "src" / "lib" / "src" / "private.h"
    sources = [f for f in node.files if f.name == "init.cpp"]
    assert sources[0].use_precompiled_header


def test_groups_follow_name_segments(make_graph):
    graph = make_graph(
        [
            project("engine/render/vulkan"),
            project("engine/core"),
            project("tools/baker", APP, group="tools/offline"),
            project("game", APP, solution_group="apps"),
        ]
    )
    vulkan = graph.find("engine/render/vulkan")
    assert vulkan.group.merged_name == "demo_engine_render"
    assert vulkan.group.guid == guid_from_text("GROUPdemo/engine/render")
    assert graph.find("engine/core").group.merged_name == "demo_engine"
    assert graph.find("tools/baker").group.merged_name == "demo_tools_offline"
    assert graph.find("game").group.merged_name == "demo_apps"
    assert vulkan.group in graph.find("engine/core").group.children


def test_external_modules_are_grouped_separately(make_graph, tmp_path):
    local = module(tmp_path, [project("game", APP, deps=["third/zlib"])], name="game")
    remote = module(tmp_path / "ext", [project("third/zlib")], name="zlib", local=False)
    graph = make_graph([], modules=[local, remote])
    assert graph.find("third/zlib").group.merged_name == "demo_external_third"
    assert graph.find("game").group is graph.root_group


def test_guid_prefers_explicit_value(make_graph):
    graph = make_graph([project("a", guid="{00000000-0000-0000-0000-000000000001}"), project("b")])
    assert graph.find("a").guid == "{00000000-0000-0000-0000-000000000001}"
    assert graph.find("b").guid == guid_from_text("b")


def test_guid_from_text_format():
    guid = guid_from_text("core")
    assert guid == guid_from_text("core")
    assert guid != guid_from_text("core2")
    assert guid.startswith("{") and guid.endswith("}")
    assert [len(part) for part in guid[1:-1].split("-")] == [8, 4, 4, 4, 12]
    assert guid == guid.upper()


def test_data_folders_and_duplicates(tmp_path):
    from layerbuild.collection import ProjectCollection
    from layerbuild.config import Configuration
    from layerbuild.solution import SolutionGraph

    mounts = (
        DataMount("/data/", tmp_path / "data"),
        DataMount("/DATA/", tmp_path / "other"),
        DataMount("/cache/", tmp_path / "cache"),
    )
    collection = ProjectCollection()
    collection.populate_from_modules([module(tmp_path, [project("a")], data_mounts=mounts)])
    graph = SolutionGraph(Configuration(module_path=tmp_path), "demo")
    with pytest.raises(ResolutionError) as info:
        graph.extract_projects(collection)

    assert len(info.value.messages) == 2
    assert [f.mount_path for f in graph.data_folders] == [CACHE_MOUNT, "/data/"]
    # the graph is still usable for further diagnostics
    assert graph.find("a") is not None


def test_defines_collect_dependency_globals_first(make_graph):
    graph = make_graph(
        [
            project("core", global_defines=(("USE_CORE", "1"), ("LEVEL", "1"))),
            project("app", APP, deps=["core"], global_defines=(("LEVEL", "2"),), local_defines=(("LOCAL", ""),)),
        ]
    )
    assert collect_defines(graph.find("app")) == [("USE_CORE", "1"), ("LEVEL", "2"), ("LOCAL", "")]


def test_include_paths_are_unique_and_ordered(make_graph, tmp_path):
    graph = make_graph([project("core", HEADER), project("app", APP, deps=["core"])])
    paths = collect_include_paths(graph, graph.find("app"))
    assert paths[0] == tmp_path / "src"
    assert paths.index(tmp_path / "src" / "app" / "src") < paths.index(graph.config.shared_glue_path)
    assert len(paths) == len(set(paths))


def test_filtered_projects_are_not_nodes(make_graph):
    graph = make_graph(
        [project("lib"), project("lib_tests", TEST, deps=["lib"])],
        build="shipment",
    )
    assert _names(graph.nodes) == ["lib"]


def test_group_ids_come_from_the_full_path(make_graph):
    graph = make_graph([project("a_b/c/x"), project("a/b_c/y")])
    first = graph.find("a_b/c/x").group
    second = graph.find("a/b_c/y").group
    assert first.merged_name == second.merged_name == "demo_a_b_c"
    assert first.path == "demo/a_b/c"
    assert second.path == "demo/a/b_c"
    assert first.guid != second.guid
    guids = [g.guid for g in graph.groups()]
    assert len(guids) == len(set(guids))
