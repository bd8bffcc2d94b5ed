"""Render a SolutionGraph as a Visual Studio solution with one vcxproj per node."""

from __future__ import annotations

import logging
from pathlib import Path
from string import Template
from xml.sax.saxutils import escape

from layerbuild.config import CONFIGURATIONS, Configuration
from layerbuild.model import FileType, ProjectType
from layerbuild.output import FileGenerator
from layerbuild.solution import GraphNode, SolutionGraph, collect_defines, collect_include_paths, guid_from_text

logger = logging.getLogger(__name__)

FOLDER_TYPE_GUID = "{2150E333-8FDC-42A3-9474-1A3956D46DE8}"
CPP_TYPE_GUID = "{8BC9CEB8-8B4A-11D0-8D11-00A0C91BC942}"
PLATFORM = "x64"
TOOLSET = "v143"

_PROJECT_TEMPLATE = Template("""\
<?xml version="1.0" encoding="utf-8"?>
<!-- Auto generated file, please do not edit -->
<Project DefaultTargets="Build" ToolsVersion="17.0" xmlns="http://schemas.microsoft.com/developer/msbuild/2003">
<ItemGroup Label="ProjectConfigurations">
$configurations
</ItemGroup>
<PropertyGroup Label="Globals">
  <ProjectGuid>$guid</ProjectGuid>
  <RootNamespace>$symbol</RootNamespace>
  <PlatformToolset>$toolset</PlatformToolset>
  <WindowsTargetPlatformVersion>10.0</WindowsTargetPlatformVersion>
  <ConfigurationType>$configuration_type</ConfigurationType>
  <SubSystem>$subsystem</SubSystem>
  <OutDir>$out_dir\\</OutDir>
  <IntDir>$int_dir\\</IntDir>
  <ProjectGeneratedPath>$generated_path\\</ProjectGeneratedPath>
</PropertyGroup>
<Import Project="$$(VCTargetsPath)\\Microsoft.Cpp.Default.props"/>
<Import Project="$$(VCTargetsPath)\\Microsoft.Cpp.props"/>
<ItemDefinitionGroup>
  <ClCompile>
    <AdditionalIncludeDirectories>$includes;%(AdditionalIncludeDirectories)</AdditionalIncludeDirectories>
    <PreprocessorDefinitions>$defines;%(PreprocessorDefinitions)</PreprocessorDefinitions>
    <ExceptionHandling>$exceptions</ExceptionHandling>
    <PrecompiledHeaderFile>build.h</PrecompiledHeaderFile>
  </ClCompile>
</ItemDefinitionGroup>
<ItemGroup>
$files
</ItemGroup>
<ItemGroup>
$references
</ItemGroup>
<Import Project="$$(VCTargetsPath)\\Microsoft.Cpp.targets"/>
</Project>
""")

_FILTERS_TEMPLATE = Template("""\
<?xml version="1.0" encoding="utf-8"?>
<!-- Auto generated file, please do not edit -->
<Project ToolsVersion="4.0" xmlns="http://schemas.microsoft.com/developer/msbuild/2003">
<ItemGroup>
$files
</ItemGroup>
<ItemGroup>
$filters
</ItemGroup>
</Project>
""")


def vs_path(path: Path) -> str:
    return escape(str(path).replace("/", "\\"))


def project_file_path(node: GraphNode) -> Path:
    return node.project_path / f"{node.symbol}.vcxproj"


def _item_tag(file_type: FileType) -> str:
    return {
        FileType.HEADER: "ClInclude",
        FileType.SOURCE: "ClCompile",
        FileType.RESOURCES: "ResourceCompile",
        FileType.NATVIS: "Natvis",
    }.get(file_type, "None")


class VisualStudioRenderer:
    """IDE backend."""

    def __init__(self, config: Configuration):
        self.config = config

    def generate_solution(self, graph: SolutionGraph, files: FileGenerator) -> Path:
        path = self.config.solution_path / f"{graph.name}.sln"
        files.create_file(path).extend(self.solution_lines(graph))
        logger.debug("Visual Studio solution: %s", path)
        return path

    def solution_lines(self, graph: SolutionGraph) -> list[str]:
        lines = [
            "Microsoft Visual Studio Solution File, Format Version 12.00",
            "# Visual Studio Version 17",
            "# Generated file, please do not modify",
            "VisualStudioVersion = 17.1.32328.378",
            "MinimumVisualStudioVersion = 10.0.40219.1",
        ]

        groups = [g for g in graph.groups() if g is not graph.root_group]
        for group in groups:
            lines.append(f'Project("{FOLDER_TYPE_GUID}") = "{group.name}", "{group.name}", "{group.guid}"')
            lines.append("EndProject")

        nodes = [n for n in graph.nodes if n.type.is_buildable]
        for node in nodes:
            lines.append(
                f'Project("{CPP_TYPE_GUID}") = "{node.symbol}", '
                f'"{vs_path(project_file_path(node))}", "{node.guid}"'
            )
            deps = [d for d in node.direct_dependencies if d.type.is_buildable]
            if deps:
                lines.append("\tProjectSection(ProjectDependencies) = postProject")
                lines += [f"\t\t{d.guid} = {d.guid}" for d in deps]
                lines.append("\tEndProjectSection")
            lines.append("EndProject")

        lines.append("Global")
        lines.append("\tGlobalSection(SolutionConfigurationPlatforms) = preSolution")
        for configuration in CONFIGURATIONS:
            name = configuration.capitalize()
            lines.append(f"\t\t{name}|{PLATFORM} = {name}|{PLATFORM}")
        lines.append("\tEndGlobalSection")

        lines.append("\tGlobalSection(ProjectConfigurationPlatforms) = postSolution")
        for node in nodes:
            for configuration in CONFIGURATIONS:
                name = configuration.capitalize()
                lines.append(f"\t\t{node.guid}.{name}|{PLATFORM}.ActiveCfg = {name}|{PLATFORM}")
                lines.append(f"\t\t{node.guid}.{name}|{PLATFORM}.Build.0 = {name}|{PLATFORM}")
        lines.append("\tEndGlobalSection")

        lines += [
            "\tGlobalSection(SolutionProperties) = preSolution",
            "\t\tHideSolutionNode = FALSE",
            "\tEndGlobalSection",
        ]

        lines.append("\tGlobalSection(NestedProjects) = preSolution")
        for group in groups:
            if group.parent is not None and group.parent is not graph.root_group:
                lines.append(f"\t\t{group.guid} = {group.parent.guid}")
        for node in nodes:
            if node.group is not None and node.group is not graph.root_group:
                lines.append(f"\t\t{node.guid} = {node.group.guid}")
        lines.append("\tEndGlobalSection")

        lines += [
            "\tGlobalSection(ExtensibilityGlobals) = postSolution",
            f"\t\tSolutionGuid = {guid_from_text('SOLUTION' + graph.name)}",
            "\tEndGlobalSection",
            "EndGlobal",
        ]
        return lines

    def generate_projects(self, graph: SolutionGraph, files: FileGenerator) -> None:
        for node in graph.nodes:
            if not node.type.is_buildable:
                continue
            path = project_file_path(node)
            files.create_file(path).extend(self.project_lines(graph, node))
            files.create_file(path.with_name(path.name + ".filters")).extend(self.filters_lines(node))

    def project_lines(self, graph: SolutionGraph, node: GraphNode) -> list[str]:
        if node.type.is_executable:
            configuration_type = "Application"
        elif node.type is ProjectType.STATIC_LIBRARY:
            configuration_type = "StaticLibrary"
        else:
            configuration_type = "DynamicLibrary"

        configurations = []
        for configuration in CONFIGURATIONS:
            name = configuration.capitalize()
            configurations += [
                f'  <ProjectConfiguration Include="{name}|{PLATFORM}">',
                f"    <Configuration>{name}</Configuration>",
                f"    <Platform>{PLATFORM}</Platform>",
                "  </ProjectConfiguration>",
            ]

        defines = [f"PROJECT_NAME={node.symbol}"]
        if node.type is ProjectType.STATIC_LIBRARY:
            defines.append("BUILD_AS_LIBS")
        else:
            defines.append(f"{node.symbol.upper()}_EXPORTS")
        for key, value in collect_defines(node):
            defines.append(f"{key}={value}" if value else key)

        items = []
        for file in node.files:
            tag = _item_tag(file.type)
            if file.type is FileType.SOURCE and node.use_precompiled_headers:
                if file.name in ("build.cpp", "build.cxx"):
                    mode = "Create"
                elif file.use_precompiled_header:
                    mode = "Use"
                else:
                    mode = "NotUsing"
                items += [
                    f'  <{tag} Include="{vs_path(file.absolute_path)}">',
                    f"    <PrecompiledHeader>{mode}</PrecompiledHeader>",
                    f"  </{tag}>",
                ]
            else:
                items.append(f'  <{tag} Include="{vs_path(file.absolute_path)}"/>')

        references = []
        for dep in node.direct_dependencies:
            if not dep.type.is_buildable:
                continue
            references += [
                f'  <ProjectReference Include="{vs_path(project_file_path(dep))}">',
                f"    <Project>{dep.guid}</Project>",
                "  </ProjectReference>",
            ]

        content = _PROJECT_TEMPLATE.substitute(
            configurations="\n".join(configurations),
            guid=node.guid,
            symbol=node.symbol,
            toolset=TOOLSET,
            configuration_type=configuration_type,
            subsystem="Windows" if node.use_window_subsystem else "Console",
            out_dir=vs_path(node.output_path),
            int_dir=vs_path(node.output_path / "obj"),
            generated_path=vs_path(node.generated_path),
            includes=";".join(vs_path(p) for p in collect_include_paths(graph, node)),
            defines=escape(";".join(defines)),
            exceptions="Sync" if node.use_exceptions else "false",
            files="\n".join(items),
            references="\n".join(references),
        )
        return content.splitlines()

    def filters_lines(self, node: GraphNode) -> list[str]:
        items = []
        sections: list[str] = []
        for file in node.files:
            tag = _item_tag(file.type)
            if not file.filter_path:
                items.append(f'  <{tag} Include="{vs_path(file.absolute_path)}"/>')
                continue
            items += [
                f'  <{tag} Include="{vs_path(file.absolute_path)}">',
                f"    <Filter>{escape(file.filter_path)}</Filter>",
                f"  </{tag}>",
            ]
            # every parent section needs its own filter entry
            parts = file.filter_path.replace("/", "\\").split("\\")
            for i in range(1, len(parts) + 1):
                section = "\\".join(parts[:i])
                if section not in sections:
                    sections.append(section)

        filters = []
        for section in sections:
            filters += [
                f'  <Filter Include="{escape(section)}">',
                f"    <UniqueIdentifier>{guid_from_text('FILTER' + node.name + section)}</UniqueIdentifier>",
                "  </Filter>",
            ]

        content = _FILTERS_TEMPLATE.substitute(files="\n".join(items), filters="\n".join(filters))
        return content.splitlines()
