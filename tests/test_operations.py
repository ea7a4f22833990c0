"""Tests for the build, publish, test and project operations."""

import os

import pytest

from conftest import FakeExecutor
from windowssdk_mcp.config import ToolPaths
from windowssdk_mcp.errors import InvocationError
from windowssdk_mcp.operations import (
    BuildMSBuildProjectOperation,
    DependenciesConfig,
    DotNetBuildOperation,
    DotNetConfig,
    DotNetPublishOperation,
    DotNetVerbosity,
    ExecuteMSBuildScriptOperation,
    GetDependenciesOperation,
    MSBuildProjectConfig,
    MSBuildScriptConfig,
    OperationContext,
    ProjectVersionConfig,
    SetProjectVersionOperation,
    VSTestConfig,
    VSTestOperation,
)
from windowssdk_mcp.tooling.output import MessageLevel, encode_bm_line
from windowssdk_mcp.tooling.process import ProcessRunner
from windowssdk_mcp.tooling.store import InMemoryKeyValueStore

DOTNET = "C:\\dotnet\\dotnet.exe"


def make_context(tmp_path, executor, **paths):
    return OperationContext(
        working_directory=str(tmp_path),
        paths=ToolPaths(**paths),
        runner=ProcessRunner(executor, check_executable=lambda _: True),
        store=InMemoryKeyValueStore(),
    )


def texts(result, level):
    return [m.text for m in result.messages if m.level == level]


class TestOperationContext:
    """Tests for OperationContext.resolve_path."""

    def test_relative(self, tmp_path):
        context = OperationContext(working_directory=str(tmp_path))
        assert context.resolve_path("src") == os.path.join(str(tmp_path), "src")

    def test_tilde_is_working_directory(self, tmp_path):
        context = OperationContext(working_directory=str(tmp_path))
        assert context.resolve_path("~\\out") == os.path.join(str(tmp_path), "out")

    def test_blank_is_working_directory(self, tmp_path):
        context = OperationContext(working_directory=str(tmp_path))
        assert context.resolve_path(None) == str(tmp_path)
        assert context.resolve_path("  ") == str(tmp_path)

    def test_windows_absolute(self, tmp_path):
        context = OperationContext(working_directory=str(tmp_path))
        assert context.resolve_path("C:\\src\\App.csproj") == "C:\\src\\App.csproj"
        assert context.resolve_path("\\\\server\\share") == "\\\\server\\share"


class TestDotNetOperations:
    """Tests for dotnet build and publish."""

    @pytest.mark.asyncio
    async def test_build_arguments(self, tmp_path):
        executor = FakeExecutor()
        context = make_context(
            tmp_path, executor, dotnet_exe_path=DOTNET, package_sources={"feed": "https://feed"}
        )
        config = DotNetConfig(
            project_path="App.csproj",
            configuration="Release",
            framework="net5.0",
            runtime="win-x64",
            output="out",
            force=True,
            verbosity=DotNetVerbosity.DETAILED,
            package_source="Feed",
            additional_arguments=" -p:Version=1.2.3 ",
        )

        result = await DotNetBuildOperation(context, config).run()

        assert result.success
        assert result.exit_code == 0
        invocation = executor.invocations[0]
        assert invocation.executable == DOTNET
        assert invocation.working_directory == str(tmp_path)
        assert invocation.arguments == (
            f"build {tmp_path / 'App.csproj'} --configuration Release --framework net5.0 "
            f"--runtime win-x64 --force --output {tmp_path / 'out'} --verbosity detailed "
            "--source https://feed -p:Version=1.2.3"
        )
        assert result.data["dotnetPath"] == DOTNET

    @pytest.mark.asyncio
    async def test_minimal_verbosity_omitted(self, tmp_path):
        executor = FakeExecutor()
        context = make_context(tmp_path, executor, dotnet_exe_path=DOTNET)

        await DotNetBuildOperation(context, DotNetConfig(project_path="App.csproj")).run()

        assert executor.invocations[0].arguments == f"build {tmp_path / 'App.csproj'} "

    @pytest.mark.asyncio
    async def test_project_path_with_spaces_quoted(self, tmp_path):
        executor = FakeExecutor()
        context = make_context(tmp_path, executor, dotnet_exe_path=DOTNET)

        await DotNetBuildOperation(context, DotNetConfig(project_path="C:\\My Apps\\App.csproj")).run()

        assert executor.invocations[0].arguments == 'build "C:\\My Apps\\App.csproj" '

    @pytest.mark.asyncio
    async def test_output_without_framework_warns(self, tmp_path):
        context = make_context(tmp_path, FakeExecutor(), dotnet_exe_path=DOTNET)

        result = await DotNetBuildOperation(
            context, DotNetConfig(project_path="App.csproj", output="out")
        ).run()

        assert result.success
        assert any('"Output" is specified' in t for t in texts(result, MessageLevel.WARNING))

    @pytest.mark.asyncio
    async def test_publish_self_contained_flag(self, tmp_path):
        executor = FakeExecutor()
        context = make_context(tmp_path, executor, dotnet_exe_path=DOTNET)

        await DotNetPublishOperation(context, DotNetConfig(project_path="App.csproj")).run()
        await DotNetPublishOperation(
            context, DotNetConfig(project_path="App.csproj", self_contained=True)
        ).run()

        assert executor.invocations[0].arguments.startswith("publish ")
        assert executor.invocations[0].arguments.endswith("--no-self-contained ")
        assert executor.invocations[1].arguments.endswith(" --self-contained ")

    @pytest.mark.asyncio
    async def test_unknown_package_source(self, tmp_path):
        executor = FakeExecutor()
        context = make_context(tmp_path, executor, dotnet_exe_path=DOTNET)

        result = await DotNetBuildOperation(
            context, DotNetConfig(project_path="App.csproj", package_source="missing")
        ).run()

        assert not result.success
        assert texts(result, MessageLevel.ERROR) == ['Package source "missing" not found.']
        assert executor.invocations == []

    @pytest.mark.asyncio
    async def test_nonzero_exit(self, tmp_path):
        executor = FakeExecutor(
            lines=["Program.cs(3,1): error CS1002: ; expected [App.csproj]", "Build FAILED."],
            exit_code=1,
        )
        context = make_context(tmp_path, executor, dotnet_exe_path=DOTNET)

        result = await DotNetBuildOperation(context, DotNetConfig(project_path="App.csproj")).run()

        assert not result.success
        assert result.exit_code == 1
        assert "dotnet exit code: 1" in texts(result, MessageLevel.ERROR)
        assert [d.code for d in result.diagnostics] == ["CS1002"]

    @pytest.mark.asyncio
    async def test_per_operation_dotnet_path(self, tmp_path):
        executor = FakeExecutor()
        context = make_context(tmp_path, executor, dotnet_exe_path=DOTNET)

        await DotNetBuildOperation(
            context, DotNetConfig(project_path="App.csproj", dotnet_exe_path="D:\\sdk\\dotnet.exe")
        ).run()

        assert executor.invocations[0].executable == "D:\\sdk\\dotnet.exe"

    @pytest.mark.asyncio
    async def test_dotnet_not_found(self, tmp_path, monkeypatch):
        monkeypatch.delenv("ProgramFiles", raising=False)
        monkeypatch.setenv("PATH", str(tmp_path / "empty"))
        executor = FakeExecutor()
        context = make_context(tmp_path, executor)

        result = await DotNetBuildOperation(context, DotNetConfig(project_path="App.csproj")).run()

        assert not result.success
        assert texts(result, MessageLevel.ERROR)[0].startswith(
            "Could not determine the location of dotnet.exe on this server."
        )
        assert executor.invocations == []

    @pytest.mark.asyncio
    async def test_working_directory_created(self, tmp_path):
        work = tmp_path / "new" / "dir"
        context = OperationContext(
            working_directory=str(work),
            paths=ToolPaths(dotnet_exe_path=DOTNET),
            runner=ProcessRunner(FakeExecutor(), check_executable=lambda _: True),
        )

        await DotNetBuildOperation(context, DotNetConfig(project_path="App.csproj")).run()

        assert work.is_dir()

    @pytest.mark.asyncio
    async def test_missing_executable_propagates(self, tmp_path):
        context = OperationContext(
            working_directory=str(tmp_path),
            paths=ToolPaths(dotnet_exe_path=DOTNET),
            runner=ProcessRunner(FakeExecutor(), check_executable=lambda _: False),
        )

        with pytest.raises(InvocationError, match="does not exist"):
            await DotNetBuildOperation(context, DotNetConfig(project_path="App.csproj")).run()

    @pytest.mark.asyncio
    async def test_to_dict_hides_debug_output(self, tmp_path):
        executor = FakeExecutor(lines=["Determining projects to restore..."])
        context = make_context(tmp_path, executor, dotnet_exe_path=DOTNET)

        result = await DotNetBuildOperation(context, DotNetConfig(project_path="App.csproj")).run()

        data = result.to_dict()
        assert data["operation"] == "dotnet build"
        assert data["messages"] == []
        assert data["exitCode"] == 0


class TestMSBuildOperations:
    """Tests for MSBuild project builds and scripts."""

    @pytest.mark.asyncio
    async def test_build_arguments(self, tmp_path):
        project = tmp_path / "App.csproj"
        project.write_text("<Project />")
        executor = FakeExecutor()
        context = make_context(
            tmp_path,
            executor,
            msbuild_tools_path="C:\\MSBuild\\Bin",
            msbuild_logger_path="C:\\ext\\Logger.dll",
        )
        config = MSBuildProjectConfig(
            project_path="App.csproj",
            build_configuration="Debug",
            target_platform="x64",
            build_properties="TreatWarningsAsErrors=true",
            target_directory="out",
        )

        result = await BuildMSBuildProjectOperation(context, config).run()

        assert result.success
        invocation = executor.invocations[0]
        assert invocation.executable == os.path.join("C:\\MSBuild\\Bin", "msbuild.exe")
        assert invocation.working_directory == str(tmp_path)
        assert invocation.arguments == (
            f"/logger:C:\\ext\\Logger.dll /noconsolelogger {project} "
            "/p:Configuration=Debug;Platform=x64;TreatWarningsAsErrors=true "
            f"/p:OutDir={tmp_path / 'out'}\\ "
        )

    @pytest.mark.asyncio
    async def test_no_logger_configured(self, tmp_path):
        (tmp_path / "App.csproj").write_text("<Project />")
        executor = FakeExecutor()
        context = make_context(tmp_path, executor, msbuild_tools_path="C:\\MSBuild\\Bin")

        await BuildMSBuildProjectOperation(context, MSBuildProjectConfig(project_path="App.csproj")).run()

        assert executor.invocations[0].arguments == (
            f"{tmp_path / 'App.csproj'} /p:Configuration=Release "
        )

    @pytest.mark.asyncio
    async def test_bm_messages_and_failure(self, tmp_path):
        (tmp_path / "App.csproj").write_text("<Project />")
        executor = FakeExecutor(
            lines=[
                encode_bm_line(MessageLevel.WARNING, "CS0168: unused variable"),
                encode_bm_line(MessageLevel.ERROR, "CS0103: name does not exist"),
            ],
            exit_code=1,
        )
        context = make_context(tmp_path, executor, msbuild_tools_path="C:\\MSBuild\\Bin")

        result = await BuildMSBuildProjectOperation(context, MSBuildProjectConfig(project_path="App.csproj")).run()

        assert not result.success
        assert texts(result, MessageLevel.WARNING) == ["CS0168: unused variable"]
        assert texts(result, MessageLevel.ERROR) == [
            "CS0103: name does not exist",
            "Build failed (msbuild returned 1).",
        ]

    @pytest.mark.asyncio
    async def test_tools_path_from_registry(self, tmp_path):
        (tmp_path / "App.csproj").write_text("<Project />")
        executor = FakeExecutor()
        context = make_context(tmp_path, executor, vswhere_path=str(tmp_path / "no-vswhere.exe"))
        context.locator.context.store = InMemoryKeyValueStore(
            {
                "SOFTWARE": {
                    "Microsoft": {
                        "MSBuild": {
                            "ToolsVersions": {
                                "4.0": {"MSBuildToolsPath": "C:\\Framework\\v4.0"},
                                "14.0": {"MSBuildToolsPath": "C:\\MSBuild\\14.0\\Bin"},
                            }
                        }
                    }
                }
            }
        )

        await BuildMSBuildProjectOperation(context, MSBuildProjectConfig(project_path="App.csproj")).run()

        assert executor.invocations[0].executable == os.path.join("C:\\MSBuild\\14.0\\Bin", "msbuild.exe")

    @pytest.mark.asyncio
    async def test_msbuild_not_found(self, tmp_path):
        (tmp_path / "App.csproj").write_text("<Project />")
        executor = FakeExecutor()
        context = make_context(tmp_path, executor, vswhere_path=str(tmp_path / "no-vswhere.exe"))

        result = await BuildMSBuildProjectOperation(context, MSBuildProjectConfig(project_path="App.csproj")).run()

        assert not result.success
        assert "MSBuildToolsPath" in texts(result, MessageLevel.ERROR)[0]
        assert executor.invocations == []

    @pytest.mark.asyncio
    async def test_missing_project_directory(self, tmp_path):
        context = make_context(tmp_path, FakeExecutor(), msbuild_tools_path="C:\\MSBuild\\Bin")

        result = await BuildMSBuildProjectOperation(
            context, MSBuildProjectConfig(project_path="missing/App.csproj")
        ).run()

        assert not result.success
        assert texts(result, MessageLevel.ERROR)[0].endswith("does not exist.")

    @pytest.mark.asyncio
    async def test_execute_script(self, tmp_path):
        executor = FakeExecutor()
        context = make_context(tmp_path, executor, msbuild_tools_path="C:\\MSBuild\\Bin")
        config = MSBuildScriptConfig(
            project_path="build.proj", target="Package", build_properties="Version=1.0;"
        )

        result = await ExecuteMSBuildScriptOperation(context, config).run()

        assert result.success
        invocation = executor.invocations[0]
        assert invocation.working_directory == str(tmp_path)
        assert invocation.arguments == (
            f"{tmp_path / 'build.proj'} /t:Package /p:OutDir={tmp_path}\\;Version=1.0 "
        )

    @pytest.mark.asyncio
    async def test_execute_script_requires_target(self, tmp_path):
        context = make_context(tmp_path, FakeExecutor(), msbuild_tools_path="C:\\MSBuild\\Bin")

        result = await ExecuteMSBuildScriptOperation(
            context, MSBuildScriptConfig(project_path="build.proj", target=" ")
        ).run()

        assert texts(result, MessageLevel.ERROR) == ["Target is required."]


class TestVSTestOperation:
    """Tests for VSTestOperation."""

    @pytest.fixture
    def vstest_exe(self, tmp_path):
        path = tmp_path / "vstest.console.exe"
        path.touch()
        return str(path)

    @pytest.fixture
    def container(self, tmp_path):
        bin_dir = tmp_path / "bin"
        bin_dir.mkdir()
        path = bin_dir / "Tests.dll"
        path.touch()
        return path

    def writes_trx(self, content):
        def on_execute(invocation):
            results = os.path.join(invocation.working_directory, "TestResults")
            os.makedirs(results, exist_ok=True)
            with open(os.path.join(results, "run.trx"), "w", encoding="utf-8") as f:
                f.write(content)

        return on_execute

    @pytest.mark.asyncio
    async def test_failures_reported(self, tmp_path, vstest_exe, container, sample_trx):
        executor = FakeExecutor(exit_code=1, on_execute=self.writes_trx(sample_trx))
        context = make_context(tmp_path, executor, vstest_exe_path=vstest_exe)

        result = await VSTestOperation(
            context, VSTestConfig(test_container="bin/Tests.dll", group_name="Smoke")
        ).run()

        assert not result.success
        assert texts(result, MessageLevel.ERROR) == ["One or more unit tests failed."]
        assert result.data["failed"] == 1
        assert result.data["tests"][0]["group"] == "Smoke"
        invocation = executor.invocations[0]
        assert invocation.executable == vstest_exe
        assert invocation.working_directory == str(container.parent)
        assert invocation.arguments == f"{container} /logger:trx "

    @pytest.mark.asyncio
    async def test_all_passed(self, tmp_path, vstest_exe, container):
        trx = '<TestRun><Results><UnitTestResult testName="A" outcome="Passed"/></Results></TestRun>'
        executor = FakeExecutor(on_execute=self.writes_trx(trx))
        context = make_context(tmp_path, executor, vstest_exe_path=vstest_exe)

        result = await VSTestOperation(context, VSTestConfig(test_container="bin/Tests.dll")).run()

        assert result.success
        assert "Tests completed with no failures." in texts(result, MessageLevel.INFO)
        assert result.data["tests"][0]["group"] == "Unit Tests"

    @pytest.mark.asyncio
    async def test_clears_existing_results(self, tmp_path, vstest_exe, container):
        stale = container.parent / "TestResults" / "stale.trx"
        stale.parent.mkdir()
        stale.write_text("<TestRun/>")
        seen = []

        def on_execute(invocation):
            seen.append(stale.exists())

        executor = FakeExecutor(on_execute=on_execute)
        context = make_context(tmp_path, executor, vstest_exe_path=vstest_exe)

        result = await VSTestOperation(
            context, VSTestConfig(test_container="bin/Tests.dll", clear_existing_test_results=True)
        ).run()

        assert seen == [False]
        assert not result.success
        assert texts(result, MessageLevel.ERROR) == ['Could not find the generated "TestResults" directory.']

    @pytest.mark.asyncio
    async def test_no_trx_generated(self, tmp_path, vstest_exe, container):
        def on_execute(invocation):
            os.makedirs(os.path.join(invocation.working_directory, "TestResults"), exist_ok=True)

        context = make_context(tmp_path, FakeExecutor(on_execute=on_execute), vstest_exe_path=vstest_exe)

        result = await VSTestOperation(context, VSTestConfig(test_container="bin/Tests.dll")).run()

        assert not result.success
        assert ".trx" in texts(result, MessageLevel.ERROR)[0]

    @pytest.mark.asyncio
    async def test_explicit_path_missing(self, tmp_path, container):
        executor = FakeExecutor()
        context = make_context(tmp_path, executor, vstest_exe_path=str(tmp_path / "nope.exe"))

        result = await VSTestOperation(context, VSTestConfig(test_container="bin/Tests.dll")).run()

        assert not result.success
        assert "nope.exe does not exist." in texts(result, MessageLevel.ERROR)[0]
        assert executor.invocations == []

    @pytest.mark.asyncio
    async def test_settings_and_additional_arguments(self, tmp_path, vstest_exe, container):
        executor = FakeExecutor()
        context = make_context(tmp_path, executor, vstest_exe_path=vstest_exe)

        await VSTestOperation(
            context,
            VSTestConfig(
                test_container="bin/Tests.dll",
                test_settings_path="ci.runsettings",
                additional_arguments="/Parallel",
            ),
        ).run()

        assert executor.invocations[0].arguments == (
            f"{container} /logger:trx /Settings:{tmp_path / 'ci.runsettings'} /Parallel"
        )


class TestGetDependenciesOperation:
    """Tests for GetDependenciesOperation."""

    @pytest.fixture
    def project_dir(self, tmp_path):
        (tmp_path / "packages.config").write_text(
            '<packages><package id="Newtonsoft.Json" version="12.0.3" /></packages>'
        )
        (tmp_path / "App.csproj").write_text(
            '<Project><ItemGroup><PackageReference Include="Moq" Version="4.16.0" /></ItemGroup></Project>'
        )
        return tmp_path

    @pytest.mark.asyncio
    async def test_all_packages(self, project_dir):
        context = OperationContext(working_directory=str(project_dir))

        result = await GetDependenciesOperation(context, DependenciesConfig(project_path=".")).run()

        assert result.success
        assert result.data["packages"] == {"Moq": "4.16.0", "Newtonsoft.Json": "12.0.3"}

    @pytest.mark.asyncio
    async def test_project_file_uses_its_directory(self, project_dir):
        context = OperationContext(working_directory=str(project_dir))

        result = await GetDependenciesOperation(
            context, DependenciesConfig(project_path="App.csproj", package_id="newtonsoft.json")
        ).run()

        assert result.success
        assert result.data == {"packageId": "newtonsoft.json", "version": "12.0.3"}

    @pytest.mark.asyncio
    async def test_package_not_referenced(self, project_dir):
        context = OperationContext(working_directory=str(project_dir))

        result = await GetDependenciesOperation(
            context, DependenciesConfig(project_path=".", package_id="xunit")
        ).run()

        assert not result.success
        assert texts(result, MessageLevel.ERROR) == ["Package xunit is not referenced."]

    @pytest.mark.asyncio
    async def test_no_project_files(self, tmp_path):
        context = OperationContext(working_directory=str(tmp_path))

        result = await GetDependenciesOperation(context, DependenciesConfig(project_path=".")).run()

        assert not result.success
        assert texts(result, MessageLevel.ERROR)[0].startswith("No project files")

    @pytest.mark.asyncio
    async def test_missing_directory(self, tmp_path):
        context = OperationContext(working_directory=str(tmp_path))

        result = await GetDependenciesOperation(context, DependenciesConfig(project_path="missing")).run()

        assert not result.success
        assert texts(result, MessageLevel.ERROR)[0].endswith("does not exist.")


class TestSetProjectVersionOperation:
    """Tests for SetProjectVersionOperation."""

    @pytest.mark.asyncio
    async def test_updates_matching_files_and_continues_past_errors(self, tmp_path):
        (tmp_path / "src").mkdir()
        good = tmp_path / "src" / "App.csproj"
        good.write_text('<Project Sdk="Microsoft.NET.Sdk"><PropertyGroup /></Project>')
        bad = tmp_path / "Broken.csproj"
        bad.write_text("<Project>")
        context = OperationContext(working_directory=str(tmp_path))

        result = await SetProjectVersionOperation(
            context, ProjectVersionConfig(version="3.1.0", file_version="3.1.0.7")
        ).run()

        assert not result.success
        assert len(texts(result, MessageLevel.ERROR)) == 1
        assert result.data["updated"] == [str(good)]
        text = good.read_text()
        assert "<Version>3.1.0</Version>" in text
        assert "<FileVersion>3.1.0.7</FileVersion>" in text
        assert "AssemblyVersion" not in text

    @pytest.mark.asyncio
    async def test_badly_encoded_file_does_not_stop_others(self, tmp_path):
        odd = tmp_path / "A.csproj"
        odd.write_text('<?xml version="1.0" encoding="bogus-enc"?><Project />')
        good = tmp_path / "B.csproj"
        good.write_text("<Project><PropertyGroup /></Project>")
        context = OperationContext(working_directory=str(tmp_path))

        result = await SetProjectVersionOperation(context, ProjectVersionConfig(version="2.0.0")).run()

        assert not result.success
        assert len(texts(result, MessageLevel.ERROR)) == 1
        assert result.data["updated"] == [str(good)]
        assert "<Version>2.0.0</Version>" in good.read_text()

    @pytest.mark.asyncio
    async def test_no_matching_files(self, tmp_path):
        context = OperationContext(working_directory=str(tmp_path))

        result = await SetProjectVersionOperation(context, ProjectVersionConfig(version="1.0.0")).run()

        assert result.success
        assert texts(result, MessageLevel.WARNING) == ["No matching files found."]

    @pytest.mark.asyncio
    async def test_version_required(self, tmp_path):
        context = OperationContext(working_directory=str(tmp_path))

        result = await SetProjectVersionOperation(context, ProjectVersionConfig(version="")).run()

        assert texts(result, MessageLevel.ERROR) == ["Version is required."]
