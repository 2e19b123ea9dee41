"""Tests for the MCP developer tool servers."""

from __future__ import annotations

import asyncio
import json
import subprocess
from datetime import datetime, timezone
from pathlib import Path

import pytest
from mcp.server.fastmcp.exceptions import ToolError
from mcp.shared.memory import create_connected_server_and_client_session

from crm_mcp.config import DEFAULT_CONFIG, find_project_root, load_config, merge_config, path_report
from crm_mcp.local_server import BUNDLED_DOCS_DIR, build_local_server
from crm_mcp.server import build_server, configured_timezone
from crm_mcp.tools.ask import ANSWER_FOOTER, format_question
from crm_mcp.tools.biome import build_biome_command, find_biome_root, run_biome
from crm_mcp.tools.get_date import JST, current_date_text, format_date, resolve_timezone
from crm_mcp.tools.get_docs import read_all_docs, read_doc


def tool_names(server) -> set:
    return {tool.name for tool in asyncio.run(server.list_tools())}


def call_tool(server, name: str, arguments: dict):
    """Call a tool the way an MCP client does, over a connected session."""

    async def call():
        async with create_connected_server_and_client_session(server._mcp_server) as session:
            return await session.call_tool(name, arguments)

    return asyncio.run(call())


@pytest.fixture
def docs_dir(tmp_path: Path) -> Path:
    directory = tmp_path / "docs"
    directory.mkdir()
    (directory / "b-guide.md").write_text("Second")
    (directory / "a-intro.md").write_text("First")
    (directory / "notes.txt").write_text("ignored")
    return directory


class TestAsk:
    def test_two_options(self) -> None:
        text = format_question("Deploy now?", "Yes", "No")
        assert text == "❓ Deploy now?\n\nOPTIONS:\n1. Yes\n2. No\n" + ANSWER_FOOTER

    def test_summary_and_extra_options(self) -> None:
        text = format_question("Which db?", "Postgres", "SQLite", "We need JSON", ["MySQL", "None"])
        assert "We need JSON\n" in text
        assert "3. MySQL\n4. None\n" in text

    def test_blank_summary_is_skipped(self) -> None:
        assert format_question("Q", "a", "b", "   ") == format_question("Q", "a", "b")


class TestGetDate:
    MOMENT = datetime(2026, 1, 5, 3, 4, 9, 120000, tzinfo=timezone.utc)

    def test_format_tokens(self) -> None:
        assert format_date(self.MOMENT, "yyyy/MM/dd HH:mm:ss") == "2026/01/05 03:04:09"
        assert format_date(self.MOMENT, "dd.MM.yyyy") == "05.01.2026"

    def test_default_is_iso_utc(self) -> None:
        assert current_date_text(now=self.MOMENT) == "Tool: getDate, Result: 2026-01-05T03:04:09.120Z"

    def test_iso_keeps_offset_outside_utc(self) -> None:
        text = current_date_text(tz=JST, now=self.MOMENT)
        assert text == "Tool: getDate, Result: 2026-01-05T12:04:09.120+09:00"

    def test_explicit_format_beats_default(self) -> None:
        text = current_date_text("HH:mm", default_format="yyyy", now=self.MOMENT)
        assert text == "Tool: getDate, Result: 03:04"

    def test_jst(self) -> None:
        text = current_date_text(tz=JST, default_format="yyyy/MM/dd HH:mm:ss", now=self.MOMENT)
        assert text == "Tool: getDate, Result: 2026/01/05 12:04:09"

    def test_resolve_timezone(self) -> None:
        assert resolve_timezone(None) is timezone.utc
        assert str(resolve_timezone("Europe/Berlin")) == "Europe/Berlin"
        with pytest.raises(ToolError):
            resolve_timezone("Mars/Olympus_Mons")


class TestGetDocs:
    def test_read_one_with_or_without_suffix(self, docs_dir: Path) -> None:
        assert read_doc(docs_dir, "a-intro") == "First"
        assert read_doc(docs_dir, "a-intro.md") == "First"

    def test_missing_file(self, docs_dir: Path) -> None:
        with pytest.raises(ToolError, match="missing.md not found"):
            read_doc(docs_dir, "missing")

    def test_path_traversal_rejected(self, docs_dir: Path) -> None:
        (docs_dir.parent / "secret.md").write_text("nope")
        with pytest.raises(ToolError, match="Invalid file path"):
            read_doc(docs_dir, "../secret")

    def test_read_all_sorted(self, docs_dir: Path) -> None:
        assert read_all_docs(docs_dir) == (
            "# a-intro.md\n\nFirst\n\n---\n\n# b-guide.md\n\nSecond\n\n---\n\n"
        )

    def test_read_all_empty_and_missing(self, tmp_path: Path) -> None:
        assert read_all_docs(tmp_path).startswith("No .md files found")
        with pytest.raises(ToolError):
            read_all_docs(tmp_path / "absent")

    def test_bundled_docs_exist(self) -> None:
        assert "Opportunity stages" in read_doc(BUNDLED_DOCS_DIR, "data-model")


class TestConfig:
    def test_merge_keeps_unset_keys(self) -> None:
        merged = merge_config(DEFAULT_CONFIG, {"server": {"name": "Mine"}, "timezone": "UTC"})
        assert merged["server"] == {**DEFAULT_CONFIG["server"], "name": "Mine"}
        assert merged["timezone"] == "UTC"
        assert DEFAULT_CONFIG["server"]["name"] == "Generic MCP Server"

    def test_load_missing_file(self, tmp_path: Path) -> None:
        assert load_config(tmp_path) == DEFAULT_CONFIG

    def test_load_file(self, tmp_path: Path) -> None:
        (tmp_path / ".mcp-config.json").write_text(json.dumps({"features": {"biome": False}}))
        config = load_config(tmp_path)
        assert config["features"] == {"docs": True, "biome": False}

    @pytest.mark.parametrize("content", ["{not json", "[1, 2]"])
    def test_invalid_file_falls_back(self, tmp_path: Path, content: str) -> None:
        (tmp_path / ".mcp-config.json").write_text(content)
        assert load_config(tmp_path) == DEFAULT_CONFIG

    def test_env_root_wins(self, tmp_path: Path, monkeypatch) -> None:
        monkeypatch.setenv("MCP_PROJECT_ROOT", str(tmp_path))
        assert find_project_root(Path("/")) == tmp_path.resolve()

    def test_walks_up_to_marker(self, tmp_path: Path, monkeypatch) -> None:
        monkeypatch.delenv("MCP_PROJECT_ROOT", raising=False)
        (tmp_path / "package.json").write_text("{}")
        nested = tmp_path / "src" / "deep"
        nested.mkdir(parents=True)
        assert find_project_root(nested) == tmp_path.resolve()

    def test_path_report(self, tmp_path: Path) -> None:
        report = path_report(DEFAULT_CONFIG, tmp_path)
        assert f"Project Root: {tmp_path}" in report
        assert "exists: False" in report


class TestBiome:
    def test_command_for_format(self, tmp_path: Path) -> None:
        config = tmp_path / "biome.json"
        command = build_biome_command("format", ["a.ts", "b.ts"], config)
        assert command == ["npx", "@biomejs/biome", "format", f"--config-path={config}", "--write", "a.ts", "b.ts"]

    def test_command_for_lint_without_config(self) -> None:
        assert build_biome_command("lint", ["a.ts"], None) == ["npx", "@biomejs/biome", "lint", "a.ts"]

    def test_root_is_nearest_marker(self, tmp_path: Path) -> None:
        (tmp_path / "biome.json").write_text("{}")
        source = tmp_path / "web" / "src" / "app.ts"
        source.parent.mkdir(parents=True)
        source.write_text("")
        assert find_biome_root(str(source)) == tmp_path.resolve()

    def test_successful_run(self, tmp_path: Path) -> None:
        (tmp_path / "biome.json").write_text("{}")
        source = tmp_path / "app.ts"
        source.write_text("")
        calls = []

        def runner(command, **kwargs):
            calls.append((command, kwargs))
            return subprocess.CompletedProcess(command, 0, stdout="", stderr="")

        assert run_biome("format", [str(source)], runner=runner) == "Files formatted successfully"
        command, kwargs = calls[0]
        assert f"--config-path={tmp_path.resolve() / 'biome.json'}" in command
        assert kwargs["cwd"] == tmp_path.resolve()

    def test_failure_returns_report(self, tmp_path: Path) -> None:
        source = tmp_path / "app.ts"
        source.write_text("")

        def runner(command, **kwargs):
            raise subprocess.CalledProcessError(1, command, output="lint output", stderr="1 error")

        report = run_biome("lint", [str(source)], runner=runner)
        assert report.startswith("=== BIOME LINT ERROR DEBUG INFO ===")
        assert "Exit code: 1" in report
        assert "Stderr: 1 error" in report

    def test_missing_npx(self, tmp_path: Path) -> None:
        def runner(command, **kwargs):
            raise FileNotFoundError("npx")

        report = run_biome("lint", [str(tmp_path / "a.ts")], runner=runner)
        assert "Error type: FileNotFoundError" in report


class TestServers:
    def test_configured_server_tools(self, tmp_path: Path) -> None:
        server = build_server(project_root=tmp_path)
        assert tool_names(server) == {"ask", "getDate", "getDocs", "biome-lint", "biome-format"}

    def test_feature_flags(self, tmp_path: Path) -> None:
        config = merge_config(DEFAULT_CONFIG, {"features": {"docs": False, "biome": False}})
        server = build_server(config, project_root=tmp_path)
        assert tool_names(server) == {"ask", "getDate"}

    def test_local_server_tools(self) -> None:
        assert tool_names(build_local_server()) == {"ask", "getDate", "getDocs"}

    def test_unknown_config_timezone_falls_back_to_utc(self, tmp_path: Path) -> None:
        assert configured_timezone("Mars/Olympus_Mons") is timezone.utc
        assert str(configured_timezone("Asia/Tokyo")) == "Asia/Tokyo"

        config = merge_config(DEFAULT_CONFIG, {"timezone": "Mars/Olympus_Mons"})
        assert "getDate" in tool_names(build_server(config, project_root=tmp_path))

    def test_argument_names_in_schema(self, tmp_path: Path) -> None:
        tools = {tool.name: tool for tool in asyncio.run(build_server(project_root=tmp_path).list_tools())}
        assert set(tools["ask"].inputSchema["properties"]) == {
            "question", "optionA", "optionB", "summary", "additionalOptions",
        }
        assert set(tools["getDocs"].inputSchema["properties"]) == {"fileName", "debug"}
        assert set(tools["biome-lint"].inputSchema["properties"]) == {"paths", "configPath"}


class TestToolCalls:
    def test_ask_over_session(self) -> None:
        result = call_tool(
            build_local_server(),
            "ask",
            {"question": "Q", "optionA": "a", "optionB": "b", "additionalOptions": ["c"]},
        )
        assert not result.isError
        assert result.content[0].text == format_question("Q", "a", "b", "", ["c"])

    def test_get_docs_over_session(self) -> None:
        result = call_tool(build_local_server(), "getDocs", {"fileName": "data-model"})
        assert not result.isError
        assert "Opportunity stages" in result.content[0].text

    def test_tool_failure_is_an_error_result(self) -> None:
        result = call_tool(build_local_server(), "getDocs", {"fileName": "missing"})
        assert result.isError
        assert "missing.md not found" in result.content[0].text
