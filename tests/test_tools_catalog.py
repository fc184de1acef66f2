import logging

import pytest

from shark.tools import get_tool_registrations
from shark.tools.catalog import ToolCatalog, build_catalog, normalize_tool_name
from shark.tools.registry import ToolRegistration
from shark.tools.rust_toolchain import RustToolchainSwitcher
from shark.tools.web_search import WebSearchTool


def test_registrations_cover_builtin_tools() -> None:
    names = [reg.name for reg in get_tool_registrations()]
    assert names == ["ddg_searcher", "rust_toolchain_switcher"]


def test_build_catalog_instantiates_known_tools() -> None:
    catalog = build_catalog([" Rust_Toolchain_Switcher ", "ddg_searcher"])

    assert list(catalog) == ["rust_toolchain_switcher", "ddg_searcher"]
    assert isinstance(catalog["rust_toolchain_switcher"], RustToolchainSwitcher)
    assert isinstance(catalog.lookup("DDG_SEARCHER"), WebSearchTool)


def test_build_catalog_warns_and_skips_unknown(caplog: pytest.LogCaptureFixture) -> None:
    with caplog.at_level(logging.WARNING, logger="shark.tools"):
        catalog = build_catalog(["time_machine", "ddg_searcher"])

    assert list(catalog) == ["ddg_searcher"]
    warnings = [r for r in caplog.records if r.name == "shark.tools" and r.levelno == logging.WARNING]
    assert [r.getMessage() for r in warnings] == ["unknown tool: time_machine"]


def test_build_catalog_deduplicates() -> None:
    created: list[str] = []

    def factory():
        created.append("echo")
        return object()

    registrations = [ToolRegistration(name="echo", factory=factory)]
    catalog = build_catalog(["echo", "ECHO", " echo"], registrations=registrations)

    assert len(catalog) == 1
    assert created == ["echo"]


def test_build_catalog_with_no_names_is_empty() -> None:
    catalog = build_catalog([])
    assert len(catalog) == 0
    assert not catalog
    assert catalog.descriptions() == {}


def test_catalog_is_read_only(echo_tool) -> None:
    catalog = ToolCatalog({"Echo": echo_tool})

    assert catalog["echo"] is echo_tool
    assert catalog.lookup("missing") is None
    with pytest.raises(TypeError):
        catalog._tools["other"] = echo_tool  # type: ignore[index]


def test_catalog_descriptions_and_descriptors(echo_tool, failing_tool) -> None:
    catalog = ToolCatalog({"echo": echo_tool, "broken": failing_tool})

    assert catalog.descriptions() == {"echo": "Echo the question back", "broken": "Always fails"}
    assert [d.name for d in catalog.descriptors()] == ["echo", "broken"]


def test_normalize_tool_name() -> None:
    assert normalize_tool_name("  DDG_Searcher\n") == "ddg_searcher"
