"""Shared fixtures and helpers for tests."""

import time
from typing import Any, Callable

import pytest

from hcltide.syntax.tree import SyntaxNode, SyntaxTree, TreeBuilder


# ---------------------------------------------------------------------------
# Auto-marker: tests that start real processes are "integration"
# ---------------------------------------------------------------------------


def pytest_collection_modifyitems(items: list[pytest.Item]) -> None:
    for item in items:
        if "qprocess" in item.name or "real_process" in item.name:
            item.add_marker(pytest.mark.integration)
        else:
            item.add_marker(pytest.mark.unit)


# ---------------------------------------------------------------------------
# Hand-built HCL shaped trees
# ---------------------------------------------------------------------------


def string_lit(text: str) -> tuple[str, list]:
    """A quoted string label as the HCL grammar shapes it."""
    children: list[Any] = [("quoted_template_start", '"')]
    if text:
        children.append(("template_literal", text))
    children.append(("quoted_template_end", '"'))
    return ("string_lit", children)


def block(*parts: Any, body: list | None = None) -> tuple[str, list]:
    children: list[Any] = list(parts) + [("block_start", "{")]
    if body:
        children.append(("body", body))
    children.append(("block_end", "}"))
    return ("block", children)


def attribute(name: str, value: str) -> tuple[str, list]:
    return (
        "attribute",
        [
            ("identifier", name),
            ("=", "="),
            ("expression", [("literal_value", value)]),
        ],
    )


def config(*items: Any) -> tuple[str, list]:
    return ("config_file", [("body", list(items))])


def build_tree(source: str, shape: tuple[str, list]) -> SyntaxTree:
    return TreeBuilder(source).build(shape)


def find_nodes(tree: SyntaxTree, node_type: str) -> list[SyntaxNode]:
    return [node for node in tree.walk() if node.type == node_type]


def wait_until(app, predicate: Callable[[], bool], timeout: float = 5.0) -> bool:
    """Pump the Qt event loop until predicate() holds or the timeout expires."""
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        app.processEvents()
        if predicate():
            return True
        time.sleep(0.01)
    app.processEvents()
    return predicate()


@pytest.fixture(scope="session")
def qt_app():
    qt_core = pytest.importorskip("PySide6.QtCore")
    app = qt_core.QCoreApplication.instance()
    if app is None:
        app = qt_core.QCoreApplication([])
    return app


@pytest.fixture
def resource_tree() -> SyntaxTree:
    source = 'resource "aws_instance" "web" {\n  ami = "abc"\n}\n'
    return build_tree(
        source,
        config(
            block(
                ("identifier", "resource"),
                string_lit("aws_instance"),
                string_lit("web"),
                body=[
                    (
                        "attribute",
                        [
                            ("identifier", "ami"),
                            ("=", "="),
                            ("expression", [string_lit("abc")]),
                        ],
                    )
                ],
            )
        ),
    )
