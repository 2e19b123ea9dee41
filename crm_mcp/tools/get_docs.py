"""
getDocs - read Markdown documents from the docs directory.
"""
from pathlib import Path
from typing import Callable, Optional

from mcp.server.fastmcp import FastMCP
from mcp.server.fastmcp.exceptions import ToolError

from crm.core.logging_config import get_logger

logger = get_logger(__name__)


def read_doc(docs_dir: Path, file_name: str) -> str:
    """
    Content of one document.

    ".md" is appended when missing. Names resolving outside docs_dir are
    rejected.

    Raises:
        ToolError: For paths outside docs_dir or missing files
    """
    if not file_name.endswith(".md"):
        file_name = f"{file_name}.md"

    root = docs_dir.resolve()
    target = (root / file_name).resolve()
    if not target.is_relative_to(root):
        logger.warning(f"Rejected doc path outside {root}: {file_name}")
        raise ToolError("Invalid file path")
    if not target.is_file():
        raise ToolError(f"{file_name} not found")

    return target.read_text(encoding="utf-8")


def read_all_docs(docs_dir: Path) -> str:
    """Every .md file in docs_dir, each under a "# name" heading."""
    if not docs_dir.is_dir():
        raise ToolError(f"Docs directory not found ({docs_dir})")

    files = sorted(p for p in docs_dir.iterdir() if p.is_file() and p.suffix == ".md")
    if not files:
        return f"No .md files found in the docs directory ({docs_dir})"

    return "".join(
        f"# {path.name}\n\n{path.read_text(encoding='utf-8')}\n\n---\n\n" for path in files
    )


def register_get_docs_tool(
    server: FastMCP,
    docs_dir: Path,
    report: Optional[Callable[[], str]] = None,
) -> None:
    """
    Args:
        docs_dir: Directory holding the documents
        report: Produces the text returned when debug=True
    """
    @server.tool(
        name="getDocs",
        description=(
            "Read Markdown files from the docs directory. Give fileName for one "
            "document, or omit it to get every document."
        ),
    )
    def get_docs(fileName: Optional[str] = None, debug: bool = False) -> str:
        if debug:
            return report() if report else f"Docs Directory: {docs_dir}"
        if fileName:
            return read_doc(docs_dir, fileName)
        return read_all_docs(docs_dir)
