"""ask - format a multiple-choice question for the agent host."""
from typing import List, Optional

from mcp.server.fastmcp import FastMCP

ANSWER_FOOTER = "\nReply with /answer <number>."


def format_question(
    question: str,
    option_a: str,
    option_b: str,
    summary: str = "",
    additional_options: Optional[List[str]] = None,
) -> str:
    """
    Build the question text.

    Options are numbered from 1; additional options continue from 3.
    """
    text = f"❓ {question}\n"
    if summary and summary.strip():
        text += f"{summary}\n"

    text += "\nOPTIONS:\n"
    text += f"1. {option_a}\n"
    text += f"2. {option_b}\n"
    for number, option in enumerate(additional_options or [], start=3):
        text += f"{number}. {option}\n"

    return text + ANSWER_FOOTER


def register_ask_tool(server: FastMCP) -> None:
    # Argument names are the published tool schema.
    @server.tool(
        name="ask",
        description=(
            "Format a question with numbered options for the user. "
            "Give the question, two options and optionally a summary and more options."
        ),
    )
    def ask(
        question: str,
        optionA: str,
        optionB: str,
        summary: Optional[str] = None,
        additionalOptions: Optional[List[str]] = None,
    ) -> str:
        return format_question(question, optionA, optionB, summary or "", additionalOptions)
