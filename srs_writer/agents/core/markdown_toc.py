"""
Markdown TOC - Heading tree with stable section ids (sids)

A sid is the path of slugified heading titles from the top-level heading down,
e.g. "# Chapter One" > "## Sub Section" gives /chapter-one/sub-section.
Slugs follow GitHub's anchor rules (lowercase, punctuation dropped, spaces to
dashes); a repeated sid gets a numeric suffix (-1, -2, ...).
"""
import re
from typing import Dict, List, Tuple

from srs_writer.agents.schemas import TocNode

HEADING_PATTERN = re.compile(r"^(#{1,6})[ \t]+(.+?)(?:[ \t]+#+)?[ \t]*$")
FENCE_PATTERN = re.compile(r"^[ \t]{0,3}(`{3,}|~{3,})")


def slugify(title: str) -> str:
    """GitHub-style heading slug"""
    slug = title.strip().lower()
    slug = re.sub(r"[^\w\- ]", "", slug)
    return slug.replace(" ", "-")


def normalize_title(title: str) -> str:
    """Title without markdown emphasis, collapsed whitespace, lowercase"""
    text = re.sub(r"[*_`]", "", title)
    return re.sub(r"\s+", " ", text).strip().lower()


def split_lines(content: str) -> Tuple[List[str], bool]:
    """Split a document into lines, remembering whether it ended with a newline"""
    return content.splitlines(), content.endswith("\n")


def join_lines(lines: List[str], trailing_newline: bool) -> str:
    text = "\n".join(lines)
    return text + "\n" if trailing_newline and lines else text


def parse_toc(lines: List[str]) -> List[TocNode]:
    """
    Build the heading tree of a document

    Args:
        lines: Document lines (no line terminators)

    Returns:
        Top-level TocNodes; each node's line/end_line are 1-based and inclusive
    """
    headings = []
    fence = None
    for index, line in enumerate(lines):
        fence_match = FENCE_PATTERN.match(line)
        if fence_match:
            marker = fence_match.group(1)
            if fence is None:
                fence = marker[0]
            elif marker[0] == fence:
                fence = None
            continue
        if fence is not None:
            continue

        match = HEADING_PATTERN.match(line)
        if match:
            headings.append((index + 1, len(match.group(1)), match.group(2).strip()))

    roots: List[TocNode] = []
    stack: List[TocNode] = []
    used: Dict[str, int] = {}

    for position, (line_number, level, title) in enumerate(headings):
        end_line = len(lines)
        for next_line, next_level, _ in headings[position + 1:]:
            if next_level <= level:
                end_line = next_line - 1
                break

        while stack and stack[-1].level >= level:
            stack.pop()
        parent_sid = stack[-1].sid if stack else ""

        sid = f"{parent_sid}/{slugify(title) or 'section'}"
        if sid in used:
            used[sid] += 1
            sid = f"{sid}-{used[sid]}"
        used.setdefault(sid, 0)

        node = TocNode(
            sid=sid,
            title=title,
            normalized_title=normalize_title(title),
            level=level,
            line=line_number,
            end_line=end_line,
        )
        if stack:
            stack[-1].children.append(node)
        else:
            roots.append(node)
        stack.append(node)

    return roots


def flatten_toc(nodes: List[TocNode]) -> List[TocNode]:
    """Depth-first, document-order list of every node"""
    flat = []
    for node in nodes:
        flat.append(node)
        flat.extend(flatten_toc(node.children))
    return flat


def render_toc(nodes: List[TocNode]) -> str:
    """Indented outline of the tree, one "title (sid)" per line"""
    return "\n".join(
        f"{'  ' * (node.level - 1)}- {node.title} ({node.sid})" for node in flatten_toc(nodes)
    )


__all__ = [
    "slugify",
    "normalize_title",
    "split_lines",
    "join_lines",
    "parse_toc",
    "flatten_toc",
    "render_toc",
]
