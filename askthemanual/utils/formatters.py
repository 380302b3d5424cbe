"""
Response formatting utilities.

Renders the markdown subset used by Gemini answers into HTML, and
formats grounding citations for display.
"""

import html
import re
from typing import List, Optional, Sequence, Tuple

from askthemanual.core.models import Citation

_BOLD = re.compile(r"\*\*(.*?)\*\*|__(.*?)__")
_ITALIC = re.compile(r"\*(.*?)\*|_(.*?)_")
_CODE = re.compile(r"`([^`]+)`")
_ORDERED_ITEM = re.compile(r"^\s*\d+\.\s(.*)")
_UNORDERED_ITEM = re.compile(r"^\s*[\*\-]\s(.*)")


class MarkdownRenderer:
    """Line-based renderer for a small markdown subset.

    Handles paragraphs, ordered and unordered lists, bold, italics and
    inline code. Every line is HTML-escaped before any markup is added,
    so text coming back from the model cannot inject tags. The renderer
    keeps no state between calls.

    Parameters
    ----------
    paragraph_class, ordered_list_class, unordered_list_class, code_class : str
        CSS classes placed on the generated tags. Pass empty strings for
        bare tags.
    """

    def __init__(
        self,
        paragraph_class: str = "my-2 leading-relaxed",
        ordered_list_class: str = "list-decimal list-inside my-2 pl-5 space-y-1",
        unordered_list_class: str = "list-disc list-inside my-2 pl-5 space-y-1",
        code_class: str = "bg-surface-soft px-1.5 py-0.5 rounded-md font-mono text-xs",
    ):
        self.paragraph_class = paragraph_class
        self.list_classes = {
            "ol": ordered_list_class,
            "ul": unordered_list_class,
        }
        self.code_class = code_class

    @staticmethod
    def _open_tag(tag: str, css_class: str) -> str:
        if css_class:
            return f'<{tag} class="{css_class}">'
        return f"<{tag}>"

    def render_inline(self, line: str) -> str:
        """Escape a single line and apply bold, italic and code spans."""
        line = html.escape(line)
        line = _BOLD.sub(r"<strong>\1\2</strong>", line)
        line = _ITALIC.sub(r"<em>\1\2</em>", line)
        return _CODE.sub(
            lambda m: f"{self._open_tag('code', self.code_class)}{m.group(1)}</code>",
            line,
        )

    def render(self, text: Optional[str]) -> str:
        """Render ``text`` to HTML.

        Parameters
        ----------
        text : Optional[str]
            Markdown-ish text as returned by the model.

        Returns
        -------
        str
            HTML fragment. Empty string for empty input.
        """
        if not text:
            return ""

        output: List[str] = []
        paragraph = ""
        list_type: Optional[str] = None

        def flush_paragraph() -> None:
            nonlocal paragraph
            if paragraph:
                output.append(
                    f"{self._open_tag('p', self.paragraph_class)}{paragraph}</p>"
                )
                paragraph = ""

        def close_list() -> None:
            nonlocal list_type
            if list_type:
                output.append(f"</{list_type}>")
                list_type = None

        def add_item(kind: str, content: str) -> None:
            nonlocal list_type
            flush_paragraph()
            if list_type != kind:
                close_list()
                output.append(self._open_tag(kind, self.list_classes[kind]))
                list_type = kind
            output.append(f"<li>{content}</li>")

        for raw_line in text.split("\n"):
            line = self.render_inline(raw_line)

            ordered = _ORDERED_ITEM.match(line)
            unordered = None if ordered else _UNORDERED_ITEM.match(line)

            if ordered:
                add_item("ol", ordered.group(1))
            elif unordered:
                add_item("ul", unordered.group(1))
            else:
                close_list()
                if line.strip() == "":
                    flush_paragraph()
                else:
                    paragraph += ("<br/>" if paragraph else "") + line

        flush_paragraph()
        close_list()

        return "".join(output)


_default_renderer = MarkdownRenderer()


def render_markdown(text: Optional[str]) -> str:
    """Render ``text`` with the default :class:`MarkdownRenderer`."""
    return _default_renderer.render(text)


def format_sources(citations: Sequence[Citation]) -> List[Tuple[str, str]]:
    """Return labelled excerpts for citations that carry text.

    Labels keep the citation's position in the answer, so a chunk without
    an excerpt leaves a gap ("Source 1", "Source 3").

    Parameters
    ----------
    citations : Sequence[Citation]
        Grounding chunks attached to an assistant turn.

    Returns
    -------
    List[Tuple[str, str]]
        ``("Source N", excerpt)`` pairs in citation order.
    """
    return [
        (f"Source {index}", citation.excerpt_text)
        for index, citation in enumerate(citations, start=1)
        if citation.excerpt_text
    ]
