"""Default renderer turning one content artifact into an HTML profile.

The content mapping is laid out as Markdown (one section per sheet, a
field table and the comparison table), converted with ``markdown2``,
cleaned, and injected into the HTML profile template at the
``{profile_body}`` placeholder. Other ``{name}`` placeholders are filled
from the content itself, so ``{area}`` names the council area.

Every failure here propagates; the stage-2 task reports it as a render
fault for that area.
"""

from __future__ import annotations

import html
import re
from collections.abc import Mapping
from pathlib import Path
from typing import Any

import markdown2
import pandas as pd

from src.config import MISSING_VALUE_TEXT, PROFILE_FILENAME_SUFFIX

from .content import FIELD_SEPARATOR, TABLE_FIELD

_PLACEHOLDER = re.compile(r"\{([a-zA-Z0-9_]+)\}")


def profile_filename(area: str, suffix: str = PROFILE_FILENAME_SUFFIX) -> str:
    """Output filename for ``area``: lower-cased, spaces to hyphens, plus suffix.

    Examples
    --------
    >>> profile_filename("Na h-Eileanan Siar")
    'na-h-eileanan-siar-council-profile.html'
    """
    return area.lower().replace(" ", "-") + suffix


def profile_output_path(output_dir: Path, area: str) -> Path:
    return Path(output_dir) / profile_filename(area)


def load_template(path: Path) -> str:
    """Read a UTF-8 template file.

    Raises
    ------
    FileNotFoundError
        If the file does not exist.
    """
    with Path(path).open("r", encoding="utf-8") as fh:
        return fh.read()


def render_template(template_content: str, context: Mapping[str, Any]) -> str:
    """Replace ``{name}`` placeholders with values from ``context``.

    Unknown placeholders are filled with ``MISSING_VALUE_TEXT``. Values are
    inserted as-is; :func:`render_profile` escapes content values first.

    Examples
    --------
    >>> render_template("<h1>{area}</h1>{x}", {"area": "Fife"})
    '<h1>Fife</h1>Not available'
    """

    def replace_func(match: re.Match[str]) -> str:
        return str(context.get(match.group(1), MISSING_VALUE_TEXT))

    return _PLACEHOLDER.sub(replace_func, template_content)


def _section_title(prefix: str) -> str:
    return html.escape(prefix.replace("_", " ").title())


def _escape_cell(value: Any) -> str:
    return html.escape(str(value)).replace("|", "\\|").replace("\n", " ")


def content_to_markdown(content: Mapping[str, Any]) -> str:
    """Lay out a content mapping as Markdown.

    Fields named ``<sheet>__<column>`` are grouped into one section per
    sheet, in first-seen order. Scalar fields become a two-column table;
    DataFrame fields are embedded as HTML tables. Fields without a sheet
    prefix, other than ``area``, are listed under "Other". Content text is
    HTML-escaped; embedded tables are escaped by pandas.
    """
    sections: dict[str, list[tuple[str, Any]]] = {}
    for name, value in content.items():
        if name == "area":
            continue
        prefix, sep, column = name.partition(FIELD_SEPARATOR)
        if not sep:
            prefix, column = "other", name
        sections.setdefault(prefix, []).append((column, value))

    lines = [f"# {_escape_cell(content.get('area', MISSING_VALUE_TEXT))}", ""]
    for prefix, fields in sections.items():
        lines.extend([f"## {_section_title(prefix)}", ""])
        scalars = [(c, v) for c, v in fields if not isinstance(v, pd.DataFrame)]
        tables = [(c, v) for c, v in fields if isinstance(v, pd.DataFrame)]
        if scalars:
            lines.extend(["| Measure | Value |", "| --- | --- |"])
            for column, value in scalars:
                lines.append(f"| {_section_title(column)} | {_escape_cell(value)} |")
            lines.append("")
        for column, table in tables:
            if column != TABLE_FIELD:
                lines.extend([f"### {_section_title(column)}", ""])
            lines.extend([table.to_html(index=False, border=0, na_rep=MISSING_VALUE_TEXT), ""])
    return "\n".join(lines)


def clean_html_output(html_content: str) -> str:
    r"""Remove empty paragraphs, repeated breaks and blank-line runs.

    Raises
    ------
    TypeError
        If input is not str.

    Examples
    --------
    >>> clean_html_output("<p></p><h1>Hi</h1><p>&nbsp;</p><br><br>")
    '<h1>Hi</h1><br>'
    """
    if not isinstance(html_content, str):
        raise TypeError("Input must be a string.")
    html_content = re.sub(r"<p>\s*</p>", "", html_content)
    html_content = re.sub(r"<p>&nbsp;</p>", "", html_content)
    html_content = re.sub(r"<p><br\s*/?>\s*</p>", "", html_content)
    html_content = re.sub(r"(<br\s*/?>\s*){2,}", "<br>", html_content)
    html_content = re.sub(r"\n\s*\n\s*\n+", "\n\n", html_content)
    html_content = re.sub(r">\s+<", "><", html_content)
    return html_content.strip()


def render_profile(template_path: Path, output_path: Path, content: Mapping[str, Any]) -> None:
    """Render ``content`` into ``output_path`` using the HTML template.

    Parameters
    ----------
    template_path : Path
        HTML template with a ``{profile_body}`` placeholder.
    output_path : Path
        Destination file; parent directories are created.
    content : Mapping[str, Any]
        One council area's content artifact.
    """
    body = markdown2.markdown(content_to_markdown(content), extras=["tables"])
    context = {
        key: html.escape(str(value))
        for key, value in content.items()
        if not isinstance(value, pd.DataFrame)
    }
    context["profile_body"] = clean_html_output(body)
    page = render_template(load_template(template_path), context)
    output_path = Path(output_path)
    output_path.parent.mkdir(parents=True, exist_ok=True)
    output_path.write_text(page, encoding="utf-8")
