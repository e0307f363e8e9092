"""Rendering of ``{{name}}`` placeholders in manifest subset queries."""

import re

from pgsample.exceptions import TemplateError

# {{{name}}} is the unescaped mustache form; no escaping happens either way
PLACEHOLDER_PATTERN = re.compile(
    r"\{\{\{\s*([A-Za-z0-9_.\-]+)\s*\}\}\}|\{\{\s*([A-Za-z0-9_.\-]+)\s*\}\}"
)


def render_query(query: str, variables: dict[str, str], table: str | None = None) -> str:
    """
    Substitute manifest variables into a subset query.

    Both ``{{name}}`` and ``{{{name}}}`` are accepted.

    Placeholders naming an unknown variable are left untouched. Values are
    inserted verbatim, without any escaping.

    Args:
        query: Query text containing ``{{name}}`` placeholders
        variables: The manifest ``vars`` mapping
        table: Table the query belongs to, for error messages

    Returns:
        The rendered query

    Raises:
        TemplateError: If an opening ``{{`` is never closed

    Examples:
        >>> render_query("SELECT * FROM users WHERE {{min_id}} < id", {"min_id": "1000"})
        'SELECT * FROM users WHERE 1000 < id'
    """
    unclosed = query.rfind("{{")
    if unclosed != -1 and query.find("}}", unclosed) == -1:
        raise TemplateError(query, f"unclosed tag at position {unclosed}", table=table)

    def substitute(match: re.Match) -> str:
        name = match.group(1) or match.group(2)
        if name in variables:
            return variables[name]
        return match.group(0)

    return PLACEHOLDER_PATTERN.sub(substitute, query)
