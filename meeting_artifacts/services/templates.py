# meeting_artifacts/services/templates.py
from __future__ import annotations

import re
from pathlib import Path
from typing import Mapping, Optional

from meeting_artifacts.core.config import ConfigurationError

# Any $UPPER_CASE$ token left after substitution.
_RESIDUAL_PLACEHOLDER = re.compile(r"\$[A-Z_][A-Z0-9_]*\$")

# KEY="value" where a quoted value may run over several lines and ends at a
# quote closing its line (or at end of input). Unquoted values are one line.
_PROPERTY_LINE = re.compile(
    r'^([A-Z_][A-Z0-9_]*)=(?:"(.*?)(?:"[ \t\r]*$|\Z)|([^"\n]*?)[ \t\r]*$)',
    re.MULTILINE | re.DOTALL,
)


def substitute(template: str, variables: Mapping[str, Optional[str]]) -> str:
    """
    Replace every `$KEY$` in `template` with the matching value.

    - Placeholders without a value are erased from the template first.
    - Values are then inserted literally in a single pass: text coming from
      a value (say an issue title mentioning `$NODE_OPTIONS$`) is never
      expanded or erased.
    - None values render as an empty string.
    - Keys are case-sensitive.
    """
    if not template:
        return ""
    variables = variables or {}

    # Longest keys first so $VAR_NAME$ is never shadowed by $VAR$.
    known = [re.escape(f"${key}$") for key in sorted(variables, key=len, reverse=True)]
    tokens = re.compile("|".join(known + [_RESIDUAL_PLACEHOLDER.pattern]))

    def _keep_known(match: re.Match) -> str:
        token = match.group(0)
        return token if token[1:-1] in variables else ""

    # Erasing one token can butt two `$` together, so repeat until stable.
    rendered = template
    while True:
        cleaned = tokens.sub(_keep_known, rendered)
        if cleaned == rendered:
            break
        rendered = cleaned

    if not known:
        return rendered
    return re.compile("|".join(known)).sub(
        lambda match: variables[match.group(0)[1:-1]] or "", rendered
    )


def parse_properties(text: str) -> dict[str, str]:
    """
    Extract KEY="value" assignments from a property block.

    Surrounding quotes are stripped. A quoted value may span several lines
    and ends at the first line closed by a quote. Lines that do not start
    with an upper-case key followed by `=` are ignored, and so are unquoted
    values containing a stray quote.
    """
    properties: dict[str, str] = {}
    if not text:
        return properties

    for match in _PROPERTY_LINE.finditer(text):
        key, quoted, bare = match.groups()
        properties[key] = quoted if quoted is not None else bare
    return properties


def load_template(path: Path) -> str:
    """
    Read a template or property file as UTF-8 text.
    """
    try:
        return Path(path).read_text(encoding="utf-8")
    except FileNotFoundError as exc:
        raise ConfigurationError(f"Template file not found: {path}") from exc
