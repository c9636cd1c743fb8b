"""Block template parsing ("set %sprite x to %value|and wait")."""

import re
from dataclasses import dataclass, field
from typing import Optional, Union


PARAM_RE = re.compile(r"[%$]([A-Za-z_]\w*)(?:=([\w.]+))?")
STYLE_RE = re.compile(r"(\*\*[^*]+\*\*|_[^_]+_)")


@dataclass
class LabelPart:
    text: str
    style: list[str] = field(default_factory=list)
    kind: str = field(default="label", init=False)


@dataclass
class ParamPart:
    name: str
    shadow_block_id: Optional[str] = None
    kind: str = field(default="param", init=False)


@dataclass
class BreakPart:
    kind: str = field(default="break", init=False)


Part = Union[LabelPart, ParamPart, BreakPart]


def parse_block_template(text: str) -> list[Part]:
    """Split a block template into label, parameter and break parts.

    `%name` and `$name` reference parameters (an optional `=shadow_id`
    suffix names the placeholder block), `|` starts a new input row,
    `**text**` is bold and `_text_` is italics.
    """
    parts: list[Part] = []
    if not text:
        return parts

    for i, segment in enumerate(text.split("|")):
        if i:
            parts.append(BreakPart())
        pos = 0
        for m in PARAM_RE.finditer(segment):
            _add_labels(parts, segment[pos:m.start()])
            parts.append(ParamPart(name=m.group(1), shadow_block_id=m.group(2)))
            pos = m.end()
        _add_labels(parts, segment[pos:])

    return parts


def _add_labels(parts: list, text: str):
    if not text:
        return
    for chunk in STYLE_RE.split(text):
        if not chunk:
            continue
        if chunk.startswith("**") and chunk.endswith("**") and len(chunk) > 4:
            parts.append(LabelPart(text=chunk[2:-2], style=["bold"]))
        elif chunk.startswith("_") and chunk.endswith("_") and len(chunk) > 2:
            parts.append(LabelPart(text=chunk[1:-1], style=["italics"]))
        else:
            parts.append(LabelPart(text=chunk))


def split_inputs(parts: list[Part]) -> list[list[Part]]:
    """Group parts into input rows; each parameter closes the row it ends."""
    rows: list[list[Part]] = []
    current: list[Part] = []

    for part in parts:
        if part.kind == "break":
            if current:
                rows.append(current)
                current = []
        elif part.kind == "param":
            current.append(part)
            rows.append(current)
            current = []
        else:
            current.append(part)

    if current:
        rows.append(current)
    return rows


def template_parameters(parts: list[Part]) -> list[str]:
    return [p.name for p in parts if p.kind == "param"]


def remove_outer_space(text: str) -> str:
    """Trim a single space from each end, if present."""
    if text == " ":
        return ""
    if len(text) > 1:
        start = 1 if text[0] == " " else 0
        end = len(text) - 1 if text[-1] == " " else len(text)
        return text[start:end]
    return text
