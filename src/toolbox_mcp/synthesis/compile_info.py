"""Per-symbol parameter bookkeeping shared by placeholders and strategies."""

import re
from dataclasses import dataclass, field
from typing import Optional

from ..catalog import Parameter, Symbol
from ..catalog.apis import ARROW_FUNCTION_RE


CALLBACK_ARGS_RE = re.compile(r"^\(([^)]*)\)\s*=>")


@dataclass
class HandlerArg:
    name: str
    type: str = "any"


@dataclass
class CompileInfo:
    parameters: list[Parameter] = field(default_factory=list)
    this_parameter: Optional[Parameter] = None
    handler_args: list[HandlerArg] = field(default_factory=list)
    definition_name_to_param: dict[str, Parameter] = field(default_factory=dict)


def _callback_args(type_name: str) -> list[HandlerArg]:
    """Argument names of a callback type such as "(x: number, y: number) => void"."""
    m = CALLBACK_ARGS_RE.match(type_name or "")
    if not m:
        return []
    args = []
    for raw in m.group(1).split(","):
        raw = raw.strip()
        if not raw:
            continue
        name, _, arg_type = raw.partition(":")
        args.append(HandlerArg(name=name.strip(), type=arg_type.strip() or "any"))
    return args


def compile_info(symbol: Symbol) -> CompileInfo:
    """Collect parameters, the implicit `this` parameter and handler arguments."""
    attrs = symbol.attributes
    info = CompileInfo(parameters=list(symbol.parameters))

    if symbol.is_instance:
        info.this_parameter = Parameter(
            definition_name="this",
            actual_name="this",
            type=symbol.namespace,
            default_value=attrs.param_defaults.get("this"),
        )

    for p in symbol.parameters:
        info.definition_name_to_param[p.definition_name] = p

    if attrs.handler_args:
        info.handler_args = [HandlerArg(name=n) for n in attrs.handler_args]
    else:
        callback = next((p for p in symbol.parameters if ARROW_FUNCTION_RE.match(p.type or "")), None)
        if callback:
            info.handler_args = _callback_args(callback.type)

    return info
