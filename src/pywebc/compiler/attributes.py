"""Attribute prefixes, evaluation, merging and serialization."""

import asyncio
import re
from dataclasses import dataclass, replace
from enum import Enum
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence, Tuple

from pywebc.compiler.nodes import Attribute
from pywebc.compiler.query import Attrs
from pywebc.exceptions import EvaluationError
from pywebc.runtime.escape import escape_attribute
from pywebc.runtime.evaluator import ExpressionEvaluator

PROP_PREFIX = "@"
DYNAMIC_PREFIX = ":"
DYNAMIC_PROP_PREFIX = ":@"

CONTENT_PROPERTIES = (Attrs.HTML, Attrs.TEXT, Attrs.RAWHTML)
MERGED_ATTRIBUTES = ("class", "style")

_BARE_CLASS = re.compile(r"(?<![\w'\"\.\[])class(?![\w'\"])")


class Evaluation(Enum):
    LITERAL = "literal"
    SCRIPT = "script"


class Privacy(Enum):
    PUBLIC = "public"
    PRIVATE = "private"


@dataclass(frozen=True)
class EvaluatedAttribute:
    name: str
    value: Any
    raw_name: str = ""
    evaluation: Evaluation = Evaluation.LITERAL
    privacy: Privacy = Privacy.PUBLIC

    @property
    def is_public(self) -> bool:
        return self.privacy is Privacy.PUBLIC


def peek_attribute(raw_name: str) -> Tuple[str, Evaluation, Privacy]:
    """Split a raw attribute name into (name, evaluation, privacy)."""
    if raw_name.startswith(Attrs.PREFIX):
        return raw_name, Evaluation.LITERAL, Privacy.PRIVATE
    if raw_name in CONTENT_PROPERTIES:
        return raw_name, Evaluation.SCRIPT, Privacy.PRIVATE
    if raw_name.startswith(DYNAMIC_PROP_PREFIX):
        return raw_name[len(DYNAMIC_PROP_PREFIX) :], Evaluation.SCRIPT, Privacy.PRIVATE
    if raw_name.startswith(DYNAMIC_PREFIX):
        return raw_name[len(DYNAMIC_PREFIX) :], Evaluation.SCRIPT, Privacy.PUBLIC
    if raw_name.startswith(PROP_PREFIX):
        return raw_name[len(PROP_PREFIX) :], Evaluation.LITERAL, Privacy.PRIVATE
    return raw_name, Evaluation.LITERAL, Privacy.PUBLIC


def literal(name: str, value: Any) -> EvaluatedAttribute:
    return EvaluatedAttribute(name=name, value=value, raw_name=name)


def _failure_message(raw_name: str, expression: str, error: BaseException) -> str:
    message = f'Evaluating a dynamic attribute failed: `{raw_name}="{expression}"`.'
    cause = error.__cause__ if isinstance(error, EvaluationError) else error
    if isinstance(cause, SyntaxError) and _BARE_CLASS.search(expression):
        return (
            f"{message} `class` is a reserved word in Python. "
            "Change `class` to `this['class']` instead!"
        )
    return f"{message}\nOriginal error message: {error}"


async def evaluate_expression(
    evaluator: ExpressionEvaluator,
    raw_name: str,
    expression: str,
    data: Mapping[str, Any],
    file_path: Optional[str] = None,
) -> Any:
    try:
        names = evaluator.free_names(expression)
        return await evaluator.evaluate(expression, names, data, file_path)
    except Exception as e:
        raise EvaluationError(_failure_message(raw_name, expression, e), file_path) from e


async def evaluate_attribute(
    attribute: Attribute,
    data: Mapping[str, Any],
    evaluator: ExpressionEvaluator,
    file_path: Optional[str] = None,
) -> EvaluatedAttribute:
    name, evaluation, privacy = peek_attribute(attribute.name)
    value: Any = attribute.value
    if evaluation is Evaluation.SCRIPT:
        value = await evaluate_expression(evaluator, attribute.name, attribute.value, data, file_path)
    return EvaluatedAttribute(
        name=name,
        value=value,
        raw_name=attribute.name,
        evaluation=evaluation,
        privacy=privacy,
    )


async def evaluate_attributes(
    attributes: Iterable[Attribute],
    data: Mapping[str, Any],
    evaluator: ExpressionEvaluator,
    file_path: Optional[str] = None,
) -> List[EvaluatedAttribute]:
    """Evaluate every attribute of a node, content properties excluded."""
    pending = [
        evaluate_attribute(attribute, data, evaluator, file_path)
        for attribute in attributes
        if attribute.name not in CONTENT_PROPERTIES
    ]
    return list(await asyncio.gather(*pending))


def _merge_values(name: str, values: Sequence[Any]) -> str:
    entries: List[str] = []
    for value in values:
        if name == "class":
            parts = str(value).split()
        else:
            parts = [part.strip() for part in str(value).split(";")]
        for part in parts:
            if part and part not in entries:
                entries.append(part)
    return " ".join(entries) if name == "class" else "; ".join(entries)


def merge_attributes(attributes: Sequence[EvaluatedAttribute]) -> List[EvaluatedAttribute]:
    """Collapse duplicate names; class and style values are combined, others overwrite."""
    merged: Dict[str, EvaluatedAttribute] = {}
    values: Dict[str, List[Any]] = {}
    public: Dict[str, bool] = {}
    for attr in attributes:
        if attr.name in MERGED_ATTRIBUTES:
            values.setdefault(attr.name, [])
            public[attr.name] = public.get(attr.name, False) or attr.is_public
            if attr.value is not None and attr.value is not False:
                values[attr.name].append(attr.value)
            merged.setdefault(attr.name, attr)
        else:
            merged[attr.name] = attr

    result = []
    for name, attr in merged.items():
        if name in values:
            attr = replace(
                attr,
                value=_merge_values(name, values[name]) if values[name] else None,
                privacy=Privacy.PUBLIC if public[name] else Privacy.PRIVATE,
            )
        result.append(attr)
    return result


def serialize_attributes(attributes: Iterable[EvaluatedAttribute]) -> str:
    out = []
    for attr in attributes:
        if not attr.is_public:
            continue
        value = attr.value
        if value is None or value is False:
            continue
        if value is True or value == "":
            out.append(f" {attr.name}")
        else:
            out.append(f' {attr.name}="{escape_attribute(value)}"')
    return "".join(out)


def render_attributes(attributes: Mapping[str, Any]) -> str:
    """Serialize a plain name/value mapping, as exposed to templates."""
    return serialize_attributes(literal(name, value) for name, value in attributes.items())


def attributes_to_data(attributes: Iterable[EvaluatedAttribute]) -> Dict[str, Any]:
    """Props a component receives from the attributes on its host tag."""
    data: Dict[str, Any] = {}
    for attr in attributes:
        if attr.raw_name.startswith(Attrs.PREFIX) or attr.raw_name in CONTENT_PROPERTIES:
            continue
        data[attr.name] = attr.value
        if "-" in attr.name:
            data.setdefault(attr.name.replace("-", "_"), attr.value)
    return data
