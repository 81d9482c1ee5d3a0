"""webc:if / webc:elseif / webc:else chains and webc:for loops."""

import re
from collections.abc import Mapping, Set
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Dict, Iterator, List, Optional

from pywebc.compiler.nodes import Node
from pywebc.compiler.query import AstQuery, Attrs
from pywebc.exceptions import EvaluationError, OrphanedDirectiveError

_SEPARATOR = re.compile(r"\s+(in|of)\s+")


@dataclass(frozen=True)
class LoopSpec:
    """A parsed `webc:for` value.

    `key in source` iterates mappings as key, value, index.
    `value of source` iterates any iterable as value, index.
    """

    keys: List[str]
    source: str
    over_mapping: bool


def parse_loop(value: str) -> LoopSpec:
    match = _SEPARATOR.search(value)
    if not match:
        raise EvaluationError(
            f'Invalid webc:for value "{value}": expected `key in source` or `value of source`.'
        )
    names = value[: match.start()].strip()
    if names[:1] in "([{" and names[-1:] in ")]}":
        names = names[1:-1]
    keys = [name.strip() for name in names.split(",") if name.strip()]
    if not keys:
        raise EvaluationError(f'Invalid webc:for value "{value}": no loop variables.')
    return LoopSpec(
        keys=keys,
        source=value[match.end() :].strip(),
        over_mapping=match.group(1) == "in",
    )


def _bind(keys: List[str], values: List[Any]) -> Dict[str, Any]:
    return {name: value for name, value in zip(keys, values)}


def iterate_loop(spec: LoopSpec, source: Any) -> Iterator[Dict[str, Any]]:
    """Yield the loop bindings for each repetition."""
    if source is None:
        raise EvaluationError(f"webc:for source `{spec.source}` is not iterable (got None).")

    if spec.over_mapping:
        if isinstance(source, Mapping):
            for index, (key, value) in enumerate(source.items()):
                yield _bind(spec.keys, [key, value, index])
        elif isinstance(source, Set):
            for entry in source:
                yield _bind(spec.keys, [entry, entry, None])
        else:
            for index, value in enumerate(source):
                yield _bind(spec.keys, [index, value, index])
        return

    if isinstance(source, Mapping):
        for index, entry in enumerate(source.items()):
            yield _bind(spec.keys, [entry, index])
    elif isinstance(source, Set):
        for entry in source:
            yield _bind(spec.keys, [entry, None])
    else:
        for index, entry in enumerate(source):
            yield _bind(spec.keys, [entry, index])


ConditionEvaluator = Callable[[str, str], Awaitable[Any]]


class ConditionalChain:
    """Tracks webc:if / webc:elseif / webc:else across one run of siblings.

    Comments and whitespace-only text between chain members do not break
    the chain. Exactly one member of a chain renders, or none if nothing
    matched and there is no webc:else.
    """

    def __init__(
        self, query: AstQuery, evaluate: ConditionEvaluator, file_path: Optional[str] = None
    ) -> None:
        self.query = query
        self.file_path = file_path
        self.evaluate = evaluate
        self.open = False
        self.satisfied = False

    async def admit(self, node: Node) -> bool:
        """Return whether `node` should render."""
        if node.is_comment or (node.is_text and not node.data.strip()):
            return True
        if not node.is_element:
            self.open = False
            return True

        query = self.query
        if query.has_attribute(node, Attrs.IF):
            self.open = True
            self.satisfied = bool(
                await self.evaluate(Attrs.IF, query.get_attribute_value(node, Attrs.IF) or "")
            )
            return self.satisfied

        if query.has_attribute(node, Attrs.ELSEIF):
            if not self.open:
                raise OrphanedDirectiveError(self._orphaned(node, Attrs.ELSEIF), self.file_path)
            if self.satisfied:
                return False
            self.satisfied = bool(
                await self.evaluate(Attrs.ELSEIF, query.get_attribute_value(node, Attrs.ELSEIF) or "")
            )
            return self.satisfied

        if query.has_attribute(node, Attrs.ELSE):
            if not self.open:
                raise OrphanedDirectiveError(self._orphaned(node, Attrs.ELSE), self.file_path)
            self.open = False
            return not self.satisfied

        self.open = False
        return True

    @staticmethod
    def _orphaned(node: Node, directive: str) -> str:
        return (
            f"<{node.tag}> uses {directive} without a preceding sibling "
            f"with {Attrs.IF} or {Attrs.ELSEIF} (line {node.line})."
        )

