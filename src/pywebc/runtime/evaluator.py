"""Expression and script evaluation for dynamic attributes and scripts."""

import ast
import builtins
import inspect
from functools import lru_cache
from types import CodeType
from typing import Any, Dict, Iterable, Mapping, Optional, Protocol, Set, runtime_checkable

from pywebc.exceptions import EvaluationError

THIS = "this"


@runtime_checkable
class ExpressionEvaluator(Protocol):
    """Capability the compiler uses to run expressions and scripts.

    The compiler never executes template code itself; any object
    implementing these four methods can be passed to `WebC`.
    """

    def free_names(self, expression: str) -> Set[str]: ...

    async def evaluate(
        self,
        expression: str,
        names: Iterable[str],
        data: Mapping[str, Any],
        file_path: Optional[str] = None,
    ) -> Any: ...

    async def evaluate_setup(
        self, script: str, data: Mapping[str, Any], file_path: Optional[str] = None
    ) -> Dict[str, Any]: ...

    async def evaluate_render(
        self, script: str, data: Mapping[str, Any], file_path: Optional[str] = None
    ) -> Any: ...


@lru_cache(maxsize=1024)
def _compile(source: str, filename: str, mode: str) -> CodeType:
    return compile(source, filename, mode, flags=ast.PyCF_ALLOW_TOP_LEVEL_AWAIT)


@lru_cache(maxsize=1024)
def _free_names(expression: str) -> frozenset:
    tree = ast.parse(expression.strip(), mode="eval")
    loaded = set()
    bound = set()
    for node in ast.walk(tree):
        if isinstance(node, ast.Name):
            if isinstance(node.ctx, ast.Load):
                loaded.add(node.id)
            else:
                bound.add(node.id)
        elif isinstance(node, ast.arg):
            bound.add(node.arg)
    return frozenset(loaded - bound)


async def _resolve(value: Any) -> Any:
    if inspect.isawaitable(value):
        return await value
    return value


class PythonEvaluator:
    """Evaluates template expressions as Python.

    Names an expression references but the data context lacks resolve to
    None. The whole context is available as `this`, which is how keys that
    are not valid identifiers (like `class`) are read.
    """

    def free_names(self, expression: str) -> Set[str]:
        try:
            return set(_free_names(expression))
        except SyntaxError as e:
            raise EvaluationError(f"Invalid expression `{expression}`: {e.msg}") from e

    def _namespace(self, data: Mapping[str, Any], names: Iterable[str] = ()) -> Dict[str, Any]:
        namespace: Dict[str, Any] = {"__builtins__": builtins}
        for name in names:
            if name in data:
                namespace[name] = data[name]
            elif not hasattr(builtins, name):
                namespace[name] = None
        namespace[THIS] = data
        return namespace

    async def evaluate(
        self,
        expression: str,
        names: Iterable[str],
        data: Mapping[str, Any],
        file_path: Optional[str] = None,
    ) -> Any:
        code = _compile(expression.strip(), file_path or "<expression>", "eval")
        namespace = self._namespace(data, names)
        return await _resolve(eval(code, namespace))

    async def _execute(
        self, script: str, data: Mapping[str, Any], file_path: Optional[str]
    ) -> Dict[str, Any]:
        code = _compile(inspect.cleandoc(script), file_path or "<script>", "exec")
        namespace = self._namespace(data)
        namespace.update(data)
        await _resolve(eval(code, namespace))
        return namespace

    async def evaluate_setup(
        self, script: str, data: Mapping[str, Any], file_path: Optional[str] = None
    ) -> Dict[str, Any]:
        namespace = await self._execute(script, data, file_path)
        return {
            name: value
            for name, value in namespace.items()
            if not name.startswith("__")
            and name != THIS
            and (name not in data or data[name] is not value)
        }

    async def evaluate_render(
        self, script: str, data: Mapping[str, Any], file_path: Optional[str] = None
    ) -> Any:
        namespace = await self._execute(script, data, file_path)
        render = namespace.get("render")
        if not callable(render):
            defined = [
                value
                for name, value in namespace.items()
                if callable(value)
                and not name.startswith("__")
                and (name not in data or data[name] is not value)
            ]
            if not defined:
                raise EvaluationError(
                    "A render script must define a `render` function.", file_path
                )
            render = defined[-1]

        if inspect.signature(render).parameters:
            return await _resolve(render(namespace[THIS]))
        return await _resolve(render())
