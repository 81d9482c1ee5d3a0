"""Component dependency graph."""

from typing import Any, Dict, List, Set


class DependencyGraph:
    """Directed graph of component usage, edges point from user to used.

    Cycles are tolerated by the traversal methods; callers that must stay
    acyclic check `dependants_of` before adding an edge.
    """

    def __init__(self) -> None:
        self._outgoing: Dict[str, List[str]] = {}
        self._incoming: Dict[str, List[str]] = {}

    def __contains__(self, node: str) -> bool:
        return node in self._outgoing

    def __len__(self) -> int:
        return len(self._outgoing)

    def add_node(self, node: str) -> None:
        if node not in self._outgoing:
            self._outgoing[node] = []
            self._incoming[node] = []

    def has_node(self, node: str) -> bool:
        return node in self._outgoing

    def add_dependency(self, source: str, target: str) -> None:
        self.add_node(source)
        self.add_node(target)
        if target not in self._outgoing[source]:
            self._outgoing[source].append(target)
        if source not in self._incoming[target]:
            self._incoming[target].append(source)

    def direct_dependencies_of(self, node: str) -> List[str]:
        return list(self._outgoing[node])

    def direct_dependants_of(self, node: str) -> List[str]:
        return list(self._incoming[node])

    def dependencies_of(self, node: str) -> List[str]:
        """Everything `node` uses, deepest first."""
        self._require(node)
        result: List[str] = []
        self._visit(self._outgoing, node, set(), result)
        return [entry for entry in result if entry != node]

    def dependants_of(self, node: str) -> List[str]:
        """Everything that uses `node`, outermost first and nearest last."""
        self._require(node)
        result: List[str] = []
        self._visit(self._incoming, node, set(), result)
        return [entry for entry in result if entry != node]

    def overall_order(self) -> List[str]:
        """Every node, each one after all of its dependencies."""
        result: List[str] = []
        visited: Set[str] = set()
        for node in self._outgoing:
            if not self._incoming[node]:
                self._visit(self._outgoing, node, visited, result)
        # Nodes only reachable through a cycle have no clear starting point
        for node in self._outgoing:
            if node not in visited:
                self._visit(self._outgoing, node, visited, result)
        return result

    def _require(self, node: str) -> None:
        if node not in self._outgoing:
            raise KeyError(f"Node does not exist: {node}")

    @staticmethod
    def _visit(
        edges: Dict[str, List[str]],
        start: str,
        visited: Set[str],
        result: List[str],
    ) -> None:
        """Iterative post-order depth first search that skips back edges."""
        if start in visited:
            return
        in_path: Dict[str, bool] = {}
        todo: List[List[Any]] = [[start, False]]
        while todo:
            current = todo[-1]
            node, processed = current[0], current[1]
            if not processed:
                if node in visited or in_path.get(node):
                    todo.pop()
                    continue
                in_path[node] = True
                for edge in reversed(edges[node]):
                    todo.append([edge, False])
                current[1] = True
            else:
                todo.pop()
                in_path[node] = False
                visited.add(node)
                result.append(node)
