"""Layered data visible to template expressions."""

from collections import ChainMap
from types import MappingProxyType, SimpleNamespace
from typing import Any, Callable, Dict, Mapping, Optional

from pywebc.compiler.attributes import render_attributes

NAMESPACE = "webc"


class DataCascade:
    """Global data, helpers and per-node layers merged into one read-only view.

    Precedence, lowest first: global data, helpers, then the additional
    layers given to `get_data` (the first layer wins), then the node's own
    attributes. The `webc` name is always reserved for the namespace that
    exposes host attributes, scoped helpers, global data and utilities.
    """

    def __init__(self) -> None:
        self.helpers: Dict[str, Callable[..., Any]] = {}
        self.scoped_helpers: Dict[str, Callable[..., Any]] = {}
        self.global_data: Dict[str, Any] = {}
        self.webc_globals: Dict[str, Any] = {"render_attributes": render_attributes}

    def set_helper(self, name: str, callback: Callable[..., Any], scoped: bool = False) -> None:
        if scoped:
            self.scoped_helpers[name] = callback
        else:
            self.helpers[name] = callback

    def set_global_data(self, data: Optional[Mapping[str, Any]]) -> None:
        self.global_data = dict(data or {})

    def set_web_component_global(self, name: str, value: Any) -> None:
        self.webc_globals[name] = value

    def get_helpers(self) -> Dict[str, Callable[..., Any]]:
        return dict(self.helpers)

    def namespace(self, attributes: Optional[Mapping[str, Any]] = None) -> SimpleNamespace:
        attributes = attributes or {}
        return SimpleNamespace(
            uid=attributes.get("uid"),
            attributes=MappingProxyType(dict(attributes)),
            helpers=SimpleNamespace(**self.scoped_helpers),
            data=MappingProxyType(self.global_data),
            **self.webc_globals,
        )

    def get_data(
        self,
        use_global_data_at_top_level: bool,
        attributes: Optional[Mapping[str, Any]] = None,
        *layers: Optional[Mapping[str, Any]],
        host_attributes: Optional[Mapping[str, Any]] = None,
    ) -> Mapping[str, Any]:
        maps = [{NAMESPACE: self.namespace(host_attributes)}]
        if attributes:
            maps.append(dict(attributes))
        maps.extend(dict(layer) for layer in layers if layer)
        maps.append(self.helpers)
        if use_global_data_at_top_level:
            maps.append(self.global_data)
        return MappingProxyType(ChainMap(*maps))
