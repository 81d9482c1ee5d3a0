"""Style and script fragment collection and bucket ordering."""

import logging
from typing import Dict, List, Optional, Tuple

from pywebc.compiler.graph import DependencyGraph

logger = logging.getLogger(__name__)

DEFAULT_BUCKET = "default"
ASSET_KINDS = ("css", "js")

# owner component -> bucket -> ordered, duplicate-free fragments
FragmentTable = Dict[str, Dict[str, Dict[str, None]]]


class AssetCollector:
    """Fragments gathered during one walk, per kind and owning component."""

    def __init__(self) -> None:
        self.fragments: Dict[str, FragmentTable] = {kind: {} for kind in ASSET_KINDS}

    def add(self, kind: str, owner: str, bucket: Optional[str], content: str) -> bool:
        """Record a fragment, returning False if the owner already had it in that bucket."""
        buckets = self.fragments[kind].setdefault(owner, {})
        entries = buckets.setdefault(bucket or DEFAULT_BUCKET, {})
        if content in entries:
            return False
        entries[content] = None
        return True


class AssetManager:
    """Orders collected fragments by component usage and resolves bucket conflicts.

    A fragment found in two different buckets moves to the bucket of the
    nearest component that uses both owners, or to the default bucket when
    there is none.
    """

    def __init__(self, graph: DependencyGraph) -> None:
        self.graph = graph
        self._ordered: Optional[List[str]] = None

    @property
    def ordered_component_list(self) -> List[str]:
        if self._ordered is None:
            self._ordered = list(reversed(self.graph.overall_order()))
        return self._ordered

    def _ancestors(self, component: str) -> List[str]:
        if component not in self.graph:
            return [component]
        return [component] + list(reversed(self.graph.dependants_of(component)))

    def nearest_common_ancestor(self, first: str, second: str) -> Optional[str]:
        others = set(self._ancestors(second))
        for candidate in self._ancestors(first):
            if candidate in others:
                return candidate
        return None

    @staticmethod
    def home_bucket(component: Optional[str], table: FragmentTable) -> str:
        if component is None:
            return DEFAULT_BUCKET
        buckets = table.get(component)
        if not buckets:
            return DEFAULT_BUCKET
        return next(iter(buckets))

    def get_ordered_assets(self, table: FragmentTable) -> Dict[str, List[str]]:
        buckets: Dict[str, Dict[str, None]] = {DEFAULT_BUCKET: {}}
        location: Dict[str, Tuple[str, str]] = {}

        owners = list(self.ordered_component_list)
        owners.extend(owner for owner in table if owner not in owners)

        for owner in owners:
            for bucket, entries in table.get(owner, {}).items():
                for entry in entries:
                    if entry not in location:
                        buckets.setdefault(bucket, {})[entry] = None
                        location[entry] = (bucket, owner)
                        continue

                    previous_bucket, previous_owner = location[entry]
                    if previous_bucket == bucket:
                        continue

                    ancestor = self.nearest_common_ancestor(owner, previous_owner)
                    target = self.home_bucket(ancestor, table)
                    del buckets[previous_bucket][entry]
                    buckets.setdefault(target, {})[entry] = None
                    location[entry] = (target, ancestor or owner)
                    logger.debug(
                        "Elevated asset from %s and %s buckets to %s (%s)",
                        previous_bucket,
                        bucket,
                        target,
                        ancestor,
                    )

        return {
            name: list(entries)
            for name, entries in buckets.items()
            if entries or name == DEFAULT_BUCKET
        }
