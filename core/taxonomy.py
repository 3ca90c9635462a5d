"""
Venue category taxonomy.

Builds an in-memory tree of CategoryNode objects from the nested category
description of the venue provider, wrapped under one synthetic root, and
answers path-to-root and tree-distance queries.
"""

from typing import Any, Dict, Iterable, Iterator, List, Tuple

from .constants import ROOT_CATEGORY_ICON, ROOT_CATEGORY_ID
from .models import CategoryNode


class UnknownCategoryError(KeyError):
    """Raised when a category id is not part of the taxonomy."""

    def __init__(self, category_id: str):
        super().__init__(category_id)
        self.category_id = category_id

    def __str__(self) -> str:
        return f"Unknown category: {self.category_id}"


class CategoryTaxonomy:
    """Rooted tree of venue categories.

    The synthetic root is not indexed: looking it up raises
    UnknownCategoryError like any other id absent from the source.

    Example:
        taxonomy = CategoryTaxonomy.from_records(json.load(f))
        taxonomy.distance("4bf58dd8d48988d1e0931735", "4bf58dd8d48988d16d941735")
    """

    def __init__(self, root: CategoryNode):
        self.root = root
        self._nodes: Dict[str, CategoryNode] = {}
        self._distance_cache: Dict[Tuple[str, str], int] = {}
        self._index(root)

    @classmethod
    def from_records(cls, records: Iterable[Dict[str, Any]]) -> "CategoryTaxonomy":
        """Build the taxonomy from top-level category records.

        Each record holds id, name, pluralName, shortName, icon {prefix,
        suffix} and an optional nested ``categories`` list.
        """
        root = CategoryNode(
            category_id=ROOT_CATEGORY_ID,
            name=ROOT_CATEGORY_ID,
            plural_name=ROOT_CATEGORY_ID,
            short_name=ROOT_CATEGORY_ID,
            icon=ROOT_CATEGORY_ICON,
        )
        root.children = [_build_node(r, root) for r in records]
        return cls(root)

    def _index(self, node: CategoryNode) -> None:
        for child in node.children:
            self._nodes[child.category_id] = child
            self._index(child)

    def __contains__(self, category_id: object) -> bool:
        return category_id in self._nodes

    def __len__(self) -> int:
        return len(self._nodes)

    def __iter__(self) -> Iterator[CategoryNode]:
        return iter(self._nodes.values())

    def __getitem__(self, category_id: str) -> CategoryNode:
        try:
            return self._nodes[category_id]
        except KeyError:
            raise UnknownCategoryError(category_id) from None

    def path_to_root(self, category_id: str) -> List[CategoryNode]:
        """Nodes from the category up to the root (root included)."""
        return self[category_id].path_to_root()

    def distance(self, category_id1: str, category_id2: str) -> int:
        """Number of edges between two categories.

        The lowest common ancestor is the first node of the first path (in
        root-ward order) that also lies on the second path; the distance is
        the sum of the steps taken along each path to reach it.
        """
        key = (category_id1, category_id2)
        if key in self._distance_cache:
            return self._distance_cache[key]

        path1 = self.path_to_root(category_id1)
        depth_in_path2 = {
            node.category_id: depth
            for depth, node in enumerate(self.path_to_root(category_id2))
        }

        distance = None
        for depth1, node in enumerate(path1):
            depth2 = depth_in_path2.get(node.category_id)
            if depth2 is not None:
                distance = depth1 + depth2
                break
        # Both paths end at the shared root
        assert distance is not None

        self._distance_cache[key] = distance
        self._distance_cache[(category_id2, category_id1)] = distance
        return distance


def _build_node(record: Dict[str, Any], parent: CategoryNode) -> CategoryNode:
    icon = record.get("icon")
    node = CategoryNode(
        category_id=record["id"],
        name=record.get("name", ""),
        plural_name=record.get("pluralName", ""),
        short_name=record.get("shortName", ""),
        icon=(icon.get("prefix", ""), icon.get("suffix", "")) if icon else None,
        parent=parent,
    )
    node.children = [_build_node(r, node) for r in record.get("categories") or []]
    return node
