# system_mapper/systemmap.py
import time
from datetime import datetime, timezone
from typing import Dict, Optional, List, Any, Iterable
from .models import Node, Link, MapSummary

DEFAULT_MAP_NAME = "Untitled Map"
SEED_NODE = {"id": "Internet", "group": "External"}


def utc_now_iso() -> str:
    """ISO-8601 UTC timestamp with millisecond precision, e.g. 2024-01-01T12:00:00.000Z"""
    return datetime.now(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


def timestamp_ms() -> int:
    return int(time.time() * 1000)


class SystemMap:
    """A named graph of nodes and links, stored and rewritten as a single document."""

    def __init__(self, map_id: str, name: str = DEFAULT_MAP_NAME, description: str = "",
                 nodes: Optional[List[Node]] = None, links: Optional[List[Link]] = None,
                 created: Optional[str] = None, updated: Optional[str] = None):
        now = utc_now_iso()
        self.id: str = map_id
        self.name: str = name
        self.description: str = description
        self.nodes: List[Node] = nodes if nodes is not None else []  # insertion order = display order
        self.links: List[Link] = links if links is not None else []
        self.created: str = created or now
        self.updated: str = updated or now

    @classmethod
    def new(cls, name: Optional[str] = None, description: Optional[str] = None,
            nodes: Optional[List[Node]] = None, links: Optional[List[Link]] = None) -> 'SystemMap':
        """Builds a fresh map with a timestamp id; without a node list it gets the seed node."""
        if nodes is None:
            nodes = [Node.from_dict(SEED_NODE)]
        return cls(
            map_id=f"map-{timestamp_ms()}",
            name=name or DEFAULT_MAP_NAME,
            description=description or "",
            nodes=nodes,
            links=links if links is not None else [],
        )

    def touch(self):
        self.updated = utc_now_iso()

    def get_node(self, node_id: str) -> Optional[Node]:
        for node in self.nodes:
            if node.id == node_id:
                return node
        return None

    def has_node(self, node_id: str) -> bool:
        return self.get_node(node_id) is not None

    def add_node(self, node: Node, parent_ids: Iterable[str] = ()) -> Node:
        """Appends a node and a parent -> node link for every given parent id.

        Parent ids are not checked against existing nodes, so links to
        missing parents are kept as-is.
        """
        self.nodes.append(node)
        for parent_id in parent_ids:
            self.links.append(Link(source=parent_id, target=node.id))
        return node

    def update_node(self, node_id: str, patch: Dict[str, Any]) -> Optional[Node]:
        """Shallow-merges patch fields into a node. Returns None if the node is missing.

        A 'parentNodes' entry is never stored on the node; when present it
        replaces every incoming link of the node (see replace_parents).
        """
        index = next((i for i, n in enumerate(self.nodes) if n.id == node_id), None)
        if index is None:
            return None

        merged = self.nodes[index].to_dict()
        merged.update({k: v for k, v in patch.items() if k != "parentNodes"})
        updated_node = Node.from_dict(merged)
        self.nodes[index] = updated_node

        if "parentNodes" in patch and patch["parentNodes"] is not None:
            self.replace_parents(node_id, patch["parentNodes"])
        return updated_node

    def replace_parents(self, node_id: str, parent_ids: Iterable[str]):
        """Drops all links targeting node_id and relinks it to the given parents.

        Blank ids and ids of nodes that are not in the map are skipped.
        """
        self.links = [link for link in self.links if link.target != node_id]
        for parent_id in parent_ids:
            if not isinstance(parent_id, str) or not parent_id.strip():
                continue
            if self.has_node(parent_id):
                self.links.append(Link(source=parent_id, target=node_id))

    def delete_node(self, node_id: str) -> bool:
        """Removes the node and every link touching it. Returns False if no node matched."""
        before = len(self.nodes)
        self.nodes = [n for n in self.nodes if n.id != node_id]
        self.links = [link for link in self.links if not link.touches(node_id)]
        return len(self.nodes) != before

    def delete_link(self, source: str, target: str) -> int:
        """Removes every link exactly matching source -> target. Returns how many were removed."""
        before = len(self.links)
        self.links = [link for link in self.links
                      if not (link.source == source and link.target == target)]
        return before - len(self.links)

    def summary(self) -> MapSummary:
        return MapSummary(self.id, self.name, self.description, len(self.nodes), self.updated)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "nodes": [node.to_dict() for node in self.nodes],
            "links": [link.to_dict() for link in self.links],
            "created": self.created,
            "updated": self.updated,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'SystemMap':
        try:
            return cls(
                map_id=data["id"],
                name=data.get("name", DEFAULT_MAP_NAME),
                description=data.get("description", ""),
                nodes=[Node.from_dict(n) for n in data.get("nodes") or []],
                links=[Link.from_dict(link) for link in data.get("links") or []],
                created=data.get("created"),
                updated=data.get("updated"),
            )
        except KeyError as e:
            raise ValueError(f"Invalid map data: missing key {e}") from e

    def __repr__(self) -> str:
        return f"SystemMap(id={self.id}, name='{self.name}', nodes={len(self.nodes)}, links={len(self.links)})"


def parse_nodes(raw: Any) -> List[Node]:
    """Parses a client-supplied node array. Raises ValueError on malformed input."""
    if not isinstance(raw, list):
        raise ValueError("'nodes' must be an array")
    return [Node.from_dict(item) for item in raw]


def parse_links(raw: Any) -> List[Link]:
    """Parses a client-supplied link array. Raises ValueError on malformed input."""
    if not isinstance(raw, list):
        raise ValueError("'links' must be an array")
    return [Link.from_dict(item) for item in raw]


def make_node(node_id: Optional[str] = None, group: Optional[str] = None,
              description: Optional[str] = None, attributes: Any = None) -> Node:
    """Builds a node from form fields, filling the documented defaults.

    Goes through Node.from_dict so a node that could not be read back is
    never stored. Raises ValueError on non-string fields.
    """
    if attributes is not None and not isinstance(attributes, list):
        raise ValueError("'attributes' must be an array")
    return Node.from_dict({
        "id": f"node-{timestamp_ms()}" if node_id is None or node_id == "" else node_id,
        "group": group,
        "description": description,
        "attributes": attributes or [],
    })
