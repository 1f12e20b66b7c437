# system_mapper/models.py
from typing import List, Dict, Any, Optional

# Keys the force layout writes onto node objects in the browser.
TRANSIENT_NODE_KEYS = ("x", "y", "vx", "vy", "fx", "fy", "index")

DEFAULT_GROUP = "Default"


class Attribute:
    """A single free-form name/value pair attached to a node."""
    def __init__(self, name: str = "", value: str = ""):
        self.name: str = name
        self.value: str = value

    def to_dict(self) -> Dict[str, Any]:
        return {"name": self.name, "value": self.value}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Attribute':
        if not isinstance(data, dict):
            raise ValueError(f"Attribute must be an object, got {type(data).__name__}")
        return cls(name=data.get("name", ""), value=data.get("value", ""))

    def __eq__(self, other: object) -> bool:
        return isinstance(other, Attribute) and (self.name, self.value) == (other.name, other.value)

    def __repr__(self) -> str:
        return f"Attribute(name='{self.name}', value='{self.value}')"


class Node:
    """Represents a single component (server, router, service...) in a system map."""
    def __init__(self, node_id: str, group: str = DEFAULT_GROUP, description: str = "",
                 attributes: Optional[List[Attribute]] = None, extra: Optional[Dict[str, Any]] = None):
        self.id: str = node_id
        self.group: str = group
        self.description: str = description
        # Ordered list, duplicate names are allowed
        self.attributes: List[Attribute] = attributes if attributes is not None else []
        # Any other fields a client stored on the node are carried through untouched
        self.extra: Dict[str, Any] = extra if extra is not None else {}

    def to_dict(self) -> Dict[str, Any]:
        """Serializes the node to its stored JSON shape."""
        data: Dict[str, Any] = dict(self.extra)
        data.update({
            "id": self.id,
            "group": self.group,
            "description": self.description,
            "attributes": [attr.to_dict() for attr in self.attributes],
        })
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Node':
        """Deserializes a node from a dictionary."""
        if not isinstance(data, dict):
            raise ValueError(f"Node must be an object, got {type(data).__name__}")
        node_id = data.get("id")
        if not isinstance(node_id, str) or not node_id:
            raise ValueError("Node is missing a string 'id'")
        attributes = data.get("attributes") or []
        if not isinstance(attributes, list):
            raise ValueError(f"Attributes of node '{node_id}' must be an array")
        for field in ("group", "description"):
            value = data.get(field)
            if value is not None and not isinstance(value, str):
                raise ValueError(f"Node '{node_id}' field '{field}' must be a string")
        extra = {k: v for k, v in data.items() if k not in ("id", "group", "description", "attributes")}
        return cls(
            node_id=node_id,
            group=data.get("group") or DEFAULT_GROUP,
            description=data.get("description") or "",
            attributes=[Attribute.from_dict(a) for a in attributes],
            extra=extra,
        )

    def __repr__(self) -> str:
        return f"Node(id={self.id}, group='{self.group}', attributes={len(self.attributes)})"


class Link:
    """A directed parent -> child edge between two node ids."""
    def __init__(self, source: str, target: str):
        self.source: str = source
        self.target: str = target

    def touches(self, node_id: str) -> bool:
        return self.source == node_id or self.target == node_id

    def to_dict(self) -> Dict[str, Any]:
        return {"source": self.source, "target": self.target}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Link':
        # Endpoints must be plain ids; the object form d3 produces is never coerced
        if not isinstance(data, dict):
            raise ValueError(f"Link must be an object, got {type(data).__name__}")
        source, target = data.get("source"), data.get("target")
        if not isinstance(source, str) or not isinstance(target, str):
            raise ValueError("Link 'source' and 'target' must be node id strings")
        return cls(source=source, target=target)

    def __eq__(self, other: object) -> bool:
        return isinstance(other, Link) and (self.source, self.target) == (other.source, other.target)

    def __repr__(self) -> str:
        return f"Link({self.source} -> {self.target})"


class MapSummary:
    """Lightweight listing record kept in the maps:list hash."""
    def __init__(self, map_id: str, name: str, description: str, node_count: int, updated: str):
        self.id = map_id
        self.name = name
        self.description = description
        self.node_count = node_count
        self.updated = updated

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "nodeCount": self.node_count,
            "updated": self.updated,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'MapSummary':
        return cls(
            map_id=data["id"],
            name=data.get("name", ""),
            description=data.get("description", ""),
            node_count=data.get("nodeCount", 0),
            updated=data.get("updated", ""),
        )
