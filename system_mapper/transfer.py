# system_mapper/transfer.py
import json
import re
from typing import Any, Dict, Optional

from .models import TRANSIENT_NODE_KEYS
from .systemmap import SystemMap


def validate_import_document(document: Any) -> Optional[str]:
    """Checks an uploaded map document. Returns the first problem found, or None if valid."""
    if not isinstance(document, dict):
        return "Import must be a JSON object"

    nodes = document.get("nodes")
    links = document.get("links")
    if not isinstance(nodes, list):
        return "Import must contain a 'nodes' array"
    if not isinstance(links, list):
        return "Import must contain a 'links' array"

    node_ids = set()
    for position, node in enumerate(nodes):
        if not isinstance(node, dict) or not isinstance(node.get("id"), str) or not node["id"]:
            return f"Node at position {position} has no string 'id'"
        node_ids.add(node["id"])

    for position, link in enumerate(links):
        if not isinstance(link, dict):
            return f"Link at position {position} is not an object"
        for end in ("source", "target"):
            value = link.get(end)
            if not isinstance(value, str):
                return f"Link at position {position} has a non-string '{end}'"
            if value not in node_ids:
                return f"Link at position {position} references unknown node '{value}'"
    return None


def export_document(system_map: SystemMap) -> Dict[str, Any]:
    """The map in its stored shape, without any layout state a renderer left on the nodes."""
    data = system_map.to_dict()
    for node in data["nodes"]:
        for key in TRANSIENT_NODE_KEYS:
            node.pop(key, None)
    return data


def export_filename(system_map: SystemMap) -> str:
    safe = re.sub(r'[\\/:*?"<>|\r\n]+', "_", system_map.name).strip() or system_map.id
    return f"{safe}.json"


def dumps_export(system_map: SystemMap) -> str:
    return json.dumps(export_document(system_map), indent=2, ensure_ascii=False)
