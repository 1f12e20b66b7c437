# system_mapper/connections.py
"""Parent/child views over a loaded map.

Plain scans over the link list; maps are small enough that nothing is
indexed or cached. Links pointing at nodes that no longer exist are
reported with type 'Unknown' instead of failing.
"""
from typing import Dict, List, Any, Optional
from .systemmap import SystemMap

UNKNOWN_TYPE = "Unknown"


def _endpoint(system_map: SystemMap, node_id: str) -> Dict[str, Any]:
    node = system_map.get_node(node_id)
    return {
        "id": node_id,
        "name": node_id,
        "type": node.group if node else UNKNOWN_TYPE,
        "attributes": [a.to_dict() for a in node.attributes] if node else [],
    }


def _connection(system_map: SystemMap, node_id: str, direction: str) -> Dict[str, Any]:
    entry = _endpoint(system_map, node_id)
    entry["direction"] = direction
    return entry


def node_connections(system_map: SystemMap, node_id: str) -> Optional[Dict[str, Any]]:
    """Builds the connection report for one node, or None if the node is not in the map."""
    node = system_map.get_node(node_id)
    if not node:
        return None

    parents = [_connection(system_map, link.source, "parent")
               for link in system_map.links if link.target == node_id]
    children = [_connection(system_map, link.target, "child")
                for link in system_map.links if link.source == node_id]

    return {
        "nodeId": node_id,
        "nodeName": node.id,
        "nodeType": node.group,
        "totalConnections": len(parents) + len(children),
        "parentCount": len(parents),
        "childCount": len(children),
        "connections": {
            "parents": parents,
            "children": children,
            "all": parents + children,
        },
    }


def all_connections(system_map: SystemMap) -> List[Dict[str, Any]]:
    """Every link of the map, with both endpoints resolved to their node records."""
    return [
        {
            "source": _endpoint(system_map, link.source),
            "target": _endpoint(system_map, link.target),
            "relationship": f"{link.source} → {link.target}",
        }
        for link in system_map.links
    ]


def check_map_data(system_map: SystemMap) -> Dict[str, Any]:
    """Integrity report for a map.

    Links to missing nodes and repeated node ids make the map invalid.
    Self-links are listed but do not.
    """
    node_ids = {node.id for node in system_map.nodes}
    orphaned = [link.to_dict() for link in system_map.links
                if link.source not in node_ids or link.target not in node_ids]

    seen = set()
    duplicates = []
    for node in system_map.nodes:
        if node.id in seen:
            duplicates.append(node.id)
        seen.add(node.id)

    self_links = [link.to_dict() for link in system_map.links if link.source == link.target]

    return {
        "mapId": system_map.id,
        "valid": not orphaned and not duplicates,
        "nodeCount": len(system_map.nodes),
        "linkCount": len(system_map.links),
        "orphanedLinks": orphaned,
        "duplicateNodes": duplicates,
        "selfLinks": self_links,
    }
