# system_mapper/render.py
"""View model for the force-directed diagram.

The browser's layout engine mutates whatever objects it is given
(adds x/y, swaps link ids for node objects), so it only ever receives
these render records, never the stored nodes and links.
"""
from typing import Dict, List, Any
from .systemmap import SystemMap

PALETTE = [
    "#667eea", "#764ba2", "#f093fb", "#f5576c",
    "#4facfe", "#00f2fe", "#43e97b", "#38f9d7",
    "#ffecd2", "#fcb69f", "#a8edea", "#fed6e3",
    "#ff9a9e", "#fecfef", "#ffeaa7", "#fab1a0",
]

BASE_RADIUS = 12
MAX_RADIUS = 25
HARDWARE_GROUP = "Hardware"


class RenderNode:
    def __init__(self, node_id: str, group: str, color: str, radius: int, connections: int):
        self.id = node_id
        self.group = group
        self.color = color
        self.radius = radius
        self.connections = connections

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "group": self.group,
            "color": self.color,
            "radius": self.radius,
            "connections": self.connections,
        }


class RenderLink:
    def __init__(self, source: str, target: str, width: int):
        self.source = source
        self.target = target
        self.width = width

    def to_dict(self) -> Dict[str, Any]:
        return {"source": self.source, "target": self.target, "width": self.width}


def group_colors(system_map: SystemMap) -> Dict[str, str]:
    """Assigns palette colours to groups in first-seen order, wrapping around."""
    colors: Dict[str, str] = {}
    for node in system_map.nodes:
        if node.group not in colors:
            colors[node.group] = PALETTE[len(colors) % len(PALETTE)]
    return colors


def node_radius(node_id: str, group: str, degree: int) -> int:
    radius = BASE_RADIUS + degree * 2
    if node_id == "Internet" or "Proxmox" in node_id:
        radius += 6
    if group == HARDWARE_GROUP:
        radius += 3
    return min(radius, MAX_RADIUS)


def build_render_graph(system_map: SystemMap) -> Dict[str, Any]:
    """Maps a stored map to render nodes and links.

    Links with an endpoint that is not a node are left out of the
    diagram; they are still in storage and in the connection views.
    """
    colors = group_colors(system_map)
    groups = {node.id: node.group for node in system_map.nodes}

    degree: Dict[str, int] = {node_id: 0 for node_id in groups}
    for link in system_map.links:
        for end in {link.source, link.target}:
            if end in degree:
                degree[end] += 1

    nodes: List[RenderNode] = [
        RenderNode(node.id, node.group, colors[node.group],
                   node_radius(node.id, node.group, degree[node.id]), degree[node.id])
        for node in system_map.nodes
    ]
    links: List[RenderLink] = []
    for link in system_map.links:
        if link.source not in groups or link.target not in groups:
            continue
        hardware = HARDWARE_GROUP in (groups[link.source], groups[link.target])
        links.append(RenderLink(link.source, link.target, 3 if hardware else 2))

    return {
        "mapId": system_map.id,
        "name": system_map.name,
        "nodes": [n.to_dict() for n in nodes],
        "links": [link.to_dict() for link in links],
    }
