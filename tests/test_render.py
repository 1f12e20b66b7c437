from system_mapper.models import Link, Node
from system_mapper.render import build_render_graph, group_colors, node_radius, PALETTE, MAX_RADIUS


def test_colors_follow_first_seen_group_order(sample_map):
    colors = group_colors(sample_map)
    assert colors == {"External": PALETTE[0], "Hardware": PALETTE[1], "Storage": PALETTE[2]}


def test_radius_rules():
    assert node_radius("plain", "Default", 0) == 12
    assert node_radius("plain", "Default", 2) == 16
    assert node_radius("Internet", "External", 1) == 20
    assert node_radius("Switch", "Hardware", 1) == 17
    assert node_radius("Proxmox-1", "Hardware", 0) == 21
    assert node_radius("hub", "Hardware", 20) == MAX_RADIUS


def test_render_graph(sample_map):
    graph = build_render_graph(sample_map)
    assert graph["mapId"] == "map-1"
    nodes = {n["id"]: n for n in graph["nodes"]}
    assert nodes["Router"]["connections"] == 3
    assert nodes["Router"]["radius"] == 12 + 6 + 3
    assert nodes["NAS"]["connections"] == 1
    widths = {(l["source"], l["target"]): l["width"] for l in graph["links"]}
    assert widths[("Internet", "Router")] == 3
    assert widths[("Router", "NAS")] == 3


def test_render_graph_skips_unresolved_links(sample_map):
    sample_map.links.append(Link("Ghost", "NAS"))
    sample_map.nodes.append(Node("Printer", group="Office"))
    sample_map.links.append(Link("NAS", "Printer"))
    graph = build_render_graph(sample_map)
    pairs = [(l["source"], l["target"]) for l in graph["links"]]
    assert ("Ghost", "NAS") not in pairs
    assert ("NAS", "Printer") in pairs
    printer = next(n for n in graph["nodes"] if n["id"] == "Printer")
    assert printer["radius"] == 14
    # the stored map still has the dangling link
    assert Link("Ghost", "NAS") in sample_map.links


def test_render_graph_returns_plain_ids(sample_map):
    graph = build_render_graph(sample_map)
    for link in graph["links"]:
        assert isinstance(link["source"], str)
        assert isinstance(link["target"], str)
