import json

from system_mapper.transfer import validate_import_document, export_document, export_filename, dumps_export


def test_valid_document():
    doc = {"nodes": [{"id": "A"}, {"id": "B"}], "links": [{"source": "A", "target": "B"}]}
    assert validate_import_document(doc) is None


def test_rejects_non_object():
    assert validate_import_document([1, 2]) == "Import must be a JSON object"


def test_requires_arrays():
    assert "nodes" in validate_import_document({"links": []})
    assert "links" in validate_import_document({"nodes": []})


def test_requires_string_node_ids():
    problem = validate_import_document({"nodes": [{"id": "A"}, {"group": "x"}], "links": []})
    assert problem == "Node at position 1 has no string 'id'"


def test_rejects_unknown_link_endpoint():
    doc = {"nodes": [{"id": "A"}], "links": [{"source": "A", "target": "B"}]}
    assert validate_import_document(doc) == "Link at position 0 references unknown node 'B'"


def test_rejects_object_link_endpoint():
    doc = {"nodes": [{"id": "A"}, {"id": "B"}], "links": [{"source": {"id": "A"}, "target": "B"}]}
    assert "non-string 'source'" in validate_import_document(doc)


def test_export_strips_layout_state(sample_map):
    sample_map.nodes[0].extra.update({"x": 10.5, "y": 3.2, "vx": 0.1, "vy": 0.0, "index": 0, "owner": "isp"})
    data = export_document(sample_map)
    first = data["nodes"][0]
    assert "x" not in first and "index" not in first
    assert first["owner"] == "isp"
    assert data["links"][0] == {"source": "Internet", "target": "Router"}
    assert json.loads(dumps_export(sample_map)) == data


def test_export_filename(sample_map):
    assert export_filename(sample_map) == "Home Lab.json"
    sample_map.name = "a/b"
    assert export_filename(sample_map) == "a_b.json"
