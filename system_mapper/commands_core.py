# system_mapper/commands_core.py
import functools
import json
import logging
from typing import Optional, List, Tuple, Any, Dict, Callable

import redis

from .systemmap import SystemMap, parse_nodes, parse_links, make_node
from .storage import MapStore
from .connections import node_connections, all_connections, check_map_data
from .transfer import validate_import_document

logger = logging.getLogger(__name__)


class CommandStatus:
    SUCCESS = "success"
    ERROR = "error"  # Unknown / uncaught failure
    NOT_FOUND = "not_found"
    ALREADY_EXISTS = "already_exists"  # Duplicate node id
    LIMIT_EXCEEDED = "limit_exceeded"
    VALIDATION_ERROR = "validation_error"
    STORE_UNAVAILABLE = "store_unavailable"

# Result tuple structure: (status: CommandStatus, data: Any, message: str)
# 'data' can be SystemMap, Node, a list of summaries, a report dict, etc.
ActionResult = Tuple[str, Any, str]


def store_action(func: Callable[..., ActionResult]) -> Callable[..., ActionResult]:
    """
    Decorator for actions that talk to the map store.
    - Redis failures become STORE_UNAVAILABLE (no retry).
    - Stored documents that no longer parse become ERROR.
    """
    @functools.wraps(func)
    def wrapper(*args, **kwargs) -> ActionResult:
        try:
            return func(*args, **kwargs)
        except redis.exceptions.RedisError as e:
            logger.error("Store unavailable during %s: %s", func.__name__, e)
            return CommandStatus.STORE_UNAVAILABLE, None, f"Store unavailable: {e}"
        except (json.JSONDecodeError, ValueError) as e:
            logger.error("Corrupt map data during %s: %s", func.__name__, e)
            return CommandStatus.ERROR, None, f"Stored map data is invalid: {e}"
    return wrapper


def _map_not_found(map_id: str) -> ActionResult:
    return CommandStatus.NOT_FOUND, None, "Map not found"


@store_action
def list_maps_action(store: MapStore) -> ActionResult:
    """Action to list every map summary, in store order."""
    summaries = store.list_summaries()
    logger.debug("Found %d maps", len(summaries))
    return CommandStatus.SUCCESS, summaries, f"Found {len(summaries)} map(s)."


@store_action
def get_map_action(store: MapStore, map_id: str) -> ActionResult:
    system_map = store.load_map(map_id)
    if not system_map:
        return _map_not_found(map_id)
    logger.debug("Map found: %s with %d nodes", system_map.name, len(system_map.nodes))
    return CommandStatus.SUCCESS, system_map, f"Map '{map_id}' loaded."


@store_action
def create_map_action(store: MapStore, name: Optional[str] = None, description: Optional[str] = None,
                      nodes: Any = None, links: Any = None,
                      max_maps: int = 0, max_nodes: int = 0) -> ActionResult:
    """Action to create a new map. Without nodes the map starts with the seed 'Internet' node."""
    try:
        parsed_nodes = parse_nodes(nodes) if nodes is not None else None
        parsed_links = parse_links(links) if links is not None else None
    except ValueError as e:
        return CommandStatus.VALIDATION_ERROR, None, str(e)

    system_map = SystemMap.new(name, description, parsed_nodes, parsed_links)

    if max_nodes > 0 and len(system_map.nodes) > max_nodes:
        return CommandStatus.LIMIT_EXCEEDED, None, f"Too many nodes. Maximum allowed: {max_nodes}"
    if max_maps > 0 and store.count_maps() >= max_maps:
        return CommandStatus.LIMIT_EXCEEDED, None, f"Maximum maps limit reached: {max_maps}"

    store.save_map(system_map)
    logger.info("Map created: %s", system_map.id)
    return CommandStatus.SUCCESS, system_map, f"Created map '{system_map.name}' (ID: {system_map.id})."


@store_action
def update_map_metadata_action(store: MapStore, map_id: str, name: Optional[str] = None,
                               description: Optional[str] = None) -> ActionResult:
    """Action to rename a map or change its description. Returns the summary fields."""
    system_map = store.load_map(map_id)
    if not system_map:
        return _map_not_found(map_id)

    if name is not None:
        system_map.name = name
    if description is not None:
        system_map.description = description
    system_map.touch()
    store.save_map(system_map)

    logger.info("Map metadata updated: %s", map_id)
    data = {
        "id": system_map.id,
        "name": system_map.name,
        "description": system_map.description,
        "updated": system_map.updated,
    }
    return CommandStatus.SUCCESS, data, f"Map '{map_id}' updated."


@store_action
def delete_map_action(store: MapStore, map_id: str) -> ActionResult:
    # Only the full document is checked; a summary without a document is not found
    if store.load_map(map_id) is None:
        return _map_not_found(map_id)
    store.delete_map(map_id)
    logger.info("Map deleted: %s", map_id)
    return CommandStatus.SUCCESS, None, f"Map '{map_id}' deleted."


@store_action
def add_node_action(store: MapStore, map_id: str, node_id: Optional[str] = None,
                    group: Optional[str] = None, description: Optional[str] = None,
                    attributes: Any = None, parent_nodes: Any = None,
                    max_nodes: int = 0) -> ActionResult:
    """Action to add a node, linking it under each parent id given (existing or not)."""
    system_map = store.load_map(map_id)
    if not system_map:
        return _map_not_found(map_id)

    try:
        new_node = make_node(node_id, group, description, attributes)
    except ValueError as e:
        return CommandStatus.VALIDATION_ERROR, None, str(e)

    if system_map.has_node(new_node.id):
        return CommandStatus.ALREADY_EXISTS, None, "Node already exists"
    if max_nodes > 0 and len(system_map.nodes) >= max_nodes:
        return CommandStatus.LIMIT_EXCEEDED, None, f"Maximum nodes limit reached: {max_nodes}"

    parent_ids: List[str] = parent_nodes or []
    if not isinstance(parent_ids, list) or not all(isinstance(p, str) for p in parent_ids):
        return CommandStatus.VALIDATION_ERROR, None, "'parentNodes' must be an array of node ids"

    system_map.add_node(new_node, parent_ids)
    system_map.touch()
    store.save_map(system_map)

    logger.info("Node added: %s", new_node.id)
    return CommandStatus.SUCCESS, new_node, f"Added node '{new_node.id}' to map '{map_id}'."


@store_action
def update_node_action(store: MapStore, map_id: str, node_id: str, patch: Dict[str, Any]) -> ActionResult:
    """Action to patch a node. A 'parentNodes' list replaces the node's incoming links,
    silently dropping parents that do not exist."""
    system_map = store.load_map(map_id)
    if not system_map:
        return _map_not_found(map_id)
    if not system_map.has_node(node_id):
        return CommandStatus.NOT_FOUND, None, "Node not found"

    parent_nodes = patch.get("parentNodes")
    if parent_nodes is not None and not isinstance(parent_nodes, list):
        return CommandStatus.VALIDATION_ERROR, None, "'parentNodes' must be an array of node ids"

    try:
        updated_node = system_map.update_node(node_id, patch)
    except ValueError as e:
        return CommandStatus.VALIDATION_ERROR, None, str(e)

    system_map.touch()
    store.save_map(system_map)

    logger.info("Node updated: %s", node_id)
    return CommandStatus.SUCCESS, updated_node, f"Node '{node_id}' updated."


@store_action
def delete_node_action(store: MapStore, map_id: str, node_id: str) -> ActionResult:
    """Action to delete a node and all of its links. Deleting an absent node still saves the map."""
    system_map = store.load_map(map_id)
    if not system_map:
        return _map_not_found(map_id)

    removed = system_map.delete_node(node_id)
    system_map.touch()
    store.save_map(system_map)

    if removed:
        logger.info("Node deleted: %s", node_id)
    else:
        logger.debug("Node %s was not in map %s, nothing removed", node_id, map_id)
    return CommandStatus.SUCCESS, None, f"Deleted node '{node_id}' and its links."


@store_action
def delete_link_action(store: MapStore, map_id: str, source: str, target: str) -> ActionResult:
    """Action to remove every link matching source -> target exactly."""
    system_map = store.load_map(map_id)
    if not system_map:
        return _map_not_found(map_id)

    if system_map.delete_link(source, target) == 0:
        return CommandStatus.NOT_FOUND, None, "Connection not found"

    system_map.touch()
    store.save_map(system_map)

    logger.info("Connection removed: %s -> %s", source, target)
    data = {
        "message": "Connection removed successfully",
        "removedConnection": {"source": source, "target": target},
        "remainingLinks": len(system_map.links),
    }
    return CommandStatus.SUCCESS, data, data["message"]


@store_action
def node_connections_action(store: MapStore, map_id: str, node_id: str) -> ActionResult:
    system_map = store.load_map(map_id)
    if not system_map:
        return _map_not_found(map_id)

    report = node_connections(system_map, node_id)
    if report is None:
        return CommandStatus.NOT_FOUND, None, "Node not found"
    logger.debug("Found %d connections for node: %s", report["totalConnections"], node_id)
    return CommandStatus.SUCCESS, report, "Node connections computed."


@store_action
def all_connections_action(store: MapStore, map_id: str) -> ActionResult:
    system_map = store.load_map(map_id)
    if not system_map:
        return _map_not_found(map_id)

    connections = all_connections(system_map)
    data = {
        "mapId": map_id,
        "totalConnections": len(connections),
        "connections": connections,
    }
    return CommandStatus.SUCCESS, data, f"Found {len(connections)} connection(s)."


@store_action
def check_map_action(store: MapStore, map_id: str) -> ActionResult:
    """Action to report orphaned links, repeated node ids and self-links of a map."""
    system_map = store.load_map(map_id)
    if not system_map:
        return _map_not_found(map_id)

    report = check_map_data(system_map)
    if not report["valid"]:
        logger.warning("Map %s failed integrity check: %d orphaned link(s), %d duplicate node(s)",
                       map_id, len(report["orphanedLinks"]), len(report["duplicateNodes"]))
    return CommandStatus.SUCCESS, report, "Map checked."


def import_map_action(store: MapStore, document: Any, max_maps: int = 0, max_nodes: int = 0) -> ActionResult:
    """Action to validate an uploaded map document and create a new map from it."""
    problem = validate_import_document(document)
    if problem:
        return CommandStatus.VALIDATION_ERROR, None, problem
    return create_map_action(
        store,
        name=document.get("name"),
        description=document.get("description"),
        nodes=document["nodes"],
        links=document["links"],
        max_maps=max_maps,
        max_nodes=max_nodes,
    )
