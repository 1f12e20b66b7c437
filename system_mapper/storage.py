# system_mapper/storage.py
import json
import logging
from typing import Optional, List, Dict, Any

import redis

from .systemmap import SystemMap, utc_now_iso
from .models import MapSummary

logger = logging.getLogger(__name__)

MAPS_LIST_KEY = "maps:list"
MAP_KEY_PREFIX = "map:"
DEFAULT_MAP_ID = "default"


def map_key(map_id: str) -> str:
    return f"{MAP_KEY_PREFIX}{map_id}"


def connect(redis_url: str) -> redis.Redis:
    """Creates the shared Redis client. The client reconnects on its own after drops."""
    return redis.Redis.from_url(redis_url, decode_responses=True)


class MapStore:
    """Whole-document persistence of system maps in Redis.

    Layout: one hash (maps:list) of id -> JSON MapSummary, and one string
    key per map (map:<id>) holding the full JSON document. Nothing here
    locks across a read-modify-write, so two writers on the same map id
    race and the last save wins.
    """

    def __init__(self, client: redis.Redis):
        self.client = client

    def ping(self) -> bool:
        return bool(self.client.ping())

    def list_summaries(self) -> List[Dict[str, Any]]:
        raw = self.client.hgetall(MAPS_LIST_KEY)
        return [json.loads(value) for value in raw.values()]

    def count_maps(self) -> int:
        return int(self.client.hlen(MAPS_LIST_KEY))

    def has_index(self) -> bool:
        return bool(self.client.exists(MAPS_LIST_KEY))

    def load_map(self, map_id: str) -> Optional[SystemMap]:
        """Returns the stored map, or None if the key is absent."""
        raw = self.client.get(map_key(map_id))
        if raw is None:
            return None
        return SystemMap.from_dict(json.loads(raw))

    def load_summary(self, map_id: str) -> Optional[MapSummary]:
        raw = self.client.hget(MAPS_LIST_KEY, map_id)
        if raw is None:
            return None
        return MapSummary.from_dict(json.loads(raw))

    def save_map(self, system_map: SystemMap):
        """Writes the full document, then its summary. Two separate writes, no rollback."""
        self.client.set(map_key(system_map.id), json.dumps(system_map.to_dict(), ensure_ascii=False))
        self.client.hset(MAPS_LIST_KEY, system_map.id,
                         json.dumps(system_map.summary().to_dict(), ensure_ascii=False))

    def delete_map(self, map_id: str):
        self.client.hdel(MAPS_LIST_KEY, map_id)
        self.client.delete(map_key(map_id))


def bootstrap_default_map(store: MapStore, default_name: str) -> Optional[SystemMap]:
    """Seeds the 'default' map when the maps:list hash does not exist yet.

    Returns the seeded map, or None when nothing was written. Store errors
    are logged and swallowed so the application can still start.
    """
    try:
        if store.has_index():
            return None
        logger.info("Creating default map...")
        now = utc_now_iso()
        default_map = SystemMap.from_dict({
            "id": DEFAULT_MAP_ID,
            "name": default_name,
            "description": "Default system map",
            "nodes": [
                {"id": "Internet", "group": "External"},
                {"id": "Router", "group": "Hardware"},
            ],
            "links": [{"source": "Internet", "target": "Router"}],
            "created": now,
            "updated": now,
        })
        store.save_map(default_map)
        logger.info("Default map created")
        return default_map
    except redis.exceptions.RedisError as e:
        logger.error("Error initializing default map: %s", e)
        return None
