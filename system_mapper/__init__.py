"""System Mapper: named infrastructure graphs stored in Redis, edited over a REST API."""

__version__ = "1.0.0"
