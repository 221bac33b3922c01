"""
Tables and buses configuration blobs
"""

import logging
from typing import Any, Callable, List, Optional, Type, TypeVar

from pydantic import ValidationError

from bigday.core.errors import NotFound, ValidationFailed
from bigday.schemas.config import BusConfig, BusesConfig, TableConfig, TablesConfig
from bigday.services.kv_store import KeyValueStore
from bigday.services.storage_keys import CONFIG_BUSES_KEY, CONFIG_TABLES_KEY
from bigday.utils.tokens import utc_now_iso

logger = logging.getLogger(__name__)

ConfigT = TypeVar("ConfigT", TablesConfig, BusesConfig)


class ConfigService:
    def __init__(self, kv: KeyValueStore, clock: Callable[[], str] = utc_now_iso):
        self.kv = kv
        self.clock = clock

    def _read(self, key: str, items_field: str, schema: Type[ConfigT]) -> Optional[ConfigT]:
        """Read a config blob, accepting the older bare-list shape"""
        raw: Any = self.kv.get(key)
        if raw is None:
            return None
        if isinstance(raw, list):
            raw = {items_field: raw, "updatedAt": self.clock()}
        elif isinstance(raw, dict) and isinstance(raw.get(items_field), list):
            updated_at = raw.get("updatedAt")
            raw = {
                items_field: raw[items_field],
                "updatedAt": updated_at if isinstance(updated_at, str) and updated_at else self.clock(),
            }
        else:
            logger.warning(f"Unrecognized config shape under {key}")
            return None
        try:
            return schema.model_validate(raw)
        except ValidationError:
            logger.warning(f"Config under {key} failed validation, ignoring it")
            return None

    @staticmethod
    def _ensure_unique(ids: List[str], what: str) -> None:
        if len(ids) != len(set(ids)):
            raise ValidationFailed(f"Duplicate {what} ids")

    # Tables
    def get_tables(self) -> Optional[TablesConfig]:
        return self._read(CONFIG_TABLES_KEY, "tables", TablesConfig)

    def get_table(self, table_id: str) -> TableConfig:
        config = self.get_tables()
        for table in config.tables if config else []:
            if table.id == table_id:
                return table
        raise NotFound("Table not found")

    def save_tables(self, tables: List[TableConfig]) -> TablesConfig:
        self._ensure_unique([t.id for t in tables], "table")
        config = TablesConfig(tables=tables, updated_at=self.clock())
        self.kv.set(CONFIG_TABLES_KEY, config.to_document())
        return config

    # Buses
    def get_buses(self) -> Optional[BusesConfig]:
        return self._read(CONFIG_BUSES_KEY, "buses", BusesConfig)

    def save_buses(self, buses: List[BusConfig]) -> BusesConfig:
        self._ensure_unique([b.id for b in buses], "bus")
        config = BusesConfig(buses=buses, updated_at=self.clock())
        self.kv.set(CONFIG_BUSES_KEY, config.to_document())
        return config
