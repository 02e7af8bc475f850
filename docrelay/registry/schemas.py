"""Schema Registry - document type name to handling configuration.

Thread-safe registry populated at actor setup. Re-registering a schema
type overwrites its previous configuration; nothing is merged.
"""

import threading
from types import MappingProxyType
from typing import Dict, List, Mapping, Optional

from docrelay.logging import get_component_logger
from docrelay.protocols import LoggerProtocol, SchemaTypeConfig


class SchemaRegistry:
    """Stores one SchemaTypeConfig per schema type."""

    def __init__(self, logger: Optional[LoggerProtocol] = None) -> None:
        self._configs: Dict[str, SchemaTypeConfig] = {}
        self._lock = threading.RLock()
        self._logger = get_component_logger("SchemaRegistry", logger)

    def register(self, schema_type: str, config: SchemaTypeConfig) -> Optional[SchemaTypeConfig]:
        """Register (or replace) the configuration for a schema type.

        Args:
            schema_type: Document type name, also the inbound endpoint path
            config: Handling configuration

        Returns:
            The configuration that was replaced, if any

        Raises:
            ValueError: If schema_type is empty
        """
        if not schema_type:
            raise ValueError("Schema type cannot be empty")

        with self._lock:
            previous = self._configs.get(schema_type)
            self._configs[schema_type] = config

        self._logger.info(
            "schema_type_registered",
            schema_type=schema_type,
            allow_subscribe=config.allow_subscribe,
            replaced=previous is not None,
        )
        return previous

    def get(self, schema_type: str) -> Optional[SchemaTypeConfig]:
        with self._lock:
            return self._configs.get(schema_type)

    def has(self, schema_type: str) -> bool:
        with self._lock:
            return schema_type in self._configs

    def schema_types(self) -> List[str]:
        with self._lock:
            return list(self._configs.keys())

    def snapshot(self) -> Mapping[str, SchemaTypeConfig]:
        """Read-only copy of the full map."""
        with self._lock:
            return MappingProxyType(dict(self._configs))

    def to_dict(self) -> Dict[str, Dict[str, bool]]:
        """JSON-safe view of every registration."""
        return {name: config.to_dict() for name, config in self.snapshot().items()}

    def __len__(self) -> int:
        with self._lock:
            return len(self._configs)

    def __repr__(self) -> str:
        return f"SchemaRegistry(schema_types={self.schema_types()})"
