"""In-memory persistence adapter.

Lightweight backend implementing the PersistenceAdapter contract for tests
and local runs. A single lock serialises writes so concurrent appends to the
same row never lose items.
"""

from __future__ import annotations

import copy
import threading
from typing import Dict, Any, List, Optional


class InMemoryAdapter:
	def __init__(self) -> None:
		self._tables: Dict[str, List[Dict[str, Any]]] = {}
		self._lock = threading.RLock()

	def _ensure(self, table: str) -> List[Dict[str, Any]]:
		return self._tables.setdefault(table, [])

	def _find(self, table: str, column: str, value: Any) -> Optional[Dict[str, Any]]:
		for row in self._ensure(table):
			if row.get(column) == value:
				return row
		return None

	# Write ops ---------------------------------------------------------
	def append_to_array(
		self,
		table: str,
		key_column: str,
		key: Any,
		array_column: str,
		item: Dict[str, Any],
	) -> None:
		with self._lock:
			row = self._find(table, key_column, key)
			if row is None:
				row = {key_column: key, array_column: []}
				self._ensure(table).append(row)
			row.setdefault(array_column, []).append(dict(item))

	# Read ops ----------------------------------------------------------
	def read(self, table: str, id_value: Any, id_column: str = "id") -> Optional[Dict[str, Any]]:
		with self._lock:
			row = self._find(table, id_column, id_value)
			# callers get a snapshot, never the live row
			return copy.deepcopy(row) if row is not None else None


__all__ = ["InMemoryAdapter"]
