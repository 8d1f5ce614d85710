"""Supabase adapter implementation.

Implements the PersistenceAdapter contract using the official Supabase SDK
with a REST fallback for reads. Appends go through the Postgres function
`smsgate_append_message` (see sql/001_sms_recipients.sql) so the
insert-or-append happens in a single statement on the server.
"""

from __future__ import annotations

import logging
from typing import Dict, Any, Optional

import requests

logger = logging.getLogger("smsgate.persistence.supabase")

APPEND_FUNCTION = "smsgate_append_message"
# (table, key column, array column) -> server function doing the append
APPEND_FUNCTIONS = {("sms_recipients", "id", "messages"): APPEND_FUNCTION}


def _data(resp: Any) -> Any:
	return getattr(resp, "data", None) if not isinstance(resp, dict) else resp.get("data")


class SupabaseAdapter:
	def __init__(self, url: str, key: str, client: Optional[Any] = None, timeout: float = 15.0):
		self.url = url.rstrip("/")
		self.key = key
		self.timeout = timeout
		if client is None:
			from supabase import create_client

			client = create_client(url, key)
		self.client = client

	# -------------------------------------------------- Write Ops ---------
	def append_to_array(
		self,
		table: str,
		key_column: str,
		key: Any,
		array_column: str,
		item: Dict[str, Any],
	) -> None:
		# each server function is bound to one table/column pair
		function = APPEND_FUNCTIONS.get((table, key_column, array_column))
		if function is None:
			raise ValueError(f"no append function deployed for {table}.{array_column}")
		self.client.rpc(function, {"p_key": key, "p_item": item}).execute()

	# -------------------------------------------------- Read Ops ----------
	def read(self, table: str, id_value: Any, id_column: str = "id") -> Optional[Dict[str, Any]]:
		try:
			resp = self.client.table(table).select("*").eq(id_column, id_value).limit(1).execute()
		except Exception as e:
			logger.warning("supabase sdk read failed, using REST fallback: %s", e)
			return self._rest_read(table, id_value, id_column)
		data = _data(resp)
		if isinstance(data, list) and data:
			return data[0]
		return None

	# -------------------------------------------------- REST Fallbacks ----
	def _rest_headers(self) -> Dict[str, str]:
		return {
			"apikey": self.key,
			"Authorization": f"Bearer {self.key}",
			"Accept": "application/json",
			"Content-Type": "application/json",
		}

	def _rest_read(self, table: str, id_value: Any, id_column: str) -> Optional[Dict[str, Any]]:
		url = f"{self.url}/rest/v1/{table}"
		params = {id_column: f"eq.{id_value}", "limit": 1}
		r = requests.get(url, headers=self._rest_headers(), params=params, timeout=self.timeout)
		r.raise_for_status()
		data = r.json()
		if isinstance(data, list) and data:
			return data[0]
		return None


__all__ = ["SupabaseAdapter", "APPEND_FUNCTION", "APPEND_FUNCTIONS"]
