from typing import Any, Callable, Dict, List, Optional, Protocol
import logging
import time

from .exceptions import AdapterError, TableNotAllowedError, ValidationError
from . import metrics

logger = logging.getLogger("smsgate.persistence")


class PersistenceAdapter(Protocol):
    """Protocol for adapters (Supabase / in-memory)."""

    def read(self, table: str, id_value: Any, id_column: str = "id") -> Optional[Dict[str, Any]]: ...
    def append_to_array(
        self,
        table: str,
        key_column: str,
        key: Any,
        array_column: str,
        item: Dict[str, Any],
    ) -> None: ...


class PersistenceService:
    """High-level persistence facade adding validation & cross-cutting hooks.

    Responsibilities
    ----------------
    - Enforce allow-lists per operation (read vs write).
    - Strip None fields before writes.
    - Wrap adapter calls to add timing, metrics and uniform error wrapping
      (backend exceptions surface as AdapterError).
    """

    def __init__(
        self,
        adapter: PersistenceAdapter,
        read_allowlist: Optional[List[str]] = None,
        write_allowlist: Optional[List[str]] = None,
    ):
        self.adapter = adapter
        self.read_allowlist = set(t.lower() for t in (read_allowlist or [])) or None
        self.write_allowlist = set(t.lower() for t in (write_allowlist or [])) or None

    # -------- internal helpers --------
    def _check_table(self, table: str, *, write: bool):
        tbl = table.lower()
        allow = self.write_allowlist if write else self.read_allowlist
        if allow and tbl not in allow:
            kind = "Write" if write else "Read"
            raise TableNotAllowedError(f"{kind} access to table '{table}' is not permitted by policy")

    def _clean(self, record: Dict[str, Any]) -> Dict[str, Any]:
        return {k: v for k, v in record.items() if v is not None}

    # -------- write APIs --------
    def append_to_array(
        self,
        table: str,
        key_column: str,
        key: Any,
        array_column: str,
        item: Dict[str, Any],
    ) -> None:
        """Atomically append `item` to the JSON array column of the row keyed by `key`.

        The row is created when absent. Concurrent appends for the same key
        must not lose items; that guarantee is delegated to the adapter.
        """
        self._check_table(table, write=True)
        if key is None or key == "":
            raise ValidationError("append_to_array requires a non-empty key")
        return self._invoke(
            "append",
            table,
            lambda: self.adapter.append_to_array(table, key_column, key, array_column, self._clean(item)),
        )

    # -------- read APIs --------
    def read(self, table: str, id_value: Any, id_column: str = "id") -> Optional[Dict[str, Any]]:
        self._check_table(table, write=False)
        return self._invoke("read", table, lambda: self.adapter.read(table, id_value, id_column=id_column))

    # -------- instrumentation wrapper --------
    def _invoke(self, op: str, table: str, func: Callable[[], Any]):
        start = time.time()
        failed = False
        try:
            return func()
        except Exception as e:
            failed = True
            raise AdapterError(f"Adapter error during {op} on {table}: {e}") from e
        finally:
            duration = (time.time() - start) * 1000.0
            metrics.inc(op, table, failed=failed)
            metrics.observe(op, table, duration)
            logger.debug("persistence op=%s table=%s ms=%.1f failed=%s", op, table, duration, failed)


def build_service(kind: str, supabase_url: Optional[str] = None, supabase_key: Optional[str] = None,
                  tables: Optional[List[str]] = None) -> PersistenceService:
    """Build a PersistenceService for PERSIST_KIND ('memory' or 'supabase')."""
    kind = (kind or "memory").lower()
    if kind == "supabase":
        if not supabase_url or not supabase_key:
            raise RuntimeError("SUPABASE_URL / SUPABASE_KEY not configured for persistence")
        # local import keeps the supabase SDK off the in-memory path
        from smsgate.tools.persistence.adapters.supabase_adapter import SupabaseAdapter

        adapter: PersistenceAdapter = SupabaseAdapter(supabase_url, supabase_key)
    elif kind == "memory":
        from smsgate.tools.persistence.adapters.in_memory_adapter import InMemoryAdapter

        adapter = InMemoryAdapter()
    else:
        raise ValueError(f"Unknown persistence kind: {kind}")
    return PersistenceService(adapter, read_allowlist=tables, write_allowlist=tables)


__all__ = ["PersistenceService", "PersistenceAdapter", "build_service"]
