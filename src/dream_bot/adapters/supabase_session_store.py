"""Supabase-backed session store."""

from dataclasses import dataclass, field

from supabase import Client

from dream_bot.services.sessions import SessionStore


@dataclass
class SupabaseSessionStore(SessionStore):
    """Supabase implementation of the ingest/query store.

    Each collection maps to a table with an ``id`` text key and a ``data``
    jsonb column. Ingested rows stay buffered until ``flush``.
    """

    client: Client
    pending: dict[str, list[dict[str, object]]] = field(default_factory=dict)

    def ingest(self, collection: str, events: list[dict[str, object]]) -> None:
        """Buffer rows for a later flush."""
        self.pending.setdefault(collection, []).extend(
            {"id": str(event["id"]), "data": event["data"]} for event in events
        )

    def flush(self) -> None:
        """Upsert every buffered row."""
        for collection in list(self.pending):
            rows = self.pending[collection]
            response = self.client.table(collection).upsert(rows).execute()
            if not response.data:
                raise RuntimeError(f"Failed to persist rows to {collection}")
            del self.pending[collection]

    def query(self, collection: str, record_id: str) -> list[dict[str, object]]:
        """Return stored rows for an id."""
        response = (
            self.client.table(collection)
            .select("id, data")
            .eq("id", record_id)
            .limit(1)
            .execute()
        )
        return list(response.data or [])
