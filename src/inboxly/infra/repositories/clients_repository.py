"""Clients repository - lead lookup and creation for identity resolution.

Uses raw SQL with psycopg2 (no ORM).

Phone matching goes through clients.phone_normalized, computed with
normalize_phone() at write time and indexed per organization, so lookup is
a single index probe instead of a scan over every client.
"""

from psycopg2.extensions import cursor as PgCursor

from inboxly.domain.ports import Client, LeadAttributes
from inboxly.whatsapp.models import Provider

# integrations.integration_type per provider
INTEGRATION_TYPES: dict[str, str] = {
    "greenapi": "green_api",
    "wazzup": "wazzup",
    "evolution": "evolution_api",
}


class PgClientDirectory:
    """ClientDirectory backed by the clients and integrations tables."""

    def __init__(self, cur: PgCursor) -> None:
        self._cur = cur

    def find_by_normalized_phone(self, organization_id: str, phone: str) -> Client | None:
        """Return the oldest client of the organization with this phone."""
        if not phone:
            return None
        self._cur.execute(
            """
            SELECT id, organization_id, name, phone
            FROM clients
            WHERE organization_id = %s AND phone_normalized = %s
            ORDER BY created_at ASC
            LIMIT 1
            """,
            (organization_id, phone),
        )
        row = self._cur.fetchone()
        if row is None:
            return None
        return Client(
            id=str(row[0]),
            organization_id=str(row[1]),
            name=row[2] or "",
            phone=row[3],
        )

    def create_lead(self, organization_id: str, attrs: LeadAttributes) -> Client:
        """Insert a new lead and return it."""
        self._cur.execute(
            """
            INSERT INTO clients (
                organization_id, name, company, phone, phone_normalized,
                status, source, utm_source, utm_medium, utm_campaign,
                description
            )
            VALUES (%s, %s, '', %s, %s, %s, %s, %s, %s, %s, %s)
            RETURNING id
            """,
            (
                organization_id,
                attrs.name,
                attrs.phone,
                attrs.phone_normalized,
                attrs.status,
                attrs.source,
                attrs.utm_source,
                attrs.utm_medium,
                attrs.utm_campaign,
                attrs.description,
            ),
        )
        row = self._cur.fetchone()
        return Client(
            id=str(row[0]),
            organization_id=organization_id,
            name=attrs.name,
            phone=attrs.phone,
        )

    def find_integration_organizations(self, provider: Provider) -> list[str]:
        """Organizations with an active integration of this provider type."""
        self._cur.execute(
            """
            SELECT DISTINCT organization_id
            FROM integrations
            WHERE integration_type = %s AND is_active = true
              AND organization_id IS NOT NULL
            """,
            (INTEGRATION_TYPES[provider],),
        )
        return [str(row[0]) for row in self._cur.fetchall()]
