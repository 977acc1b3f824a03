"""
Field-update propagator: writes pipeline results back onto ERP custom fields.
"""

import asyncio
from typing import Dict

from loguru import logger

from envoice.exceptions import FieldUpdateError
from envoice.models.account import Account
from envoice.observability import record_field_write
from envoice.services.source_client import MagayaClient


class FieldPropagator:
    """Awaited custom field writes; every failure is logged and re-raised."""

    def __init__(self, client: MagayaClient, source_type: str = "IN"):
        self.client = client
        self.source_type = source_type

    async def propagate(
        self,
        account: Account,
        access_key: str,
        document_id: str,
        field_name: str,
        value: str,
    ) -> str:
        """
        Write one custom field.

        Returns:
            The ERP acknowledgement string

        Raises:
            FieldUpdateError: If the call fails or the ERP returns an empty acknowledgement
        """
        try:
            ack = await self.client.set_custom_field(
                account, access_key, self.source_type, document_id, field_name, value or ""
            )
        except Exception as e:
            record_field_write("failed")
            logger.error(f"Writing {field_name} on document {document_id} failed: {e}")
            raise FieldUpdateError(document_id, field_name, original_exception=e) from e

        if not ack.ok:
            record_field_write("failed")
            logger.error(f"ERP did not save {field_name} on document {document_id}")
            raise FieldUpdateError(document_id, field_name)

        record_field_write("success")
        return ack.result

    async def propagate_many(
        self,
        account: Account,
        access_key: str,
        document_id: str,
        updates: Dict[str, str],
    ) -> Dict[str, str]:
        """
        Write several independent fields concurrently.

        Every write is awaited before returning; if any failed, the first
        FieldUpdateError is raised after all of them completed.
        """
        names = list(updates)
        results = await asyncio.gather(
            *(
                self.propagate(account, access_key, document_id, name, updates[name])
                for name in names
            ),
            return_exceptions=True,
        )
        for result in results:
            if isinstance(result, BaseException):
                raise result
        return dict(zip(names, results))
