"""
Kind registry - maps each document kind to its descriptor.
"""

from typing import Dict, FrozenSet, List

from loguru import logger

from envoice.kinds.base import KindDescriptor
from envoice.kinds.cancellation import CANCELLATION
from envoice.kinds.credit_note import CREDIT_NOTE
from envoice.kinds.invoice import INVOICE
from envoice.models.document import DocumentKind


class KindRegistry:
    """Registry for the document kinds handled by the pipeline."""

    def __init__(self):
        self._descriptors: Dict[DocumentKind, KindDescriptor] = {}
        self._register_built_in_kinds()

    def _register_built_in_kinds(self):
        """Register built-in kinds in processing order."""
        self.register(INVOICE)
        self.register(CREDIT_NOTE)
        self.register(CANCELLATION)

    def register(self, descriptor: KindDescriptor):
        """Register a descriptor, replacing any previous one for the same kind."""
        self._descriptors[descriptor.kind] = descriptor
        logger.debug(f"Document kind registered: {descriptor.name}")

    def get(self, kind: DocumentKind) -> KindDescriptor:
        """Get a descriptor by kind."""
        if kind not in self._descriptors:
            raise ValueError(f"Unknown document kind: {kind}")
        return self._descriptors[kind]

    def list(self) -> List[KindDescriptor]:
        """All descriptors in registration order."""
        return list(self._descriptors.values())

    def allowed_states(self, record_kind: str) -> FrozenSet[str]:
        """Enumerated process states accepted for records stored under ``record_kind``."""
        return self.get(DocumentKind(record_kind)).allowed_states

    def incomplete_states(self, record_kind: str) -> FrozenSet[str]:
        return self.get(DocumentKind(record_kind)).incomplete_states


# Global registry instance
kind_registry = KindRegistry()
