"""
Credit note descriptor.
"""

from envoice.kinds.base import (
    KindDescriptor,
    StatusFields,
    StatusVocabulary,
    request_predicate,
)
from envoice.models.document import DocumentKind
from envoice.services.payload import build_credit_note_payload
from envoice.services.retry_service import RetryPolicy

NOT_ISSUED = "Sin Nota de Credito"
ERROR = "Error en Nota de Credito"
ISSUED = "Nota de Credito Exitosa"

CREDIT_NOTE = KindDescriptor(
    kind=DocumentKind.CREDIT_NOTE,
    list_element="CreditMemo",
    query_function="IsSolicitudCreditNoteCol",
    lookback_days=30,
    endpoint="creditNote/",
    range_type="creditNote",
    fields=StatusFields(
        request="solicitud_nota_credito",
        process="estado_nota_credito",
        message="credit_note_messages",
        external_code="tas_code_nota_credito",
        fiscal_reference="cufe_nota_credito",
    ),
    vocabulary=StatusVocabulary(
        please_process="Emitir Nota de Credito",
        not_issued=NOT_ISSUED,
        error=ERROR,
        issued=ISSUED,
        in_progress="En Proceso",
        success_request=ISSUED,
    ),
    poll_policy=RetryPolicy(max_attempts=10, initial_delay=15.0, delay_first=True),
    build_payload=build_credit_note_payload,
    predicate=request_predicate,
    allowed_states=frozenset({NOT_ISSUED, ERROR, ISSUED}),
    incomplete_states=frozenset({NOT_ISSUED, ERROR}),
)
