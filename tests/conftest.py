"""
Shared fixtures: an in-memory reconciliation database, a sample account and
builders for the Magaya XML the pipeline reads.
"""

import pytest

from envoice.infrastructure.database import Database
from envoice.models.account import Account
from envoice.services.reconciliation_store import AccountRepository, ReconciliationStore

MAGAYA_NS = "http://www.magaya.com/XMLSchema/V1"
SOAP_NS = "http://schemas.xmlsoap.org/soap/envelope/"


def custom_fields_xml(fields):
    items = "".join(
        "<CustomField>"
        f"<CustomFieldDefinition><InternalName>{name}</InternalName></CustomFieldDefinition>"
        f"<Value>{value}</Value>"
        "</CustomField>"
        for name, value in fields.items()
    )
    return f"<CustomFields>{items}</CustomFields>"


def entity_xml(country_code="CO", country="Colombia"):
    fields = custom_fields_xml(
        {
            "additionalaccountid": "1 - Persona Juridica",
            "documenttype": "31 - NIT",
            "correo_facturacion": "billing@acme.example",
        }
    )
    return (
        '<Entity GUID="entity-guid-1">'
        "<Name>Acme Corp</Name>"
        "<EntityID>900123456</EntityID>"
        "<Phone>3001234567</Phone>"
        "<Address>"
        "<Street>Calle 100 # 10-20</Street>"
        "<City>Bogota</City>"
        "<ZipCode>110111</ZipCode>"
        f'<Country Code="{country_code}">{country}</Country>'
        "</Address>"
        f"{fields}"
        "</Entity>"
    )


CHARGES_XML = (
    "<Charges><Charge>"
    "<Quantity>1</Quantity>"
    '<PriceInCurrency Currency="USD">1010.50</PriceInCurrency>'
    '<AmountInCurrency Currency="USD">1010.50</AmountInCurrency>'
    "<TaxAmountInCurrency>190.00</TaxAmountInCurrency>"
    "<ChargeDefinition><Code>FLT</Code><Description>Ocean freight</Description></ChargeDefinition>"
    "<TaxDefinition><Rate>19.00</Rate></TaxDefinition>"
    "</Charge></Charges>"
)


def invoice_xml(
    number="101",
    fields=None,
    notes="",
    charges=CHARGES_XML,
    country_code="CO",
    tag="Invoice",
):
    """Full transaction XML as returned by GetTransaction."""
    return (
        f'<{tag} xmlns="{MAGAYA_NS}" GUID="guid-{number}">'
        f"<Number>{number}</Number>"
        "<CreatedOn>2024-03-05T14:30:15-05:00</CreatedOn>"
        f"<Notes>{notes}</Notes>"
        '<TotalAmountInCurrency Currency="USD">1200.50</TotalAmountInCurrency>'
        '<TaxAmountInCurrency Currency="USD">190.00</TaxAmountInCurrency>'
        "<Currency><Code>USD</Code><ExchangeRate>0.00025</ExchangeRate></Currency>"
        f"{entity_xml(country_code)}"
        f"{charges}"
        f"{custom_fields_xml(fields or {})}"
        f"</{tag}>"
    )


def list_xml(numbers, tag="Invoice", root="Invoices"):
    """Page payload of GetNextTransbyDate."""
    items = "".join(
        f'<{tag} GUID="guid-{number}-{index}"><Number>{number}</Number></{tag}>'
        for index, number in enumerate(numbers)
    )
    return f'<{root} xmlns="{MAGAYA_NS}">{items}</{root}>'


def soap_response(operation, nodes):
    """SOAP envelope with ``<{operation}Out>`` carrying the given child nodes."""
    children = "".join(f"<{name}>{value}</{name}>" for name, value in nodes.items())
    return (
        f'<soap:Envelope xmlns:soap="{SOAP_NS}"><soap:Body>'
        f"<{operation}Out>{children}</{operation}Out>"
        "</soap:Body></soap:Envelope>"
    ).encode("utf-8")


class SleepRecorder:
    """Awaitable stand-in for asyncio.sleep that records requested delays."""

    def __init__(self):
        self.delays = []

    async def __call__(self, delay):
        self.delays.append(delay)


@pytest.fixture
def database():
    db = Database("sqlite:///:memory:")
    db.create_tables()
    yield db
    db.dispose()


@pytest.fixture
def store(database):
    return ReconciliationStore(database.SessionLocal)


@pytest.fixture
def account_repository(database):
    return AccountRepository(database.SessionLocal)


@pytest.fixture
def account():
    return Account(
        name="Acme Logistics",
        network_id="12345",
        source_url="https://12345.magayacloud.com/CSSoapService",
        source_user="api",
        source_password="secret",
        signing_user="acme",
        signing_password="secret",
    )


@pytest.fixture
def sleep_recorder():
    return SleepRecorder()
