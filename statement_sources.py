"""
Statement request handling
Property lookup, invoice retrieval from the billing service and the error kinds surfaced to callers
"""

import logging
from datetime import date, datetime
from typing import Any, Dict, Iterable, List, Optional, Tuple

import requests

from owner_statement import (
    Owner,
    OwnerStatementProcessor,
    Period,
    Property,
    Statement,
    Transaction,
)
from statement_reports import statement_to_dict

logger = logging.getLogger(__name__)


class StatementError(Exception):
    """Base exception for statement generation failures"""
    status_code = 500


class ValidationError(StatementError):
    """Raised when request parameters are missing or malformed"""
    status_code = 400

    def __init__(self, message: str, parameters: Iterable[str] = ()):
        super().__init__(message)
        self.parameters = list(parameters)


class PropertyNotFoundError(StatementError):
    """Raised when a property id does not resolve in the property store"""
    status_code = 404

    def __init__(self, property_id: int):
        super().__init__(f"Property {property_id} not found")
        self.property_id = property_id


class UpstreamUnavailableError(StatementError):
    """Raised when the billing service fails or returns malformed data"""
    status_code = 502


class ConfigurationError(StatementError):
    """Raised when configuration is invalid or missing"""


def property_from_dict(data: Dict[str, Any]) -> Property:
    owner_data = data.get("owner")
    owner = None
    if isinstance(owner_data, dict):
        owner = Owner(name=owner_data.get("name", ""), email=owner_data.get("email"))
    elif isinstance(owner_data, str):
        owner = Owner(name=owner_data)
    return Property(
        id=int(data["id"]),
        name=data.get("name", ""),
        is_admin_owned=bool(data.get("is_admin_owned", False)),
        owner=owner,
    )


class PropertyStore:
    """Properties keyed by id, as configured for the management company"""

    def __init__(self, properties: Iterable[Property] = ()):
        self._properties: Dict[int, Property] = {}
        for prop in properties:
            self._properties[prop.id] = prop

    @classmethod
    def from_config(cls, config: Dict[str, Any]) -> "PropertyStore":
        try:
            return cls(property_from_dict(p) for p in config.get("properties", []))
        except (KeyError, TypeError, ValueError) as e:
            raise ConfigurationError(f"Invalid property record in configuration: {e}")

    def get(self, property_id: int) -> Property:
        try:
            return self._properties[property_id]
        except KeyError:
            raise PropertyNotFoundError(property_id)

    def all(self) -> List[Property]:
        return sorted(self._properties.values(), key=lambda p: p.id)

    def __len__(self) -> int:
        return len(self._properties)


class BillingClient:
    """HTTP client for the remote billing service.

    Invoices are read from ``GET {base_url}/properties/{id}/invoices`` with
    ``startDate`` and ``endDate`` query parameters. The response may be a
    bare list of invoices or an object holding them under ``invoices``.
    """

    def __init__(self, base_url: str, api_key: Optional[str] = None, timeout: float = 20,
                 session: Optional[requests.Session] = None) -> None:
        self.base_url = base_url.rstrip("/")
        self.api_key = api_key
        self.timeout = timeout
        self.session = session or requests.Session()

    def configured(self) -> bool:
        return bool(self.base_url)

    def _headers(self) -> Dict[str, str]:
        headers = {"Accept": "application/json"}
        if self.api_key:
            headers["Authorization"] = f"Bearer {self.api_key}"
        return headers

    def get_invoices(self, property_id: int, start_date: str, end_date: str) -> List[Transaction]:
        url = f"{self.base_url}/properties/{property_id}/invoices"
        params = {"startDate": start_date, "endDate": end_date}
        try:
            resp = self.session.get(url, params=params, headers=self._headers(), timeout=self.timeout)
        except requests.RequestException as e:
            raise UpstreamUnavailableError(f"Billing service unreachable: {e}") from e

        if resp.status_code >= 400:
            raise UpstreamUnavailableError(
                f"Billing service returned {resp.status_code} for property {property_id}"
            )

        try:
            payload = resp.json()
        except ValueError as e:
            raise UpstreamUnavailableError("Billing service returned a non-JSON response") from e

        if isinstance(payload, dict):
            payload = payload.get("invoices")
        if not isinstance(payload, list) or not all(isinstance(item, dict) for item in payload):
            raise UpstreamUnavailableError("Billing service returned malformed invoice data")

        return [Transaction.from_dict(item) for item in payload]


def get_sample_invoices(property_id: int) -> List[Dict[str, Any]]:
    """Get sample invoice data"""
    return [
        {
            'id': f'{property_id}-0001',
            'name': 'Reservation HSP001',
            'value': '1800.00',
            'date': '2025-09-05',
            'series': 'FT2025'
        },
        {
            'id': f'{property_id}-0002',
            'name': 'Reservation HSP002',
            'value': '2500.00',
            'date': '2025-09-15',
            'series': 'FT2025'
        },
        {
            'id': f'{property_id}-0003',
            'name': 'Reservation HSP003',
            'value': '2200.00',
            'date': '2025-09-25',
            'series': 'FT2025'
        }
    ]


class SampleBillingSource:
    """Demo invoices used when no billing service is configured"""

    def configured(self) -> bool:
        return False

    def get_invoices(self, property_id: int, start_date: str, end_date: str) -> List[Transaction]:
        start, end = _parse_date(start_date), _parse_date(end_date)
        invoices = []
        for item in get_sample_invoices(property_id):
            issued = _parse_date(item['date'])
            if start and issued < start:
                continue
            if end and issued > end:
                continue
            invoices.append(Transaction.from_dict(item))
        return invoices


def _parse_date(value: Any) -> Optional[date]:
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    try:
        return datetime.fromisoformat(str(value)).date()
    except ValueError:
        return None


def create_billing_source(config: Dict[str, Any]):
    """Billing client for the configured service, or demo data when none is set"""
    billing = config.get("billing", {})
    if billing.get("base_url"):
        return BillingClient(billing["base_url"], billing.get("api_key"), billing.get("timeout", 20))
    logger.info("No billing service configured, using sample invoices")
    return SampleBillingSource()


class StatementService:
    """Resolves a statement request into a generated statement"""

    def __init__(self, processor: OwnerStatementProcessor, properties: PropertyStore, billing):
        self.processor = processor
        self.properties = properties
        self.billing = billing

    def validate_request(self, property_id: Any, start_date: Any, end_date: Any) -> int:
        missing = [name for name, value in (("propertyId", property_id),
                                            ("startDate", start_date),
                                            ("endDate", end_date))
                   if value is None or value == ""]
        if missing:
            raise ValidationError(
                "Property ID, start date, and end date are required (missing: %s)" % ", ".join(missing),
                missing,
            )

        try:
            parsed_id = int(str(property_id).strip())
        except ValueError:
            raise ValidationError(f"Property ID must be an integer, got {property_id!r}", ["propertyId"])

        start, end = _parse_date(start_date), _parse_date(end_date)
        if start and end and start > end:
            raise ValidationError(
                f"Start date {start_date} is after end date {end_date}",
                ["startDate", "endDate"],
            )
        return parsed_id

    def generate_statement(self, property_id: Any, start_date: Any, end_date: Any) -> Statement:
        parsed_id = self.validate_request(property_id, start_date, end_date)
        prop = self.properties.get(parsed_id)
        invoices = self.billing.get_invoices(parsed_id, start_date, end_date)
        statement = self.processor.generate_statement(prop, invoices, Period(start_date, end_date))
        logger.info(
            "Generated statement for property %s (%s to %s): %d invoices, owner amount %s",
            parsed_id, start_date, end_date, statement.invoice_count,
            statement.calculations.final_owner_amount,
        )
        return statement

    def generate(self, property_id: Any, start_date: Any, end_date: Any) -> Dict[str, Any]:
        statement = self.generate_statement(property_id, start_date, end_date)
        return {
            "message": "Owner statement generated successfully",
            "statement": statement_to_dict(statement),
        }

    def handle(self, property_id: Any, start_date: Any, end_date: Any) -> Tuple[int, Dict[str, Any]]:
        """Generate a statement and map failures to a status code and message body"""
        try:
            return 200, self.generate(property_id, start_date, end_date)
        except ValidationError as e:
            logger.warning("Rejected statement request: %s", e)
            return e.status_code, {"message": str(e), "parameters": e.parameters}
        except PropertyNotFoundError as e:
            logger.warning("Statement requested for unknown property %s", e.property_id)
            return e.status_code, {"message": str(e)}
        except StatementError as e:
            logger.error("Error generating statement for property %s: %s", property_id, e)
            return e.status_code, {"message": str(e)}
        except Exception as e:
            logger.exception("Unexpected error generating statement for property %s", property_id)
            return 500, {"message": str(e)}
