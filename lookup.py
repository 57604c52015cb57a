import logging
from typing import Any, Dict, Optional

import requests

from errors import ExternalServiceError

logger = logging.getLogger(__name__)


class ProductLookupClient:
    """Thin client for the Open Food Facts product endpoint.

    ``lookup`` never raises: any failure degrades to "no result" so the
    add-product flow always completes.
    """

    def __init__(self, base_url: str, timeout: float = 5.0, session: Optional[requests.Session] = None) -> None:
        self.base = base_url.rstrip("/")
        self.timeout = timeout
        self.s = session or requests.Session()
        self.s.headers.update({"Accept": "application/json"})

    def _url(self, barcode: str) -> str:
        return f"{self.base}/api/v0/product/{barcode}.json"

    def fetch(self, barcode: str) -> Dict[str, Any]:
        try:
            r = self.s.get(self._url(barcode), timeout=self.timeout)
        except requests.RequestException as exc:
            raise ExternalServiceError(f"lookup request failed: {exc}") from exc

        if r.status_code != 200:
            raise ExternalServiceError(f"lookup returned HTTP {r.status_code}")
        try:
            payload = r.json()
        except ValueError as exc:
            raise ExternalServiceError("lookup returned malformed JSON") from exc

        if not isinstance(payload, dict) or payload.get("status") != 1:
            raise ExternalServiceError(f"product {barcode} not found")
        product = payload.get("product")
        if not isinstance(product, dict):
            raise ExternalServiceError(f"product {barcode} has no product object")
        return product

    def lookup(self, barcode: Optional[str]) -> Optional[Dict[str, Any]]:
        if not barcode:
            return None
        try:
            return self.fetch(barcode)
        except ExternalServiceError as exc:
            logger.warning("Product lookup for %s degraded to no result: %s", barcode, exc)
            return None
