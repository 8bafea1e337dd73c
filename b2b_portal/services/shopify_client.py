"""Shopify Admin API client for draft orders and customer lookup."""
import logging
from typing import Any, Dict, Optional

import requests

from b2b_portal.exceptions import DraftOrderSubmissionError

logger = logging.getLogger(__name__)


class ShopifyClient:
    """Cliente para interactuar con la API Admin de Shopify."""

    def __init__(
        self,
        shop_domain: str,
        access_token: str,
        api_version: str = '2023-10',
        timeout: int = 15,
        http=None
    ):
        """
        Initialize Shopify client.

        Args:
            shop_domain: Store domain, e.g. 'mi-tienda.myshopify.com'
            access_token: Admin API access token
            api_version: Admin REST API version
            timeout: Seconds before a request is abandoned
            http: requests-compatible session (defaults to a new requests.Session)
        """
        self.base_url = f"https://{shop_domain}/admin/api/{api_version}"
        self.timeout = timeout
        self.http = http or requests.Session()
        self.headers = {
            'X-Shopify-Access-Token': access_token,
            'Content-Type': 'application/json'
        }

    @classmethod
    def from_config(cls, config) -> 'ShopifyClient':
        return cls(
            shop_domain=config['SHOPIFY_STORE_DOMAIN'],
            access_token=config['SHOPIFY_ADMIN_API_TOKEN'],
            api_version=config.get('SHOPIFY_API_VERSION', '2023-10'),
            timeout=config.get('SHOPIFY_TIMEOUT', 15)
        )

    def create_draft_order(self, payload: Dict[str, Any]) -> Dict[str, Any]:
        """
        Crear draft order en Shopify. Single attempt, no retry.

        Args:
            payload: ``{"draft_order": {...}}`` request body

        Returns:
            The created draft order (``id``, ``name``, ``total_price``,
            ``total_discounts``, ``currency``, ...)

        Raises:
            DraftOrderSubmissionError: On non-2xx responses, transport errors or
                a response without a draft order id
        """
        url = f"{self.base_url}/draft_orders.json"

        try:
            response = self.http.post(url, json=payload, headers=self.headers, timeout=self.timeout)
        except requests.RequestException as e:
            logger.error(f"[SHOPIFY] Draft order request failed: {e}")
            raise DraftOrderSubmissionError(upstream_body=str(e)) from e

        if not response.ok:
            logger.error(f"[SHOPIFY] Error creando draft order: {response.status_code} {response.text}")
            raise DraftOrderSubmissionError(response.status_code, response.text)

        try:
            draft_order = response.json().get('draft_order') or {}
        except ValueError as e:
            logger.error(f"[SHOPIFY] Invalid JSON in draft order response: {response.text}")
            raise DraftOrderSubmissionError(response.status_code, 'respuesta inválida') from e

        if not draft_order.get('id'):
            logger.error(f"[SHOPIFY] Unexpected draft order response: {response.text}")
            raise DraftOrderSubmissionError(response.status_code, 'respuesta sin draft_order')

        logger.info(f"[SHOPIFY] ✓ Draft order created: {draft_order['id']}")
        return draft_order

    def find_customer_by_email(self, email: str) -> Optional[Dict[str, Any]]:
        """
        Buscar cliente en Shopify por email.

        Returns:
            Customer dict (with its ``tags`` string) or None if not found

        Raises:
            requests.HTTPError: Si la API devuelve error
        """
        url = f"{self.base_url}/customers/search.json"

        logger.info(f"[SHOPIFY] Looking up customer: {email}")

        try:
            response = self.http.get(
                url,
                params={'query': f'email:{email}'},
                headers=self.headers,
                timeout=self.timeout
            )
            response.raise_for_status()
            customers = response.json().get('customers') or []
            return customers[0] if customers else None

        except requests.HTTPError as e:
            logger.error(f"[SHOPIFY] Error looking up customer: {e.response.text}")
            raise
