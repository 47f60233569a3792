# app/services/product_client.py
import requests
from requests import RequestException

from app.domain.errors import NotFoundError, DependencyFailureError
from app.domain.schemas import ProductSnapshot
from app.utils.retry import http_retry, RetryableHTTPError
from app.utils.logging import get_logger

logger = get_logger(__name__)


class ProductClient:
    """Klient katalogu produktow (osobny product-service po HTTP)."""

    def __init__(self, base_url: str, timeout: int = 2):
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout

    def get_product(self, product_id: int) -> ProductSnapshot:
        try:
            data = self._fetch_product(product_id)
        except RequestException as e:
            logger.error(f"Product service failed for product {product_id}: {e}")
            raise DependencyFailureError("Product catalog is unavailable") from e

        if data is None:
            raise NotFoundError("Product not found")

        return ProductSnapshot.model_validate(data)

    @http_retry()
    def _fetch_product(self, product_id: int) -> dict | None:
        url = f"{self.base_url}/products/{product_id}"
        logger.info(f"ProductClient GET {url}")

        resp = requests.get(url, timeout=self.timeout)
        if resp.status_code == 404:
            return None
        if resp.status_code >= 500:
            raise RetryableHTTPError(f"{resp.status_code} from {url}", response=resp)
        resp.raise_for_status()
        return resp.json()
