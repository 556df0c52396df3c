import logging
from urllib.parse import urljoin

import requests

from .config import ClientConfig
from .errors import (
    NetworkUnavailable,
    RequestTimedOut,
    error_from_response,
)

logger = logging.getLogger(__name__)


class InventoryApiClient:
    """
    Thin wrapper around the inventory REST API.

    Every call either returns the decoded JSON body or raises one of the
    exceptions in ``sync_client.errors``. Transport failures surface as
    NetworkUnavailable / RequestTimedOut so callers can queue the edit.
    """

    def __init__(self, base_url=None, token=None, timeout=None, session=None, config=None):
        config = config or ClientConfig()
        self.base_url = (base_url or config.base_url).rstrip('/') + '/'
        self.token = token if token is not None else config.token
        self.timeout = timeout if timeout is not None else config.request_timeout
        self.upload_timeout = config.upload_timeout
        self.session = session or requests.Session()

    @classmethod
    def from_config(cls, config):
        return cls(config=config)

    # -- plumbing -----------------------------------------------------------

    def url(self, path):
        return urljoin(self.base_url, path.lstrip('/'))

    def _headers(self):
        headers = {'Accept': 'application/json'}
        if self.token:
            headers['Authorization'] = f"Bearer {self.token}"
        return headers

    def _request(self, method, path, json=None, params=None, files=None, timeout=None):
        url = path if path.startswith(('http://', 'https://')) else self.url(path)
        try:
            response = self.session.request(
                method,
                url,
                json=json,
                params=params,
                files=files,
                headers=self._headers(),
                timeout=timeout or self.timeout,
            )
        except requests.exceptions.Timeout as e:
            logger.warning(f"{method} {url} timed out")
            message = "upload timed out" if files else "request timed out"
            raise RequestTimedOut(message) from e
        except requests.exceptions.RequestException as e:
            logger.warning(f"{method} {url} failed: {e}")
            raise NetworkUnavailable(str(e)) from e

        if response.status_code == 204:
            return None

        try:
            payload = response.json()
        except ValueError:
            payload = None

        if not response.ok:
            raise error_from_response(response.status_code, payload)
        return payload

    def send(self, method, url, body=None):
        """Replay a stored request as-is; used by the offline queue."""
        return self._request(method.upper(), url, json=body)

    # -- auth ---------------------------------------------------------------

    def login(self, username, password):
        data = self._request('POST', 'api/auth/login/', json={
            'username': username,
            'password': password,
        })
        self.token = data['token']
        return data

    def logout(self):
        self._request('POST', 'api/auth/logout/')
        self.token = None

    def current_user(self):
        return self._request('GET', 'api/auth/me/')

    # -- products -----------------------------------------------------------

    @staticmethod
    def product_path(product_id):
        return f"api/products/{product_id}/"

    def list_products(self, search=None, category=None, page=None):
        params = {}
        if search:
            params['search'] = search
        if category:
            params['category'] = category
        if page:
            params['page'] = page
        return self._request('GET', 'api/products/', params=params or None)

    def get_product(self, product_id):
        return self._request('GET', self.product_path(product_id))

    def create_product(self, data):
        return self._request('POST', 'api/products/', json=data)

    def update_product(self, product_id, data):
        """Full update. ``data`` must carry the version the edit was based on."""
        return self._request('PUT', self.product_path(product_id), json=data)

    def patch_product(self, product_id, data):
        return self._request('PATCH', self.product_path(product_id), json=data)

    def delete_product(self, product_id):
        self._request('DELETE', self.product_path(product_id))

    def stats(self):
        return self._request('GET', 'api/products/stats/')

    def import_csv(self, filename, content):
        files = {'file': (filename, content, 'text/csv')}
        return self._request('POST', 'api/products/import/', files=files, timeout=self.upload_timeout)
