"""
Payment gateway client.

A charge takes two calls: a client-credentials token request authenticated by
the process-wide secret key, then the charge itself carrying the card data
encrypted locally with a symmetric (Fernet) key.
"""

import json
import logging
import os

import requests
from cryptography.fernet import Fernet

log = logging.getLogger(__name__)

PAYMENT_GATEWAY_URL = os.getenv("PAYMENT_GATEWAY_URL", "https://testepay.homebank.kz/api")
PAYMENT_SECRET_KEY = os.getenv("PAYMENT_SECRET_KEY", "")
PAYMENT_ENCRYPTION_KEY = os.getenv("PAYMENT_ENCRYPTION_KEY", "")
PAYMENT_GATEWAY_TIMEOUT = float(os.getenv("PAYMENT_GATEWAY_TIMEOUT", 30))

# Gateway test card. Every charge sends this payload, whatever the request said.
DEFAULT_CARD_DATA = json.dumps({
    "hpan": "4405639704015096",
    "expDate": "0125",
    "cvc": "815",
    "terminalId": "67e34d63-102f-4bd1-898e-370781d0074d",
})


class PaymentGatewayError(Exception):
    pass


class EncryptionError(Exception):
    pass


def encrypt_card_data(data: str, key) -> str:
    if not key:
        raise EncryptionError("encryption key is not configured")
    try:
        cipher = Fernet(key)
    except (ValueError, TypeError) as e:
        raise EncryptionError(f"invalid encryption key: {e}") from e
    return cipher.encrypt(data.encode("utf-8")).decode("ascii")


class PaymentGateway:
    """
    One instance serves every request thread. Without an explicit `session`
    each call goes through `requests.post`, which opens its own session, so
    no connection state is shared between threads.
    """

    def __init__(self, base_url, secret_key, encryption_key, timeout=PAYMENT_GATEWAY_TIMEOUT, session=None):
        self.base_url = base_url.rstrip("/")
        self.secret_key = secret_key
        self.encryption_key = encryption_key
        self.timeout = timeout
        self.session = session

    @classmethod
    def from_env(cls):
        return cls(
            base_url=PAYMENT_GATEWAY_URL,
            secret_key=PAYMENT_SECRET_KEY,
            encryption_key=PAYMENT_ENCRYPTION_KEY,
            timeout=PAYMENT_GATEWAY_TIMEOUT,
        )

    def _post(self, path, **kwargs):
        url = f"{self.base_url}{path}"
        try:
            post = self.session.post if self.session is not None else requests.post
            resp = post(url, timeout=self.timeout, **kwargs)
            resp.raise_for_status()
            return resp.json()
        except requests.HTTPError as e:
            raise PaymentGatewayError(f"{url} returned {e.response.status_code}") from e
        except (requests.RequestException, ValueError) as e:
            raise PaymentGatewayError(f"{url} failed: {e}") from e

    def get_token(self) -> str:
        if not self.secret_key:
            raise PaymentGatewayError("payment secret key is not configured")
        data = self._post("/oauth/token", json={
            "grant_type": "client_credentials",
            "client_secret": self.secret_key,
        })
        token = data.get("access_token") if isinstance(data, dict) else None
        if not token:
            raise PaymentGatewayError("token response has no access_token")
        return token

    def encrypt(self, data: str) -> str:
        return encrypt_card_data(data, self.encryption_key)

    def charge(self, token: str, cryptogram: str, amount: float, order_id: int) -> str:
        """Submit a charge and return the gateway's payment status."""
        data = self._post(
            "/payments",
            headers={"Authorization": f"Bearer {token}"},
            json={"amount": amount, "invoiceId": str(order_id), "cryptogram": cryptogram},
        )
        status = data.get("status") if isinstance(data, dict) else None
        if not status:
            raise PaymentGatewayError("charge response has no status")
        log.info("Gateway charged order %s: %s", order_id, status)
        return status
