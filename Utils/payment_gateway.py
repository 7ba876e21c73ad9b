import logging
from contextlib import nullcontext
from datetime import datetime, timezone
from urllib.parse import quote

import httpx

logger = logging.getLogger("orders")


class PaymentVerificationError(Exception):
    """The gateway could not confirm the payment; message is safe to show."""


def _same_amount(reported, expected) -> bool:
    try:
        return float(reported) == float(expected)
    except (TypeError, ValueError):
        return False


class PortOneVerifier:
    """
    Confirms a payment with the PortOne (iamport) REST API.

    Every call fetches a fresh access token with the server-held key/secret,
    loads the payment by its transaction id (imp_uid) and checks merchant
    order id, amount and status. Nothing is cached and nothing is retried.
    """

    def __init__(self, api_key, api_secret, base_url="https://api.iamport.kr",
                 timeout=15.0, client: httpx.Client | None = None):
        self.api_key = api_key
        self.api_secret = api_secret
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self._client = client

    @classmethod
    def from_config(cls, config, client: httpx.Client | None = None):
        return cls(
            api_key=config["PORTONE_API_KEY"],
            api_secret=config["PORTONE_API_SECRET"],
            base_url=config["PORTONE_API_BASE_URL"],
            timeout=config["PAYMENT_TIMEOUT_SECONDS"],
            client=client,
        )

    def _http(self):
        if self._client is not None:
            return nullcontext(self._client)
        return httpx.Client(timeout=self.timeout)

    # ============================
    # Gateway calls
    # ============================
    def _access_token(self, c) -> str:
        if not self.api_key or not self.api_secret:
            raise PaymentVerificationError("Payment gateway credentials are not configured.")

        r = c.post(f"{self.base_url}/users/getToken", json={
            "imp_key": self.api_key,
            "imp_secret": self.api_secret,
        })
        r.raise_for_status()
        token = ((r.json() or {}).get("response") or {}).get("access_token")
        if not token:
            raise PaymentVerificationError("Could not obtain a payment gateway access token.")
        return token

    def _fetch_payment(self, c, token, transaction_id) -> dict | None:
        r = c.get(f"{self.base_url}/payments/{quote(str(transaction_id), safe='')}", headers={"Authorization": token})
        if r.status_code == 404:
            return None
        r.raise_for_status()
        return (r.json() or {}).get("response")

    def verify(self, transaction_id, expected_amount=None, expected_order_id=None) -> dict:
        """
        Return the authoritative payment record or raise PaymentVerificationError.

        `expected_amount=None` skips the amount check; `expected_order_id=None`
        skips the merchant order id check.
        """
        if not transaction_id:
            raise PaymentVerificationError("A payment transaction id (imp_uid) is required.")

        try:
            with self._http() as c:
                token = self._access_token(c)
                payment = self._fetch_payment(c, token, transaction_id)
        except httpx.HTTPStatusError as e:
            logger.warning(f"💳 Gateway answered {e.response.status_code} for {transaction_id}")
            raise PaymentVerificationError("The payment gateway rejected the verification request.") from e
        except httpx.HTTPError as e:
            logger.warning(f"💳 Gateway unreachable while verifying {transaction_id}: {e}")
            raise PaymentVerificationError("Could not reach the payment gateway.") from e
        except ValueError as e:
            raise PaymentVerificationError("The payment gateway returned an unreadable response.") from e

        if not payment:
            raise PaymentVerificationError("Payment not found at the payment gateway.")

        if expected_order_id and payment.get("merchant_uid") != expected_order_id:
            raise PaymentVerificationError("The payment does not belong to this order.")

        if expected_amount is not None and not _same_amount(payment.get("amount"), expected_amount):
            raise PaymentVerificationError("The paid amount does not match the order amount.")

        if payment.get("status") != "paid":
            raise PaymentVerificationError("The payment has not been completed.")

        return payment


def normalize_payment(gateway_payment: dict, client_payment: dict | None = None) -> dict:
    """Build the stored payment sub-record from the gateway's answer."""
    client_payment = client_payment or {}
    paid_at = gateway_payment.get("paid_at")
    if paid_at:
        paid_at = datetime.fromtimestamp(int(paid_at), tz=timezone.utc).replace(tzinfo=None)
    else:
        paid_at = datetime.utcnow()

    return {
        "method": gateway_payment.get("pay_method") or client_payment.get("method") or "card",
        "amount": gateway_payment.get("amount"),
        "paid_at": paid_at,
        "transaction_id": gateway_payment.get("imp_uid") or client_payment.get("transactionId"),
    }
