import asyncio
import random
import uuid
from datetime import date, datetime, timezone
from decimal import Decimal
from typing import Any, Dict, List, Optional

from app.errors import GatewayError
from app.gateways.base import BaseGateway


# Token prefix -> simulated outcome
DECLINE_PREFIX = "tok_decline"
ERROR_PREFIX = "tok_error"

CHARGE_STATE_MAP = {
    "approved": ("CAPTURED", "00", "SUCCESS"),
    "declined": ("DECLINED", "05", "DECLINED"),
}

VERIFY_STATE_MAP = {
    "approved": ("VERIFIED", "00", "VERIFIED"),
    "declined": ("NOT_VERIFIED", "05", "NOT_VERIFIED"),
}


class SandboxGateway(BaseGateway):
    """
    In-process gateway mock shaped like GP-API.

    Outcome is chosen by the card token:
      tok_decline...  declined (charge response code 05 / NOT_VERIFIED)
      tok_error...    GatewayError, as if the gateway answered 503
      anything else   approved
    A trailing 4-digit run in the token becomes the card's last4.

    Approved charges are kept and served back through the reporting methods,
    in the reporting API's camelCase shape.
    """

    def __init__(self, latency: tuple = (0.0, 0.0)):
        self.latency = latency
        self._reported: List[Dict[str, Any]] = []

    @property
    def gateway_name(self) -> str:
        return "sandbox"

    async def _simulate_network(self, card_token: Optional[str] = None) -> None:
        low, high = self.latency
        if high > 0:
            await asyncio.sleep(random.uniform(low, high))
        if card_token and card_token.startswith(ERROR_PREFIX):
            raise GatewayError("Sandbox: 503 Service Unavailable", response_code="91")

    @staticmethod
    def _outcome(card_token: str) -> str:
        return "declined" if card_token.startswith(DECLINE_PREFIX) else "approved"

    @staticmethod
    def _card(card_token: str) -> Dict[str, str]:
        digits = card_token[-4:]
        last4 = digits if digits.isdigit() else "1111"
        return {
            "brand": "VISA",
            "masked_number_last4": f"XXXXXXXXXXXX{last4}",
            "expiry_month": "12",
            "expiry_year": "30",
        }

    async def verify(
        self,
        card_token: str,
        currency: str,
        address: Optional[Dict[str, str]] = None,
    ) -> Dict[str, Any]:
        await self._simulate_network(card_token)
        status, result, message = VERIFY_STATE_MAP[self._outcome(card_token)]
        avs_code = "M" if address else "U"
        return {
            "id": f"TRN_{uuid.uuid4().hex[:16]}",
            "time_created": datetime.now(timezone.utc).isoformat(),
            "status": status,
            "channel": "CNP",
            "amount": "0",
            "currency": currency,
            "reference": f"VER_{uuid.uuid4().hex[:10]}",
            "payment_method": {
                "result": result,
                "message": message,
                "entry_mode": "ECOM",
                "card": self._card(card_token),
            },
            "action": {
                "type": "VERIFY",
                "result_code": "SUCCESS" if status == "VERIFIED" else "DECLINED",
                "avs_response_code": avs_code,
                "cvv_response_code": "M",
            },
        }

    async def charge(
        self,
        card_token: str,
        amount: str,
        currency: str,
        order_ref: str,
    ) -> Dict[str, Any]:
        await self._simulate_network(card_token)
        status, result, message = CHARGE_STATE_MAP[self._outcome(card_token)]
        minor_units = int((Decimal(amount) * 100).to_integral_value())
        card = self._card(card_token)
        response = {
            "id": f"TRN_{uuid.uuid4().hex[:16]}",
            "time_created": datetime.now(timezone.utc).isoformat(),
            "type": "SALE",
            "status": status,
            "channel": "CNP",
            "amount": str(minor_units),
            "currency": currency,
            "reference": order_ref,
            "batch_id": f"BAT_{uuid.uuid4().hex[:8]}",
            "payment_method": {
                "result": result,
                "message": message,
                "entry_mode": "ECOM",
                "card": card,
            },
            "action": {
                "type": "AUTHORIZE",
                "result_code": message,
            },
        }
        if status == "CAPTURED":
            self._reported.append(self._reporting_row(response))
        return response

    @staticmethod
    def _reporting_row(response: Dict[str, Any]) -> Dict[str, Any]:
        card = response["payment_method"]["card"]
        created = datetime.fromisoformat(response["time_created"])
        return {
            "transactionId": response["id"],
            "referenceNumber": response["reference"],
            "serviceName": "CreditSale",
            "amount": str(Decimal(response["amount"]) / 100),
            "currency": response["currency"],
            "responseCode": response["payment_method"]["result"],
            "responseMessage": "APPROVAL",
            "gatewayResponseCode": "00",
            "responseDate": created.strftime("%Y-%m-%dT%H:%M:%S.%f")[:-4] + "Z",
            "maskedCardNumber": card["masked_number_last4"],
            "cardType": "Visa",
            "cardExpMonth": card["expiry_month"],
            "cardExpYear": card["expiry_year"],
            "batchId": response["batch_id"],
            "username": "sandbox",
        }

    async def find_transactions(self, start_date: date, end_date: date) -> List[Dict[str, Any]]:
        await self._simulate_network()
        rows = []
        for row in self._reported:
            day = datetime.fromisoformat(row["responseDate"].replace("Z", "+00:00")).date()
            if start_date <= day <= end_date:
                rows.append(dict(row))
        return rows

    async def transaction_detail(self, transaction_id: str) -> Optional[Dict[str, Any]]:
        await self._simulate_network()
        for row in self._reported:
            if row["transactionId"] == transaction_id:
                return dict(row)
        return None
