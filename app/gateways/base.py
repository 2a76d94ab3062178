from abc import ABC, abstractmethod
from datetime import date
from typing import Any, Dict, List, Optional


class BaseGateway(ABC):
    """
    Abstract payment gateway capability.

    verify/charge return the gateway's raw gp_api-shaped response dict;
    find_transactions/transaction_detail return reporting-shaped rows.
    Every method raises GatewayError when the gateway errors or is unreachable.
    """

    @property
    @abstractmethod
    def gateway_name(self) -> str:
        pass

    @abstractmethod
    async def verify(
        self,
        card_token: str,
        currency: str,
        address: Optional[Dict[str, str]] = None,
    ) -> Dict[str, Any]:
        """Zero-amount card verification (AVS/CVV checks, no charge)."""
        pass

    @abstractmethod
    async def charge(
        self,
        card_token: str,
        amount: str,
        currency: str,
        order_ref: str,
    ) -> Dict[str, Any]:
        """Capture amount (decimal string) against the tokenized card."""
        pass

    @abstractmethod
    async def find_transactions(self, start_date: date, end_date: date) -> List[Dict[str, Any]]:
        pass

    @abstractmethod
    async def transaction_detail(self, transaction_id: str) -> Optional[Dict[str, Any]]:
        """Reporting row for one transaction, or None if the gateway has no such id."""
        pass
