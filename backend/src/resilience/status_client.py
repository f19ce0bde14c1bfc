"""
HTTP status source backed by a Safe transaction service.
"""
import logging
from typing import Any, Optional

import aiohttp

from .config import ResilienceSettings
from .exceptions import StatusSourceError
from .types import TransactionStatus, TxStatus

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 25.0


def parse_multisig_transaction(data: dict[str, Any]) -> TransactionStatus:
    """Map a multisig-transaction payload onto a TransactionStatus."""
    confirmations = len(data.get('confirmations') or [])
    required = data.get('confirmationsRequired')

    if data.get('isExecuted'):
        status = TxStatus.EXECUTED if data.get('isSuccessful', True) else TxStatus.FAILED
    elif required is not None and confirmations >= int(required):
        status = TxStatus.CONFIRMED
    else:
        status = TxStatus.PENDING

    gas_used = data.get('gasUsed')
    gas_price = data.get('gasPrice') or data.get('ethGasPrice')
    return TransactionStatus(
        status=status,
        confirmations=confirmations,
        block_number=data.get('blockNumber'),
        gas_used=str(gas_used) if gas_used is not None else None,
        gas_price=str(gas_price) if gas_price is not None else None,
        execution_tx_hash=data.get('transactionHash')
    )


class TransactionServiceClient:
    """StatusSource querying ``/api/v1/multisig-transactions/{hash}/``.

    A transaction the service does not know yet (404) is reported as pending
    with no confirmations. Any other non-2xx response raises
    StatusSourceError. The client owns its ``aiohttp.ClientSession`` unless
    one is passed in.
    """

    def __init__(
        self,
        base_url: str,
        session: Optional[aiohttp.ClientSession] = None,
        timeout: float = DEFAULT_TIMEOUT
    ):
        self.base_url = base_url.rstrip('/')
        self.timeout = aiohttp.ClientTimeout(total=timeout)
        self._session = session
        self._owns_session = session is None

    @classmethod
    def from_settings(cls, settings: Optional[ResilienceSettings] = None) -> 'TransactionServiceClient':
        settings = settings or ResilienceSettings.from_env()
        if not settings.transaction_service_url:
            raise ValueError("RESILIENCE_TX_SERVICE_URL is not configured")
        return cls(settings.transaction_service_url)

    async def __aenter__(self) -> 'TransactionServiceClient':
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.close()

    async def close(self) -> None:
        if self._owns_session and self._session is not None:
            await self._session.close()
            self._session = None

    def _get_session(self) -> aiohttp.ClientSession:
        if self._session is None:
            self._session = aiohttp.ClientSession(timeout=self.timeout)
        return self._session

    def transaction_url(self, safe_tx_hash: str) -> str:
        return f"{self.base_url}/api/v1/multisig-transactions/{safe_tx_hash}/"

    async def get_transaction_status(self, safe_tx_hash: str) -> TransactionStatus:
        session = self._get_session()
        async with session.get(self.transaction_url(safe_tx_hash)) as response:
            if response.status == 404:
                logger.debug(f"Transaction {safe_tx_hash} not indexed yet")
                return TransactionStatus(status=TxStatus.PENDING, confirmations=0)

            if response.status >= 400:
                body = await response.text()
                raise StatusSourceError(
                    f"Transaction service returned {response.status}: {body[:200]}",
                    status=response.status,
                    safe_tx_hash=safe_tx_hash
                )

            data = await response.json()

        return parse_multisig_transaction(data)
