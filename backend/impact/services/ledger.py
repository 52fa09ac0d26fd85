# backend/impact/services/ledger.py
"""Reward ledger client.

The settlement code only talks to ``LedgerClient``. ``XrplLedgerClient`` is
the production implementation: JSON-RPC over HTTP to an XRPL node using
server-side signing, plus the test-net faucet for account creation.

Submissions are at-least-once: a timeout after the request reached the node
may still end in a validated transaction, so only connection failures (the
request never left) are retried. A mint reports the token id from the
validated transaction metadata, polling ``tx`` a bounded number of times.
"""
from __future__ import annotations

import abc
import json
import logging
import time
from dataclasses import dataclass, field
from decimal import Decimal, ROUND_DOWN
from functools import lru_cache
from typing import Any, Dict, Optional, Sequence

import httpx

from impact.config import get_settings
from impact.errors import ExternalServiceError

logger = logging.getLogger(__name__)

MAX_PAYLOAD_BYTES = 256
DROPS_PER_XRP = Decimal("1000000")
TF_TRANSFERABLE = 8
SUCCESS_CODES = {"tesSUCCESS", "terQUEUED"}


@dataclass(frozen=True)
class LedgerAccount:
    address: str
    secret: str = field(repr=False)


@dataclass(frozen=True)
class TransferResult:
    success: bool
    tx_ref: Optional[str] = None
    error: Optional[str] = None
    source: Optional[str] = None


@dataclass(frozen=True)
class MintResult:
    success: bool
    tx_ref: Optional[str] = None
    token_ref: Optional[str] = None
    error: Optional[str] = None
    issuer: Optional[str] = None


# ----------------------------------------------------------------------
# Payload size
# ----------------------------------------------------------------------
def encode_payload(payload: Dict[str, Any]) -> bytes:
    return json.dumps(payload, separators=(",", ":"), ensure_ascii=False, default=str).encode("utf-8")


def fit_payload(
    payload: Dict[str, Any],
    drop_order: Sequence[str],
    limit: int = MAX_PAYLOAD_BYTES,
) -> Dict[str, Any]:
    """Drop optional keys, in ``drop_order``, until the payload fits ``limit``.

    Keys not listed in ``drop_order`` are required. Raises ExternalServiceError
    if the required keys alone are too large.
    """
    out = {k: v for k, v in payload.items() if v is not None}
    for key in drop_order:
        if len(encode_payload(out)) <= limit:
            return out
        out.pop(key, None)
    size = len(encode_payload(out))
    if size > limit:
        raise ExternalServiceError(f"Token metadata is {size} bytes, limit is {limit}")
    return out


def xrp_to_drops(amount: Decimal) -> str:
    drops = (Decimal(str(amount)) * DROPS_PER_XRP).quantize(Decimal("1"), rounding=ROUND_DOWN)
    if drops <= 0:
        raise ExternalServiceError("Transfer amount must be positive")
    return str(drops)


def drops_to_xrp(drops: str | int) -> Decimal:
    return Decimal(str(drops)) / DROPS_PER_XRP


# ----------------------------------------------------------------------
# Client interface
# ----------------------------------------------------------------------
class LedgerClient(abc.ABC):
    @abc.abstractmethod
    def create_account(self) -> LedgerAccount: ...

    @abc.abstractmethod
    def get_balance(self, address: str) -> Decimal: ...

    @abc.abstractmethod
    def transfer(self, secret: str, destination: str, amount: Decimal) -> TransferResult: ...

    @abc.abstractmethod
    def mint_token(self, secret: str, payload: Dict[str, Any]) -> MintResult: ...


class XrplLedgerClient(LedgerClient):
    """XRPL JSON-RPC client (sign-and-submit mode)."""

    def __init__(
        self,
        rpc_url: str,
        faucet_url: Optional[str] = None,
        *,
        timeout: float = 20.0,
        max_attempts: int = 2,
        validation_polls: int = 5,
        poll_interval: float = 1.0,
        http: Optional[httpx.Client] = None,
    ):
        self.rpc_url = rpc_url
        self.faucet_url = faucet_url
        self.max_attempts = max(1, max_attempts)
        self.validation_polls = max(1, validation_polls)
        self.poll_interval = poll_interval
        self._http = http or httpx.Client(timeout=timeout)
        self._request_id = 0
        self._addresses: Dict[str, str] = {}

    def close(self) -> None:
        self._http.close()

    # -- transport ---------------------------------------------------------
    def _next_id(self) -> int:
        self._request_id += 1
        return self._request_id

    def _post(self, url: str, body: Optional[dict]) -> dict:
        last_error: Optional[Exception] = None
        for attempt in range(1, self.max_attempts + 1):
            try:
                response = self._http.post(url, json=body)
                response.raise_for_status()
                return response.json()
            except (httpx.ConnectError, httpx.ConnectTimeout) as e:
                last_error = e
                logger.warning(f"[ledger] connect failed ({attempt}/{self.max_attempts}): {e}")
            except httpx.HTTPError as e:
                raise ExternalServiceError(f"Ledger request failed: {e}") from e
            except ValueError as e:
                raise ExternalServiceError("Ledger returned a non-JSON response") from e
        raise ExternalServiceError(f"Ledger unreachable: {last_error}")

    def _rpc(self, method: str, params: dict) -> dict:
        data = self._post(self.rpc_url, {"method": method, "params": [params], "id": self._next_id()})
        result = data.get("result", {})
        if result.get("status") == "error" or "error" in result:
            raise ExternalServiceError(
                f"{method}: {result.get('error_message') or result.get('error', 'unknown error')}"
            )
        return result

    # -- accounts ----------------------------------------------------------
    def create_account(self) -> LedgerAccount:
        if not self.faucet_url:
            raise ExternalServiceError("No faucet configured for account creation")
        data = self._post(self.faucet_url, None)
        account = data.get("account") or {}
        address = account.get("classicAddress") or account.get("address")
        secret = data.get("seed") or account.get("secret")
        if not address or not secret:
            raise ExternalServiceError("Faucet response did not include an account")
        self._addresses[secret] = address
        logger.info(f"[ledger] funded new account {address}")
        return LedgerAccount(address=address, secret=secret)

    def address_for(self, secret: str) -> str:
        if secret not in self._addresses:
            result = self._rpc("wallet_propose", {"seed": secret})
            self._addresses[secret] = result["account_id"]
        return self._addresses[secret]

    def get_balance(self, address: str) -> Decimal:
        try:
            result = self._rpc("account_info", {"account": address, "ledger_index": "validated"})
        except ExternalServiceError as e:
            # unfunded accounts do not exist on the ledger yet
            if "actNotFound" in str(e) or "Account not found" in str(e):
                return Decimal("0")
            raise
        return drops_to_xrp(result["account_data"]["Balance"])

    # -- submissions -------------------------------------------------------
    def _submit(self, secret: str, tx_json: dict) -> tuple[str, Optional[str], Optional[str]]:
        result = self._rpc("submit", {"tx_json": tx_json, "secret": secret})
        code = result.get("engine_result")
        tx_ref = (result.get("tx_json") or {}).get("hash")
        if code not in SUCCESS_CODES:
            return code or "unknown", tx_ref, result.get("engine_result_message") or code
        return code, tx_ref, None

    def transfer(self, secret: str, destination: str, amount: Decimal) -> TransferResult:
        source = self.address_for(secret)
        tx_json = {
            "TransactionType": "Payment",
            "Account": source,
            "Destination": destination,
            "Amount": xrp_to_drops(amount),
        }
        code, tx_ref, error = self._submit(secret, tx_json)
        logger.info(f"[ledger] payment {amount} XRP {source} -> {destination}: {code}")
        return TransferResult(success=error is None, tx_ref=tx_ref, error=error, source=source)

    def mint_token(self, secret: str, payload: Dict[str, Any]) -> MintResult:
        raw = encode_payload(payload)
        if len(raw) > MAX_PAYLOAD_BYTES:
            raise ExternalServiceError(f"Token metadata is {len(raw)} bytes, limit is {MAX_PAYLOAD_BYTES}")
        issuer = self.address_for(secret)
        tx_json = {
            "TransactionType": "NFTokenMint",
            "Account": issuer,
            "URI": raw.hex().upper(),
            "Flags": TF_TRANSFERABLE,
            "NFTokenTaxon": 0,
        }
        code, tx_ref, error = self._submit(secret, tx_json)
        logger.info(f"[ledger] token mint by {issuer}: {code}")
        if error:
            return MintResult(success=False, tx_ref=tx_ref, error=error, issuer=issuer)
        validated = self._await_validation(tx_ref) if tx_ref else None
        if validated is None:
            # still pending; the token id can be read from tx_ref later
            return MintResult(success=True, tx_ref=tx_ref, issuer=issuer)
        meta = validated.get("meta") or {}
        final = meta.get("TransactionResult")
        if final != "tesSUCCESS":
            return MintResult(success=False, tx_ref=tx_ref, error=final or "unknown", issuer=issuer)
        return MintResult(success=True, tx_ref=tx_ref, token_ref=meta.get("nftoken_id"), issuer=issuer)

    def _await_validation(self, tx_ref: str) -> Optional[dict]:
        for attempt in range(self.validation_polls):
            if attempt:
                time.sleep(self.poll_interval)
            try:
                result = self._rpc("tx", {"transaction": tx_ref})
            except ExternalServiceError as e:
                # txnNotFound until the node has applied it
                logger.debug(f"[ledger] {tx_ref} not found yet: {e}")
                continue
            if result.get("validated"):
                return result
        logger.warning(f"[ledger] {tx_ref} not validated after {self.validation_polls} polls")
        return None


@lru_cache(maxsize=1)
def _default_client() -> LedgerClient:
    settings = get_settings()
    return XrplLedgerClient(
        settings.xrpl_rpc_url,
        settings.xrpl_faucet_url,
        timeout=settings.ledger_timeout,
        max_attempts=settings.ledger_max_attempts,
    )


# FastAPI dependency
def get_ledger() -> LedgerClient:
    return _default_client()
