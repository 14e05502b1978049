"""
HimKosh e-challan gateway: request building, checksum and encryption.

The treasury exchanges pipe-delimited ``key=value`` strings. Outgoing
requests carry an MD5 checksum of the plain string and are encrypted
with AES-128-CBC; the 16 byte key doubles as the IV and is read from the
key file the treasury issues to each department.
"""

import base64
import hashlib
import logging
import os
from dataclasses import dataclass, asdict
from datetime import date
from typing import Any, Dict, Optional

import httpx
from cryptography.hazmat.primitives import padding
from cryptography.hazmat.primitives.ciphers import Cipher, algorithms, modes

from app.core.config import settings
from app.core.errors import GatewayError
from app.core.retry import retry_with_backoff

logger = logging.getLogger(__name__)

KEY_LENGTH = 16
CHECKSUM_FIELD = "checkSum"


class HimKoshCrypto:
    """
    AES-128-CBC / PKCS7 cipher keyed from the HimKosh key file.

    The key is loaded lazily so the application can start without the
    file; the first encrypt/decrypt call raises GatewayError instead.
    """

    def __init__(self, key_file: Optional[str] = None, key: Optional[bytes] = None):
        self.key_file = key_file or settings.himkosh_key_file
        self._key = key[:KEY_LENGTH] if key else None

    @property
    def key(self) -> bytes:
        if self._key is None:
            self._key = load_key(self.key_file)
        return self._key

    def _cipher(self) -> Cipher:
        return Cipher(algorithms.AES(self.key), modes.CBC(self.key))

    def encrypt(self, plain_text: str) -> str:
        padder = padding.PKCS7(algorithms.AES.block_size).padder()
        padded = padder.update(plain_text.encode("utf-8")) + padder.finalize()
        encryptor = self._cipher().encryptor()
        encrypted = encryptor.update(padded) + encryptor.finalize()
        return base64.b64encode(encrypted).decode("ascii")

    def decrypt(self, cipher_text: str) -> str:
        """
        Raises:
            GatewayError: If the payload is not valid base64/AES/PKCS7
        """
        try:
            raw = base64.b64decode(cipher_text)
            decryptor = self._cipher().decryptor()
            padded = decryptor.update(raw) + decryptor.finalize()
            unpadder = padding.PKCS7(algorithms.AES.block_size).unpadder()
            plain = unpadder.update(padded) + unpadder.finalize()
            return plain.decode("utf-8")
        except ValueError as e:
            raise GatewayError(f"Unable to decrypt gateway payload: {e}") from e

    @staticmethod
    def checksum(text: str) -> str:
        """Lowercase hex MD5 of ``text``."""
        return hashlib.md5(text.encode("utf-8")).hexdigest()


def load_key(key_file: str) -> bytes:
    """
    Read the first 16 bytes of the key file.

    Raises:
        GatewayError: If the file is missing or too short
    """
    if not os.path.isfile(key_file):
        raise GatewayError(f"HimKosh key file not found: {key_file}")
    with open(key_file, "rb") as fh:
        key = fh.read(KEY_LENGTH)
    if len(key) < KEY_LENGTH:
        raise GatewayError("HimKosh key file must contain at least 16 bytes")
    return key


def key_file_present(key_file: Optional[str] = None) -> bool:
    return os.path.isfile(key_file or settings.himkosh_key_file)


@dataclass
class GatewayConfig:
    merchant_code: str
    dept_id: str
    service_code: str
    ddo: str
    head1: str
    head2: Optional[str]
    head2_amount: Optional[float]
    return_url: str
    payment_url: str
    verify_url: str
    source: str = "environment"

    def missing_fields(self) -> list:
        required = ("merchant_code", "dept_id", "service_code", "ddo", "head1", "return_url")
        return [name for name in required if not getattr(self, name)]

    def masked(self) -> Dict[str, Any]:
        """Config for display, with the merchant code partly hidden."""
        data = asdict(self)
        code = data["merchant_code"] or ""
        data["merchant_code"] = (code[:2] + "*" * max(len(code) - 2, 0)) if code else ""
        return data


def _pick(override: Dict[str, Any], key: str, fallback: Any, allow_fallback: bool) -> Any:
    value = override.get(key)
    if isinstance(value, str):
        value = value.strip()
    if value in (None, ""):
        return fallback if allow_fallback else None
    return value


def resolve_gateway_config(override: Optional[Dict[str, Any]] = None) -> GatewayConfig:
    """
    Merge the ``himkosh_gateway`` setting with environment settings.

    Values set in the override win. Blank override values fall back to
    the environment unless the override sets ``allowFallback: false``.
    """
    if not override:
        return GatewayConfig(
            merchant_code=settings.himkosh_merchant_code,
            dept_id=settings.himkosh_dept_id,
            service_code=settings.himkosh_service_code,
            ddo=settings.himkosh_ddo,
            head1=settings.himkosh_head1,
            head2=settings.himkosh_head2,
            head2_amount=settings.himkosh_head2_amount,
            return_url=settings.himkosh_return_url,
            payment_url=settings.himkosh_payment_url,
            verify_url=settings.himkosh_verify_url,
        )

    allow = override.get("allowFallback") is not False
    head2_amount = _pick(override, "head2Amount", settings.himkosh_head2_amount, allow)
    return GatewayConfig(
        merchant_code=_pick(override, "merchantCode", settings.himkosh_merchant_code, allow) or "",
        dept_id=_pick(override, "deptId", settings.himkosh_dept_id, allow) or "",
        service_code=_pick(override, "serviceCode", settings.himkosh_service_code, allow) or "",
        ddo=_pick(override, "ddo", settings.himkosh_ddo, allow) or "",
        head1=_pick(override, "head1", settings.himkosh_head1, allow) or "",
        head2=_pick(override, "head2", settings.himkosh_head2, allow),
        head2_amount=float(head2_amount) if head2_amount is not None else None,
        return_url=_pick(override, "returnUrl", settings.himkosh_return_url, allow) or "",
        payment_url=settings.himkosh_payment_url,
        verify_url=settings.himkosh_verify_url,
        source="system_setting",
    )


def format_amount(value: float) -> str:
    """HimKosh expects whole rupees."""
    return str(int(round(value)))


def build_request_string(
    config: GatewayConfig,
    dept_ref_no: str,
    total_amount: float,
    tender_by: str,
    app_ref_no: str,
    period: Optional[date] = None,
) -> str:
    """
    Plain request string, without the checksum.

    Head2/Amount2 are emitted only when a second head is configured; the
    first head then carries the remainder of the total.
    """
    period = period or date.today()
    period_text = period.strftime("%d-%m-%Y")

    amount1 = total_amount
    parts = [
        f"DeptID={config.dept_id}",
        f"DeptRefNo={dept_ref_no}",
        f"TotalAmount={format_amount(total_amount)}",
        f"TenderBy={tender_by}",
        f"AppRefNo={app_ref_no}",
    ]
    head2_parts = []
    if config.head2:
        amount2 = min(config.head2_amount or 0, total_amount)
        amount1 = total_amount - amount2
        head2_parts = [f"Head2={config.head2}", f"Amount2={format_amount(amount2)}"]

    parts += [f"Head1={config.head1}", f"Amount1={format_amount(amount1)}"]
    parts += head2_parts
    parts += [
        f"Ddo={config.ddo}",
        f"PeriodFrom={period_text}",
        f"PeriodTo={period_text}",
        f"Service_code={config.service_code}",
        f"return_url={config.return_url}",
    ]
    return "|".join(parts)


def with_checksum(request_string: str) -> str:
    return f"{request_string}|{CHECKSUM_FIELD}={HimKoshCrypto.checksum(request_string)}"


def split_checksum(response: str) -> tuple:
    """(payload without checksum, received checksum or None)."""
    marker = f"|{CHECKSUM_FIELD}="
    idx = response.rfind(marker)
    if idx == -1:
        return response, None
    return response[:idx], response[idx + len(marker):].strip()


def parse_response(response: str) -> Dict[str, str]:
    """``key=value|key=value`` -> dict (values keep any ``=`` they contain)."""
    fields: Dict[str, str] = {}
    for part in response.split("|"):
        if "=" not in part:
            continue
        key, value = part.split("=", 1)
        fields[key.strip()] = value.strip()
    return fields


def verify_response_checksum(response: str) -> bool:
    payload, received = split_checksum(response)
    if not received:
        return False
    return HimKoshCrypto.checksum(payload).lower() == received.lower()


@retry_with_backoff(max_retries=2, base_delay=1.0, exceptions=(httpx.TransportError,))
async def _post_verification(url: str, encdata: str, timeout: float) -> str:
    async with httpx.AsyncClient(timeout=timeout) as client:
        response = await client.post(url, data={"encdata": encdata})
        response.raise_for_status()
        return response.text.strip()


async def double_verify(
    config: GatewayConfig,
    app_ref_no: str,
    crypto: Optional[HimKoshCrypto] = None,
    timeout: float = 15.0,
) -> Dict[str, str]:
    """
    Ask the treasury for the authoritative status of ``app_ref_no``.

    Raises:
        GatewayError: On transport failure or an undecipherable reply
    """
    crypto = crypto or HimKoshCrypto()
    query = with_checksum(
        f"AppRefNo={app_ref_no}|Service_code={config.service_code}"
        f"|merchant_code={config.merchant_code}"
    )
    try:
        reply = await _post_verification(config.verify_url, crypto.encrypt(query), timeout)
    except httpx.HTTPError as e:
        raise GatewayError(f"HimKosh verification request failed: {e}") from e

    plain = reply if "=" in reply else crypto.decrypt(reply)
    logger.info("HimKosh verification reply received", extra={"app_ref_no": app_ref_no})
    return parse_response(split_checksum(plain)[0])
