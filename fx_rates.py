from __future__ import annotations

import json
import logging
import math
from dataclasses import dataclass
from datetime import datetime, timezone
from decimal import Decimal, ROUND_HALF_UP
from http.client import HTTPException
from typing import Optional
from urllib.request import Request, urlopen

from config import get_settings

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class BcvQuote:
    rate: Decimal  # VES per 1 USD
    fetched_at: datetime


class BcvRateService:
    """Official BCV USD/VES rate; used only to display converted amounts."""

    _latest: Optional[BcvQuote] = None

    def __init__(self) -> None:
        self.settings = get_settings()

    def fetch(self) -> BcvQuote:
        quote = _fetch_bcv_quote(
            self.settings.bcv_rate_url, timeout=self.settings.bcv_timeout_secs
        )
        BcvRateService._latest = quote
        return quote

    def refresh(self) -> Optional[BcvQuote]:
        """Fetch a new quote, keeping the previous one when the provider fails."""
        try:
            quote = self.fetch()
        except RuntimeError:
            logger.exception("bcv_rate: refresh failed, keeping previous quote")
            return BcvRateService._latest
        logger.info(f"bcv_rate: rate={quote.rate}")
        return quote

    def latest(self) -> Optional[BcvQuote]:
        return BcvRateService._latest

    @classmethod
    def reset(cls) -> None:
        cls._latest = None


def convert_usd_to_ves(amount: float, quote: Optional[BcvQuote]) -> Optional[Decimal]:
    if quote is None:
        return None
    return (Decimal(str(amount)) * quote.rate).quantize(
        Decimal("0.01"), rounding=ROUND_HALF_UP
    )


def _fetch_bcv_quote(url: str, *, timeout: float) -> BcvQuote:
    req = Request(url, headers={"Accept": "application/json"})
    fetched_at = datetime.now(timezone.utc)
    try:
        with urlopen(req, timeout=timeout) as resp:
            payload = json.loads(resp.read().decode("utf-8"))
    except (OSError, HTTPException, UnicodeDecodeError, json.JSONDecodeError) as exc:
        raise RuntimeError("Failed to fetch BCV rate") from exc

    try:
        average = float(payload["promedio"])
    except (KeyError, TypeError, ValueError) as exc:
        raise RuntimeError("Unexpected BCV provider response") from exc
    if not math.isfinite(average) or average <= 0:
        raise RuntimeError("Unexpected BCV provider response")

    return BcvQuote(rate=Decimal(str(average)), fetched_at=fetched_at)
