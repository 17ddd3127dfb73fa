# safestock/services/insight_service.py
"""
Procurement suggestions from Gemini. Stateless and fail-soft: any problem
returns a fixed fallback message instead of raising.
"""

import json
import logging
from typing import Optional

import httpx

from safestock.core.config import get_settings
from safestock.schemas.inventory import InventoryItem

logger = logging.getLogger(__name__)

GEMINI_URL = "https://generativelanguage.googleapis.com/v1beta/models/{model}:generateContent"

NO_SUGGESTION_TEXT = "No suggestions available."
FALLBACK_TEXT = (
    "The AI assistant is unavailable right now. Please review the low stock alerts."
)


def build_prompt(items: list[InventoryItem]) -> str:
    stock = [{"name": i.name, "qty": i.quantity, "min": i.min_stock} for i in items]
    low_stock = [i.name for i in items if i.is_low_stock]
    return (
        "This is an occupational safety supplies management system.\n"
        f"Current inventory: {json.dumps(stock, ensure_ascii=False)}\n"
        f"Items below minimum stock: {json.dumps(low_stock, ensure_ascii=False)}\n\n"
        "As a professional safety officer, give 3 concrete procurement or "
        "management suggestions. Keep the tone concise and professional."
    )


def get_inventory_insights(
    items: list[InventoryItem],
    http_client: Optional[httpx.Client] = None,
) -> str:
    settings = get_settings()
    if not settings.gemini_api_key:
        logger.warning("GEMINI_API_KEY is not configured, skipping insights")
        return FALLBACK_TEXT

    url = GEMINI_URL.format(model=settings.gemini_model)
    payload = {"contents": [{"parts": [{"text": build_prompt(items)}]}]}
    headers = {"x-goog-api-key": settings.gemini_api_key}

    try:
        if http_client is not None:
            response = http_client.post(url, json=payload, headers=headers)
        else:
            response = httpx.post(url, json=payload, headers=headers, timeout=30.0)
        response.raise_for_status()
        data = response.json()
    except (httpx.HTTPError, ValueError) as exc:
        logger.warning("Gemini request failed: %s", exc)
        return FALLBACK_TEXT

    try:
        parts = data["candidates"][0]["content"]["parts"]
        text = "".join(part.get("text", "") for part in parts).strip()
    except (KeyError, IndexError, TypeError):
        logger.warning("Gemini response had no candidates")
        return NO_SUGGESTION_TEXT

    return text or NO_SUGGESTION_TEXT
