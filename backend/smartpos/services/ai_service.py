# Overview: Optional AI description assist (Gemini generateContent over httpx).

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from decimal import Decimal, InvalidOperation
from typing import Any

import httpx

logger = logging.getLogger(__name__)

DEFAULT_INSTRUCTION = (
    "Generate a short, appetizing description (max 15 words) and a typical "
    "market price (number only) for a cafe product."
)
CATEGORIES = ["Beverages", "Food", "Snacks", "Dessert", "Other"]

RESPONSE_SCHEMA: dict[str, Any] = {
    "type": "OBJECT",
    "properties": {
        "description": {"type": "STRING"},
        "suggestedPrice": {"type": "NUMBER"},
        "category": {"type": "STRING", "enum": CATEGORIES},
    },
    "propertyOrdering": ["description", "suggestedPrice", "category"],
}


@dataclass(frozen=True)
class ProductSuggestion:
    description: str
    suggested_price: Decimal | None
    category: str | None

    def to_dict(self) -> dict:
        return {
            "description": self.description,
            "suggested_price": float(self.suggested_price) if self.suggested_price is not None else None,
            "category": self.category,
        }


class GeminiClient:
    """
    Thin Gemini REST client. `transport` lets tests swap in
    httpx.MockTransport; production uses the default network transport.
    """

    def __init__(
        self,
        api_key: str | None,
        *,
        model: str = "gemini-2.5-flash",
        base_url: str = "https://generativelanguage.googleapis.com",
        timeout: float = 30.0,
        transport: httpx.BaseTransport | None = None,
    ):
        self.api_key = (api_key or "").strip()
        self.model = model
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.transport = transport

    @property
    def enabled(self) -> bool:
        return bool(self.api_key)

    def _payload(self, product_name: str, instruction: str) -> dict[str, Any]:
        return {
            "systemInstruction": {"parts": [{"text": instruction}]},
            "contents": [{"role": "user", "parts": [{"text": f'Product Name: "{product_name}"'}]}],
            "generationConfig": {
                "responseMimeType": "application/json",
                "responseSchema": RESPONSE_SCHEMA,
            },
        }

    def generate(self, product_name: str, instruction: str) -> dict[str, Any]:
        url = f"{self.base_url}/v1beta/models/{self.model}:generateContent"
        with httpx.Client(timeout=self.timeout, transport=self.transport) as client:
            resp = client.post(
                url,
                headers={"x-goog-api-key": self.api_key, "Content-Type": "application/json"},
                json=self._payload(product_name, instruction),
            )
            resp.raise_for_status()
            return resp.json()


def _extract_text(res: dict[str, Any]) -> str | None:
    for candidate in res.get("candidates") or []:
        for part in (candidate.get("content") or {}).get("parts") or []:
            if isinstance(part.get("text"), str) and part["text"].strip():
                return part["text"]
    return None


def _parse_suggestion(text: str) -> ProductSuggestion | None:
    obj = json.loads(text.strip())
    if not isinstance(obj, dict):
        return None
    price = obj.get("suggestedPrice")
    try:
        suggested = Decimal(str(price)) if price is not None else None
    except InvalidOperation:
        suggested = None
    if suggested is not None and (not suggested.is_finite() or suggested < 0):
        suggested = None
    category = obj.get("category")
    return ProductSuggestion(
        description=str(obj.get("description") or "").strip(),
        suggested_price=suggested,
        category=category if category in CATEGORIES else None,
    )


def generate_product_details(
    client: GeminiClient,
    product_name: str,
    custom_instruction: str | None = None,
) -> ProductSuggestion | None:
    """
    Description/price/category suggestion for a product name.

    Returns None when no API key is configured or anything goes wrong; the
    caller treats the assist as optional.
    """
    name = (product_name or "").strip()
    if not name:
        return None
    if not client.enabled:
        logger.warning("Gemini API key missing; AI features disabled")
        return None

    instruction = (custom_instruction or "").strip() or DEFAULT_INSTRUCTION
    try:
        res = client.generate(name, instruction)
        text = _extract_text(res)
        if not text:
            return None
        return _parse_suggestion(text)
    except (httpx.HTTPError, ValueError):
        logger.exception("Gemini generation error")
        return None
