"""Gemini `generateContent` client.

Only the single prompt -> text round trip the digest needs. Every failure
(transport, API error payload, unexpected shape, blank text) is raised as
GenerationError so callers have one thing to catch.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, List

import requests
from jsonschema import Draft202012Validator

from newsdigest.errors import GenerationError

logger = logging.getLogger(__name__)

GEMINI_BASE_URL = "https://generativelanguage.googleapis.com/v1beta/models"

GENERATE_RESPONSE_SCHEMA: Dict[str, Any] = {
    "$schema": "https://json-schema.org/draft/2020-12/schema",
    "type": "object",
    "required": ["candidates"],
    "properties": {
        "candidates": {
            "type": "array",
            "minItems": 1,
            "items": {
                "type": "object",
                "required": ["content"],
                "properties": {
                    "content": {
                        "type": "object",
                        "required": ["parts"],
                        "properties": {
                            "parts": {
                                "type": "array",
                                "minItems": 1,
                                "items": {
                                    "type": "object",
                                    "required": ["text"],
                                    "properties": {"text": {"type": "string"}},
                                },
                            }
                        },
                    }
                },
            },
        }
    },
}

_validator = Draft202012Validator(GENERATE_RESPONSE_SCHEMA)


def validate_generate_response(payload: Any) -> List[str]:
    """Return a list of human-readable schema errors (empty when valid)."""
    errors = []
    for err in sorted(_validator.iter_errors(payload), key=lambda e: list(e.path)):
        loc = "/".join(str(p) for p in err.path) or "<root>"
        errors.append(f"{loc}: {err.message}")
    return errors


class GeminiClient:
    def __init__(
        self,
        api_key: str,
        *,
        model: str = "gemini-2.0-flash",
        timeout: int = 30,
        base_url: str = GEMINI_BASE_URL,
    ):
        self.api_key = api_key
        self.model = model
        self.timeout = timeout
        self.base_url = base_url.rstrip("/")

    def generate(self, prompt: str) -> str:
        url = f"{self.base_url}/{self.model}:generateContent"
        body = {"contents": [{"parts": [{"text": prompt}]}]}
        try:
            resp = requests.post(
                url,
                params={"key": self.api_key},
                headers={"Content-Type": "application/json"},
                json=body,
                timeout=self.timeout,
            )
        except requests.exceptions.RequestException as e:
            raise GenerationError(f"Gemini request failed: {e}")

        try:
            data = resp.json()
        except ValueError:
            raise GenerationError(f"Gemini returned non-JSON body (HTTP {resp.status_code})")

        if isinstance(data, dict) and data.get("error"):
            err = data["error"]
            message = err.get("message") if isinstance(err, dict) else str(err)
            raise GenerationError(message or f"Gemini error (HTTP {resp.status_code})")
        if resp.status_code >= 400:
            raise GenerationError(f"Gemini HTTP {resp.status_code}")

        errors = validate_generate_response(data)
        if errors:
            raise GenerationError("Malformed Gemini response: " + "; ".join(errors[:3]))

        text = data["candidates"][0]["content"]["parts"][0]["text"].strip()
        if not text:
            raise GenerationError("Gemini returned empty text")
        return text
