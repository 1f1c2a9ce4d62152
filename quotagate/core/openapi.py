"""OpenAPI metadata and customization utilities.

Adds to the generated schema:
- an optional API token security scheme (header from ``APP_TOKEN_HEADER``)
- tags metadata
- the 429 response every operation may return
"""

from __future__ import annotations

from typing import Any, Dict

from fastapi import FastAPI

from quotagate.core.config import settings
from quotagate.core.rate_limit import RATE_LIMIT_ERROR, RATE_LIMIT_MESSAGE

_RATE_LIMITED_RESPONSE = {
    "description": "Rate limit exceeded for the caller's IP or token.",
    "content": {
        "application/json": {
            "example": {"message": RATE_LIMIT_MESSAGE, "error": RATE_LIMIT_ERROR}
        }
    },
}


def apply_openapi_customizations(app: FastAPI) -> None:
    """Patch FastAPI's OpenAPI generation to add metadata and security."""

    original_openapi = app.openapi

    def custom_openapi() -> Dict[str, Any]:
        schema = original_openapi()

        components = schema.setdefault("components", {})
        security_schemes = components.setdefault("securitySchemes", {})
        security_schemes.setdefault(
            "ApiToken",
            {
                "type": "apiKey",
                "in": "header",
                "name": settings.app.token_header,
                "description": (
                    "Optional. Tokens with a configured policy get their own "
                    "quota; other callers are limited by IP."
                ),
            },
        )

        # Token is optional: either no security or the token scheme
        schema.setdefault("security", [{}, {"ApiToken": []}])

        tags = schema.setdefault("tags", [])
        existing_tag_names = {t.get("name") for t in tags}
        desired_tags = [
            {"name": "Demo", "description": "Mock endpoints behind the rate limiter."},
            {"name": "Health", "description": "Liveness checks."},
        ]
        for tag in desired_tags:
            if tag["name"] not in existing_tag_names:
                tags.append(tag)

        for methods in schema.get("paths", {}).values():
            for method_obj in methods.values():
                if isinstance(method_obj, dict):
                    method_obj.setdefault("responses", {}).setdefault(
                        "429", _RATE_LIMITED_RESPONSE
                    )

        return schema

    app.openapi = custom_openapi  # type: ignore[assignment]
