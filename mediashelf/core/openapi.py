"""OpenAPI metadata and customization utilities.

Enriches the generated OpenAPI schema with:
- Tags metadata
- The ``X-API-Key`` user-token security scheme, applied to library
  operations only (gateway and health routes are public)
"""

from __future__ import annotations

from typing import Any, Dict

from fastapi import FastAPI

_TAGS = [
    {
        "name": "TMDB",
        "description": "Rate-limited search and title detail proxied from TMDB.",
    },
    {
        "name": "Library",
        "description": "The caller's tracked titles (requires X-API-Key).",
    },
    {
        "name": "Health",
        "description": "Liveness checks.",
    },
]


def apply_openapi_customizations(app: FastAPI) -> None:
    """Patch FastAPI's OpenAPI generation to add tags and security."""

    original_openapi = app.openapi

    def custom_openapi() -> Dict[str, Any]:
        schema = original_openapi()

        components = schema.setdefault("components", {})
        security_schemes = components.setdefault("securitySchemes", {})
        security_schemes.setdefault(
            "UserToken",
            {
                "type": "apiKey",
                "in": "header",
                "name": "X-API-Key",
                "description": "Per-user token configured in APP_USER_TOKENS.",
            },
        )

        tags = schema.setdefault("tags", [])
        existing_tag_names = {t.get("name") for t in tags}
        tags.extend(tag for tag in _TAGS if tag["name"] not in existing_tag_names)

        for path, methods in schema.get("paths", {}).items():
            if not path.startswith("/library"):
                continue
            for method_obj in methods.values():
                if isinstance(method_obj, dict):
                    method_obj["security"] = [{"UserToken": []}]

        return schema

    app.openapi = custom_openapi  # type: ignore[assignment]
