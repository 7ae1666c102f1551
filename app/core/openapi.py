"""OpenAPI metadata and customization utilities.

Enriches the generated schema with tag descriptions and an optional
``X-API-Key`` security scheme. Authentication is optional everywhere, so
operations list both the key and an empty requirement.
"""

from __future__ import annotations

from typing import Any, Dict

from fastapi import FastAPI

_TAGS = [
    {
        "name": "Agents",
        "description": "Agent catalog and rate-limited agent runs.",
    },
    {
        "name": "Usage",
        "description": "Current request quota for the caller.",
    },
    {
        "name": "Health",
        "description": "Liveness checks.",
    },
]


def apply_openapi_customizations(app: FastAPI) -> None:
    """Patch FastAPI's OpenAPI generation to add tags and the API key scheme."""

    original_openapi = app.openapi

    def custom_openapi() -> Dict[str, Any]:
        schema = original_openapi()

        components = schema.setdefault("components", {})
        security_schemes = components.setdefault("securitySchemes", {})
        security_schemes.setdefault(
            "ApiKeyAuth",
            {
                "type": "apiKey",
                "in": "header",
                "name": "X-API-Key",
                "description": (
                    "Optional. A valid key selects the authenticated quota; "
                    "without it the caller is limited per IP."
                ),
            },
        )
        schema.setdefault("security", [{"ApiKeyAuth": []}, {}])

        tags = schema.setdefault("tags", [])
        existing_tag_names = {t.get("name") for t in tags}
        for tag in _TAGS:
            if tag["name"] not in existing_tag_names:
                tags.append(tag)

        for path, methods in schema.get("paths", {}).items():
            if path.endswith("/health"):
                for method_obj in methods.values():
                    if isinstance(method_obj, dict):
                        method_obj["security"] = []

        return schema

    app.openapi = custom_openapi  # type: ignore[assignment]
