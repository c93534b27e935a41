"""OpenAPI customization utilities.

Enriches the generated schema with:
- Bearer token security for the rate-limited API (``/api/*``)
- Admin API Key security (``X-API-Key``) for ``/admin/*``
- Tags metadata

Health endpoints stay unauthenticated.
"""

from __future__ import annotations

from typing import Any, Dict

from fastapi import FastAPI

_TAGS = [
    {
        "name": "API",
        "description": "Rate-limited endpoints. Requests are counted per token and endpoint.",
    },
    {
        "name": "Quotas",
        "description": "Manage per-token, per-endpoint request limits.",
    },
    {
        "name": "Health",
        "description": "Liveness and readiness checks.",
    },
]


def apply_openapi_customizations(app: FastAPI) -> None:
    """Patch FastAPI's OpenAPI generation to add security schemes and tags."""

    original_openapi = app.openapi

    def custom_openapi() -> Dict[str, Any]:
        schema = original_openapi()

        components = schema.setdefault("components", {})
        security_schemes = components.setdefault("securitySchemes", {})
        security_schemes.setdefault(
            "BearerAuth",
            {
                "type": "http",
                "scheme": "bearer",
                "description": "Caller token; limits are configured per token and endpoint.",
            },
        )
        security_schemes.setdefault(
            "ApiKeyAuth",
            {
                "type": "apiKey",
                "in": "header",
                "name": "X-API-Key",
                "description": "Admin API key for quota management.",
            },
        )

        tags = schema.setdefault("tags", [])
        existing_tag_names = {t.get("name") for t in tags}
        for tag in _TAGS:
            if tag["name"] not in existing_tag_names:
                tags.append(tag)

        for path, methods in schema.get("paths", {}).items():
            if path.startswith("/api/"):
                security: list[dict[str, list]] = [{"BearerAuth": []}]
            elif path.startswith("/admin/"):
                security = [{"ApiKeyAuth": []}]
            else:
                security = []
            for method_obj in methods.values():
                if isinstance(method_obj, dict):
                    method_obj["security"] = security

        return schema

    app.openapi = custom_openapi  # type: ignore[assignment]
