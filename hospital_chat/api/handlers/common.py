"""
Helpers shared by the REST handlers.
"""

from typing import Any, Dict

from fastapi import Request

from ...core.exceptions import ValidationFailed


async def json_body(request: Request, allow_empty: bool = False) -> Dict[str, Any]:
    """Request body as a JSON object."""
    if allow_empty and not await request.body():
        return {}
    try:
        data = await request.json()
    except ValueError:
        raise ValidationFailed([], "Invalid JSON body")
    if not isinstance(data, dict):
        raise ValidationFailed([], "JSON object expected")
    return data


def listing(key: str, items) -> Dict[str, Any]:
    return {"success": True, key: items, "count": len(items)}
