"""Receipt image tools."""

import base64
import binascii
from typing import Any

from fastmcp import FastMCP

from ..concur import ConcurService
from ..errors import ValidationError
from .common import dump, register, tool_errors


def decode_image(image_base64: str) -> bytes:
    payload = image_base64.strip()
    # data:image/png;base64,....
    if payload.startswith("data:") and "," in payload:
        payload = payload.split(",", 1)[1]
    try:
        data = base64.b64decode(payload, validate=True)
    except (binascii.Error, ValueError) as exc:
        raise ValidationError("image_base64 is not valid base64 data") from exc
    if not data:
        raise ValidationError("image_base64 is empty")
    return data


def register_tools(mcp: FastMCP, service: ConcurService) -> dict[str, Any]:
    @tool_errors()
    async def get_receipt_image_url(entry_id: str) -> dict[str, Any]:
        """Get the receipt image URL for an expense. The URL expires after a short time."""
        return dump(await service.get_receipt_image_url(entry_id))

    @tool_errors()
    async def list_report_receipts(report_id: str) -> dict[str, Any]:
        """List receipt images attached to a report."""
        return dump(await service.get_report_receipt_images(report_id))

    @tool_errors()
    async def upload_receipt(
        entry_id: str, image_base64: str, content_type: str
    ) -> dict[str, Any]:
        """Upload a base64-encoded receipt (application/pdf, image/jpeg, image/jpg or image/png)."""
        image = await service.upload_receipt(entry_id, decode_image(image_base64), content_type)
        return {"success": True, "entry_id": entry_id, "image": dump(image)}

    @tool_errors()
    async def copy_receipt(source_entry_id: str, target_entry_id: str) -> dict[str, Any]:
        """Copy the receipt image from one expense to another."""
        return await service.copy_receipt(source_entry_id, target_entry_id)

    return register(
        mcp,
        {
            "get_receipt_image_url": get_receipt_image_url,
            "list_report_receipts": list_report_receipts,
            "upload_receipt": upload_receipt,
            "copy_receipt": copy_receipt,
        },
    )
