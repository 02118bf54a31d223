# streamsite/audit.py
"""
Discord webhook sink for audit events.

Delivery is fire-and-forget: callers schedule it after the response and it
never raises for network or HTTP errors.
"""
import json
from datetime import datetime, timezone
from typing import Any, Dict, Optional

import httpx

from streamsite import config

EMBED_COLOR = 16750848  # orange


def build_payload(event: str, data: Any) -> Dict[str, Any]:
    if isinstance(data, (dict, list)):
        description = json.dumps(data, indent=2, default=str)
    else:
        description = str(data)
    return {
        "username": config.AUDIT_USERNAME,
        "embeds": [{
            "title": f"Event: {event}",
            "description": description,
            "color": EMBED_COLOR,
            "timestamp": datetime.now(timezone.utc).isoformat(),
        }],
    }


async def post_event(
    url: str,
    event: str,
    data: Any,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> None:
    """POST one event to the webhook. Raises httpx.HTTPError on failure."""
    async with httpx.AsyncClient(transport=transport, timeout=config.AUDIT_TIMEOUT_SECONDS) as client:
        response = await client.post(url, json=build_payload(event, data))
        response.raise_for_status()
