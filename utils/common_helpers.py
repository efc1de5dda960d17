from typing import Any, Dict, Optional

import httpx


def safe_json(resp: httpx.Response) -> Optional[Dict[str, Any]]:
    """Body as a dict, or None when it is not JSON or not an object."""
    try:
        data = resp.json()
    except ValueError:
        return None
    return data if isinstance(data, dict) else None

