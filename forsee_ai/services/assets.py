"""
Asset directory for the Forsee AI gateway.

Mirrors the REST "assets" resource as a list of dashboard devices. Fetching
never fails: without a token, on error, or on an empty result the static
default list is used instead.
"""
from typing import Any, Callable, Dict, List, Optional

import httpx

from forsee_ai.config import get_assets_api_url, get_http_timeout
from forsee_ai.schemas.assets import Device

DEFAULT_DEVICES = [
    Device(id="dev-01", name="Turbine A-11", icon="monitor"),
    Device(id="dev-02", name="Gen. Control", icon="cpu"),
    Device(id="dev-03", name="Field Tablet", icon="smartphone"),
    Device(id="dev-04", name="Engine Monitor", icon="laptop"),
]

# Substring -> icon, checked in order
ICON_RULES = [
    (("turbine",), "monitor"),
    (("control",), "cpu"),
    (("tablet", "mobile"), "smartphone"),
    (("monitor", "computer"), "laptop"),
]
GENERIC_ICON = "activity"


def icon_for_asset_type(asset_type: Optional[str]) -> str:
    """Pick a device icon from a free-text asset type."""
    lower_type = (asset_type or "").lower()
    for needles, icon in ICON_RULES:
        if any(needle in lower_type for needle in needles):
            return icon
    return GENERIC_ICON


def default_devices() -> List[Device]:
    return [device.model_copy() for device in DEFAULT_DEVICES]


def asset_to_device(asset: Dict[str, Any]) -> Device:
    return Device(
        id=str(asset["id"]),
        name=asset["name"],
        icon=icon_for_asset_type(asset.get("type")),
    )


class AssetDirectory:
    """
    In-memory device list kept in step with the assets resource.

    The list only reflects calls made through this instance: fetch_devices
    replaces it, add_device and remove_device patch it. The HTTP routes build
    one directory per request, so each response carries the result of that
    request alone and clients re-fetch /api/devices to see the current list.

    Args:
        token_provider: Returns the caller's access token, or None when unauthenticated
        base_url: Assets API base URL
        http_client: Optional client, mainly for tests
    """

    def __init__(
        self,
        token_provider: Callable[[], Optional[str]],
        base_url: Optional[str] = None,
        http_client: Optional[httpx.AsyncClient] = None,
    ):
        self.token_provider = token_provider
        self.base_url = (base_url or get_assets_api_url()).rstrip("/")
        self.http_client = http_client
        self.devices: List[Device] = []

    def _headers(self) -> Dict[str, str]:
        token = self.token_provider()
        return {"Authorization": f"Bearer {token}"} if token else {}

    async def _request(self, method: str, path: str, **kwargs) -> httpx.Response:
        url = f"{self.base_url}{path}"
        if self.http_client is not None:
            response = await self.http_client.request(method, url, headers=self._headers(), **kwargs)
        else:
            async with httpx.AsyncClient(timeout=get_http_timeout()) as client:
                response = await client.request(method, url, headers=self._headers(), **kwargs)
        response.raise_for_status()
        return response

    async def fetch_devices(self) -> List[Device]:
        """Load the device list, degrading to the defaults on any problem."""
        if not self.token_provider():
            self.devices = default_devices()
            return self.devices

        try:
            response = await self._request("GET", "/assets/")
            mapped = [asset_to_device(asset) for asset in response.json()]
            self.devices = mapped if mapped else default_devices()
        except Exception as e:
            print(f"Failed to fetch assets: {type(e).__name__}: {str(e)}")
            self.devices = default_devices()
        return self.devices

    async def add_device(self, name: str, icon: Optional[str] = None) -> Optional[Device]:
        """
        Create an asset and append it to the list.

        Returns:
            The new device, or None if the assets API rejected the request
        """
        try:
            response = await self._request("POST", "/assets/", json={
                "name": name,
                "type": "custom",
                "description": "Added via Dashboard",
                "status": "active"
            })
            asset = response.json()
            device = Device(id=str(asset["id"]), name=asset["name"], icon=icon or GENERIC_ICON)
        except Exception as e:
            print(f"Failed to add device: {type(e).__name__}: {str(e)}")
            return None

        self.devices = self.devices + [device]
        return device

    async def remove_device(self, device_id: str) -> bool:
        """Delete an asset and drop it from the list. Returns False on failure."""
        try:
            await self._request("DELETE", f"/assets/{device_id}")
        except Exception as e:
            print(f"Failed to remove device: {type(e).__name__}: {str(e)}")
            return False

        self.devices = [device for device in self.devices if device.id != device_id]
        return True
