"""
Schemas for dashboard devices backed by the assets resource.
"""
from typing import List, Literal, Optional

from pydantic import BaseModel

DeviceIcon = Literal["monitor", "cpu", "smartphone", "laptop", "activity"]


class Device(BaseModel):
    id: str
    name: str
    icon: DeviceIcon = "activity"


class DeviceCreateRequest(BaseModel):
    name: str
    icon: Optional[DeviceIcon] = None


class DeviceListResponse(BaseModel):
    devices: List[Device]
