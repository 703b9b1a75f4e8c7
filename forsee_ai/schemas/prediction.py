"""
Schemas for the /api/predict endpoint.

The request is forwarded without validation, so its fields accept any JSON.
PredictionResult documents the report shape; responses are returned as the
raw model output so unknown or out-of-range values pass through.
"""
from typing import Any, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field


class PredictionRequest(BaseModel):
    """Request body for /api/predict."""
    systemInfo: Any = Field(None, description="System name, id and description")
    inputs: Any = Field(None, description="Sensor name to reading mapping")


class TopSensor(BaseModel):
    name: str
    impact: float
    direction: Literal["up", "down"]


class ProjectionPoint(BaseModel):
    cycle: int
    health: Optional[float] = None


class MaintenanceScenario(BaseModel):
    riskReduction: float
    healthImprovement: float
    cost: float


class Simulation(BaseModel):
    maintenanceNow: MaintenanceScenario
    maintenanceLater: MaintenanceScenario


class FailureCluster(BaseModel):
    id: str
    label: Optional[str] = None
    description: str


class DataDrift(BaseModel):
    detected: Optional[bool] = None
    severity: str
    explanation: str


class PredictionResult(BaseModel):
    """Predictive-maintenance report produced for a single request."""
    model_config = ConfigDict(extra="allow")

    rul: Optional[int] = Field(None, description="Remaining useful life")
    rulUnit: Optional[Literal["Cycles", "Days", "Hours"]] = None
    healthIndex: Optional[int] = Field(None, description="0-100, 100 is best")
    riskLevel: Optional[Literal["LOW", "MEDIUM", "HIGH", "CRITICAL"]] = None
    precursorProbability: Optional[float] = None
    confidence: Optional[float] = None
    shortTermRisk: Optional[float] = Field(None, description="Risk within the next 7 days")
    failureMode: Optional[str] = None
    topSensors: Optional[List[TopSensor]] = None
    action: Optional[str] = None
    driftDetected: Optional[bool] = None
    longTermProjection: Optional[List[ProjectionPoint]] = None
    simulation: Optional[Simulation] = None
    failureCluster: Optional[FailureCluster] = None
    dataDrift: Optional[DataDrift] = None


class PredictionFallback(BaseModel):
    healthIndex: int = 50
    riskLevel: str = "MEDIUM"
    action: str = "System Error - Check Backend Logs"


class PredictionErrorResponse(BaseModel):
    """Error body for /api/predict; the fallback is informational only."""
    error: str
    details: str
    fallback: PredictionFallback
