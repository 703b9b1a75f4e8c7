"""
Prediction service for the Forsee AI gateway.

This module provides the core functionality for:
1. Building the predictive-maintenance prompt from system info and sensor readings
2. Parsing the model's JSON reply
3. Filling in the optional report sections the model left out
"""
import json
import re
from typing import Any, Dict, Optional

import httpx

from forsee_ai.services.llm_provider import llm_generate

PREDICTION_SYSTEM_PROMPT = """
You remain an expert industrial AI predictive maintenance system.
Your task is to analyze sensor data from various industrial systems and predict their health status.
You MUST output ONLY valid JSON. Do not include markdown formatting like ```json ... ```.

Input Structure:
- System Info: Name, ID, Description
- Sensor Values: Key-value pairs of sensor readings

Output Structure (JSON Only):
{
  "rul": number, // Remaining Useful Life in days/hours (integer)
  "rulUnit": string, // "Cycles", "Days", "Hours"
  "healthIndex": number, // 0-100 (integer, 100 is best)
  "riskLevel": string, // "LOW", "MEDIUM", "HIGH", or "CRITICAL"
  "precursorProbability": number, // 0.00 to 1.00
  "confidence": number, // 0.00 to 1.00
  "shortTermRisk": number, // 0.00 to 1.00 (Risk within next 7 days)
  "failureMode": string, // Short description of potential failure
  "topSensors": [ // Array of top 3 contributing sensors
    { "name": "string", "impact": number, "direction": "up" | "down" }
  ],
  "action": "string", // Recommended maintenance action
  "driftDetected": boolean // true/false
}

Logic:
- Analyze the sensor values relative to typical industrial ranges.
- High temperatures, vibrations, or pressures usually indicate lower health and higher risk.
- "rul" should decrease as health decreases.
- "riskLevel" should correlate with "healthIndex" (e.g., <50 is HIGH/CRITICAL).
- Be deterministic but realistic.
"""

PROJECTION_CYCLES = (0, 25, 50, 75, 100)

DEFAULT_SIMULATION = {
    "maintenanceNow": {"riskReduction": 85, "healthImprovement": 15, "cost": 4500},
    "maintenanceLater": {"riskReduction": 10, "healthImprovement": 2, "cost": 28000}
}

CODE_FENCE_PATTERN = re.compile(r"```(?:json)?")


class MalformedPredictionError(ValueError):
    """The model reply could not be read as a prediction object."""
    pass


def _to_json(value: Any) -> str:
    return json.dumps(value, separators=(",", ":"), default=str)


def build_prediction_prompt(system_info: Any, inputs: Any) -> str:
    """Builds the request prompt embedding the caller's system info and readings."""
    return f"""
      System: {_to_json(system_info)}
      Sensor Inputs: {_to_json(inputs)}

      Analyze these inputs based on the system type and provide the predictive maintenance JSON output.
    """


def strip_code_fences(text: str) -> str:
    """Remove markdown code fences the model may emit despite instructions."""
    return CODE_FENCE_PATTERN.sub("", text).strip()


def parse_prediction(text: str) -> Dict[str, Any]:
    """
    Parse the model reply as a prediction object.

    Raises:
        MalformedPredictionError: If the reply is not a JSON object
    """
    cleaned = strip_code_fences(text)
    try:
        prediction = json.loads(cleaned)
    except json.JSONDecodeError as e:
        raise MalformedPredictionError(f"Model returned invalid JSON: {str(e)}") from e

    if not isinstance(prediction, dict):
        raise MalformedPredictionError(
            f"Model returned {type(prediction).__name__} instead of a JSON object"
        )
    return prediction


def _offset(health_index: Any, delta: int) -> Optional[float]:
    # bool is an int subclass but never a meaningful health value
    if isinstance(health_index, bool) or not isinstance(health_index, (int, float)):
        return None
    return health_index + delta


def default_projection(health_index: Any) -> list:
    """Five-point health curve anchored on the current health index. Not clamped."""
    healths = [
        100,
        _offset(health_index, 5),
        _offset(health_index, 0),
        _offset(health_index, -10),
        _offset(health_index, -20),
    ]
    return [
        {"cycle": cycle, "health": health}
        for cycle, health in zip(PROJECTION_CYCLES, healths)
    ]


def fill_prediction_defaults(prediction: Dict[str, Any]) -> Dict[str, Any]:
    """
    Return a copy of the prediction with missing optional sections synthesized.

    A section counts as missing when it is absent or empty (null, false, "", []).
    Sections the model did provide are passed through as-is.
    """
    enhanced = dict(prediction)

    if not enhanced.get("longTermProjection"):
        enhanced["longTermProjection"] = default_projection(prediction.get("healthIndex"))

    if not enhanced.get("simulation"):
        enhanced["simulation"] = {
            key: dict(value) for key, value in DEFAULT_SIMULATION.items()
        }

    if not enhanced.get("failureCluster"):
        enhanced["failureCluster"] = {
            "id": "CL-GEN",
            "label": prediction.get("failureMode"),
            "description": "AI Detected Pattern"
        }

    if not enhanced.get("dataDrift"):
        enhanced["dataDrift"] = {
            "detected": prediction.get("driftDetected"),
            "severity": "Medium",
            "explanation": "AI analysis of input distribution."
        }

    return enhanced


async def predict(
    system_info: Any,
    inputs: Any,
    http_client: Optional[httpx.AsyncClient] = None,
) -> Dict[str, Any]:
    """
    Generate a predictive-maintenance report for one system.

    Args:
        system_info: Caller-supplied {name, id, description}
        inputs: Caller-supplied sensor readings

    Returns:
        The model's prediction with default-filled optional sections
    """
    prompt = build_prediction_prompt(system_info, inputs)
    text = await llm_generate(PREDICTION_SYSTEM_PROMPT, prompt, http_client=http_client)
    prediction = parse_prediction(text)
    return fill_prediction_defaults(prediction)
