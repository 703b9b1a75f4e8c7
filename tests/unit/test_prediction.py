"""
Unit tests for the prediction service.

Tests prompt building, reply parsing and default-filling of optional report sections.
"""
import json

import pytest
from unittest.mock import patch, AsyncMock

from forsee_ai.services.prediction import (
    DEFAULT_SIMULATION,
    PREDICTION_SYSTEM_PROMPT,
    MalformedPredictionError,
    build_prediction_prompt,
    fill_prediction_defaults,
    parse_prediction,
    predict,
    strip_code_fences,
)

BASE_PREDICTION = {
    "rul": 120,
    "rulUnit": "Days",
    "healthIndex": 72,
    "riskLevel": "MEDIUM",
    "precursorProbability": 0.31,
    "confidence": 0.86,
    "shortTermRisk": 0.12,
    "failureMode": "Bearing wear",
    "topSensors": [
        {"name": "vibration", "impact": 0.6, "direction": "up"},
        {"name": "temperature", "impact": 0.3, "direction": "up"},
    ],
    "action": "Schedule bearing inspection",
    "driftDetected": True,
}


def test_fills_all_missing_sections():
    """Test that a reply without optional sections gets the deterministic placeholders."""
    result = fill_prediction_defaults(BASE_PREDICTION)

    assert result["longTermProjection"] == [
        {"cycle": 0, "health": 100},
        {"cycle": 25, "health": 77},
        {"cycle": 50, "health": 72},
        {"cycle": 75, "health": 62},
        {"cycle": 100, "health": 52},
    ]
    assert result["simulation"] == {
        "maintenanceNow": {"riskReduction": 85, "healthImprovement": 15, "cost": 4500},
        "maintenanceLater": {"riskReduction": 10, "healthImprovement": 2, "cost": 28000},
    }
    assert result["failureCluster"] == {
        "id": "CL-GEN",
        "label": "Bearing wear",
        "description": "AI Detected Pattern",
    }
    assert result["dataDrift"] == {
        "detected": True,
        "severity": "Medium",
        "explanation": "AI analysis of input distribution.",
    }

    # Everything else is untouched
    for key, value in BASE_PREDICTION.items():
        assert result[key] == value


def test_present_sections_pass_through():
    """Test that sections supplied by the model are not merged or overridden."""
    supplied = {
        **BASE_PREDICTION,
        "longTermProjection": [{"cycle": 0, "health": 90}, {"cycle": 10, "health": 40}],
        "simulation": {"maintenanceNow": {"riskReduction": 1, "healthImprovement": 1, "cost": 1}},
        "failureCluster": {"id": "CL-7", "label": "Seal leak", "description": "Known pattern"},
        "dataDrift": {"detected": False, "severity": "Low", "explanation": "Stable"},
    }
    result = fill_prediction_defaults(supplied)
    assert result == supplied


def test_null_sections_are_filled():
    """Test that explicit nulls are treated like missing sections."""
    result = fill_prediction_defaults({**BASE_PREDICTION, "simulation": None})
    assert result["simulation"] == DEFAULT_SIMULATION


def test_empty_sections_are_filled():
    """Test that false, empty strings and empty lists count as missing."""
    result = fill_prediction_defaults({
        **BASE_PREDICTION,
        "simulation": False,
        "failureCluster": "",
        "longTermProjection": [],
        "dataDrift": {},
    })
    assert result["simulation"] == DEFAULT_SIMULATION
    assert result["failureCluster"]["id"] == "CL-GEN"
    assert len(result["longTermProjection"]) == 5
    assert result["dataDrift"]["severity"] == "Medium"


def test_projection_is_not_clamped():
    """Test that low health indices produce negative projected health."""
    result = fill_prediction_defaults({**BASE_PREDICTION, "healthIndex": 10})
    assert [point["health"] for point in result["longTermProjection"]] == [100, 15, 10, 0, -10]


def test_projection_without_numeric_health_index():
    """Test that derived projection points are null when healthIndex is unusable."""
    prediction = dict(BASE_PREDICTION)
    del prediction["healthIndex"]
    result = fill_prediction_defaults(prediction)
    assert [point["health"] for point in result["longTermProjection"]] == [100, None, None, None, None]


def test_fill_does_not_mutate_input():
    prediction = dict(BASE_PREDICTION)
    fill_prediction_defaults(prediction)
    assert prediction == BASE_PREDICTION


def test_default_simulation_is_copied():
    """Test that callers cannot alter the shared simulation constants."""
    result = fill_prediction_defaults(BASE_PREDICTION)
    result["simulation"]["maintenanceNow"]["cost"] = 0
    assert DEFAULT_SIMULATION["maintenanceNow"]["cost"] == 4500


def test_strip_code_fences():
    fenced = "```json\n{\"healthIndex\": 40}\n```"
    assert strip_code_fences(fenced) == "{\"healthIndex\": 40}"
    assert strip_code_fences("  {\"a\": 1}  ") == "{\"a\": 1}"


def test_parse_prediction_with_fences():
    text = "```json\n" + json.dumps(BASE_PREDICTION) + "\n```"
    assert parse_prediction(text) == BASE_PREDICTION


def test_parse_prediction_rejects_prose():
    """Test that a non-JSON reply is a hard error."""
    with pytest.raises(MalformedPredictionError):
        parse_prediction("I cannot analyze this.")


def test_parse_prediction_rejects_non_object():
    with pytest.raises(MalformedPredictionError):
        parse_prediction("[1, 2, 3]")


def test_build_prediction_prompt_embeds_inputs():
    system_info = {"name": "Turbine A-11", "id": "T-11", "description": "Gas turbine"}
    inputs = {"temperature": 812, "vibration": "4.2"}
    prompt = build_prediction_prompt(system_info, inputs)

    assert 'System: {"name":"Turbine A-11","id":"T-11","description":"Gas turbine"}' in prompt
    assert 'Sensor Inputs: {"temperature":812,"vibration":"4.2"}' in prompt
    assert "provide the predictive maintenance JSON output" in prompt


def test_system_prompt_rubric():
    """Test that the instruction prompt carries the output contract and guidance."""
    assert "You MUST output ONLY valid JSON" in PREDICTION_SYSTEM_PROMPT
    assert '"riskLevel" should correlate with "healthIndex"' in PREDICTION_SYSTEM_PROMPT
    assert "High temperatures, vibrations, or pressures" in PREDICTION_SYSTEM_PROMPT


@pytest.mark.asyncio
async def test_predict_calls_model_and_fills_defaults():
    """Test the end-to-end prediction flow with the model mocked out."""
    with patch('forsee_ai.services.prediction.llm_generate', new_callable=AsyncMock) as mock_generate:
        mock_generate.return_value = "```json\n" + json.dumps(BASE_PREDICTION) + "\n```"

        result = await predict({"name": "Pump 3"}, {"pressure": 9.1})

        system_prompt, prompt = mock_generate.call_args.args
        assert system_prompt == PREDICTION_SYSTEM_PROMPT
        assert '"name":"Pump 3"' in prompt
        assert result["failureCluster"]["label"] == "Bearing wear"
        assert len(result["longTermProjection"]) == 5


@pytest.mark.asyncio
async def test_predict_propagates_malformed_reply():
    with patch('forsee_ai.services.prediction.llm_generate', new_callable=AsyncMock) as mock_generate:
        mock_generate.return_value = "I cannot analyze this."
        with pytest.raises(MalformedPredictionError):
            await predict({"name": "Pump 3"}, {})
