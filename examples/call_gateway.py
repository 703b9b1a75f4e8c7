"""
Example Python client for the Forsee AI gateway.

Runs a prediction for a sample turbofan engine, then asks the assistant
about the result. Set FORSEE_TOKEN to also list devices from the assets API.
"""
import json
import os
import sys
from typing import Any, Dict, List, Optional

import httpx

# Configuration
API_URL = os.environ.get("API_URL", "http://localhost:5000")
FORSEE_TOKEN = os.environ.get("FORSEE_TOKEN", "")

SAMPLE_SYSTEM = {
    "name": "Turbofan FD001",
    "id": "FD001",
    "description": "NASA C-MAPSS turbofan engine, sea-level conditions"
}

SAMPLE_INPUTS = {"T24": 643.2, "T30": 1592.8, "T50": 1410.5, "P30": 553.1, "Nc": 9065.2}


class GatewayError(Exception):
    """Raised when the gateway answers with an error envelope."""
    pass


def _headers() -> Dict[str, str]:
    return {"Authorization": f"Bearer {FORSEE_TOKEN}"} if FORSEE_TOKEN else {}


def _post(client: httpx.Client, path: str, body: Dict[str, Any]) -> Dict[str, Any]:
    response = client.post(f"{API_URL}{path}", json=body, headers=_headers())
    try:
        data = response.json()
    except ValueError:
        data = {}
    if response.status_code >= 400:
        message = data.get("error") or data.get("detail") or response.text
        raise GatewayError(f"{path} failed ({response.status_code}): {message}. Details: {data.get('details')}")
    return data


def predict(client: httpx.Client, system_info: Dict[str, Any], inputs: Dict[str, Any]) -> Dict[str, Any]:
    return _post(client, "/api/predict", {"systemInfo": system_info, "inputs": inputs})


def chat(client: httpx.Client, message: str, history: Optional[List[Dict[str, str]]] = None) -> str:
    return _post(client, "/api/chat", {"message": message, "history": history or []})["response"]


def print_prediction(prediction: Dict[str, Any]) -> None:
    print("\n=== Prediction ===\n")
    print(f"Health index: {prediction.get('healthIndex')} ({prediction.get('riskLevel')})")
    print(f"RUL: {prediction.get('rul')} {prediction.get('rulUnit', '')}")
    print(f"Failure mode: {prediction.get('failureMode')}")
    print(f"Action: {prediction.get('action')}")
    for sensor in prediction.get("topSensors") or []:
        print(f"  {sensor.get('name')}: impact {sensor.get('impact')} ({sensor.get('direction')})")
    print("Projection:", json.dumps(prediction.get("longTermProjection")))
    print()


def main():
    with httpx.Client(timeout=90) as client:
        try:
            health = client.get(f"{API_URL}/api/health").json()
            print(f"Gateway status: {health['status']} at {health['timestamp']}")

            prediction = predict(client, SAMPLE_SYSTEM, SAMPLE_INPUTS)
            print_prediction(prediction)

            question = f"What should I check first for '{prediction.get('failureMode')}'?"
            history: List[Dict[str, str]] = []
            answer = chat(client, question, history)
            print(f"You: {question}\nForsee AI: {answer}\n")

            history += [{"role": "user", "content": question}, {"role": "model", "content": answer}]
            follow_up = "How urgent is it?"
            print(f"You: {follow_up}\nForsee AI: {chat(client, follow_up, history)}\n")

            devices = client.get(f"{API_URL}/api/devices", headers=_headers()).json()["devices"]
            print("Devices:", ", ".join(device["name"] for device in devices))

        except GatewayError as e:
            print(f"Gateway Error: {str(e)}")
            sys.exit(1)
        except httpx.HTTPError as e:
            print(f"Request Error: {str(e)}")
            sys.exit(1)


if __name__ == "__main__":
    main()
