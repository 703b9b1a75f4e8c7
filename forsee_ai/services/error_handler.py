"""
Error handling utilities for the Forsee AI gateway.

This module provides functionality for:
1. Classifying upstream provider errors (credentials, safety filters)
2. Generating user-friendly error messages
3. Building the uniform error envelope returned by the API
"""
import os
from typing import Any, Dict, List, Optional

import yaml

PREDICTION_FALLBACK = {
    "healthIndex": 50,
    "riskLevel": "MEDIUM",
    "action": "System Error - Check Backend Logs"
}


class ErrorHandler:
    def __init__(self, config_path: Optional[str] = None):
        self.config_path = config_path or os.path.join(os.path.dirname(__file__), 'error_patterns.yaml')
        config = self._load_config()
        self.error_patterns: List[Dict[str, Any]] = config.get('error_patterns', [])
        self.default_messages: Dict[str, str] = config.get('default_messages', {})

    def _load_config(self) -> Dict[str, Any]:
        """Load error pattern configuration"""
        with open(self.config_path, 'r', encoding='utf-8') as f:
            config = yaml.safe_load(f)
        if not isinstance(config, dict):
            raise ValueError(f"Invalid error pattern configuration: {self.config_path}")
        return config

    def classify(self, error: Exception) -> Optional[str]:
        """
        Match an exception against the known patterns.

        Returns:
            The pattern name, or None if the error is not recognized
        """
        text = str(error).lower()
        status_code = getattr(error, "status_code", None)
        for pattern in self.error_patterns:
            if status_code is not None and status_code in pattern.get('status_codes', []):
                return pattern['name']
            for marker in pattern.get('markers', []):
                if marker.lower() in text:
                    return pattern['name']
        return None

    def get_user_friendly_error(self, error: Exception, operation: str) -> str:
        """Generate the user-facing message for an error raised during an operation."""
        error_type = self.classify(error)
        for pattern in self.error_patterns:
            if pattern['name'] == error_type:
                return pattern['message']
        return self.default_messages.get(operation, "Internal server error")

    def error_envelope(self, error: Exception, operation: str, classify: bool = True) -> Dict[str, Any]:
        """Build the {error, details} body for a failed request."""
        if classify:
            message = self.get_user_friendly_error(error, operation)
        else:
            message = self.default_messages.get(operation, "Internal server error")
        return {"error": message, "details": str(error)}

    def prediction_error_envelope(self, error: Exception) -> Dict[str, Any]:
        """Prediction failures always carry the informational fallback block."""
        body = self.error_envelope(error, "predict", classify=False)
        body["fallback"] = dict(PREDICTION_FALLBACK)
        return body


# Global error handler instance
error_handler = ErrorHandler()
