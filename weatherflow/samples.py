"""Canonical weather alert workflow stored by the seeding script."""

from .core.execution_engine import CONDITION_MET_LABEL, CONDITION_NOT_MET_LABEL
from .models.core import WorkflowDefinition

WEATHER_ALERT_WORKFLOW_ID = "550e8400-e29b-41d4-a716-446655440000"

OPEN_METEO_FORECAST_URL = (
    "https://api.open-meteo.com/v1/forecast"
    "?latitude={lat}&longitude={lon}&current_weather=true"
)


def weather_alert_workflow() -> WorkflowDefinition:
    """Build the start -> form -> weather -> condition -> email -> end workflow."""
    return WorkflowDefinition.model_validate({
        "id": WEATHER_ALERT_WORKFLOW_ID,
        "nodes": [
            {
                "id": "start",
                "type": "start",
                "position": {"x": -160, "y": 300},
                "data": {
                    "label": "Start",
                    "description": "Begin weather check workflow",
                    "metadata": {"hasHandles": {"source": True, "target": False}},
                },
            },
            {
                "id": "form",
                "type": "form",
                "position": {"x": 152, "y": 304},
                "data": {
                    "label": "User Input",
                    "description": "Process collected data - name, email, location",
                    "metadata": {
                        "hasHandles": {"source": True, "target": True},
                        "inputFields": ["name", "email", "city"],
                        "outputVariables": ["name", "email", "city"],
                    },
                },
            },
            {
                "id": "weather-api",
                "type": "weather-api",
                "position": {"x": 460, "y": 304},
                "data": {
                    "label": "Weather API",
                    "description": "Fetch current temperature for {{city}}",
                    "metadata": {
                        "hasHandles": {"source": True, "target": True},
                        "inputVariables": ["city"],
                        "apiEndpoint": OPEN_METEO_FORECAST_URL,
                        "outputVariables": ["temperature"],
                        "options": [
                            {"city": "Sydney", "lat": -33.8688, "lon": 151.2093},
                            {"city": "Melbourne", "lat": -37.8136, "lon": 144.9631},
                            {"city": "Brisbane", "lat": -27.4698, "lon": 153.0251},
                            {"city": "Perth", "lat": -31.9505, "lon": 115.8605},
                            {"city": "Adelaide", "lat": -34.9285, "lon": 138.6007},
                        ],
                    },
                },
            },
            {
                "id": "condition",
                "type": "condition",
                "position": {"x": 794, "y": 304},
                "data": {
                    "label": "Check Condition",
                    "description": "Evaluate temperature threshold",
                    "metadata": {
                        "hasHandles": {"source": ["true", "false"], "target": True},
                        "conditionExpression": "temperature {{operator}} {{threshold}}",
                        "outputVariables": ["conditionMet"],
                    },
                },
            },
            {
                "id": "email",
                "type": "email",
                "position": {"x": 1096, "y": 88},
                "data": {
                    "label": "Send Alert",
                    "description": "Email weather alert notification",
                    "metadata": {
                        "hasHandles": {"source": True, "target": True},
                        "inputVariables": ["name", "city", "temperature"],
                        "emailTemplate": {
                            "subject": "Weather Alert",
                            "body": "Weather alert for {{city}}! Temperature is {{temperature}}°C!",
                        },
                        "outputVariables": ["emailSent"],
                    },
                },
            },
            {
                "id": "end",
                "type": "end",
                "position": {"x": 1360, "y": 302},
                "data": {
                    "label": "Complete",
                    "description": "Workflow execution finished",
                    "metadata": {"hasHandles": {"source": False, "target": True}},
                },
            },
        ],
        "edges": [
            {"id": "e1", "source": "start", "target": "form", "type": "smoothstep", "animated": True},
            {"id": "e2", "source": "form", "target": "weather-api", "type": "smoothstep", "animated": True},
            {"id": "e3", "source": "weather-api", "target": "condition", "type": "smoothstep", "animated": True},
            {
                "id": "e4",
                "source": "condition",
                "target": "email",
                "type": "smoothstep",
                "sourceHandle": "true",
                "animated": True,
                "label": CONDITION_MET_LABEL,
                "style": {"stroke": "#10b981"},
            },
            {
                "id": "e5",
                "source": "condition",
                "target": "end",
                "type": "smoothstep",
                "sourceHandle": "false",
                "animated": True,
                "label": CONDITION_NOT_MET_LABEL,
                "style": {"stroke": "#6b7280"},
            },
            {"id": "e6", "source": "email", "target": "end", "type": "smoothstep", "animated": True},
        ],
    })
