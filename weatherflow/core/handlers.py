"""Built-in node handlers.

Every handler is a callable ``handler(node, payload, context) -> NodeOutcome``.
A handler signals failure by raising a ``NodeExecutionError`` subclass and
never touches the graph itself.
"""

import uuid
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Optional

from ..models.core import ExecutePayload, Node, utc_timestamp
from ..services.open_meteo import GeocodingClient, WeatherClient
from .context import ContextKey, ExecutionContext
from .exceptions import (
    CityNotFoundError,
    MissingApiEndpointError,
    MissingCityError,
    MissingEmailError,
    MissingEmailTemplateError,
    MissingNameError,
    UnsupportedOperatorError,
)
from .logging import get_logger

logger = get_logger(__name__)

CONDITION_MET = "condition met"
CONDITION_NOT_MET = "condition not met"
DEFAULT_EMAIL_SENDER = "weather-alerts@example.com"


@dataclass
class NodeOutcome:
    """Successful handler result.

    ``condition_met`` is only set by condition handlers and drives routing.
    """
    output: Dict[str, Any] = field(default_factory=dict)
    condition_met: Optional[bool] = None


NodeHandler = Callable[[Node, ExecutePayload, ExecutionContext], NodeOutcome]


OPERATORS: Dict[str, Callable[[float, float], bool]] = {
    "greater_than": lambda value, threshold: value > threshold,
    "less_than": lambda value, threshold: value < threshold,
    "equals": lambda value, threshold: value == threshold,
    "greater_than_or_equal": lambda value, threshold: value >= threshold,
    "less_than_or_equal": lambda value, threshold: value <= threshold,
}


def evaluate_condition(operator: str, threshold: float, value: float) -> bool:
    """
    Compare a reading against a threshold.

    Args:
        operator: One of the keys of ``OPERATORS``
        threshold: Value to compare against
        value: The reading

    Returns:
        The comparison outcome

    Raises:
        UnsupportedOperatorError: If the operator is not recognized
    """
    comparison = OPERATORS.get(operator)
    if comparison is None:
        raise UnsupportedOperatorError(operator)
    return comparison(value, threshold)


def render_template(template: str, city: str, temperature: float) -> str:
    """Substitute ``{{city}}`` and ``{{temperature}}`` placeholders."""
    return (
        template
        .replace("{{city}}", city)
        .replace("{{temperature}}", f"{temperature:.1f}")
    )


def process_start_node(node: Node, payload: ExecutePayload, context: ExecutionContext) -> NodeOutcome:
    """No-op entry node."""
    logger.debug(f"Processing node {node.id}")
    return NodeOutcome()


def process_end_node(node: Node, payload: ExecutePayload, context: ExecutionContext) -> NodeOutcome:
    """No-op exit node."""
    logger.debug(f"Processing node {node.id}")
    return NodeOutcome()


def process_form_node(node: Node, payload: ExecutePayload, context: ExecutionContext) -> NodeOutcome:
    """Require name, email and city in the submitted form."""
    logger.debug(f"Processing node {node.id}")

    form = payload.form_data
    if not form.name:
        raise MissingNameError(node_id=node.id)
    if not form.email:
        raise MissingEmailError(node_id=node.id)
    if not form.city:
        raise MissingCityError(node_id=node.id)

    return NodeOutcome(output={
        "name": form.name,
        "email": form.email,
        "city": form.city,
    })


def process_condition_node(node: Node, payload: ExecutePayload, context: ExecutionContext) -> NodeOutcome:
    """Evaluate the payload condition against the recorded temperature."""
    logger.debug(f"Processing node {node.id}")

    temperature = context.require(ContextKey.WEATHER_TEMPERATURE)
    operator = payload.condition.operator
    threshold = payload.condition.threshold

    condition_met = evaluate_condition(operator, threshold, temperature)

    status_text = CONDITION_MET if condition_met else CONDITION_NOT_MET
    message = (
        f"Temperature {temperature:.1f}°C is {operator.replace('_', ' ')} "
        f"{threshold:.1f}°C - {status_text}"
    )

    return NodeOutcome(
        output={
            "conditionMet": condition_met,
            "threshold": threshold,
            "operator": operator,
            "actualValue": temperature,
            "message": message,
        },
        condition_met=condition_met
    )


class WeatherLookupHandler:
    """Geocode the form city and record its current temperature."""

    def __init__(self, geocoding_client: GeocodingClient, weather_client: WeatherClient):
        self.geocoding_client = geocoding_client
        self.weather_client = weather_client

    def __call__(self, node: Node, payload: ExecutePayload, context: ExecutionContext) -> NodeOutcome:
        logger.debug(f"Processing node {node.id}")

        city = payload.form_data.city
        if not city:
            raise MissingCityError(node_id=node.id)

        endpoint = node.data.metadata.api_endpoint
        if not endpoint:
            raise MissingApiEndpointError(node_id=node.id)

        matches = self.geocoding_client.search(city)
        if not matches:
            raise CityNotFoundError(city, node_id=node.id)

        location = matches[0]
        url = (
            endpoint
            .replace("{lat}", f"{location.latitude:f}")
            .replace("{lon}", f"{location.longitude:f}")
        )

        temperature = self.weather_client.current_temperature(url)
        context.set(ContextKey.WEATHER_TEMPERATURE, temperature)

        logger.info(f"Recorded temperature {temperature} for {city}")

        return NodeOutcome(output={
            "temperature": context.require(ContextKey.WEATHER_TEMPERATURE),
            "location": city,
        })


class EmailHandler:
    """Render the alert email from the node template and simulate delivery."""

    def __init__(self, sender: str = DEFAULT_EMAIL_SENDER):
        self.sender = sender

    def __call__(self, node: Node, payload: ExecutePayload, context: ExecutionContext) -> NodeOutcome:
        logger.debug(f"Processing node {node.id}")

        template = node.data.metadata.email_template
        if template is None:
            raise MissingEmailTemplateError(node_id=node.id)

        temperature = context.require(ContextKey.WEATHER_TEMPERATURE)
        city = payload.form_data.city

        draft = {
            "to": payload.form_data.email,
            "from": self.sender,
            "subject": render_template(template.subject, city, temperature),
            "body": render_template(template.body, city, temperature),
            "timestamp": utc_timestamp(),
        }

        # No mail transport is wired in; delivery is simulated.
        logger.debug(f"Sending email to {draft['to']}")

        return NodeOutcome(output={
            "emailDraft": draft,
            "deliveryStatus": "sent",
            "messageId": f"msg_{uuid.uuid4().hex[:12]}",
            "emailSent": True,
        })
