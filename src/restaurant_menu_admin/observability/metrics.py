"""Custom metrics for the menu admin service."""

from opentelemetry import metrics

meter = metrics.get_meter("menu-admin")

menu_mutation_counter = meter.create_counter(
    name="menu_mutation_total",
    description="Admin writes against categories and menu items by outcome",
    unit="1",
)

validation_rejection_counter = meter.create_counter(
    name="menu_validation_rejection_total",
    description="Admin submissions rejected locally before reaching the backend",
    unit="1",
)

auth_event_counter = meter.create_counter(
    name="auth_event_total",
    description="Sign-in and sign-out events by outcome",
    unit="1",
)

public_menu_render_counter = meter.create_counter(
    name="public_menu_render_total",
    description="Public menu renders by resulting status",
    unit="1",
)

backend_request_duration = meter.create_histogram(
    name="backend_request_duration_seconds",
    description="Duration of requests to the hosted backend",
    unit="s",
)


def record_menu_mutation(entity: str, operation: str, success: bool) -> None:
    """Record an admin write.

    Args:
        entity: "category" or "menu_item"
        operation: The write performed (e.g., "insert", "delete", "toggle")
        success: Whether the backend accepted the write
    """
    menu_mutation_counter.add(
        1, {"entity": entity, "operation": operation, "outcome": "success" if success else "failure"}
    )


def record_validation_rejection(entity: str, reason: str) -> None:
    """Record a submission rejected by local validation.

    Args:
        entity: "category" or "menu_item"
        reason: Short rejection reason (e.g., "empty_name", "non_positive_price")
    """
    validation_rejection_counter.add(1, {"entity": entity, "reason": reason})


def record_auth_event(event: str, success: bool = True) -> None:
    """Record a sign-in or sign-out attempt.

    Args:
        event: "sign_in" or "sign_out"
        success: Whether the attempt succeeded
    """
    auth_event_counter.add(1, {"event": event, "outcome": "success" if success else "failure"})


def record_public_menu_render(status: str) -> None:
    """Record the status of a public menu render."""
    public_menu_render_counter.add(1, {"status": status})


def record_backend_request(resource: str, method: str, duration_seconds: float) -> None:
    """Record a backend request.

    Args:
        resource: Table or auth endpoint that was called
        method: HTTP method used
        duration_seconds: Duration in seconds
    """
    backend_request_duration.record(duration_seconds, {"resource": resource, "method": method})
