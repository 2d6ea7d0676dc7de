"""Domain-specific exceptions — framework-independent."""


class EntityNotFoundError(Exception):
    """Raised when a requested entity does not exist."""

    def __init__(self, entity_type: str, entity_id: int | str):
        self.entity_type = entity_type
        self.entity_id = entity_id
        super().__init__(f"{entity_type} with id '{entity_id}' not found")


class DuplicateEntityError(Exception):
    """Raised when attempting to create a duplicate entity."""

    def __init__(self, entity_type: str, field: str, value: str):
        self.entity_type = entity_type
        self.field = field
        self.value = value
        super().__init__(f"{entity_type} with {field}='{value}' already exists")


class InvalidStatusTransitionError(Exception):
    """Raised when a discovery is moved to a status its lifecycle does not allow."""

    def __init__(self, entity_id: str, current: str, target: str):
        self.entity_id = entity_id
        self.current = current
        self.target = target
        super().__init__(f"Cannot move '{entity_id}' from {current} to {target}")


class ChatProviderError(Exception):
    """Raised when a chat provider returns an error.

    Provider-agnostic — works for OpenRouter, Groq, OpenAI, etc.
    """

    def __init__(self, provider: str, status_code: int, message: str):
        self.provider = provider
        self.status_code = status_code
        self.message = message
        super().__init__(f"[{provider}] {status_code}: {message}")


class SearchProviderError(Exception):
    """Raised when the web search / site-mapping API returns an error."""

    def __init__(self, provider: str, status_code: int, message: str):
        self.provider = provider
        self.status_code = status_code
        self.message = message
        super().__init__(f"[{provider}] {status_code}: {message}")


class CircuitBreakerOpenError(Exception):
    """Raised when a call is rejected because the circuit is open.

    A rejection never reaches the upstream service, so it is reported
    separately from genuine upstream failures.
    """

    code = "CIRCUIT_BREAKER_OPEN"
    status_code = 503

    def __init__(self, name: str, retry_after_seconds: float = 0.0):
        self.name = name
        self.retry_after_seconds = retry_after_seconds
        super().__init__(
            f"Circuit breaker '{name}' is open; retry in {retry_after_seconds:.1f}s"
        )


class CircuitBreakerTimeoutError(Exception):
    """Raised when a call guarded by a circuit breaker exceeds its timeout."""

    def __init__(self, name: str, timeout_seconds: float):
        self.name = name
        self.timeout_seconds = timeout_seconds
        super().__init__(f"Request through '{name}' timed out after {timeout_seconds}s")


class FetchError(Exception):
    """Raised when fetching a remote document fails after all retries."""

    def __init__(
        self,
        url: str,
        message: str,
        *,
        attempts: int = 1,
        status_code: int | None = None,
    ):
        self.url = url
        self.attempts = attempts
        self.status_code = status_code
        super().__init__(f"Failed to fetch {url} after {attempts} attempt(s): {message}")


class UsageTrackingError(Exception):
    """Raised when a usage increment could not be applied to every period bucket."""

    def __init__(self, service: str, period: str, cause: Exception):
        self.service = service
        self.period = period
        self.cause = cause
        super().__init__(f"Failed to track {service} usage for {period} bucket: {cause}")


class BudgetExceededError(Exception):
    """Raised when a run is aborted because a service exceeded its budget."""

    def __init__(self, services: list[str]):
        self.services = services
        super().__init__(f"Budget exceeded for: {', '.join(services)}")


class ConfigurationError(Exception):
    """Raised at startup when required configuration is missing."""

    def __init__(self, missing: list[str]):
        self.missing = missing
        super().__init__(f"Missing required configuration: {', '.join(missing)}")
