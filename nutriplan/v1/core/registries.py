from typing import Any, Generic, Protocol, TypeVar

# Base registry implementation
T = TypeVar("T")


class Registry(Generic[T]):
    """Generic registry for pluggable implementations."""

    def __init__(self, name: str):
        self.name = name
        self._implementations: dict[str, T] = {}
        self._frozen = False

    def register(self, name: str, implementation: T) -> None:
        """Register an implementation with a given name."""
        if self._frozen:
            raise RuntimeError(
                f"Cannot register '{name}' in {self.name.lower()} registry: "
                "registry is frozen"
            )
        self._implementations[name] = implementation

    def get(self, name: str) -> T:
        """Get an implementation by name."""
        if name not in self._implementations:
            raise KeyError(
                f"No {self.name.lower()} implementation registered with name: {name}"
            )
        return self._implementations[name]

    def list(self) -> list[str]:
        """List all registered implementation names."""
        return list(self._implementations.keys())

    def freeze(self) -> None:
        """Freeze the registry to prevent further modifications."""
        self._frozen = True

    def is_frozen(self) -> bool:
        """Check if the registry is frozen."""
        return self._frozen


# Plan Generator Registry - AI plan authoring
class PlanGenerator(Protocol):
    """Protocol for plan generators."""

    async def generate(
        self,
        answers: Any,  # QuestionnaireAnswers
        targets: Any,  # DerivedTargets
    ) -> Any:
        """
        Produce plan content for a questionnaire.

        Returns a PlanGenerationResult with content, validation_issues and
        was_repaired. May raise PlanGenerationError.
        """
        ...


class PlanGeneratorRegistry(Registry[PlanGenerator]):
    """Registry for plan generators (stub, ...)."""

    def __init__(self):
        super().__init__("PlanGenerator")


# Job Registry - background processing handlers
class JobHandler(Protocol):
    """Protocol for job handlers that process background tasks."""

    def parse_payload(self, payload: Any) -> Any:
        """
        Validate the raw stored payload.

        Raises InvalidJobPayloadError when the payload cannot be processed.
        """
        ...

    async def handle(self, job: Any, payload: Any) -> dict[str, Any] | None:
        """
        Handle a claimed job.

        Args:
            job: The claimed GenerationJob row
            payload: Output of parse_payload

        Returns:
            Optional result dictionary for logging
        """
        ...


class JobRegistry(Registry[JobHandler]):
    """Registry for background job handlers."""

    def __init__(self):
        super().__init__("Job")


# Global registry instances (singletons)
plan_generator_registry = PlanGeneratorRegistry()
job_registry = JobRegistry()
