"""
Initialize the plan generator registry.
"""

from nutriplan.config.settings import Settings, get_settings
from nutriplan.v1.core.registries import PlanGenerator, plan_generator_registry
from nutriplan.v1.plans.generators import stub_plan_generator


def init_plan_generator_registry(settings: Settings | None = None) -> PlanGenerator:
    """Register built-in generators and return the configured one."""
    settings = settings or get_settings()

    # Always register stub generator (no dependencies)
    if "stub" not in plan_generator_registry.list():
        plan_generator_registry.register("stub", stub_plan_generator)

    try:
        return plan_generator_registry.get(settings.plan_generator.value)
    except KeyError as e:
        available = plan_generator_registry.list()
        raise RuntimeError(
            f"Configured plan generator '{settings.plan_generator.value}' not available. "
            f"Available generators: {available}"
        ) from e
