"""Intake: turn free text into an accepted GenerationRequest plus its budget."""

from config.defaults import COMPLEXITY_BUDGETS, DEFAULTS, get_timeout_config
from core.state import GenerationRequest
from manager.classifier import classify
from manager.requirements import parse


def build_request(description, target_type=None, project_name=None, requirements=None,
                  external_apis=None, test_scenarios=None, publish_target=None):
    """Build a GenerationRequest from a description.

    Fields the caller leaves out are derived from the RequirementModel.
    Returns (request, requirement_model).
    """
    model = parse(description)

    if not target_type:
        target_type, _ = classify(description)

    if requirements is None:
        requirements = [
            f"{cap.name}: {cap.description}"
            for cap in (*model.actions, *model.providers, *model.services, *model.evaluators)
        ]
    if external_apis is None:
        external_apis = [api.name for api in model.api_integrations]

    request = GenerationRequest(
        project_name=project_name or f"{model.name.lower()}-{target_type}",
        description=description.strip(),
        target_type=target_type,
        requirements=requirements,
        external_apis=external_apis,
        test_scenarios=test_scenarios or [],
        publish_target=publish_target,
    )
    return request, model


def budget_for(model, env=None):
    """Default iteration and whole-run time budget for a complexity class."""
    budget = COMPLEXITY_BUDGETS.get(model.complexity, COMPLEXITY_BUDGETS["medium"])
    timeout = get_timeout_config(env)["timeout"] * budget["timeout_scale"]
    return {
        "max_iterations": min(budget["max_iterations"], DEFAULTS["hard_max_iterations"]),
        "timeout": timeout,
    }
