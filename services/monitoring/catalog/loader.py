"""
Catalog Loader
==============

Validates a tenant's raw requirement catalog into typed authority and
requirement definitions.

Validation happens once, when the catalog is loaded. A malformed entry is
excluded and reported as a ConfigurationError; the rest of the catalog stays
usable.

Version: 0.1.0
"""

from dataclasses import dataclass, field
from typing import Any

from pydantic import ValidationError

from services.monitoring.errors import ConfigurationError
from shared.logging import get_logger
from shared.models.authority import AuthorityProfile, RegistrationRule
from shared.models.requirement import RequirementDefinition


logger = get_logger(__name__)


@dataclass
class RequirementCatalog:
    """Validated catalog for one tenant."""

    authorities: dict[str, AuthorityProfile] = field(default_factory=dict)
    requirements: list[RequirementDefinition] = field(default_factory=list)
    errors: list[ConfigurationError] = field(default_factory=list)

    def requirements_for(self, authority: str) -> list[RequirementDefinition]:
        """Requirements owned by one authority, in catalog order."""
        return [r for r in self.requirements if r.authority == authority]

    def get_requirement(self, requirement_id: str) -> RequirementDefinition | None:
        """Look up a requirement by id."""
        for requirement in self.requirements:
            if requirement.id == requirement_id:
                return requirement
        return None

    @property
    def is_empty(self) -> bool:
        """True when nothing in the catalog can be evaluated."""
        return not self.authorities


def _describe(exc: ValidationError) -> str:
    """Compact one-line summary of a pydantic validation error."""
    parts = []
    for err in exc.errors():
        location = ".".join(str(p) for p in err["loc"])
        parts.append(f"{location}: {err['msg']}" if location else err["msg"])
    return "; ".join(parts)


def _entry_id(raw: Any, fallback: str) -> str:
    if isinstance(raw, dict):
        return str(raw.get("id") or raw.get("code") or fallback)
    return fallback


def _load_authority(
    raw: Any,
    index: int,
    errors: list[ConfigurationError],
) -> AuthorityProfile | None:
    entry_id = _entry_id(raw, f"authorities[{index}]")
    if not isinstance(raw, dict):
        errors.append(ConfigurationError(entry_id, "authority entry must be a mapping"))
        return None

    # Registration rules are validated one by one so a bad rule only drops itself
    rules: list[RegistrationRule] = []
    for rule_index, raw_rule in enumerate(raw.get("registration_rules") or []):
        rule_id = _entry_id(raw_rule, f"{entry_id}.registration_rules[{rule_index}]")
        try:
            rules.append(RegistrationRule.model_validate(raw_rule))
        except ValidationError as e:
            errors.append(ConfigurationError(rule_id, _describe(e)))

    body = {k: v for k, v in raw.items() if k != "registration_rules"}
    try:
        authority = AuthorityProfile.model_validate(body)
    except ValidationError as e:
        errors.append(ConfigurationError(entry_id, _describe(e)))
        return None

    return authority.model_copy(update={"registration_rules": tuple(rules)})


def load_catalog(document: dict[str, Any]) -> RequirementCatalog:
    """
    Validate a raw catalog document.

    Args:
        document: Mapping with "authorities" and "requirements" lists

    Returns:
        RequirementCatalog with every valid entry and the errors for the rest
    """
    catalog = RequirementCatalog()

    for index, raw in enumerate(document.get("authorities") or []):
        authority = _load_authority(raw, index, catalog.errors)
        if authority is None:
            continue
        if authority.code in catalog.authorities:
            catalog.errors.append(
                ConfigurationError(authority.code, "duplicate authority code")
            )
            continue
        catalog.authorities[authority.code] = authority

    seen: set[str] = set()
    for index, raw in enumerate(document.get("requirements") or []):
        entry_id = _entry_id(raw, f"requirements[{index}]")
        try:
            requirement = RequirementDefinition.model_validate(raw)
        except ValidationError as e:
            catalog.errors.append(ConfigurationError(entry_id, _describe(e)))
            continue

        if requirement.authority not in catalog.authorities:
            catalog.errors.append(
                ConfigurationError(
                    requirement.id,
                    f"unknown authority {requirement.authority}",
                )
            )
            continue
        if requirement.id in seen:
            catalog.errors.append(ConfigurationError(requirement.id, "duplicate requirement id"))
            continue

        seen.add(requirement.id)
        catalog.requirements.append(requirement)

    for error in catalog.errors:
        logger.error(
            "catalog_entry_invalid",
            entry_id=error.entry_id,
            reason=error.reason,
        )

    logger.debug(
        "catalog_loaded",
        authorities=len(catalog.authorities),
        requirements=len(catalog.requirements),
        errors=len(catalog.errors),
    )

    return catalog
