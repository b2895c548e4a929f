"""Validation of provider/template/framework/feature combinations."""

from __future__ import annotations

from typing import Iterable, List, Optional, Sequence

from ..catalog import CatalogRegistry
from ..errors import ErrorKind, Result, UnsupportedCombinationError
from ..logging import get_logger
from ..models import (
    BatchValidationResult,
    CompatibilityLevel,
    FrameworkCompatibilityInfo,
    IntegrationTemplate,
    TemplateValidationResult,
    ValidationRequest,
    ValidationSummary,
)

FRAMEWORK_NOT_SUPPORTED = "Framework not supported for this provider"


class CompatibilityValidator:
    """Reports diagnostics for a requested combination. Never raises for bad input."""

    def __init__(self, registry: CatalogRegistry) -> None:
        self.registry = registry
        self.logger = get_logger("validators.compatibility")

    def resolve_compatibility(
        self, provider_id: str, framework: str
    ) -> Result[FrameworkCompatibilityInfo]:
        """Compatibility entry for the pairing, or an ``unsupported`` placeholder."""
        try:
            return Result.success(self.registry.require_compatibility(provider_id, framework))
        except UnsupportedCombinationError as exc:
            self.logger.debug("No compatibility entry: %s", exc)
            placeholder = FrameworkCompatibilityInfo(
                framework=framework,
                compatibility_level=CompatibilityLevel.UNSUPPORTED,
                confidence=0.0,
            )
            return Result.degraded(
                placeholder,
                ErrorKind.UNSUPPORTED_COMBINATION,
                fallback="unsupported",
                detail=str(exc),
            )

    def validate(
        self,
        provider_id: str,
        template_id: Optional[str],
        framework: str,
        features: Iterable[str] = (),
    ) -> TemplateValidationResult:
        result = TemplateValidationResult()
        requested = list(dict.fromkeys(feature for feature in features if feature))

        provider = self.registry.find_provider(provider_id)
        if provider is None:
            result.errors.append(f"Unknown provider '{provider_id}'")
            return result
        result.compatible_frameworks = [
            entry.framework
            for entry in self.registry.provider_compatibility(provider_id)
            if entry.compatibility_level is not CompatibilityLevel.UNSUPPORTED
        ]

        template: Optional[IntegrationTemplate] = None
        if template_id:
            template = self.registry.find_template(template_id)
            if template is None:
                result.errors.append(f"Unknown template '{template_id}'")
            elif template.provider_id != provider_id:
                result.errors.append(
                    f"Template '{template_id}' belongs to provider '{template.provider_id}', not '{provider_id}'"
                )
                template = None
            elif framework not in self.registry.template_frameworks(template):
                result.errors.append(f"Template '{template_id}' does not target framework '{framework}'")

        resolved = self.resolve_compatibility(provider_id, framework)
        entry = resolved.value
        result.compatibility_level = entry.compatibility_level
        if not resolved.ok:
            result.errors.append(f"Framework '{framework}' is not supported by {provider.name}")
            result.missing_requirements.append(FRAMEWORK_NOT_SUPPORTED)
            return result

        level = entry.compatibility_level
        if level is CompatibilityLevel.UNSUPPORTED:
            result.errors.append(f"{provider.name} does not support {framework}")
        elif level in (CompatibilityLevel.PARTIAL, CompatibilityLevel.MINIMAL):
            result.warnings.append(f"{provider.name} has {level.value} support for {framework}")

        result.warnings.extend(entry.limitations)
        result.missing_requirements.extend(
            f"Additional dependency required: {dependency}" for dependency in entry.additional_dependencies
        )

        required = template.required_features if template is not None else frozenset()
        for feature in requested:
            if feature in entry.supported_features:
                continue
            if feature in required:
                result.errors.append(f"Required feature '{feature}' is not supported for {framework}")
                result.missing_requirements.append(f"Feature support: {feature}")
            else:
                result.warnings.append(f"Feature '{feature}' is not supported for {framework}")

        for feature in sorted(required):
            if feature not in requested and feature not in entry.supported_features:
                result.errors.append(
                    f"Template '{template_id}' requires feature '{feature}', which is unavailable for {framework}"
                )

        result.suggestions = sorted(entry.supported_features - set(requested))
        return result

    def batch_validate(self, requests: Sequence[ValidationRequest]) -> BatchValidationResult:
        results: List[TemplateValidationResult] = [
            self.validate(request.provider_id, request.template_id, request.framework, request.features)
            for request in requests
        ]
        summary = ValidationSummary(
            total_requests=len(results),
            valid_count=sum(1 for result in results if result.is_valid),
            invalid_count=sum(1 for result in results if not result.is_valid),
            warning_count=sum(len(result.warnings) for result in results),
            error_count=sum(len(result.errors) for result in results),
        )
        return BatchValidationResult(results=results, summary=summary)

    def provider_compatibility(self, provider_id: str) -> List[FrameworkCompatibilityInfo]:
        return self.registry.provider_compatibility(provider_id)
