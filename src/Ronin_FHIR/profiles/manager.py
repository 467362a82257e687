"""Entry point that runs a profile transform and reports its issues."""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any, Protocol

import structlog

from Ronin_FHIR.config.settings import LoggingSettings, get_settings
from Ronin_FHIR.models.resource import Resource
from Ronin_FHIR.models.tenant import TenantContext
from Ronin_FHIR.validation.accumulator import MULTIPLE_ERRORS_BANNER, Validation
from Ronin_FHIR.validation.issues import ValidationIssueSeverity

logger = structlog.get_logger(__name__)


class TransformingProfile(Protocol):
    """Anything exposing ``transform``: a profile or a multiple-profile resource."""

    def transform(
        self, resource: Mapping[str, Any], tenant: TenantContext
    ) -> tuple[Resource | None, Validation]: ...


class TransformManager:
    """Run transforms and log every issue they produce.

    Args:
        logging_settings: Controls per-issue logging; defaults to the cached
            application settings.
    """

    def __init__(self, logging_settings: LoggingSettings | None = None) -> None:
        self.logging_settings = logging_settings or get_settings().logging

    def transform_resource(
        self,
        resource: Mapping[str, Any],
        profile: TransformingProfile,
        tenant: TenantContext,
        *,
        raise_on_error: bool = False,
    ) -> Resource | None:
        """Transform ``resource`` and return the result, or ``None`` on failure.

        Raises:
            ValidationAlertError: when ``raise_on_error`` is set and the
                transform produced ERROR issues.
        """
        transformed, validation = profile.transform(resource, tenant)
        self.report(resource, tenant, validation)
        if raise_on_error:
            validation.alert_if_errors(MULTIPLE_ERRORS_BANNER)
        return transformed

    def report(
        self, resource: Mapping[str, Any], tenant: TenantContext, validation: Validation
    ) -> None:
        log = logger.bind(
            tenant=tenant.mnemonic,
            resource_type=resource.get("resourceType"),
            resource_id=resource.get("id"),
        )
        if self.logging_settings.log_issue_details:
            for issue in validation:
                emit = log.error if issue.severity is ValidationIssueSeverity.ERROR else log.warning
                emit(
                    "transform.issue",
                    code=issue.code,
                    location=str(issue.location),
                    description=issue.description,
                )
        log.info(
            "transform.summary",
            errors=len(validation.errors()),
            warnings=len(validation.warnings()),
        )


__all__ = ["TransformManager", "TransformingProfile"]
