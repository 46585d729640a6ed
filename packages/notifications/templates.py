"""Plain-text templates for usage notifications."""

from enum import Enum
from typing import Any


class TemplateKind(str, Enum):
    USAGE_WARNING = "usage_warning"
    USAGE_LIMIT_EXCEEDED = "usage_limit_exceeded"
    MINUTES_WARNING = "minutes_warning"
    MINUTES_LIMIT_EXCEEDED = "minutes_limit_exceeded"


_SUBJECTS = {
    TemplateKind.USAGE_WARNING: "You have used {percent:.0f}% of your storage",
    TemplateKind.USAGE_LIMIT_EXCEEDED: "Your storage limit has been reached",
    TemplateKind.MINUTES_WARNING: (
        "You have used {percent:.0f}% of your transcription minutes"
    ),
    TemplateKind.MINUTES_LIMIT_EXCEEDED: (
        "Your transcription minutes limit has been reached"
    ),
}

_BODIES = {
    TemplateKind.USAGE_WARNING: (
        "Hi {tenant_name},\n\n"
        "Your workspace is using {usage_gb:.2f} GB of the {quota_gb:.2f} GB "
        "included in the {tier} plan ({percent:.1f}%).\n\n"
        "Consider upgrading before you reach the limit.\n"
    ),
    TemplateKind.USAGE_LIMIT_EXCEEDED: (
        "Hi {tenant_name},\n\n"
        "Your workspace is using {usage_gb:.2f} GB of the {quota_gb:.2f} GB "
        "included in the {tier} plan ({percent:.1f}%).\n\n"
        "Storage above the limit is billed at ${price_per_gb:.2f}/GB. "
        "Current overage: {overage_gb:.3f} GB (${overage_cost:.2f}).\n"
    ),
    TemplateKind.MINUTES_WARNING: (
        "Hi {tenant_name},\n\n"
        "Your workspace has transcribed {minutes_used} of the {minutes_quota} "
        "minutes included in the {tier} plan this billing period "
        "({percent:.1f}%).\n\n"
        "Consider upgrading before you reach the limit.\n"
    ),
    TemplateKind.MINUTES_LIMIT_EXCEEDED: (
        "Hi {tenant_name},\n\n"
        "Your workspace has transcribed {minutes_used} of the {minutes_quota} "
        "minutes included in the {tier} plan this billing period "
        "({percent:.1f}%).\n\n"
        "Upgrade to keep transcribing before the period renews.\n"
    ),
}


def render(template_kind: TemplateKind, data: dict[str, Any]) -> tuple[str, str]:
    """Return (subject, body). Raises KeyError when ``data`` lacks a field."""
    kind = TemplateKind(template_kind)
    return _SUBJECTS[kind].format(**data), _BODIES[kind].format(**data)
