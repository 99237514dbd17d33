# claims_portal/services/claim_normalizer.py
"""
Turns raw ClickUp task payloads into stable claim structures.

Every public function here is total: any JSON-shaped input produces a
result, and values that cannot be interpreted become "Not Specified"
instead of raising.

Custom fields are coerced by strategy. The strategy of a field is looked
up by ClickUp field id first and by display name second; the built-in
table is keyed by display name, so renaming a field in ClickUp changes
how it is rendered here.
"""

import json
import logging
import math
import re
from enum import Enum
from typing import Any, Iterable, Mapping

from claims_portal.schemas.claim import (
    NOT_SPECIFIED,
    ClaimSnapshot,
    ClaimStatus,
    ClaimSummary,
    NormalizedField,
)

logger = logging.getLogger(__name__)

MAX_COMMENTS = 5

# Internal-only fields that must never reach contractors
EXCLUDED_FIELD_MARKERS = ("Record New Settlement",)

CLAIMS_FIELD_NAME = "Claim"


class FieldStrategy(str, Enum):
    SINGLE_REFERENCE = "single_reference"
    MULTI_ADDRESS = "multi_address"
    CURRENCY = "currency"
    GENERIC = "generic"


DEFAULT_STRATEGIES_BY_NAME: dict[str, FieldStrategy] = {
    "Contractor Salesman": FieldStrategy.SINGLE_REFERENCE,
    "Policy Holder": FieldStrategy.SINGLE_REFERENCE,
    "Property Address": FieldStrategy.SINGLE_REFERENCE,
    "Inspection": FieldStrategy.SINGLE_REFERENCE,
    "Insurance Carrier": FieldStrategy.SINGLE_REFERENCE,
    "Key PA": FieldStrategy.SINGLE_REFERENCE,
    "🙎‍♂️ Key PA": FieldStrategy.SINGLE_REFERENCE,
    "Loss Address": FieldStrategy.MULTI_ADDRESS,
    "RCV": FieldStrategy.CURRENCY,
    "ACV": FieldStrategy.CURRENCY,
}

_CURRENCY_NOISE = re.compile(r"[$€£¥,\s]")
_LEADING_NUMBER = re.compile(r"[+-]?(?:\d+(?:\.\d*)?|\.\d+)(?:[eE][+-]?\d+)?")


# ----- small helpers -----


def _text(value: Any) -> str | None:
    """Non-empty string form of a scalar, else None."""
    if isinstance(value, bool):
        return None
    if isinstance(value, str):
        return value if value.strip() else None
    if isinstance(value, (int, float)):
        return str(value)
    return None


def _json_dump(value: Any) -> str:
    return json.dumps(value, separators=(",", ":"), ensure_ascii=False, default=str)


def _stringify(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (dict, list)):
        return _json_dump(value)
    return str(value)


def _display_name(item: Any) -> str | None:
    if isinstance(item, Mapping):
        return _text(item.get("name")) or _text(item.get("username"))
    return _text(item)


def _is_blank(value: Any) -> bool:
    return value is None or (isinstance(value, str) and not value.strip())


# ----- coercion strategies -----


def coerce_single_reference(value: Any) -> Any:
    """First linked item's name, or an address / name property of an object."""
    if isinstance(value, list):
        if not value:
            return NOT_SPECIFIED
        return _display_name(value[0]) or NOT_SPECIFIED
    if isinstance(value, Mapping):
        return _text(value.get("formatted_address")) or _text(value.get("name")) or NOT_SPECIFIED
    return NOT_SPECIFIED


def coerce_multi_address(value: Any) -> Any:
    if isinstance(value, list):
        parts = [v for v in value if isinstance(v, str) and v]
        return ", ".join(parts) or NOT_SPECIFIED
    if isinstance(value, Mapping):
        return _text(value.get("formatted_address")) or NOT_SPECIFIED
    return NOT_SPECIFIED


def parse_currency(value: Any) -> float | int:
    """
    Money amount of a currency field.

    Numbers are kept, strings like "$1,234.56" are cleaned and parsed
    (leading numeric part, 0 when there is none), objects contribute their
    `value` property; everything else is 0.
    """
    if isinstance(value, bool):
        return 0
    if isinstance(value, (int, float)):
        return value if math.isfinite(value) else 0
    if isinstance(value, str):
        match = _LEADING_NUMBER.match(_CURRENCY_NOISE.sub("", value))
        if not match:
            return 0
        amount = float(match.group())
        return amount if math.isfinite(amount) else 0
    if isinstance(value, Mapping):
        inner = value.get("value")
        if isinstance(inner, (int, float, str)):
            return parse_currency(inner)
    return 0


def coerce_generic(value: Any) -> Any:
    """Best human-readable form of an arbitrary object or list."""
    if isinstance(value, Mapping):
        if value.get("name"):
            return _scalar(value["name"])
        if value.get("value"):
            return _scalar(value["value"])
        return _json_dump(value)
    if isinstance(value, list):
        parts = []
        for item in value:
            if not item:
                continue
            if isinstance(item, Mapping):
                parts.append(_stringify(item.get("name") or item.get("value") or item))
            else:
                parts.append(_stringify(item))
        return ", ".join(parts)
    return value


def _scalar(value: Any) -> Any:
    return _json_dump(value) if isinstance(value, (dict, list)) else value


_COERCERS = {
    FieldStrategy.SINGLE_REFERENCE: coerce_single_reference,
    FieldStrategy.MULTI_ADDRESS: coerce_multi_address,
    FieldStrategy.GENERIC: coerce_generic,
}


def coerce_value(strategy: FieldStrategy, value: Any) -> Any:
    if strategy is FieldStrategy.CURRENCY:
        return parse_currency(value)
    # only objects and lists need interpretation
    if not isinstance(value, (Mapping, list)):
        return value
    return _COERCERS[strategy](value)


# ----- normalizer -----


class ClaimNormalizer:
    """
    Maps raw ClickUp tasks to ClaimSnapshot / ClaimSummary.

    Args:
        strategies_by_id: ClickUp field id -> strategy, checked first.
        strategies_by_name: display name -> strategy (defaults to the
            portal's built-in table).
    """

    def __init__(
        self,
        strategies_by_id: Mapping[str, FieldStrategy] | None = None,
        strategies_by_name: Mapping[str, FieldStrategy] | None = None,
    ):
        self.strategies_by_id = dict(strategies_by_id or {})
        self.strategies_by_name = dict(
            DEFAULT_STRATEGIES_BY_NAME if strategies_by_name is None else strategies_by_name
        )

    def strategy_for(self, field: Mapping[str, Any]) -> FieldStrategy:
        field_id = field.get("id")
        if isinstance(field_id, str) and field_id in self.strategies_by_id:
            return self.strategies_by_id[field_id]
        name = field.get("name")
        if isinstance(name, str) and name in self.strategies_by_name:
            return self.strategies_by_name[name]
        return FieldStrategy.GENERIC

    def normalize_field(self, field: Any) -> NormalizedField | None:
        """Coerce one custom field, or None when it must be left out."""
        if not isinstance(field, Mapping):
            return None
        value = field.get("value")
        if value is None or field.get("hide_from_guests") is True:
            return None

        raw_name = field.get("name")
        name = raw_name if isinstance(raw_name, str) else _text(raw_name) or ""
        if any(marker in name for marker in EXCLUDED_FIELD_MARKERS):
            return None

        strategy = self.strategy_for(field)
        try:
            coerced = coerce_value(strategy, value)
        except (TypeError, ValueError, RecursionError):
            logger.warning("Could not coerce custom field %r (%s)", name, strategy.value)
            coerced = NOT_SPECIFIED

        field_type = field.get("type")
        return NormalizedField(
            name=name or NOT_SPECIFIED,
            value=NOT_SPECIFIED if _is_blank(coerced) else coerced,
            type=field_type if isinstance(field_type, str) else None,
        )

    def normalize(self, raw_task: Any, comments: Any = None) -> ClaimSnapshot:
        """
        Build the snapshot of one claim task.

        Args:
            raw_task: task JSON as returned by ClickUp.
            comments: comment list (newest first). Defaults to the task's
                own `comments` key when not given.
        """
        task = raw_task if isinstance(raw_task, Mapping) else {}

        raw_fields = task.get("custom_fields")
        fields: Iterable[Any] = raw_fields if isinstance(raw_fields, list) else []
        custom_fields = [nf for nf in (self.normalize_field(f) for f in fields) if nf is not None]

        attachments = task.get("attachments")
        if comments is None:
            comments = task.get("comments")

        status = task.get("status")
        description = task.get("description")

        return ClaimSnapshot(
            id=_text(task.get("id")) or NOT_SPECIFIED,
            name=_text(task.get("name")) or NOT_SPECIFIED,
            status=NOT_SPECIFIED if _is_blank(status) else status,
            description=description if isinstance(description, str) else "",
            custom_fields=custom_fields,
            attachments=list(attachments) if isinstance(attachments, list) else [],
            comments=list(comments[:MAX_COMMENTS]) if isinstance(comments, list) else [],
        )

    def summarize_contractor_claims(self, contractor_task: Any) -> list[ClaimSummary]:
        """
        Claims linked from a contractor task's `Claim` (tasks-type) field.

        Linked tasks flagged `access: false` are not visible to the
        contractor and are skipped.
        """
        task = contractor_task if isinstance(contractor_task, Mapping) else {}
        fields = task.get("custom_fields")
        if not isinstance(fields, list):
            return []

        claims_field = next(
            (
                f
                for f in fields
                if isinstance(f, Mapping)
                and f.get("type") == "tasks"
                and f.get("name") == CLAIMS_FIELD_NAME
            ),
            None,
        )
        linked = claims_field.get("value") if claims_field else None
        if not isinstance(linked, list):
            return []

        summaries = []
        for claim in linked:
            if not isinstance(claim, Mapping) or claim.get("access") is False:
                continue
            claim_id = _text(claim.get("id"))
            if not claim_id:
                continue
            status = claim.get("status")
            if isinstance(status, Mapping):
                color = _text(status.get("color")) or _text(claim.get("color"))
                status = status.get("status")
            else:
                color = _text(claim.get("color"))
            summaries.append(
                ClaimSummary(
                    id=claim_id,
                    claim_id=claim_id,
                    name=_text(claim.get("name")) or NOT_SPECIFIED,
                    status=ClaimStatus(
                        status=_text(status) or "unknown",
                        color=color or "#999999",
                    ),
                )
            )
        return summaries


_default_normalizer = ClaimNormalizer()


def normalize(raw_task: Any, comments: Any = None) -> ClaimSnapshot:
    """Snapshot of `raw_task` using the built-in field table."""
    return _default_normalizer.normalize(raw_task, comments)
