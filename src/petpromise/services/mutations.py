import json
import logging
from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import Decimal, InvalidOperation
from typing import Any

from petpromise.core.errors import BadRequest, NotFound

logger = logging.getLogger(__name__)


@dataclass
class MutationResult:
    changed: bool
    item: dict


def normalize_value(value: Any) -> str:
    """
    String form used to compare stored and incoming values, which can differ
    structurally (Decimal vs float, ISO string vs datetime). Maps and lists
    are compared element by element under the same rules.
    """
    if isinstance(value, (dict, list, tuple, set, frozenset)):
        return json.dumps(_canonical(value), sort_keys=True)
    return _normalize_scalar(value)


def _canonical(value: Any) -> Any:
    if isinstance(value, dict):
        return {str(key): _canonical(item) for key, item in value.items()}
    if isinstance(value, (list, tuple)):
        return [_canonical(item) for item in value]
    if isinstance(value, (set, frozenset)):
        # DynamoDB string/number sets come back unordered.
        return sorted(_normalize_scalar(item) for item in value)
    return _normalize_scalar(value)


def _normalize_scalar(value: Any) -> str:
    if value is None:
        return "null"
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (int, float, Decimal)):
        try:
            number = Decimal(str(value))
        except InvalidOperation:
            return str(value)
        if number == number.to_integral_value():
            return str(number.quantize(Decimal(1)))
        return str(number.normalize())
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    return str(value)


def differs(stored: dict, partial: dict) -> bool:
    return any(
        normalize_value(stored.get(key)) != normalize_value(value)
        for key, value in partial.items()
    )


def conditional_update(store, key_value: str, partial: dict | None) -> MutationResult:
    """
    Apply ``partial`` only if some field actually changes.

    Unlisted fields are left untouched. When every listed field already
    matches, nothing is written and ``changed`` is False.
    """
    if not partial:
        raise BadRequest("Update payload is empty")

    existing = store.get(key_value)
    if existing is None:
        raise NotFound(f"No document with id {key_value}")

    if not differs(existing, partial):
        logger.info(f"No changes detected for {key_value} in {store.name}")
        return MutationResult(changed=False, item=existing)

    updated = store.set_fields(key_value, partial)
    if updated is None:
        # Deleted between the read and the write.
        raise NotFound(f"No document with id {key_value}")
    return MutationResult(changed=True, item=updated)


@dataclass(frozen=True)
class StatusTransition:
    """
    A "set these fields" update on one store. ``allowed_fields`` maps each
    settable field to its expected type; ``owner_field`` names the email
    that, besides an admin, may perform it.
    """
    store: str
    allowed_fields: dict[str, type] = field(default_factory=dict)
    owner_field: str = "ownerEmail"


def apply_status_transition(store, key_value: str, allowed_fields: dict[str, type],
                            partial: dict | None) -> MutationResult:
    if not partial:
        raise BadRequest("Update payload is empty")

    unknown = sorted(set(partial) - set(allowed_fields))
    if unknown:
        raise BadRequest(f"Fields not allowed here: {', '.join(unknown)}")

    for name, value in partial.items():
        expected = allowed_fields[name]
        if not isinstance(value, expected):
            raise BadRequest(f"Field {name} must be of type {expected.__name__}")

    return conditional_update(store, key_value, partial)
