from typing import Any, Dict

from libs.car_state.actions import MOMENTARY_ACTIONS, ActionType
from libs.car_state.model import ATTR_NAMES, parse_field


class SchemaValidationError(ValueError):
    pass


def _ensure(cond: bool, msg: str) -> None:
    if not cond:
        raise SchemaValidationError(msg)


def _validate_state_patch(obj: Dict[str, Any]) -> None:
    _ensure(isinstance(obj, dict), "state patch must be an object")
    for k, v in obj.items():
        if k not in ATTR_NAMES:
            # unknown fields are dropped by the merge, not rejected
            continue
        try:
            parse_field(k, v)
        except ValueError as e:
            raise SchemaValidationError(f"invalid {k}: {e}") from e


def _validate_action(obj: Dict[str, Any]) -> None:
    _ensure(isinstance(obj, dict), "action must be an object")
    typ = obj.get("type")
    _ensure(isinstance(typ, str) and len(typ) > 0, "action.type is required")
    if typ == ActionType.SET_FULL_STATE.value:
        _ensure(isinstance(obj.get("payload"), dict), "SET_FULL_STATE.payload must be an object")
        _validate_state_patch(obj["payload"])
    elif typ in {k.value for k in MOMENTARY_ACTIONS}:
        _ensure(isinstance(obj.get("payload"), bool), f"{typ}.payload must be a boolean")


def validate_or_raise(schema_path: str, obj: Dict[str, Any]) -> None:
    if schema_path == "schemas/car_state/state_patch.schema.json":
        _validate_state_patch(obj)
    elif schema_path == "schemas/car_state/action.schema.json":
        _validate_action(obj)
    else:
        raise SchemaValidationError(f"unsupported schema validator: {schema_path}")
