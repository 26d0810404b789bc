from .actions import ELECTRICAL_ACTIONS, MOMENTARY_ACTIONS, Action, ActionType, action
from .engine import apply, apply_trusted, invariant_violations
from .model import DEFAULT_STATE, CarState, Doors, Tires, diff_states, from_dict
from .store import StateStore

__all__ = [
    "Action",
    "ActionType",
    "CarState",
    "DEFAULT_STATE",
    "Doors",
    "ELECTRICAL_ACTIONS",
    "MOMENTARY_ACTIONS",
    "StateStore",
    "Tires",
    "action",
    "apply",
    "apply_trusted",
    "diff_states",
    "from_dict",
    "invariant_violations",
]
