from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, FrozenSet, Mapping, Optional


class ActionType(str, Enum):
    SET_FULL_STATE = "SET_FULL_STATE"
    RESET_ALL = "RESET_ALL"
    SET_VIEW = "SET_VIEW"
    TOGGLE_NIGHT = "TOGGLE_NIGHT"
    TOGGLE_ENGINE = "TOGGLE_ENGINE"
    BREAK_ENGINE = "BREAK_ENGINE"
    REPAIR_ENGINE = "REPAIR_ENGINE"
    TOGGLE_OIL_LEAK = "TOGGLE_OIL_LEAK"
    TOGGLE_BATTERY = "TOGGLE_BATTERY"
    TOGGLE_FUEL = "TOGGLE_FUEL"
    TOGGLE_WIPER_BREAK = "TOGGLE_WIPER_BREAK"
    TOGGLE_PARKING_LIGHTS = "TOGGLE_PARKING_LIGHTS"
    TOGGLE_LIGHTS = "TOGGLE_LIGHTS"
    TOGGLE_HIGH_BEAM = "TOGGLE_HIGH_BEAM"
    TOGGLE_FOG_LIGHTS = "TOGGLE_FOG_LIGHTS"
    TOGGLE_HAZARDS = "TOGGLE_HAZARDS"
    TOGGLE_RAIN = "TOGGLE_RAIN"
    SET_WIPERS = "SET_WIPERS"
    TOGGLE_WASHING = "TOGGLE_WASHING"
    TOGGLE_INTERIOR = "TOGGLE_INTERIOR"
    TOGGLE_SIGNAL = "TOGGLE_SIGNAL"
    TOGGLE_HORN = "TOGGLE_HORN"
    TOGGLE_HOOD = "TOGGLE_HOOD"
    TOGGLE_TRUNK = "TOGGLE_TRUNK"
    TOGGLE_WINDOWS = "TOGGLE_WINDOWS"
    TOGGLE_DOOR = "TOGGLE_DOOR"
    TOGGLE_TIRE = "TOGGLE_TIRE"
    SET_RPM = "SET_RPM"
    SET_TEMPERATURE = "SET_TEMPERATURE"
    SET_SPEED = "SET_SPEED"


# Press/release controls: the payload is the level (True while held), not a toggle.
MOMENTARY_ACTIONS: FrozenSet[ActionType] = frozenset({ActionType.TOGGLE_HORN, ActionType.TOGGLE_WASHING})

# Blocked while the battery is dead.
ELECTRICAL_ACTIONS: FrozenSet[ActionType] = frozenset({
    ActionType.TOGGLE_PARKING_LIGHTS,
    ActionType.TOGGLE_LIGHTS,
    ActionType.TOGGLE_HIGH_BEAM,
    ActionType.TOGGLE_FOG_LIGHTS,
    ActionType.TOGGLE_HAZARDS,
    ActionType.TOGGLE_INTERIOR,
    ActionType.TOGGLE_SIGNAL,
    ActionType.TOGGLE_HORN,
    ActionType.TOGGLE_WINDOWS,
})


@dataclass(frozen=True)
class Action:
    """One entry of the action catalogue.

    ``type`` is kept as a plain string so that unknown kinds coming from a
    host or over HTTP can still be represented (the engine ignores them).
    """

    type: str
    payload: Any = None

    @classmethod
    def press(cls, kind: ActionType) -> "Action":
        if kind not in MOMENTARY_ACTIONS:
            raise ValueError(f"{kind.value} is not a momentary action")
        return cls(kind.value, True)

    @classmethod
    def release(cls, kind: ActionType) -> "Action":
        if kind not in MOMENTARY_ACTIONS:
            raise ValueError(f"{kind.value} is not a momentary action")
        return cls(kind.value, False)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "Action":
        return cls(str(data.get("type", "")), data.get("payload"))

    @property
    def kind(self) -> Optional[ActionType]:
        try:
            return ActionType(self.type)
        except ValueError:
            return None

    @property
    def is_momentary(self) -> bool:
        return self.kind in MOMENTARY_ACTIONS

    def to_dict(self) -> Dict[str, Any]:
        out: Dict[str, Any] = {"type": self.type}
        if self.payload is not None:
            out["payload"] = self.payload
        return out


def action(kind: ActionType, payload: Any = None) -> Action:
    return Action(kind.value, payload)
