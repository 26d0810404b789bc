"""CarState aggregate and its camelCase JSON wire form."""

from dataclasses import dataclass, fields, replace
from typing import Any, Dict, Mapping, Optional, Tuple

VIEWS: Tuple[str, ...] = ("front", "side", "rear")
WIPER_SPEEDS: Tuple[str, ...] = ("off", "low", "high")
DOOR_SIDES: Tuple[str, ...] = ("left", "right")
TIRE_CORNERS: Tuple[str, ...] = ("fl", "fr", "rl", "rr")


@dataclass(frozen=True)
class Doors:
    left: bool = False
    right: bool = False

    def toggled(self, side: str) -> "Doors":
        return replace(self, **{side: not getattr(self, side)})

    def to_dict(self) -> Dict[str, bool]:
        return {"left": self.left, "right": self.right}


@dataclass(frozen=True)
class Tires:
    """Flat-tire flags per corner; True means the tire is flat."""

    fl: bool = False
    fr: bool = False
    rl: bool = False
    rr: bool = False

    def toggled(self, corner: str) -> "Tires":
        return replace(self, **{corner: not getattr(self, corner)})

    def to_dict(self) -> Dict[str, bool]:
        return {"fl": self.fl, "fr": self.fr, "rl": self.rl, "rr": self.rr}


@dataclass(frozen=True)
class CarState:
    view: str = "front"
    is_night: bool = True
    is_engine_on: bool = False
    is_engine_broken: bool = False
    is_oil_leaking: bool = False
    is_battery_dead: bool = False
    is_fuel_empty: bool = False
    is_wiper_broken: bool = False
    parking_lights_on: bool = False
    lights_on: bool = False
    high_beam_on: bool = False
    fog_lights_on: bool = False
    hazard_lights_on: bool = False
    left_signal_on: bool = False
    right_signal_on: bool = False
    is_raining: bool = False
    wipers_active: bool = False
    wiper_speed: str = "off"
    is_washing: bool = False
    interior_light_on: bool = False
    is_horn_active: bool = False
    is_hood_open: bool = False
    is_trunk_open: bool = False
    windows_down: bool = False
    doors_open: Doors = Doors()
    tires: Tires = Tires()
    rpm: int = 0
    temperature: int = 90
    speed: int = 0

    def to_dict(self) -> Dict[str, Any]:
        out: Dict[str, Any] = {}
        for f in fields(self):
            value = getattr(self, f.name)
            if isinstance(value, (Doors, Tires)):
                value = value.to_dict()
            out[WIRE_NAMES[f.name]] = value
        return out


DEFAULT_STATE = CarState()

WIRE_NAMES: Dict[str, str] = {
    "view": "view",
    "is_night": "isNight",
    "is_engine_on": "isEngineOn",
    "is_engine_broken": "isEngineBroken",
    "is_oil_leaking": "isOilLeaking",
    "is_battery_dead": "isBatteryDead",
    "is_fuel_empty": "isFuelEmpty",
    "is_wiper_broken": "isWiperBroken",
    "parking_lights_on": "parkingLightsOn",
    "lights_on": "lightsOn",
    "high_beam_on": "highBeamOn",
    "fog_lights_on": "fogLightsOn",
    "hazard_lights_on": "hazardLightsOn",
    "left_signal_on": "leftSignalOn",
    "right_signal_on": "rightSignalOn",
    "is_raining": "isRaining",
    "wipers_active": "wipersActive",
    "wiper_speed": "wiperSpeed",
    "is_washing": "isWashing",
    "interior_light_on": "interiorLightOn",
    "is_horn_active": "isHornActive",
    "is_hood_open": "isHoodOpen",
    "is_trunk_open": "isTrunkOpen",
    "windows_down": "windowsDown",
    "doors_open": "doorsOpen",
    "tires": "tires",
    "rpm": "rpm",
    "temperature": "temperature",
    "speed": "speed",
}
ATTR_NAMES: Dict[str, str] = {wire: attr for attr, wire in WIRE_NAMES.items()}

_ENUMS: Dict[str, Tuple[str, ...]] = {"view": VIEWS, "wiperSpeed": WIPER_SPEEDS}
_INTS = frozenset({"rpm", "temperature", "speed"})
_NESTED = {"doorsOpen": (Doors, DOOR_SIDES), "tires": (Tires, TIRE_CORNERS)}


def parse_int(value: Any) -> int:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise ValueError("expected an integer")
    if isinstance(value, float):
        if not value.is_integer():
            raise ValueError("expected an integer")
        value = int(value)
    return value


def parse_field(wire_name: str, value: Any) -> Any:
    """Convert one wire value to its attribute value, raising ValueError if invalid."""
    if wire_name not in ATTR_NAMES:
        raise ValueError(f"unknown field {wire_name!r}")
    if wire_name in _ENUMS:
        if value not in _ENUMS[wire_name]:
            raise ValueError(f"{wire_name} must be one of {', '.join(_ENUMS[wire_name])}")
        return value
    if wire_name in _INTS:
        try:
            return parse_int(value)
        except ValueError:
            raise ValueError(f"{wire_name} must be an integer") from None
    if wire_name in _NESTED:
        cls, keys = _NESTED[wire_name]
        if not isinstance(value, Mapping):
            raise ValueError(f"{wire_name} must be an object")
        kwargs = {}
        for k, v in value.items():
            if k not in keys:
                raise ValueError(f"{wire_name}.{k} is not a known key")
            if not isinstance(v, bool):
                raise ValueError(f"{wire_name}.{k} must be a boolean")
            kwargs[k] = v
        # shallow: a nested object replaces the previous one as a whole
        return cls(**kwargs)
    if not isinstance(value, bool):
        raise ValueError(f"{wire_name} must be a boolean")
    return value


def from_dict(data: Mapping[str, Any], base: Optional[CarState] = None) -> CarState:
    """Shallow-merge a wire document over ``base`` (defaults when omitted).

    Unknown keys and invalid values are skipped.
    """
    changes: Dict[str, Any] = {}
    for wire_name, value in data.items():
        try:
            changes[ATTR_NAMES[wire_name]] = parse_field(wire_name, value)
        except (KeyError, ValueError):
            continue
    return replace(base if base is not None else DEFAULT_STATE, **changes)


def diff_states(before: CarState, after: CarState) -> Dict[str, Any]:
    """Wire fields of ``after`` whose value differs from ``before``."""
    old, new = before.to_dict(), after.to_dict()
    return {k: v for k, v in new.items() if old.get(k) != v}
