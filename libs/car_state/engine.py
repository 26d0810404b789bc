from dataclasses import replace
from typing import Any, Callable, Dict, List, Mapping

from .actions import Action, ActionType, ELECTRICAL_ACTIONS
from .model import (
    DEFAULT_STATE,
    DOOR_SIDES,
    TIRE_CORNERS,
    VIEWS,
    WIPER_SPEEDS,
    CarState,
    from_dict,
    parse_int,
)

Handler = Callable[[CarState, Any], CarState]


def apply_trusted(state: CarState, partial: Mapping[str, Any]) -> CarState:
    """Shallow-merge an authoritative snapshot without checking any rule."""
    if not isinstance(partial, Mapping):
        return state
    return from_dict(partial, base=state)


def _engine_off(state: CarState, **extra: Any) -> CarState:
    if state.is_engine_on:
        extra.setdefault("left_signal_on", False)
        extra.setdefault("right_signal_on", False)
        extra.setdefault("hazard_lights_on", False)
    return replace(state, is_engine_on=False, **extra)


def _set_full_state(state: CarState, payload: Any) -> CarState:
    return apply_trusted(state, payload)


def _reset_all(state: CarState, payload: Any) -> CarState:
    return replace(DEFAULT_STATE, view=state.view, is_night=state.is_night)


def _set_view(state: CarState, payload: Any) -> CarState:
    if payload not in VIEWS:
        return state
    return replace(state, view=payload)


def _toggle_engine(state: CarState, payload: Any) -> CarState:
    if state.is_engine_broken or state.is_battery_dead or state.is_fuel_empty:
        return state
    if state.is_engine_on:
        return _engine_off(state)
    return replace(state, is_engine_on=True)


def _break_engine(state: CarState, payload: Any) -> CarState:
    return _engine_off(state, is_engine_broken=True)


def _repair_engine(state: CarState, payload: Any) -> CarState:
    return replace(state, is_engine_broken=False)


def _toggle_battery(state: CarState, payload: Any) -> CarState:
    if state.is_battery_dead:
        return replace(state, is_battery_dead=False)
    return _engine_off(
        state,
        is_battery_dead=True,
        lights_on=False,
        high_beam_on=False,
        parking_lights_on=False,
        interior_light_on=False,
    )


def _toggle_fuel(state: CarState, payload: Any) -> CarState:
    if state.is_fuel_empty:
        # refuelling never restarts the engine on its own
        return replace(state, is_fuel_empty=False)
    return _engine_off(state, is_fuel_empty=True)


def _toggle_parking_lights(state: CarState, payload: Any) -> CarState:
    if state.parking_lights_on and state.lights_on:
        return replace(state, parking_lights_on=False, lights_on=False, high_beam_on=False)
    return replace(state, parking_lights_on=not state.parking_lights_on)


def _toggle_lights(state: CarState, payload: Any) -> CarState:
    if state.lights_on:
        return replace(state, lights_on=False, high_beam_on=False)
    return replace(state, lights_on=True, parking_lights_on=True)


def _toggle_high_beam(state: CarState, payload: Any) -> CarState:
    # Low beam and parking lights are forced on in both directions.
    return replace(state, high_beam_on=not state.high_beam_on, lights_on=True, parking_lights_on=True)


def _toggle_hazards(state: CarState, payload: Any) -> CarState:
    return replace(state, hazard_lights_on=not state.hazard_lights_on, left_signal_on=False, right_signal_on=False)


def _set_wipers(state: CarState, payload: Any) -> CarState:
    if state.is_wiper_broken or payload not in WIPER_SPEEDS:
        return state
    return replace(state, wiper_speed=payload, wipers_active=payload != "off")


def _toggle_signal(state: CarState, payload: Any) -> CarState:
    if payload == "left":
        return replace(state, left_signal_on=not state.left_signal_on, right_signal_on=False, hazard_lights_on=False)
    if payload == "right":
        return replace(state, right_signal_on=not state.right_signal_on, left_signal_on=False, hazard_lights_on=False)
    return state


def _toggle_door(state: CarState, payload: Any) -> CarState:
    if payload not in DOOR_SIDES:
        return state
    return replace(state, doors_open=state.doors_open.toggled(payload))


def _toggle_tire(state: CarState, payload: Any) -> CarState:
    if payload not in TIRE_CORNERS:
        return state
    return replace(state, tires=state.tires.toggled(payload))


def _flip(attr: str) -> Handler:
    def handler(state: CarState, payload: Any) -> CarState:
        return replace(state, **{attr: not getattr(state, attr)})
    return handler


def _level(attr: str) -> Handler:
    def handler(state: CarState, payload: Any) -> CarState:
        if not isinstance(payload, bool):
            return state
        return replace(state, **{attr: payload})
    return handler


def _number(attr: str) -> Handler:
    def handler(state: CarState, payload: Any) -> CarState:
        try:
            value = parse_int(payload)
        except ValueError:
            return state
        return replace(state, **{attr: value})
    return handler


_HANDLERS: Dict[ActionType, Handler] = {
    ActionType.SET_FULL_STATE: _set_full_state,
    ActionType.RESET_ALL: _reset_all,
    ActionType.SET_VIEW: _set_view,
    ActionType.TOGGLE_NIGHT: _flip("is_night"),
    ActionType.TOGGLE_ENGINE: _toggle_engine,
    ActionType.BREAK_ENGINE: _break_engine,
    ActionType.REPAIR_ENGINE: _repair_engine,
    ActionType.TOGGLE_OIL_LEAK: _flip("is_oil_leaking"),
    ActionType.TOGGLE_BATTERY: _toggle_battery,
    ActionType.TOGGLE_FUEL: _toggle_fuel,
    ActionType.TOGGLE_WIPER_BREAK: _flip("is_wiper_broken"),
    ActionType.TOGGLE_PARKING_LIGHTS: _toggle_parking_lights,
    ActionType.TOGGLE_LIGHTS: _toggle_lights,
    ActionType.TOGGLE_HIGH_BEAM: _toggle_high_beam,
    ActionType.TOGGLE_FOG_LIGHTS: _flip("fog_lights_on"),
    ActionType.TOGGLE_HAZARDS: _toggle_hazards,
    ActionType.TOGGLE_RAIN: _flip("is_raining"),
    ActionType.SET_WIPERS: _set_wipers,
    ActionType.TOGGLE_WASHING: _level("is_washing"),
    ActionType.TOGGLE_INTERIOR: _flip("interior_light_on"),
    ActionType.TOGGLE_SIGNAL: _toggle_signal,
    ActionType.TOGGLE_HORN: _level("is_horn_active"),
    ActionType.TOGGLE_HOOD: _flip("is_hood_open"),
    ActionType.TOGGLE_TRUNK: _flip("is_trunk_open"),
    ActionType.TOGGLE_WINDOWS: _flip("windows_down"),
    ActionType.TOGGLE_DOOR: _toggle_door,
    ActionType.TOGGLE_TIRE: _toggle_tire,
    ActionType.SET_RPM: _number("rpm"),
    ActionType.SET_TEMPERATURE: _number("temperature"),
    ActionType.SET_SPEED: _number("speed"),
}


def apply(state: CarState, action: Action) -> CarState:
    # blocked, unknown or malformed actions return the input state
    kind = action.kind
    if kind is None:
        return state
    if kind in ELECTRICAL_ACTIONS and state.is_battery_dead:
        return state
    return _HANDLERS[kind](state, action.payload)


def invariant_violations(state: CarState) -> List[str]:
    """Names of the consistency rules ``state`` breaks (empty when consistent)."""
    out: List[str] = []
    if state.is_battery_dead and (
        state.is_engine_on or state.lights_on or state.parking_lights_on or state.interior_light_on
    ):
        out.append("dead_battery_powers_down")
    if state.is_engine_on and (state.is_engine_broken or state.is_battery_dead or state.is_fuel_empty):
        out.append("engine_requires_power_fuel_and_repair")
    if state.lights_on and not state.parking_lights_on:
        out.append("headlights_imply_parking_lights")
    if state.high_beam_on and not state.lights_on:
        out.append("high_beam_requires_low_beam")
    if state.hazard_lights_on and (state.left_signal_on or state.right_signal_on):
        out.append("hazards_exclude_signals")
    if state.left_signal_on and state.right_signal_on:
        out.append("single_turn_signal")
    if (state.wiper_speed != "off") != state.wipers_active:
        out.append("wiper_activity_matches_speed")
    return out
