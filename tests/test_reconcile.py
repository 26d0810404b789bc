import asyncio
import time
from dataclasses import replace

import pytest

from libs.car_state import DEFAULT_STATE, ActionType, CarState, StateStore, action
from services.dashboard_client.core import ReconciliationLoop
from services.dashboard_client.core.remote import RemoteSnapshot


def _loop(remote, state=None, **kwargs):
    kwargs.setdefault("poll_interval_ms", 500)
    kwargs.setdefault("enabled", True)
    return ReconciliationLoop(StateStore(state), remote, **kwargs)


@pytest.mark.asyncio
async def test_pull_overwrites_local_with_remote(fake_remote):
    local = replace(DEFAULT_STATE, lights_on=True, parking_lights_on=True)
    fake_remote.snapshot = RemoteSnapshot(replace(local, lights_on=False).to_dict())
    sync = _loop(fake_remote, local)

    assert await sync.pull_once() is True
    assert sync.store.state.lights_on is False
    assert sync.online is True
    assert sync.activity[0].message == "REMOTE_SYNC: State updated from backend"


@pytest.mark.asyncio
async def test_pull_skips_identical_snapshot(fake_remote):
    fake_remote.snapshot = RemoteSnapshot(DEFAULT_STATE.to_dict())
    sync = _loop(fake_remote)
    assert await sync.pull_once() is False
    assert sync.store.state is DEFAULT_STATE


@pytest.mark.asyncio
async def test_partial_remote_document_keeps_missing_local_fields(fake_remote):
    # the service may hold a document without view/tires, as older files do
    fake_remote.snapshot = RemoteSnapshot({"isRaining": True})
    sync = _loop(fake_remote, replace(DEFAULT_STATE, view="side"))
    assert await sync.pull_once() is True
    assert sync.store.state.view == "side"
    assert sync.store.state.is_raining is True


@pytest.mark.asyncio
async def test_inconsistent_remote_snapshot_is_applied_and_logged(fake_remote, caplog):
    fake_remote.snapshot = RemoteSnapshot({"isBatteryDead": True, "isEngineOn": True})
    sync = _loop(fake_remote)
    with caplog.at_level("WARNING"):
        assert await sync.pull_once() is True
    assert sync.store.state.is_engine_on is True
    assert "dead_battery_powers_down" in caplog.text


@pytest.mark.asyncio
async def test_dispatch_applies_locally_and_pushes_changed_fields(fake_remote):
    sync = _loop(fake_remote)
    state = sync.dispatch(action(ActionType.TOGGLE_LIGHTS))
    assert state.lights_on is True
    assert sync.store.state is state

    await sync.flush()
    assert fake_remote.pushed == [{"lightsOn": True, "parkingLightsOn": True}]
    assert sync.activity[0].message.startswith("SYNCED: ")


@pytest.mark.asyncio
async def test_pushes_reach_the_remote_in_dispatch_order(fake_remote):
    plain_push = fake_remote.push_status
    calls = []

    def slow_first_push(patch):
        calls.append(patch)
        if len(calls) == 1:
            time.sleep(0.2)
        return plain_push(patch)

    fake_remote.push_status = slow_first_push
    sync = _loop(fake_remote)
    sync.dispatch(action(ActionType.TOGGLE_FOG_LIGHTS))
    sync.dispatch(action(ActionType.TOGGLE_FOG_LIGHTS))
    await sync.flush()
    assert fake_remote.pushed == [{"fogLightsOn": True}, {"fogLightsOn": False}]

    # the service now holds the last write, so a pull leaves the user's last choice in place
    fake_remote.snapshot = RemoteSnapshot(fake_remote.pushed[-1])
    await sync.pull_once()
    assert sync.store.state.fog_lights_on is False


@pytest.mark.asyncio
async def test_blocked_action_pushes_nothing(fake_remote):
    sync = _loop(fake_remote, replace(DEFAULT_STATE, is_battery_dead=True))
    sync.dispatch(action(ActionType.TOGGLE_LIGHTS))
    await sync.flush()
    assert fake_remote.pushed == []


@pytest.mark.asyncio
async def test_push_failure_keeps_optimistic_state(fake_remote):
    fake_remote.down = True
    sync = _loop(fake_remote)
    sync.dispatch(action(ActionType.TOGGLE_ENGINE))
    await sync.flush()

    assert sync.store.state.is_engine_on is True
    assert sync.online is False
    messages = [e.message for e in sync.activity]
    assert any(m.startswith("SYNC_FAILED: ") for m in messages)
    assert any(m.startswith("NETWORK: Backend unreachable") for m in messages)


@pytest.mark.asyncio
async def test_unreachable_pull_only_flips_connectivity(fake_remote):
    fake_remote.down = True
    sync = _loop(fake_remote)
    assert await sync.pull_once() is False
    assert sync.online is False
    assert sync.store.state is DEFAULT_STATE

    fake_remote.down = False
    fake_remote.snapshot = RemoteSnapshot(DEFAULT_STATE.to_dict())
    await sync.pull_once()
    assert sync.online is True


@pytest.mark.asyncio
async def test_stale_revision_after_push_is_dropped(fake_remote):
    sync = _loop(fake_remote)
    fake_remote.push_reply = RemoteSnapshot({"isEngineOn": True}, revision=5, epoch="e1")
    sync.dispatch(action(ActionType.TOGGLE_ENGINE))
    await sync.flush()

    fake_remote.snapshot = RemoteSnapshot({"isEngineOn": False}, revision=4, epoch="e1")
    assert await sync.pull_once() is False
    assert sync.store.state.is_engine_on is True

    fake_remote.snapshot = RemoteSnapshot({"isEngineOn": False}, revision=6, epoch="e1")
    assert await sync.pull_once() is True
    assert sync.store.state.is_engine_on is False


@pytest.mark.asyncio
async def test_new_epoch_resets_revision_watermark(fake_remote):
    sync = _loop(fake_remote)
    fake_remote.snapshot = RemoteSnapshot({"speed": 10}, revision=9, epoch="e1")
    await sync.pull_once()
    fake_remote.snapshot = RemoteSnapshot({"speed": 20}, revision=0, epoch="e2")
    assert await sync.pull_once() is True
    assert sync.store.state.speed == 20


@pytest.mark.asyncio
async def test_snapshot_from_old_generation_is_dropped(fake_remote):
    fake_remote.snapshot = RemoteSnapshot({"isHoodOpen": True})
    sync = _loop(fake_remote)
    await sync.start()
    started = sync.generation
    await sync.stop()

    assert await sync.pull_once(generation=started) is False
    assert sync.store.state.is_hood_open is False


@pytest.mark.asyncio
async def test_poller_runs_until_stopped(fake_remote):
    fake_remote.snapshot = RemoteSnapshot({"isTrunkOpen": True})
    sync = _loop(fake_remote, poll_interval_ms=10)
    await sync.start()
    assert sync.running
    for _ in range(100):
        if sync.store.state.is_trunk_open:
            break
        await asyncio.sleep(0.01)
    assert sync.store.state.is_trunk_open is True

    await sync.stop()
    assert not sync.running
    fetches = fake_remote.fetches
    await asyncio.sleep(0.05)
    assert fake_remote.fetches == fetches


@pytest.mark.asyncio
async def test_disabled_loop_stays_offline(fake_remote):
    sync = _loop(fake_remote, enabled=False, poll_interval_ms=10)
    await sync.start()
    assert not sync.running
    sync.dispatch(action(ActionType.TOGGLE_RAIN))
    await sync.flush()
    assert sync.store.state.is_raining is True
    assert fake_remote.pushed == []
    assert sync.online is None


def test_dispatch_without_event_loop_still_applies(fake_remote):
    sync = _loop(fake_remote)
    state = sync.dispatch(action(ActionType.TOGGLE_HOOD))
    assert state.is_hood_open is True
    assert fake_remote.pushed == []


def test_activity_log_is_bounded(fake_remote):
    sync = _loop(fake_remote, activity_size=3)
    for i in range(5):
        sync.log(f"entry {i}")
    assert [e.message for e in sync.activity] == ["entry 4", "entry 3", "entry 2"]


def test_listener_sees_remote_overwrite(fake_remote):
    seen = []
    store = StateStore()
    store.subscribe(lambda before, after: seen.append((before, after)))
    store.replace_trusted({"speed": 55})
    assert len(seen) == 1
    assert isinstance(seen[0][1], CarState) and seen[0][1].speed == 55
