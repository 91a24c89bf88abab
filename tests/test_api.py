"""
Tests for the web API, the overlay websocket and the broadcast hub.
"""

import asyncio
import threading
from unittest.mock import MagicMock

import pytest
from fastapi.testclient import TestClient

from algorithms.lanes import LaneClassifier
from geometry.regions import RegionCatalog
from models.config import Config
from models.drain_event import DrainEvent, Lane
from models.profile import ActiveProfile
from models.track import TrackState
from pipeline.engine import PipelineEngine
from runtime.context import RuntimeContext
from storage.profile_store import ProfileStore
from web.app import create_app
from web.hub import EventHub


@pytest.fixture
def store(tmp_path):
    return ProfileStore(str(tmp_path / "profiles"))


@pytest.fixture
def ctx(store):
    return RuntimeContext(config=Config(), profiles=store)


@pytest.fixture
def client(ctx):
    with TestClient(create_app(ctx, overlay_dir=None)) as c:
        yield c


class TestStatsRoutes:
    def test_stats_empty(self, client):
        resp = client.get("/api/stats")
        
        assert resp.status_code == 200
        body = resp.json()
        assert body["total"] == 1
        assert body["lanes"]["C"] == {"count": 0, "pct": 0.0}

    def test_override_counts_as_manual(self, client, ctx):
        resp = client.post("/api/override", json={"lane": "L"})
        
        assert resp.status_code == 200
        body = resp.json()
        assert body["type"] == "drain"
        assert body["lane"] == "L"
        assert body["source"] == "manual"
        assert body["confidence"] == 1.0
        assert client.get("/api/stats").json()["lanes"]["L"]["count"] == 1

    def test_override_unknown_lane(self, client, ctx):
        resp = client.post("/api/override", json={"lane": "X"})
        
        assert resp.status_code == 422
        assert ctx.stats.get_summary()["lanes"]["L"]["count"] == 0

    def test_override_missing_body(self, client):
        assert client.post("/api/override", json={}).status_code == 422

    def test_reset(self, client, ctx):
        ctx.stats.publish(DrainEvent.manual(Lane.CENTER))
        
        resp = client.post("/api/session/reset")
        
        assert resp.status_code == 200
        assert resp.json()["lanes"]["C"]["count"] == 0

    def test_reset_leaves_lane_cooldowns(self, client, ctx, canonical, three_lane_polygons):
        classifier = LaneClassifier(RegionCatalog(canonical, three_lane_polygons))
        falling = TrackState(track_id=1, x=200.0, y=250.0, vy=3.0, has_velocity=True)
        assert len(classifier.classify([falling], now=10.0)) == 1
        
        client.post("/api/session/reset")
        
        assert classifier.classify([falling], now=10.3) == []
        assert classifier.last_fire[Lane.CENTER] == 10.0


class TestStatusRoute:
    def test_without_engine(self, client):
        resp = client.get("/api/status")
        
        assert resp.status_code == 200
        assert resp.json()["running"] is False

    def test_with_engine(self, client, ctx):
        engine = PipelineEngine(MagicMock(), MagicMock(), ctx.sink)
        engine.stats.frame_count = 12
        engine.stats.suppressed_frames = 2
        engine.error = RuntimeError("camera gone")
        ctx.engine = engine
        
        body = client.get("/api/status").json()
        
        assert body["frames"] == 12
        assert body["suppressed_frames"] == 2
        assert body["error"] == "camera gone"
        assert body["running"] is False

    def test_config_route(self, client):
        body = client.get("/api/config").json()
        assert body["config"]["lanes"]["cooldown_ms"] == 600

    def test_logs_tail_without_file(self, client, ctx, tmp_path):
        ctx.config.log_path = str(tmp_path / "missing.log")
        
        body = client.get("/api/logs/tail").json()
        
        assert "not found" in body["lines"][0]

    def test_logs_tail(self, client, ctx, tmp_path):
        log = tmp_path / "run.log"
        log.write_text("".join(f"line {i}\n" for i in range(10)))
        ctx.config.log_path = str(log)
        
        body = client.get("/api/logs/tail", params={"lines": 3}).json()
        
        assert body["lines"] == ["line 7", "line 8", "line 9"]


class TestOverlaySocket:
    def test_hello_then_events(self, client, ctx):
        with client.websocket_connect("/ws") as ws:
            assert ws.receive_json() == {"type": "hello"}
            assert ctx.hub.client_count == 1
            
            client.post("/api/override", json={"lane": "R"})
            message = ws.receive_json()
        
        assert message["type"] == "drain"
        assert message["lane"] == "R"
        assert message["source"] == "manual"


class FakeSocket:
    def __init__(self, fail=False):
        self.sent = []
        self.fail = fail
        self.closed = False

    async def send_json(self, payload):
        if self.fail:
            raise ConnectionError("gone")
        self.sent.append(payload)

    async def close(self):
        self.closed = True


class TestEventHub:
    def test_add_sends_hello(self):
        hub = EventHub()
        sock = FakeSocket()
        
        asyncio.run(hub.add(sock))
        
        assert sock.sent == [{"type": "hello"}]
        assert hub.client_count == 1

    def test_broadcast_drops_failed_clients(self):
        hub = EventHub()
        good, bad = FakeSocket(), FakeSocket()

        async def scenario():
            await hub.add(good)
            await hub.add(bad)
            bad.fail = True
            await hub.broadcast({"type": "drain", "lane": "C"})

        asyncio.run(scenario())
        
        assert good.sent[-1] == {"type": "drain", "lane": "C"}
        assert hub.client_count == 1
        assert bad.closed is True

    def test_publish_without_loop_is_noop(self):
        hub = EventHub()
        hub.publish(DrainEvent.manual(Lane.LEFT))
        assert hub.client_count == 0

    def test_remove_unknown_client(self):
        asyncio.run(EventHub().remove("nope"))

    def test_publish_after_stop_is_noop(self):
        hub = EventHub()
        sock = FakeSocket()

        async def scenario():
            await hub.start()
            await hub.add(sock)
            await hub.stop()
            hub.publish(DrainEvent.manual(Lane.LEFT))
            await asyncio.sleep(0)

        asyncio.run(scenario())

        assert sock.sent == [{"type": "hello"}]


class SlowSocket(FakeSocket):
    """Yields to the loop mid-send and records overlapping sends."""

    def __init__(self):
        super().__init__()
        self.in_flight = 0
        self.max_in_flight = 0

    async def send_json(self, payload):
        self.in_flight += 1
        self.max_in_flight = max(self.max_in_flight, self.in_flight)
        await asyncio.sleep(0.001)
        self.sent.append(payload)
        self.in_flight -= 1


class TestEventHubOrdering:
    """Events published from another thread arrive one at a time, in order."""

    LANES = [Lane.LEFT, Lane.CENTER, Lane.RIGHT, Lane.RIGHT, Lane.LEFT, Lane.CENTER]

    def _run(self, hub, sock, publish):
        async def scenario():
            await hub.start()
            await hub.add(sock)
            worker = threading.Thread(target=publish)
            worker.start()
            await asyncio.get_running_loop().run_in_executor(None, worker.join)
            for _ in range(400):
                if len(sock.sent) == 1 + len(self.LANES):
                    break
                await asyncio.sleep(0.005)
            await hub.stop()

        asyncio.run(scenario())

    def test_sends_are_serialized_in_publish_order(self):
        hub = EventHub()
        sock = SlowSocket()

        def publish():
            for lane in self.LANES:
                hub.publish(DrainEvent.manual(lane))

        self._run(hub, sock, publish)

        assert [m["lane"] for m in sock.sent[1:]] == [lane.value for lane in self.LANES]
        assert sock.max_in_flight == 1

    def test_every_client_sees_same_order(self):
        hub = EventHub()
        first, second = SlowSocket(), SlowSocket()

        async def scenario():
            await hub.start()
            await hub.add(first)
            await hub.add(second)
            for lane in self.LANES:
                hub.publish(DrainEvent.manual(lane))
            for _ in range(400):
                if len(second.sent) == 1 + len(self.LANES):
                    break
                await asyncio.sleep(0.005)
            await hub.stop()

        asyncio.run(scenario())

        expected = [lane.value for lane in self.LANES]
        assert [m["lane"] for m in first.sent[1:]] == expected
        assert [m["lane"] for m in second.sent[1:]] == expected

    def test_app_lifespan_runs_hub(self, ctx):
        with TestClient(create_app(ctx, overlay_dir=None)):
            assert ctx.hub.running is True
        assert ctx.hub.running is False


CAMERA_BODY = {
    "id": "cabinet",
    "name": "Cabinet cam",
    "quad": [[100, 100], [500, 100], [500, 400], [100, 400]],
    "scene_size": [640, 480],
}

GAME_BODY = {
    "id": "table",
    "canonical": {"width": 400, "height": 300},
    "regions": {
        "leftOutlane": [[0, 200], [132, 200], [132, 299], [0, 299]],
        "centerDrain": [[134, 200], [265, 200], [265, 299], [134, 299]],
        "rightOutlane": [[267, 200], [399, 200], [399, 299], [267, 299]],
    },
}


class TestProfileRoutes:
    """Calibration profiles are saved, listed and activated over the API."""

    def test_list_empty(self, client):
        resp = client.get("/api/profiles")

        assert resp.status_code == 200
        assert resp.json() == {"cameras": [], "games": [], "active": None}

    def test_save_camera(self, client, store):
        resp = client.post("/api/profiles/camera", json=CAMERA_BODY)

        assert resp.status_code == 200
        assert resp.json()["quad"][2] == [500.0, 400.0]
        saved = store.load_camera("cabinet")
        assert saved.name == "Cabinet cam"
        assert saved.scene_size == (640, 480)
        listing = client.get("/api/profiles").json()
        assert [c["id"] for c in listing["cameras"]] == ["cabinet"]

    def test_camera_name_defaults_to_id(self, client, store):
        body = {k: v for k, v in CAMERA_BODY.items() if k != "name"}

        assert client.post("/api/profiles/camera", json=body).status_code == 200
        assert store.load_camera("cabinet").name == "cabinet"

    def test_camera_with_three_corners_rejected(self, client, store):
        body = dict(CAMERA_BODY, quad=CAMERA_BODY["quad"][:3])

        resp = client.post("/api/profiles/camera", json=body)

        assert resp.status_code == 422
        assert "4 points" in resp.json()["detail"]
        assert store.list_profiles()["cameras"] == []

    def test_camera_with_bad_scene_size_rejected(self, client):
        body = dict(CAMERA_BODY, scene_size=[0, 480])

        assert client.post("/api/profiles/camera", json=body).status_code == 422

    def test_camera_with_wrong_shape_rejected(self, client):
        body = dict(CAMERA_BODY, quad=5)

        assert client.post("/api/profiles/camera", json=body).status_code == 422

    def test_save_game(self, client, store):
        resp = client.post("/api/profiles/game", json=GAME_BODY)

        assert resp.status_code == 200
        saved = store.load_game("table")
        assert saved.canonical.width == 400
        assert list(saved.regions) == ["leftOutlane", "centerDrain", "rightOutlane"]

    def test_game_with_bad_canonical_rejected(self, client, store):
        body = dict(GAME_BODY, canonical={"width": 0, "height": 300})

        assert client.post("/api/profiles/game", json=body).status_code == 422
        assert store.list_profiles()["games"] == []

    def test_activate(self, client, store, camera_profile, game_profile):
        store.save_camera(camera_profile)
        store.save_game(game_profile)

        resp = client.post("/api/profiles/activate", json={"camera_id": "test-cam", "game_id": "test-game"})

        assert resp.status_code == 200
        assert resp.json() == {"camera_id": "test-cam", "game_id": "test-game", "restart_required": True}
        assert store.get_active() == ActiveProfile("test-cam", "test-game")
        assert client.get("/api/profiles").json()["active"] == {"camera_id": "test-cam", "game_id": "test-game"}

    def test_activate_missing_profile(self, client, store, camera_profile):
        store.save_camera(camera_profile)

        resp = client.post("/api/profiles/activate", json={"camera_id": "test-cam", "game_id": "nope"})

        assert resp.status_code == 404
        assert client.get("/api/profiles").json()["active"] is None

    def test_activate_game_missing_lane(self, client, store, camera_profile, game_profile):
        del game_profile.regions["leftOutlane"]
        store.save_camera(camera_profile)
        store.save_game(game_profile)

        resp = client.post("/api/profiles/activate", json={"camera_id": "test-cam", "game_id": "test-game"})

        assert resp.status_code == 422
        assert "required lane L" in resp.json()["detail"]

    def test_activate_degenerate_quad(self, client, store, game_profile):
        client.post("/api/profiles/camera", json=dict(CAMERA_BODY, quad=[[0, 0], [1, 0], [2, 0], [3, 0]]))
        store.save_game(game_profile)

        resp = client.post("/api/profiles/activate", json={"camera_id": "cabinet", "game_id": "test-game"})

        assert resp.status_code == 422
        assert client.get("/api/profiles").json()["active"] is None
