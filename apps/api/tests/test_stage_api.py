#!/usr/bin/env python3

from __future__ import annotations

import os
import threading
import unittest
from unittest import mock

from fastapi.testclient import TestClient

from apps.api.swapstudio_api.main import app
from apps.api.swapstudio_api.services.stage_scheduler import stop_stage_scheduler
from packages.swapstudio_core.sim.runner import _RUNNER_LOCK, reset_stage_for_tests


MOVE = {"id": "move-a", "type": "move", "params": {"steps": 5}}
SAY = {"id": "say-a", "type": "say", "params": {"text": "hi", "seconds": 1}}
TURN = {"id": "turn-b", "type": "turn", "params": {"degrees": 10}}
THINK = {"id": "think-b", "type": "think", "params": {"text": "x", "seconds": 2}}


class StageApiTests(unittest.TestCase):
    def setUp(self) -> None:
        stop_stage_scheduler()
        reset_stage_for_tests()
        self.client = TestClient(app)

    def tearDown(self) -> None:
        stop_stage_scheduler()

    def _create(self, actor_id: str, script: list[dict]) -> None:
        resp = self.client.post("/api/v1/actors", json={"actor_id": actor_id, "name": actor_id.upper(), "script": script})
        self.assertEqual(resp.status_code, 200, resp.text)

    def _script_ids(self, actor_id: str) -> list[str]:
        script = self.client.get(f"/api/v1/actors/{actor_id}/script").json()["script"]
        return [block["id"] for block in script]

    def test_healthz(self) -> None:
        self.assertEqual(self.client.get("/healthz").json(), {"status": "ok"})

    def test_block_catalog(self) -> None:
        payload = self.client.get("/api/v1/blocks/catalog").json()
        self.assertEqual(payload["categories"], ["motion", "looks", "control"])
        self.assertEqual(payload["count"], 6)
        by_type = {item["type"]: item for item in payload["blocks"]}
        self.assertEqual(by_type["say"]["template"], {"text": "Hello!", "seconds": 2})
        self.assertTrue(by_type["repeat"]["has_children"])
        self.assertEqual(by_type["goto"]["category"], "motion")

    def test_state_when_idle(self) -> None:
        payload = self.client.get("/api/v1/stage/state").json()
        self.assertTrue(payload["ok"])
        self.assertFalse(payload["state"]["running"])
        self.assertEqual(payload["state"]["tick"], 0)
        self.assertFalse(payload["scheduler"]["running"])

    def test_start_and_stop_are_idempotent(self) -> None:
        first = self.client.post("/api/v1/stage/start").json()
        second = self.client.post("/api/v1/stage/start").json()
        self.assertTrue(first["started"])
        self.assertFalse(second["started"])
        self.assertTrue(first["scheduler"]["running"])
        self.assertTrue(self.client.post("/api/v1/stage/stop").json()["stopped"])
        self.assertFalse(self.client.post("/api/v1/stage/stop").json()["stopped"])
        self.assertFalse(self.client.get("/api/v1/stage/state").json()["state"]["running"])

    def test_manual_tick_only_while_running(self) -> None:
        self.assertFalse(self.client.post("/api/v1/stage/tick").json()["ticked"])

    def test_collision_report_swaps_motion_blocks(self) -> None:
        self._create("a", [MOVE, SAY])
        self._create("b", [TURN, THINK])
        self.client.post("/api/v1/stage/start")
        resp = self.client.post("/api/v1/stage/collisions", json={"pairs": [["a", "b"]]})
        self.assertEqual(resp.status_code, 200)
        self.assertEqual(resp.json()["swapped_count"], 1)
        self.assertEqual(self._script_ids("a"), ["turn-b", "say-a"])
        self.assertEqual(self._script_ids("b"), ["move-a", "think-b"])

        # A repeat report of the same pair leaves the scripts where they are.
        self.client.post("/api/v1/stage/collisions", json={"pairs": [["b", "a"]]})
        self.assertEqual(self._script_ids("a"), ["turn-b", "say-a"])

        state = self.client.get("/api/v1/stage/state").json()["state"]
        self.assertEqual(state["collision_count"], 2)
        self.assertEqual(state["last_collision"], ["b", "a"])

    def test_collision_report_ignored_while_stopped(self) -> None:
        self._create("a", [MOVE, SAY])
        self._create("b", [TURN, THINK])
        payload = self.client.post("/api/v1/stage/collisions", json={"pairs": [["a", "b"]]}).json()
        self.assertEqual(payload["swapped_count"], 0)
        self.assertEqual(payload["results"], [{"actor_a": "a", "actor_b": "b", "swapped": False}])
        self.assertEqual(self._script_ids("a"), ["move-a", "say-a"])

    def test_malformed_pairs_are_skipped(self) -> None:
        self._create("a", [MOVE])
        self._create("b", [TURN])
        self.client.post("/api/v1/stage/start")
        payload = self.client.post(
            "/api/v1/stage/collisions",
            json={"pairs": [["a"], ["a", ""], ["a", "ghost"], ["a", "b", "c"]]},
        ).json()
        self.assertEqual(payload["swapped_count"], 0)
        self.assertEqual(len(payload["results"]), 1)
        self.assertEqual(payload["results"][0]["actor_b"], "ghost")

    def test_reset_restores_rest_poses_and_keeps_scripts(self) -> None:
        self._create("a", [MOVE, SAY])
        self._create("b", [TURN, THINK])
        self.client.post("/api/v1/stage/start")
        self.client.post("/api/v1/stage/collisions", json={"pairs": [["a", "b"]]})
        reset = self.client.post("/api/v1/stage/reset").json()
        self.assertTrue(reset["ok"])
        self.assertFalse(reset["state"]["running"])
        self.assertEqual(reset["state"]["tick"], 0)
        poses = self.client.get("/api/v1/stage/poses").json()
        self.assertEqual(poses["count"], 2)
        for pose in poses["poses"].values():
            self.assertEqual((pose["x"], pose["y"], pose["direction"]), (0.0, 0.0, 90.0))
            self.assertEqual(pose["display"]["mode"], "none")
        self.assertEqual(self._script_ids("a"), ["turn-b", "say-a"])

    def test_scheduler_status_endpoint(self) -> None:
        payload = self.client.get("/api/v1/stage/scheduler").json()
        self.assertTrue(payload["ok"])
        self.assertIn("tick_interval_ms", payload["scheduler"])
        self.assertFalse(payload["scheduler"]["running"])

    def test_busy_stage_returns_503(self) -> None:
        held = threading.Event()
        release = threading.Event()

        def hold_lock():
            with _RUNNER_LOCK:
                held.set()
                release.wait(timeout=5)

        holder = threading.Thread(target=hold_lock, daemon=True)
        holder.start()
        held.wait(timeout=2)
        try:
            with mock.patch.dict(os.environ, {"SWAPSTUDIO_LOCK_TIMEOUT_SECONDS": "0.05"}):
                resp = self.client.get("/api/v1/stage/poses")
            self.assertEqual(resp.status_code, 503)
            self.assertEqual(resp.headers.get("retry-after"), "1")
        finally:
            release.set()
            holder.join(timeout=2)


if __name__ == "__main__":
    unittest.main()
