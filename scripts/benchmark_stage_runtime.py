#!/usr/bin/env python3
"""Benchmark the stage tick/collision loop end-to-end via FastAPI TestClient."""

from __future__ import annotations

import argparse
import json
import logging
import math
import statistics
import sys
import time
from pathlib import Path
from typing import Any

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))


def percentile(values: list[float], q: float) -> float:
    if not values:
        return 0.0
    points = sorted(values)
    if len(points) == 1:
        return points[0]
    pos = max(0.0, min(1.0, q)) * (len(points) - 1)
    low = int(math.floor(pos))
    high = int(math.ceil(pos))
    if low == high:
        return points[low]
    frac = pos - low
    return points[low] * (1.0 - frac) + points[high] * frac


def summarize_latencies(values: list[float]) -> dict[str, Any]:
    if not values:
        return {"count": 0, "mean_ms": 0.0, "p50_ms": 0.0, "p95_ms": 0.0, "max_ms": 0.0}
    return {
        "count": len(values),
        "mean_ms": round(statistics.fmean(values), 3),
        "p50_ms": round(percentile(values, 0.5), 3),
        "p95_ms": round(percentile(values, 0.95), 3),
        "max_ms": round(max(values), 3),
    }


def _bench_script(index: int) -> list[dict[str, Any]]:
    return [
        {"type": "say", "params": {"text": f"bench {index}", "seconds": 2}},
        {
            "type": "repeat",
            "params": {"times": 4},
            "children": [
                {"type": "move", "params": {"steps": 3 + index % 5}},
                {"type": "turn", "params": {"degrees": 15 * (1 + index % 3)}},
                {
                    "type": "repeat",
                    "params": {"times": 2},
                    "children": [{"type": "think", "params": {"text": "hmm", "seconds": 1}}],
                },
            ],
        },
    ]


def parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Run stage runtime benchmark")
    parser.add_argument("--actors", type=int, default=40, help="Number of actors to create")
    parser.add_argument("--ticks", type=int, default=200, help="Number of manual ticks to drive")
    parser.add_argument(
        "--output",
        default="data/perf/stage_runtime_benchmark.json",
        help="JSON output path",
    )
    parser.add_argument(
        "--verbose",
        action="store_true",
        help="Keep API/service logs enabled during the benchmark run",
    )
    return parser.parse_args()


def main() -> None:
    args = parse_args()
    if args.actors < 2:
        raise SystemExit("--actors must be >= 2")
    if not args.verbose:
        logging.getLogger().setLevel(logging.WARNING)
        logging.getLogger("httpx").setLevel(logging.WARNING)
        logging.getLogger("swapstudio_api").setLevel(logging.WARNING)
        logging.getLogger("swapstudio_core").setLevel(logging.WARNING)

    from fastapi.testclient import TestClient

    from apps.api.swapstudio_api.main import app
    from apps.api.swapstudio_api.services.stage_scheduler import stop_stage_scheduler
    from packages.swapstudio_core.sim.runner import reset_stage_for_tests, stage_runner

    stop_stage_scheduler()
    reset_stage_for_tests()
    client = TestClient(app)

    timings_ms: dict[str, list[float]] = {
        "create_actor": [],
        "tick": [],
        "collisions": [],
        "poses": [],
    }

    def timed(method: str, path: str, **kwargs: Any):
        start = time.perf_counter()
        resp = client.request(method=method, url=path, **kwargs)
        elapsed_ms = (time.perf_counter() - start) * 1000.0
        return resp, elapsed_ms

    for i in range(args.actors):
        resp, dt = timed(
            "POST",
            "/api/v1/actors",
            json={"actor_id": f"bench-{i}", "name": f"Bench-{i}", "script": _bench_script(i)},
        )
        if resp.status_code != 200:
            raise RuntimeError(f"create failed ({resp.status_code}): {resp.text[:240]}")
        timings_ms["create_actor"].append(dt)

    # Drive ticks by hand so the background thread does not race the measurements.
    with stage_runner() as runner:
        runner.start_session()

    swaps = 0
    for tick in range(int(args.ticks)):
        tick_resp, dt_tick = timed("POST", "/api/v1/stage/tick")
        if tick_resp.status_code != 200:
            raise RuntimeError(f"tick failed ({tick_resp.status_code}): {tick_resp.text[:240]}")
        timings_ms["tick"].append(dt_tick)

        with stage_runner() as runner:
            pairs = runner.detect_collisions()
        if pairs:
            coll_resp, dt_coll = timed(
                "POST",
                "/api/v1/stage/collisions",
                json={"pairs": [list(pair) for pair in pairs[:500]]},
            )
            if coll_resp.status_code == 200:
                timings_ms["collisions"].append(dt_coll)
                swaps += int(coll_resp.json().get("swapped_count") or 0)

        if tick % 5 == 0:
            poses_resp, dt_poses = timed("GET", "/api/v1/stage/poses")
            if poses_resp.status_code == 200:
                timings_ms["poses"].append(dt_poses)

    state = client.get("/api/v1/stage/state").json()["state"]
    client.post("/api/v1/stage/stop")

    output = {
        "actors": int(args.actors),
        "ticks_run": int(state["tick"]),
        "swaps": swaps,
        "collision_count": int(state["collision_count"]),
        "latency_ms": {k: summarize_latencies(v) for k, v in timings_ms.items()},
        "timestamp_utc_epoch": time.time(),
    }

    output_path = Path(args.output).resolve()
    output_path.parent.mkdir(parents=True, exist_ok=True)
    output_path.write_text(json.dumps(output, indent=2) + "\n", encoding="utf-8")
    print(json.dumps(output, indent=2))
    print(f"\nWrote benchmark report: {output_path}")


if __name__ == "__main__":
    main()
