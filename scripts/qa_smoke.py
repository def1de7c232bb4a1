#!/usr/bin/env python3
"""Auroraview smoke checks against a running backend.

Usage:
  python3 scripts/qa_smoke.py [--base http://127.0.0.1:3000]
"""

from __future__ import annotations

import argparse
import sys
import requests

STATUSES = ("live", "synthetic", "unavailable")


def assert_ok(cond: bool, msg: str):
    if not cond:
        raise AssertionError(msg)


def main() -> int:
    ap = argparse.ArgumentParser()
    ap.add_argument("--base", default="http://127.0.0.1:3000")
    args = ap.parse_args()
    base = args.base.rstrip("/")

    # 1) Core endpoints
    for ep in ("/api/health", "/api/cache_stats", "/api/solarwind", "/api/kp", "/api/rx"):
        r = requests.get(base + ep, timeout=30)
        assert_ok(r.status_code == 200, f"{ep} returned {r.status_code}")
        assert_ok(r.headers.get("X-Request-Id"), f"{ep} missing X-Request-Id")

    sw = requests.get(base + "/api/solarwind", timeout=30).json()
    for k in ("updatedAt", "now", "labels", "times", "speed", "density", "bz", "bt", "source"):
        assert_ok(k in sw, f"/api/solarwind missing {k}")
    n = len(sw["times"])
    assert_ok(all(len(sw[k]) == n for k in ("labels", "speed", "density", "bz", "bt")), "/api/solarwind series lengths differ")
    assert_ok(sw["source"].get("status") in STATUSES, "/api/solarwind bad source.status")

    kp = requests.get(base + "/api/kp", timeout=30).json()
    assert_ok(len(kp.get("values", [])) == len(kp.get("labels", [])), "/api/kp labels/values mismatch")

    # 2) Magnetometer: clamping and station fallback
    bx = requests.get(base + "/api/fmi/bx", params={"station": "zzz", "minutes": 999}, timeout=30).json()
    assert_ok(bx.get("station") == "KEV", f"unknown station should fall back to KEV, got {bx.get('station')}")
    assert_ok(bx.get("minutes") == 180, f"minutes should clamp to 180, got {bx.get('minutes')}")

    r = requests.get(base + "/api/fmi/textdata", params={"station": "zzz"}, timeout=30)
    assert_ok(r.status_code == 400, f"/api/fmi/textdata invalid station returned {r.status_code}")

    # 3) Radar proxy validation (no upstream call)
    r = requests.get(base + "/api/fmi/radar", params={"layers": "nope", "bbox": "0,0,1,1"}, timeout=30)
    assert_ok(r.status_code == 400, f"/api/fmi/radar bad layers returned {r.status_code}")

    # 4) Local sky
    w = requests.get(base + "/api/weather", timeout=30).json()
    assert_ok("temperatureC" in w and "cloudCover" in w, "/api/weather missing values")
    sl = requests.get(base + "/api/solarlunar", params={"lat": 60.17, "lon": 24.94}, timeout=30).json()
    for k in ("solar", "lunar", "twilight"):
        assert_ok(k in sl, f"/api/solarlunar missing {k}")

    print("PASS: Auroraview smoke checks passed")
    return 0


if __name__ == "__main__":
    try:
        raise SystemExit(main())
    except Exception as e:
        print(f"FAIL: {e}")
        sys.exit(1)
