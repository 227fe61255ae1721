#!/usr/bin/env python3
"""Print poll timers and feed states from a running control API. Run from repo root: python scripts/print_feeds.py [--api http://localhost:8000]"""
import argparse
import sys
from datetime import datetime, timezone

import requests


def _fmt_ts(ts):
    if ts is None:
        return "never"
    return datetime.fromtimestamp(ts, tz=timezone.utc).strftime("%Y-%m-%d %H:%M:%S UTC")


def main() -> int:
    """Print each poll timer (armed / idle, interval) and each feed (loading, last fetch, error)."""
    parser = argparse.ArgumentParser(description=__doc__)
    parser.add_argument("--api", default="http://localhost:8000", help="Control API base URL")
    args = parser.parse_args()
    base = args.api.rstrip("/")

    try:
        pollers = requests.get(f"{base}/polling", timeout=10)
        feeds = requests.get(f"{base}/feeds", timeout=10)
        pollers.raise_for_status()
        feeds.raise_for_status()
    except requests.exceptions.RequestException as e:
        print(f"Control API unreachable: {e}", file=sys.stderr)
        return 1

    print("Poll timers")
    print("-----------")
    for p in pollers.json():
        state = "armed" if p["armed"] else "idle"
        print(f"  {p['name']:<14} {state:<6} every {p['interval_seconds']} s")
    print("")
    print("Feeds")
    print("-----")
    for f in feeds.json():
        flag = "loading" if f["loading"] else "-"
        print(f"  {f['name']:<14} {flag:<8} last fetch {_fmt_ts(f['last_fetch_at'])}")
        if f.get("error"):
            print(f"  {'':<14} error: {f['error']}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
