#!/usr/bin/env python3
"""
Create a synthetic walking trace between two campus points for playback.

Usage:
    python create_trace.py FROM TO [-o trace.json] [--interval 2] [--accuracy 5]

FROM and TO are campus location names (see `python -m campusnav --list`)
or "lat,lng" pairs. Play the result back with:

    python -m campusnav TO --playback trace.json --speed 5
"""

import argparse
import sys

from campusnav import GeoPoint, UnknownLocation, find_location, straight_line_trace
from campusnav.gps import save_trace


def parse_point(value: str) -> GeoPoint:
    """A "lat,lng" pair or a named campus location"""
    if "," in value:
        lat, lng = value.split(",", 1)
        try:
            return GeoPoint(lat=float(lat), lng=float(lng))
        except ValueError:
            pass
    return find_location(value).point


def main():
    parser = argparse.ArgumentParser(description="Create a straight-line walking trace")
    parser.add_argument("start", help="Start location name or lat,lng")
    parser.add_argument("end", help="End location name or lat,lng")
    parser.add_argument("-o", "--output", default="trace.json",
                        help="Output trace file (default: trace.json)")
    parser.add_argument("--interval", type=float, default=2.0,
                        help="Seconds between samples (default: 2)")
    parser.add_argument("--accuracy", type=float, default=5.0,
                        help="Reported accuracy in meters (default: 5)")
    parser.add_argument("--speed", type=float,
                        help="Walking speed in m/s (default: configured walking speed)")

    args = parser.parse_args()

    try:
        start = parse_point(args.start)
        end = parse_point(args.end)
    except UnknownLocation as e:
        print(e)
        return 1

    trace = straight_line_trace(start, end, speed=args.speed,
                                interval=args.interval, accuracy=args.accuracy)
    save_trace(args.output, trace)
    print(f"Trace with {len(trace)} samples saved to {args.output}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
