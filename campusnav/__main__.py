#!/usr/bin/env python3
"""
Campus Navigator - Walking guidance to campus locations

Usage:
    python -m campusnav [DESTINATION] [options]

Options:
    --list              List the named campus locations and exit
    --search QUERY      Search campus locations by name or description and exit
    --dest-lat LAT      Destination latitude (instead of a named location)
    --dest-lon LON      Destination longitude (instead of a named location)
    --record FILE       Record GPS trace to JSON file for debugging
    --playback FILE     Playback GPS trace from JSON file
    --speed FACTOR      Playback speed multiplier (default: 1.0)
    --debug-gui         Run with web-based visual debugger (click the map to move)
    --log FILE          Log file path (default: campusnav_TIMESTAMP.log)
    --no-voice          Do not speak announcements
    --no-map            Skip downloading the campus map
"""

import argparse
import asyncio
import sys
from datetime import datetime
from pathlib import Path

from .app import CampusNavigator
from .debug_gui import WebSocketSensor
from .errors import UnknownLocation
from .gps import PlaybackSensor, SensorRecorder
from .locations import CAMPUS_LOCATIONS, find_location, search_locations
from .models import GeoPoint


def _print_locations(locations):
    if not locations:
        print("No matching campus locations.")
        return
    width = max(len(loc.name) for loc in locations)
    for loc in locations:
        print(f"  {loc.name:<{width}}  {loc.description}  "
              f"({loc.point.lat:.6f}, {loc.point.lng:.6f})")


def main():
    parser = argparse.ArgumentParser(
        description="Campus Navigator - Walking guidance to campus locations"
    )
    parser.add_argument("destination", nargs="?",
                        help="Named campus location to walk to (see --list)")
    parser.add_argument("--list", action="store_true",
                        help="List the named campus locations and exit")
    parser.add_argument("--search", metavar="QUERY",
                        help="Search campus locations by name or description and exit")
    parser.add_argument("--dest-lat", type=float, metavar="LAT",
                        help="Destination latitude")
    parser.add_argument("--dest-lon", type=float, metavar="LON",
                        help="Destination longitude")
    parser.add_argument("--record", metavar="FILE",
                        help="Record GPS trace to JSON file")
    parser.add_argument("--playback", metavar="FILE",
                        help="Playback GPS trace from JSON file")
    parser.add_argument("--speed", type=float, default=1.0,
                        help="Playback speed multiplier (default: 1.0)")
    parser.add_argument("--debug-gui", action="store_true",
                        help="Run with web-based visual debugger")
    parser.add_argument("--log", metavar="FILE",
                        help="Log file path (default: campusnav_TIMESTAMP.log)")
    parser.add_argument("--no-voice", action="store_true",
                        help="Do not speak announcements")
    parser.add_argument("--no-map", action="store_true",
                        help="Skip downloading the campus map")

    args = parser.parse_args()

    # Directory lookups: early exit
    if args.list:
        _print_locations(CAMPUS_LOCATIONS)
        return
    if args.search is not None:
        _print_locations(search_locations(args.search))
        return

    # Validate destination - coordinates must come as a pair
    if (args.dest_lat is None) != (args.dest_lon is None):
        parser.error("--dest-lat and --dest-lon must be used together")
    if args.dest_lat is not None and args.destination:
        parser.error("give either a named destination or --dest-lat/--dest-lon, not both")
    if args.playback and args.record:
        parser.error("--playback and --record cannot be combined")

    if args.dest_lat is not None:
        try:
            destination = GeoPoint(lat=args.dest_lat, lng=args.dest_lon)
        except ValueError as e:
            parser.error(str(e))
        name = "Selected Location"
    elif args.destination:
        try:
            location = find_location(args.destination)
        except UnknownLocation as e:
            print(e)
            print("Known locations:")
            _print_locations(CAMPUS_LOCATIONS)
            sys.exit(1)
        destination, name = location.point, location.name
    else:
        parser.error("a destination is required (name, or --dest-lat/--dest-lon)")

    # Determine log path
    log_path = args.log
    if not log_path:
        timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
        log_path = f"campusnav_{timestamp}.log"

    navigator = CampusNavigator(
        log_path=log_path,
        debug_gui=args.debug_gui,
        voice=not args.no_voice,
        load_map=not args.no_map,
    )

    # Set up location source
    if args.debug_gui:
        # Debug GUI uses WebSocketSensor for click-based location
        navigator.set_sensor(WebSocketSensor(navigator.debug_server))
    elif args.playback:
        if not Path(args.playback).exists():
            print(f"Playback file not found: {args.playback}")
            sys.exit(1)
        navigator.set_sensor(PlaybackSensor.from_file(args.playback, args.speed))
    elif args.record:
        navigator.set_sensor(SensorRecorder(navigator.sensor, args.record))

    try:
        asyncio.run(navigator.run(destination, name))
    except KeyboardInterrupt:
        print("\nNavigation interrupted")


if __name__ == "__main__":
    main()
