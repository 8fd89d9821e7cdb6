#!/usr/bin/env python3
"""
Visualize a recorded GPS trace over the campus map.

Usage:
    python visualize_trace.py trace.json [--output map.html] [--no-overlay]
"""

import argparse
import base64
from pathlib import Path

import folium
from folium import plugins

from campusnav import CAMPUS_ANCHORS, CONFIG, CoordinateMapper, MapFetcher, MapLoadError
from campusnav.gps import classify_quality, load_trace
from campusnav.models import GpsQuality

QUALITY_COLORS = {
    GpsQuality.ACCURATE: "green",
    GpsQuality.DEGRADED: "orange",
    GpsQuality.LOST: "red",
}

QUALITY_LABELS = {
    GpsQuality.ACCURATE: f"Accurate (&le;{CONFIG['accuracy_accurate']}m)",
    GpsQuality.DEGRADED: f"Degraded (&le;{CONFIG['accuracy_degraded']}m)",
    GpsQuality.LOST: f"Lost (&gt;{CONFIG['accuracy_degraded']}m)",
}

LEGEND_ROW = (
    '<div style="display: flex; align-items: center; margin: 3px 0;">'
    '<div style="width: 12px; height: 12px; {swatch} border-radius: 50%; margin-right: 5px;"></div>'
    '{label}</div>'
)


def legend_html(total_points: int, valid_points: int, total_time: float) -> str:
    """Fixed-position legend with trace stats and the GPS quality colors"""
    failed_points = total_points - valid_points
    rows = [
        LEGEND_ROW.format(swatch=f"background: {color};", label=QUALITY_LABELS[quality])
        for quality, color in QUALITY_COLORS.items()
    ]
    rows.append(LEGEND_ROW.format(swatch="border: 2px solid red;", label="GPS Failure"))
    return f"""
    <div style="position: fixed; bottom: 50px; left: 50px; z-index: 1000;
                background-color: white; padding: 10px; border-radius: 5px;
                border: 2px solid grey; font-family: Arial; font-size: 12px;">
        <b>Campus GPS Trace</b><br>
        <hr style="margin: 5px 0">
        Duration: {int(total_time // 60)}m {int(total_time % 60)}s<br>
        Samples: {valid_points} of {total_points}
        ({100 * failed_points / total_points:.1f}% failed)<br>
        <hr style="margin: 5px 0">
        {''.join(rows)}
    </div>
    """


def add_campus_overlay(m: folium.Map):
    """Overlay the campus map image at the geo-bounds of its corners"""
    try:
        campus_map = MapFetcher.load()
    except MapLoadError as e:
        print(f"Campus map unavailable, skipping overlay: {e}")
        return

    mapper = CoordinateMapper(CAMPUS_ANCHORS, image_size=campus_map.size)
    bounds = mapper.image_bounds()
    if not bounds:
        print("Campus map has no dimensions, skipping overlay")
        return
    top_left, bottom_right = bounds

    encoded = base64.b64encode(campus_map.content).decode()
    folium.raster_layers.ImageOverlay(
        image=f"data:{campus_map.content_type};base64,{encoded}",
        bounds=[[bottom_right.lat, top_left.lng], [top_left.lat, bottom_right.lng]],
        opacity=0.7,
        name="Campus map",
    ).add_to(m)


def create_trace_map(trace: list[dict], output_path: str, overlay: bool = True):
    """Create map visualization of GPS trace"""

    # Filter to only entries with valid samples
    valid_entries = [e for e in trace if e.get("sample")]

    if not valid_entries:
        print("No valid GPS samples in trace")
        return

    # Get center point
    lats = [e["sample"]["lat"] for e in valid_entries]
    lngs = [e["sample"]["lng"] for e in valid_entries]
    center_lat = sum(lats) / len(lats)
    center_lng = sum(lngs) / len(lngs)

    m = folium.Map(location=[center_lat, center_lng], zoom_start=17)
    folium.TileLayer("CartoDB positron", name="Light").add_to(m)

    if overlay:
        add_campus_overlay(m)

    path_coords = [[e["sample"]["lat"], e["sample"]["lng"]] for e in valid_entries]
    folium.PolyLine(
        path_coords,
        weight=4,
        color="blue",
        opacity=0.7,
        popup="GPS Trace"
    ).add_to(m)

    # Markers colored by GPS quality
    points_group = folium.FeatureGroup(name="GPS Points", show=False)

    for i, entry in enumerate(valid_entries):
        sample = entry["sample"]
        elapsed = entry.get("elapsed", 0)
        accuracy = sample.get("accuracy")
        quality = classify_quality(accuracy)

        minutes = int(elapsed // 60)
        seconds = int(elapsed % 60)

        popup = f"""
            <b>Point {i + 1}</b><br>
            Time: {minutes}m {seconds}s<br>
            Lat: {sample['lat']:.6f}<br>
            Lng: {sample['lng']:.6f}<br>
            Accuracy: {accuracy}m ({quality.value})
        """

        folium.CircleMarker(
            location=[sample["lat"], sample["lng"]],
            radius=5,
            color=QUALITY_COLORS[quality],
            fill=True,
            popup=folium.Popup(popup, max_width=200)
        ).add_to(points_group)

    points_group.add_to(m)

    start = valid_entries[0]["sample"]
    folium.Marker(
        [start["lat"], start["lng"]],
        popup="Start",
        icon=folium.Icon(color="green", icon="play")
    ).add_to(m)

    end = valid_entries[-1]["sample"]
    folium.Marker(
        [end["lat"], end["lng"]],
        popup="End",
        icon=folium.Icon(color="red", icon="stop")
    ).add_to(m)

    # Sensor errors are drawn at the last known position
    failures_group = folium.FeatureGroup(name="GPS Failures", show=True)
    last_valid = None

    for entry in trace:
        if entry.get("sample"):
            last_valid = entry["sample"]
        elif last_valid:
            elapsed = entry.get("elapsed", 0)
            minutes = int(elapsed // 60)
            seconds = int(elapsed % 60)

            folium.CircleMarker(
                location=[last_valid["lat"], last_valid["lng"]],
                radius=8,
                color="red",
                fill=False,
                weight=2,
                popup=f"GPS Failure at {minutes}m {seconds}s<br>{entry.get('error') or ''}"
            ).add_to(failures_group)

    failures_group.add_to(m)

    folium.LayerControl().add_to(m)

    total_time = valid_entries[-1].get("elapsed", 0)
    m.get_root().html.add_child(folium.Element(
        legend_html(len(trace), len(valid_entries), total_time)
    ))

    plugins.Fullscreen().add_to(m)

    m.save(output_path)
    print(f"Trace map saved to {output_path}")
    print(f"  {len(valid_entries)} valid points, {len(trace) - len(valid_entries)} failures")


def main():
    parser = argparse.ArgumentParser(description="Visualize GPS trace over the campus map")
    parser.add_argument("trace", help="GPS trace JSON file")
    parser.add_argument("-o", "--output", default="trace_map.html",
                        help="Output HTML file (default: trace_map.html)")
    parser.add_argument("--no-overlay", action="store_true",
                        help="Do not download and overlay the campus map image")

    args = parser.parse_args()

    if not Path(args.trace).exists():
        print(f"Trace file not found: {args.trace}")
        return 1

    trace = load_trace(args.trace)
    create_trace_map(trace, args.output, overlay=not args.no_overlay)
    return 0


if __name__ == "__main__":
    exit(main())
