# scripts/setup/seed_detections.py
"""
Seed a development database with sample detections.
Creates the detection table if it does not exist and inserts rows using the
different metadata shapes the ingestion process has written over time.
Never run this against production: the real table is owned by ingestion.
Usage: python scripts/setup/seed_detections.py --rows 200
"""

import argparse
import json
import random
import sys
import os
from datetime import datetime, timedelta, timezone
sys.path.insert(0, os.path.join(os.path.dirname(__file__), "..", ".."))

from app.database import engine
from app.services.query_builder import detection_table
from sqlalchemy import text

CAMERAS = [("cam-01", "North Gate"), ("cam-02", "South Gate"), ("cam-03", "Parking Deck")]
MAKES = ["toyota", "ford", "honda", "chevrolet", "nissan"]
COLORS = ["white", "black", "silver", "red", "blue"]
TYPES = ["sedan", "suv", "pickup", "van"]
ORIENTATIONS = ["front", "rear", "side"]


def sample_metadata(i: int) -> str:
    make = random.choice(MAKES)
    vehicle = {
        "color": random.choice(COLORS),
        "type": {"code": random.choice(TYPES)},
        "orientation": {"code": random.choice(ORIENTATIONS)},
        "bearing": random.randint(0, 359),
    }
    shape = i % 4
    if shape == 0:
        vehicle["make"] = {"code": make, "name": make.title()}
        doc = {"vehicle": vehicle}
    elif shape == 1:
        vehicle["make"] = make
        doc = {"vehicleData": vehicle}
    elif shape == 2:
        doc = {"vehicle": vehicle, "vehicle_make": make}
    else:
        doc = {"attributes": {"vehicle": vehicle}, "make": [{"name": make}]}
    doc["location"] = {"lat": 27.95 + random.random() / 100, "lon": -82.45 - random.random() / 100}
    return json.dumps(doc)


def main():
    parser = argparse.ArgumentParser(description="Insert sample detections for local development")
    parser.add_argument("--rows", type=int, default=200)
    args = parser.parse_args()

    table = detection_table()
    now = datetime.now(timezone.utc)

    with engine.begin() as conn:
        conn.execute(text(
            f"CREATE TABLE IF NOT EXISTS {table} ("
            f"id SERIAL PRIMARY KEY, timestamp TIMESTAMPTZ NOT NULL, plate_tag TEXT, "
            f"camera_id TEXT, camera_name TEXT, metadata TEXT, source_file TEXT)"
        ))
        for i in range(args.rows):
            camera_id, camera_name = random.choice(CAMERAS)
            conn.execute(
                text(
                    f"INSERT INTO {table} (timestamp, plate_tag, camera_id, camera_name, metadata, source_file) "
                    f"VALUES (:ts, :plate, :camera_id, :camera_name, :metadata, :source_file)"
                ),
                {
                    "ts": now - timedelta(minutes=7 * i),
                    "plate": f"{random.choice('ABCDEFGH')}{random.choice('JKLMNP')}{random.randint(1000, 9999)}",
                    "camera_id": camera_id,
                    "camera_name": camera_name,
                    "metadata": sample_metadata(i),
                    "source_file": f"seed_{i:05d}.json",
                },
            )

    print(f"Inserted {args.rows} sample detections into {table}")


if __name__ == "__main__":
    main()
