#!/usr/bin/env python3
"""Import workouts from a CSV export into the LiftLog API.

Expected columns: date, exercise, category, weight, sets, reps.
Rows are grouped per date and each day is saved as a unit, so re-running the
import replaces those days instead of duplicating them.

Usage: python3 import_workouts.py <csv_file> <api_url> <user_id>
"""
import csv
import sys
from collections import OrderedDict
from time import sleep

import requests


def _clean(raw):
    if raw is None:
        return None
    raw = raw.strip()
    return raw or None


def read_days(csv_file):
    """Return {date: [exercise entries]} in file order."""
    days = OrderedDict()
    with open(csv_file, 'r', encoding='utf-8') as f:
        reader = csv.DictReader(f)
        for row in reader:
            day = _clean(row.get('date'))
            name = _clean(row.get('exercise'))
            if not day or not name:
                continue
            # weight/sets/reps go out as-is; the API parses '135 lbs', '1+1' etc.
            entry = {
                'name': name,
                'category': _clean(row.get('category')),
                'completed': True,
                'weight': _clean(row.get('weight')),
                'sets': _clean(row.get('sets')),
                'reps': _clean(row.get('reps')),
            }
            days.setdefault(day, []).append(entry)
    return days


def import_workouts(csv_file, api_url, user_id):
    if not api_url.startswith('http'):
        api_url = f'https://{api_url}'
    api_url = api_url.rstrip('/')

    print(f"Reading CSV: {csv_file}")
    print(f"Target API: {api_url} (user {user_id})")

    try:
        health = requests.get(f"{api_url}/health", timeout=10)
        health.raise_for_status()
        print("API is healthy\n")
    except requests.RequestException as e:
        print(f"Cannot connect: {e}")
        sys.exit(1)

    days = read_days(csv_file)
    total_entries = sum(len(v) for v in days.values())
    print(f"Found {total_entries} exercises across {len(days)} days\n")

    success = 0
    failed = 0

    for i, (day, entries) in enumerate(days.items(), 1):
        try:
            response = requests.put(
                f"{api_url}/users/{user_id}/workouts/{day}",
                json={'exercises': entries}, timeout=10,
            )
            response.raise_for_status()
            body = response.json()
            if not body.get('success'):
                raise RuntimeError(body.get('message') or 'save failed')
            success += 1
            if i % 50 == 0:
                print(f"Progress: {i}/{len(days)}...")
        except (requests.RequestException, RuntimeError, ValueError) as e:
            failed += 1
            print(f"Failed day {day}: {e}")
            if failed > 50:
                print("Too many failures, stopping")
                break
        if i % 10 == 0:
            sleep(0.5)

    print(f"\n{'='*60}")
    print(f"Imported days: {success}")
    print(f"Failed: {failed}")
    print(f"{'='*60}\n")

    try:
        streaks = requests.get(f"{api_url}/users/{user_id}/streaks", timeout=10).json()
        workout = streaks['workout']
        print(f"Workout streak now {workout['current']} (best {workout['best']})")
    except (requests.RequestException, ValueError, KeyError) as e:
        print(f"Could not verify: {e}")


if __name__ == "__main__":
    if len(sys.argv) != 4:
        print("Usage: python3 import_workouts.py <csv_file> <api_url> <user_id>")
        sys.exit(1)
    import_workouts(sys.argv[1], sys.argv[2], int(sys.argv[3]))
