#!/usr/bin/env python3
"""
Generate training sessions from schedules outside the cron job.

Runs the same SessionGenerator the nightly endpoint uses, with the service
role key, for every athlete or for one. Handy after bulk-editing schedules
or when the scheduler missed a night.

Usage:
    python scripts/generate_sessions.py
    python scripts/generate_sessions.py --athlete <uuid>
    python scripts/generate_sessions.py --athlete <uuid> --dry-run

Requires:
    - .env file with Supabase URL, anon key and service role key
"""

import argparse
import sys
from datetime import date
from pathlib import Path

# Add src to path so we can import our modules
sys.path.insert(0, str(Path(__file__).parent.parent))

from dotenv import load_dotenv

# Load environment variables
load_dotenv()

from src.config.settings import ConfigurationError, get_backend_config, get_settings
from src.core.scheduling.generator import NoScheduleError, SessionGenerator
from src.infrastructure.supabase.client import BackendError, create_supabase_client
from src.infrastructure.supabase.repositories import ScheduleRepository


def preview(generator: SessionGenerator, athlete_id: str, today: date) -> bool:
    """Print what a real run would insert, skipping slots already stored."""
    try:
        records = generator.plan_for_athlete(athlete_id, today)
    except NoScheduleError:
        print(f"ERROR: No training schedule found for {athlete_id}")
        return False
    except BackendError as e:
        print(f"ERROR talking to Supabase: {e}")
        return False

    window = generator.window(today)
    print(f"\n=== DRY RUN {window.start_date} .. {window.end_date} ===\n")
    for record in records:
        print(f"Would create: {record.scheduled_date} {record.start_time}-{record.end_time} ({record.session_type})")
    print(f"\nNew sessions: {len(records)}")
    return True


def main():
    parser = argparse.ArgumentParser(description='Generate training sessions from schedules')
    parser.add_argument('--athlete', help='Only this athlete id')
    parser.add_argument('--dry-run', action='store_true', help='Print sessions, don\'t insert')
    parser.add_argument('--days', type=int, help='Days ahead (defaults to SESSION_HORIZON_DAYS)')
    args = parser.parse_args()

    settings = get_settings()

    try:
        config = get_backend_config()
    except ConfigurationError as e:
        print(f"ERROR: {e}")
        sys.exit(1)

    client = create_supabase_client(
        config=config,
        mock_mode=settings.supabase_mock_mode,
        use_service_role=True,
        timeout=settings.supabase_timeout_seconds,
    )
    repository = ScheduleRepository(client)
    generator = SessionGenerator(
        repository,
        horizon_days=args.days if args.days is not None else settings.session_horizon_days,
    )
    today = date.today()

    if args.dry_run:
        if not args.athlete:
            print("ERROR: --dry-run needs --athlete")
            sys.exit(1)
        sys.exit(0 if preview(generator, args.athlete, today) else 1)

    try:
        if args.athlete:
            results = [generator.generate_for_athlete(args.athlete, today)]
        else:
            results = generator.generate_for_all(today)
    except NoScheduleError as e:
        print(f"ERROR: {e}")
        sys.exit(1)
    except BackendError as e:
        print(f"ERROR talking to Supabase: {e}")
        sys.exit(1)

    for result in results:
        print(f"[OK] {result.athlete_id}: created {result.created}, skipped {result.skipped}")

    print(f"\n=== Generation Complete ===")
    print(f"Athletes: {len(results)}")
    print(f"Created: {sum(r.created for r in results)}")


if __name__ == '__main__':
    main()
