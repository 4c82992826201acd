#!/usr/bin/env python3
"""
Seed FloodWatch with demo accounts and flood reports for local development.
"""

import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent))

from floodwatch.core.security import CurrentUser
from floodwatch.database import SessionLocal, init_db
from floodwatch.services.auth import create_user, get_user_by_email
from floodwatch.services.flood_reports import NewReport, submit_report

DEMO_PASSWORD = "floodwatch-demo"

DEMO_REPORTS = [
    NewReport("severe", "Provident Village, Marikina", "Waist-deep water on Ipil St.", 14.6390, 121.0975),
    NewReport("moderate", "España Blvd, Manila", "Knee-deep near UST", 14.6096, 120.9894),
    NewReport("light", "C5 Road, Pasig", "Gutter-deep, passable to all vehicles", 14.5794, 121.0729),
]


def main():
    print("Seeding demo data...")
    init_db()

    session = SessionLocal()
    try:
        user = get_user_by_email(session, "demo@floodwatch.ph")
        if user is None:
            user = create_user(session, "Demo Reporter", "demo@floodwatch.ph", DEMO_PASSWORD)
            print(f"Created demo account {user.email} (password: {DEMO_PASSWORD}).")

        caller = CurrentUser(user_id=user.id, email=user.email, role=user.role, raw_claims={})
        for report in DEMO_REPORTS:
            submit_report(session, report, caller)
        print(f"Submitted {len(DEMO_REPORTS)} flood reports.")
        print("\nSeed complete!")
    finally:
        session.close()


if __name__ == "__main__":
    main()
