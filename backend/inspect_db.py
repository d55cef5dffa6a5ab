"""
Database Inspection — Prints recent sessions, status statistics and the audit log.

Usage:
    python inspect_db.py
    python inspect_db.py --limit 50
    python inspect_db.py --session vs_123
"""
import argparse

from idverify.database import SessionLocal, init_db
from idverify.services.session_store import SessionStore


def _fmt(value):
    return value.isoformat(sep=" ", timespec="seconds") if value else "N/A"


def main():
    parser = argparse.ArgumentParser(description="Inspect the verification database")
    parser.add_argument("--limit", type=int, default=20, help="Rows per section (default: 20)")
    parser.add_argument("--session", help="Print the audit trail of a single session instead")
    args = parser.parse_args()

    init_db()
    db = SessionLocal()
    try:
        store = SessionStore(db)

        if args.session:
            print(f"\nAUDIT TRAIL: {args.session}\n{'=' * 80}")
            for event in store.audit_trail(args.session):
                print(f"[{_fmt(event.timestamp)}] {event.event_type:<24} {event.result:<18} {event.event_metadata}")
            return

        print(f"\nVERIFICATION SESSIONS\n{'=' * 80}")
        sessions = store.list_recent(args.limit)
        if not sessions:
            print("No verification sessions found.")
        for s in sessions:
            print(
                f"{s.session_id:<32} {s.status:<15} {s.verification_type:<10} "
                f"created={_fmt(s.created_at)} verified={_fmt(s.verified_at)}"
            )

        print(f"\nSTATISTICS\n{'=' * 80}")
        for status, count in sorted(store.status_counts().items()):
            print(f"  {status:<16} {count}")
        stats = store.statistics()
        print(f"  {'total':<16} {stats['total_sessions']}")
        print(f"  {'audit events':<16} {stats['audit_events']}")

        print(f"\nRECENT AUDIT LOG\n{'=' * 80}")
        events = store.recent_audit(args.limit)
        if not events:
            print("No audit log entries found.")
        for event in events:
            print(f"[{_fmt(event.timestamp)}] {event.event_type:<24} {event.session_id or 'N/A':<32} {event.result}")
    finally:
        db.close()


if __name__ == "__main__":
    main()
