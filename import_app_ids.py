"""
import_app_ids.py

Queues every app id of a CSV export (needs an `appid` column) as a pending
submission for the ingestion worker.

    python import_app_ids.py path/to/export.csv
"""

import argparse

from app.db.deps import session_scope
from app.db.models import GameSubmission
from app.utils.csv_ingestion import read_app_ids_from_csv

def queue_app_ids(path) -> int:
    app_ids = read_app_ids_from_csv(path)
    with session_scope(commit=True) as db:
        already = {appid for (appid,) in db.query(GameSubmission.appid).filter(GameSubmission.appid.in_(app_ids))}
        fresh = [appid for appid in app_ids if appid not in already]
        db.add_all([GameSubmission(appid=appid) for appid in fresh])
    return len(fresh)

if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Queue app ids from a CSV file for ingestion")
    parser.add_argument("csv_path")
    args = parser.parse_args()
    print(f"✅ Queued {queue_app_ids(args.csv_path)} new app ids.")
