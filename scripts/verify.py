"""
Sales Ledger Verification Script

Checks the Excel sales ledger written by the Celery worker.
Run from project root: python scripts/verify.py [--file data/sales.xlsx]
"""

import argparse
import os
import sys
from datetime import datetime

import pandas as pd

DEFAULT_FILE = os.path.join(
    os.getenv("DATA_DIRECTORY", "data"),
    os.getenv("SALES_LEDGER_FILENAME", "sales.xlsx"),
)

REQUIRED_COLUMNS = ["order_id", "bill_number", "order_type", "total_amount", "order_status"]


def verify_ledger(path: str) -> bool:
    """Print a report on the ledger; return False when it has integrity problems."""
    print("=" * 60)
    print("SALES LEDGER VERIFICATION REPORT")
    print("=" * 60)
    print(f"Timestamp: {datetime.now().strftime('%Y-%m-%d %H:%M:%S')}")
    print(f"File: {path}")
    print("=" * 60)

    if not os.path.exists(path):
        print("\nLedger not found. Complete an order first (python scripts/simulate.py)")
        return False

    df = pd.read_excel(path, engine="openpyxl")
    ok = True

    print(f"\nRows: {len(df)}")
    print(f"Columns: {len(df.columns)}")

    missing = [col for col in REQUIRED_COLUMNS if col not in df.columns]
    if missing:
        print(f"Missing columns: {missing}")
        return False
    print("All required columns present")

    duplicates = int(df["order_id"].duplicated().sum())
    if duplicates:
        print(f"{duplicates} duplicate order ids")
        ok = False
    else:
        print("No duplicate order ids")

    not_completed = df[df["order_status"] != "COMPLETED"]
    if len(not_completed):
        print(f"{len(not_completed)} rows are not COMPLETED")
        ok = False

    if len(df):
        print("\nREVENUE")
        print(f"   Total: {df['total_amount'].sum():.2f}")
        print(f"   Average: {df['total_amount'].mean():.2f}")
        print("\nBY ORDER TYPE")
        print(df.groupby("order_type")["total_amount"].agg(["count", "sum"]).to_string())
        if "payment_mode" in df.columns:
            print("\nBY PAYMENT MODE")
            print(df["payment_mode"].fillna("UNPAID").value_counts().to_string())

        print("\nRECENT SALES")
        print("-" * 60)
        cols = [c for c in ["order_id", "bill_number", "customer_name", "total_amount"] if c in df.columns]
        print(df[cols].tail(5).to_string(index=False))

    print("\n" + "=" * 60)
    print("VERIFICATION " + ("PASSED" if ok else "FOUND PROBLEMS"))
    print("=" * 60)
    return ok


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Verify the Excel sales ledger")
    parser.add_argument("--file", default=DEFAULT_FILE, help="Ledger path")
    args = parser.parse_args()

    sys.exit(0 if verify_ledger(args.file) else 1)
