"""
Excel Sales Ledger with Concurrency Control

Every completed order is appended as one row to a workbook that the owner
opens in a spreadsheet program. Writers may run in several Celery worker
processes at once, so every read-modify-write happens under a file lock.
"""

import json
from datetime import datetime
from typing import Any
from pathlib import Path

import pandas as pd
from filelock import FileLock, Timeout

from wokabulary.core.config import get_settings
import logging

settings = get_settings()
logger = logging.getLogger(__name__)


class ExcelManager:
    """Thread and process safe sales ledger."""

    LOCK_TIMEOUT = settings.excel_lock_timeout

    SALE_COLUMNS = [
        "order_id",
        "bill_number",
        "order_type",
        "table_number",
        "date_time",
        "staff_name",
        "customer_name",
        "customer_phone",
        "customer_email",
        "items",
        "item_count",
        "subtotal",
        "service_charge",
        "total_amount",
        "payment_mode",
        "order_status",
        "exported_at",
    ]

    @classmethod
    def ledger_path(cls) -> Path:
        return Path(settings.data_directory) / settings.sales_ledger_filename

    @classmethod
    def lock_path(cls) -> Path:
        return cls.ledger_path().with_name(cls.ledger_path().name + ".lock")

    @classmethod
    def _ensure_data_dir(cls) -> None:
        """Create data directory if needed."""
        data_dir = Path(settings.data_directory)
        if not data_dir.exists():
            data_dir.mkdir(parents=True, exist_ok=True)
            logger.info(f"Created data directory: {data_dir}")

    @classmethod
    def _load_or_create_df(cls, file_path: Path) -> pd.DataFrame:
        """Load the existing ledger or start an empty one."""
        if file_path.exists():
            return pd.read_excel(file_path, engine="openpyxl")
        return pd.DataFrame(columns=cls.SALE_COLUMNS)

    @classmethod
    def export_sale(cls, sale_data: dict[str, Any]) -> dict[str, Any]:
        """
        Append one completed order to the ledger.

        Re-exporting an order id replaces its previous row, so a retried
        task never duplicates a sale.
        """
        cls._ensure_data_dir()

        order_id = sale_data.get("order_id", 0)
        result = {
            "success": False,
            "message": "",
            "order_id": order_id,
            "exported_at": None,
        }

        try:
            lock = FileLock(str(cls.lock_path()), timeout=cls.LOCK_TIMEOUT)

            with lock:
                logger.debug(f"Lock acquired for Order #{order_id}")

                df = cls._load_or_create_df(cls.ledger_path())
                if not df.empty:
                    df = df[df["order_id"] != order_id]

                export_time = datetime.now().isoformat()
                new_row = {column: sale_data.get(column) for column in cls.SALE_COLUMNS}
                new_row["date_time"] = sale_data.get("created_at", export_time)
                new_row["exported_at"] = export_time

                new_df = pd.DataFrame([new_row], columns=cls.SALE_COLUMNS)
                df = new_df if df.empty else pd.concat([df, new_df], ignore_index=True)
                df.to_excel(str(cls.ledger_path()), index=False, engine="openpyxl")

                logger.info(f"Order #{order_id} exported to sales ledger")

                result["success"] = True
                result["message"] = f"Order #{order_id} exported"
                result["exported_at"] = export_time

            logger.debug(f"Lock released for Order #{order_id}")

        except Timeout:
            result["message"] = f"Lock timeout ({cls.LOCK_TIMEOUT}s)"
            logger.error(f"Lock timeout for Order #{order_id}")

        return result

    @classmethod
    def get_all_sales(cls) -> list[dict[str, Any]]:
        """Read every ledger row."""
        path = cls.ledger_path()
        if not path.exists():
            return []

        try:
            df = pd.read_excel(path, engine="openpyxl")
        except (OSError, ValueError) as e:
            logger.error(f"Error reading sales ledger: {e}")
            return []

        # Round-trip through JSON so empty cells become None and numpy scalars plain Python
        return json.loads(df.to_json(orient="records"))

    @classmethod
    def clear_all(cls) -> bool:
        """Delete the ledger and its lock file."""
        try:
            for f in [cls.ledger_path(), cls.lock_path()]:
                if f.exists():
                    f.unlink()
            logger.info("Sales ledger cleared")
            return True
        except OSError as e:
            logger.error(f"Error clearing sales ledger: {e}")
            return False
