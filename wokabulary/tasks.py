"""
Celery Tasks
Background tasks that keep the Excel sales ledger up to date.
"""

import logging
import time
from datetime import datetime

from wokabulary.celery_worker import celery_app
from wokabulary.services.excel_manager import ExcelManager

logger = logging.getLogger(__name__)


class LedgerExportError(Exception):
    """The sales ledger could not be written (lock timeout)."""


@celery_app.task(
    bind=True,
    max_retries=3,
    default_retry_delay=5,
    autoretry_for=(LedgerExportError, OSError),
    retry_backoff=True
)
def export_sale_to_excel(self, sale_data: dict) -> dict:
    """
    Append a completed order to the sales ledger.

    Args:
        sale_data: Row produced by ``billing.sale_record``

    Returns:
        dict: Result of the export operation
    """
    task_id = self.request.id
    order_id = sale_data.get('order_id', 'unknown')

    logger.info(f"Task {task_id}: Exporting order #{order_id}")
    start_time = time.time()

    result = ExcelManager.export_sale(sale_data)

    elapsed = round(time.time() - start_time, 3)
    result['task_id'] = task_id
    result['processing_time_seconds'] = elapsed

    if not result['success']:
        logger.warning(f"Task {task_id}: Order #{order_id} failed - {result['message']}")
        # Celery retries according to autoretry_for
        raise LedgerExportError(result['message'])

    logger.info(f"Task {task_id}: Order #{order_id} exported in {elapsed}s")
    return result


@celery_app.task
def health_check() -> dict:
    """
    Simple health check task to verify Celery is working.
    """
    return {
        'status': 'healthy',
        'worker': 'celery',
        'timestamp': datetime.now().isoformat()
    }
