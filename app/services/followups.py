"""
WhatsApp follow-up flows.

Flows are sequences of delayed messages attached to a trigger (for now only
"new_customer" is raised by this service). Triggering a flow queues one job
per step; jobs are sent by process_due_jobs, which an external scheduler
(cron hitting POST /followups/process, or scripts/process_followups.py)
calls periodically. There is no in-process timer.
"""

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Callable, Optional

from app.repositories.customer import CustomerRepository
from app.repositories.followup import FollowupFlowRepository, FollowupJobRepository
from app.repositories.store import StoreRepository
from app.services.onsend import OnSendClient, create_onsend_client

logger = logging.getLogger(__name__)


@dataclass
class ProcessResult:
    processed: int = 0
    sent: int = 0
    failed: int = 0


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def enqueue_flow_jobs(
    store_id: str,
    customer: dict,
    trigger_type: str,
    now: Optional[datetime] = None,
) -> list[dict]:
    """Queue the steps of every active flow for this trigger. Returns the created jobs."""
    now = now or _utcnow()
    jobs = []
    for flow in FollowupFlowRepository.get_active_flows(store_id, trigger_type):
        for step in flow.get("steps", []):
            delay = timedelta(days=step.get("delay_days") or 0, hours=step.get("delay_hours") or 0)
            jobs.append({
                "store_id": store_id,
                "customer_id": customer["id"],
                "step_id": step["id"],
                "message": step["message"],
                "status": "pending" if not delay else "scheduled",
                "scheduled_for": (now + delay).isoformat(),
            })

    created = FollowupJobRepository.create_many(jobs)
    if created:
        logger.info(f"Queued {len(created)} '{trigger_type}' follow-up jobs for customer {customer['id']}")
    return created


def process_due_jobs(
    now: Optional[datetime] = None,
    client_factory: Callable[[dict | None], OnSendClient] = create_onsend_client,
) -> ProcessResult:
    """Send every pending/scheduled job that is due, marking each sent or failed."""
    now = now or _utcnow()
    jobs = FollowupJobRepository.list_due(now.isoformat())
    result = ProcessResult()
    if not jobs:
        return result

    logger.info(f"Processing {len(jobs)} WhatsApp follow-up jobs...")
    stores: dict[str, dict | None] = {}

    for job in jobs:
        result.processed += 1
        try:
            store_id = job["store_id"]
            if store_id not in stores:
                stores[store_id] = StoreRepository.get_by_id(store_id)
            store = stores[store_id]
            if not store or not store.get("api_key"):
                raise ValueError("Store API key not configured")

            customer = CustomerRepository.get_by_id(job["customer_id"])
            if not customer or not customer.get("phone"):
                raise ValueError("Customer phone number not found")

            client_factory(store).send_text(customer["phone"], job["message"])
            FollowupJobRepository.mark_sent(job["id"])
            result.sent += 1
            logger.info(
                f"Sent WhatsApp message to {customer.get('first_name')} ({customer['phone']}) - "
                f"{'Immediate' if job['status'] == 'pending' else 'Scheduled'}"
            )
        except Exception as e:
            logger.error(f"Error processing follow-up job {job['id']}: {e}")
            FollowupJobRepository.mark_failed(job["id"], str(e) or "Unknown error")
            result.failed += 1

    return result
