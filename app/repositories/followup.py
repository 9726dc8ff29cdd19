"""
Repositories for WhatsApp follow-up flows and their queued jobs.
"""

from database.connection import get_db, with_retry

DUE_STATUSES = ["pending", "scheduled"]


class FollowupFlowRepository:

    @staticmethod
    @with_retry()
    def get_active_flows(store_id: str, trigger_type: str) -> list[dict]:
        """Active flows for a trigger, each with its steps sorted by step_order."""
        db = get_db()
        result = db.table("whatsapp_followup_flows").select("*").eq(
            "store_id", store_id
        ).eq("trigger_type", trigger_type).eq("is_active", True).execute()
        flows = result.data if result and result.data else []
        if not flows:
            return []

        steps_result = db.table("whatsapp_followup_steps").select("*").in_(
            "flow_id", [flow["id"] for flow in flows]
        ).order("step_order").execute()
        steps = steps_result.data if steps_result and steps_result.data else []

        for flow in flows:
            flow["steps"] = sorted(
                (s for s in steps if s["flow_id"] == flow["id"]),
                key=lambda s: s["step_order"],
            )
        return flows


class FollowupJobRepository:

    @staticmethod
    @with_retry()
    def create_many(jobs: list[dict]) -> list[dict]:
        """Queue follow-up jobs."""
        if not jobs:
            return []
        db = get_db()
        result = db.table("whatsapp_followup_jobs").insert(jobs).execute()
        return result.data if result and result.data else []

    @staticmethod
    @with_retry()
    def list_due(now_iso: str) -> list[dict]:
        """Pending or scheduled jobs whose time has come, oldest first."""
        db = get_db()
        result = db.table("whatsapp_followup_jobs").select("*").in_(
            "status", DUE_STATUSES
        ).lte("scheduled_for", now_iso).order("scheduled_for").execute()
        return result.data if result and result.data else []

    @staticmethod
    @with_retry()
    def mark_sent(job_id: str) -> None:
        db = get_db()
        db.table("whatsapp_followup_jobs").update({
            "status": "sent",
            "error_message": None,
            "updated_at": "now()",
        }).eq("id", job_id).execute()

    @staticmethod
    @with_retry()
    def mark_failed(job_id: str, error_message: str) -> None:
        db = get_db()
        db.table("whatsapp_followup_jobs").update({
            "status": "failed",
            "error_message": error_message,
            "updated_at": "now()",
        }).eq("id", job_id).execute()
