"""Append-only audit trail for finance actions (one file per month)."""
import logging
from datetime import datetime

from app.core.config import LOGS_DIR

logger = logging.getLogger("app.audit")


def write_audit_log(actor_id, actor_role: str, action: str, entity_type: str, entity_id=None, details: str = ""):
    """Record who did what to which ledger row.

    Audit failures are logged but never undo a committed ledger mutation.
    """
    ts = datetime.now().strftime("%Y-%m-%d %H:%M:%S")
    target = f"{entity_type}:{entity_id}" if entity_id else entity_type
    line = f"{ts} | {actor_role} | {actor_id or 'system'} | {action} | {target} | {details}\n"
    logger.info("audit %s %s by %s", action, target, actor_id or "system")
    try:
        LOGS_DIR.mkdir(parents=True, exist_ok=True)
        log_file = LOGS_DIR / f"audit_{datetime.now().strftime('%Y_%m')}.log"
        with open(log_file, "a", encoding="utf-8") as f:
            f.write(line)
    except OSError as e:
        logger.error(f"Could not write audit log: {e}")
