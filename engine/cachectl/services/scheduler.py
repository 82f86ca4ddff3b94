"""Reconcile driver — runs reconcile passes over every managed instance.

Remote calls happen on worker threads, one instance per task. All database
writes happen back on the calling thread once a task finishes.
"""

from __future__ import annotations

import asyncio
import logging
from concurrent.futures import ThreadPoolExecutor, as_completed
from typing import Optional

from sqlalchemy.orm import Session

from ..apis.common import Managed, reconcile_error, reconcile_success
from ..config import settings
from ..context import CallContext
from ..db import SessionLocal, init_db
from ..providers.base import CallOptions
from ..providers.gcp.adapter import CloudMemorystoreConnector
from .reconciler import ReconcileResult, Reconciler
from .registry import registry

logger = logging.getLogger(__name__)


def build_reconciler(call_timeout: Optional[float] = None) -> Reconciler:
    """Reconciler wired to the database-backed Cloud Memorystore connector."""
    timeout = settings.call_timeout if call_timeout is None else call_timeout
    return Reconciler(CloudMemorystoreConnector(call_options=CallOptions(timeout=timeout)))


def persist_result(
    db: Session,
    mg: Managed,
    result: ReconcileResult,
    initiated_by: str = "scheduler",
) -> None:
    """Write the outcome of one pass: Synced condition, document, action log."""
    name = mg.metadata.name
    details: dict = {"phase": result.phase.value, "remote_state": result.remote_state}

    if result.finalized:
        registry.remove_instance(db, name)
        details["finalized"] = True
    else:
        if result.error is None:
            mg.status.set_conditions(reconcile_success())
        else:
            mg.status.set_conditions(reconcile_error(result.error))
        registry.save_instance(db, mg)

    if result.error is not None:
        details["error"] = str(result.error)
    if result.connection_details:
        # Keys only; values are secrets
        details["connection_details"] = sorted(result.connection_details)

    registry.log_action(
        db,
        instance_name=name,
        action_type=result.action.value,
        status="success" if result.succeeded else "failed",
        details=details,
        initiated_by=initiated_by,
    )


def reconcile_instance(
    db: Session,
    reconciler: Reconciler,
    name: str,
    timeout: Optional[float] = None,
    initiated_by: str = "cli",
) -> Optional[ReconcileResult]:
    """Run a single pass for one instance on the calling thread."""
    mg = registry.get_instance(db, name)
    if mg is None:
        return None
    ctx = CallContext(settings.reconcile_timeout if timeout is None else timeout)
    result = reconciler.reconcile(ctx, mg)
    persist_result(db, mg, result, initiated_by=initiated_by)
    return result


def reconcile_once(
    db: Session,
    reconciler: Reconciler,
    max_workers: Optional[int] = None,
    timeout: Optional[float] = None,
    initiated_by: str = "scheduler",
) -> dict[str, ReconcileResult]:
    """Run one pass over every managed instance.

    Returns results keyed by instance name. An instance whose pass raised
    something unexpected is logged and left out.
    """
    instances = registry.list_instances(db)
    if not instances:
        return {}

    workers = max_workers or settings.reconcile_workers
    deadline = settings.reconcile_timeout if timeout is None else timeout
    results: dict[str, ReconcileResult] = {}

    with ThreadPoolExecutor(max_workers=workers, thread_name_prefix="reconcile") as pool:
        futures = {
            pool.submit(reconciler.reconcile, CallContext(deadline), mg): mg
            for mg in instances
        }
        for future in as_completed(futures):
            mg = futures[future]
            try:
                result = future.result()
            except Exception:
                logger.exception("Reconcile of %s crashed", mg.metadata.name)
                continue
            persist_result(db, mg, result, initiated_by=initiated_by)
            results[mg.metadata.name] = result

    failed = sum(1 for r in results.values() if not r.succeeded)
    logger.info("Reconciled %d instances (%d failed)", len(results), failed)
    return results


async def reconcile_loop(interval: Optional[int] = None, reconciler: Optional[Reconciler] = None) -> None:
    """Periodically reconcile every managed instance."""
    interval = interval or settings.reconcile_interval
    reconciler = reconciler or build_reconciler()
    logger.info("Reconcile loop started (interval=%ds)", interval)
    while True:
        try:
            init_db()
            db = SessionLocal()
            try:
                await asyncio.to_thread(reconcile_once, db, reconciler)
            finally:
                db.close()
        except Exception as e:
            logger.error("Reconcile loop error: %s", e)
        await asyncio.sleep(interval)
