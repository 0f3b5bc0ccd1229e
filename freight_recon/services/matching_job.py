"""
Background matching job, scheduled once per invoice.

The request that creates an invoice does not wait for matching. The job opens
its own database session and never lets an exception escape into the worker.
"""
import logging
from typing import Optional

from fastapi import BackgroundTasks

from freight_recon.database import SessionLocal
from freight_recon.schemas.matching import MatchingRunResult, MatchingStage
from freight_recon.services.comparison_oracle import ComparisonOracle
from freight_recon.services.matching_pipeline import MatchingPipeline

logger = logging.getLogger(__name__)


async def run_matching_job(
    invoice_id: str,
    oracle: Optional[ComparisonOracle] = None,
    session_factory=None,
) -> MatchingRunResult:
    session_factory = session_factory or SessionLocal
    db = None
    try:
        db = session_factory()
        pipeline = MatchingPipeline(db, oracle=oracle)
        result = await pipeline.run(invoice_id)
    except Exception as e:
        logger.error(f"Matching job crashed for invoice {invoice_id}: {e}", exc_info=True)
        result = MatchingRunResult(
            success=False,
            invoice_id=invoice_id,
            stage=MatchingStage.FAILED,
            error=str(e),
        )
    finally:
        if db is not None:
            db.close()

    if result.success:
        logger.info(f"Matching job finished for invoice {invoice_id}: matched={result.matched}")
    else:
        logger.warning(f"Matching job failed for invoice {invoice_id}: {result.error}")
    return result


def schedule_matching(background_tasks: BackgroundTasks, invoice_id: str, oracle: Optional[ComparisonOracle] = None) -> None:
    """Queue a matching run to execute after the current response is sent"""
    logger.info(f"Scheduling matching run for invoice {invoice_id}")
    background_tasks.add_task(run_matching_job, invoice_id, oracle)
