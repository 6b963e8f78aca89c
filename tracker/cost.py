import logging

from models.events import ProcessingEvent
from models.progress import JobCost

logger = logging.getLogger(__name__)


def apply(cost: JobCost, event: ProcessingEvent) -> JobCost:
    """Add the pass cost of a pass_complete event to the job total."""
    if event.type != "pass_complete" or event.cost is None or event.cost.total_cost is None:
        return cost
    amount = event.cost.total_cost
    if amount < 0:
        logger.warning("Ignoring negative pass cost %.6f for pass %s", amount, event.pass_number)
        return cost
    return JobCost(
        current_pass_cost=amount,
        total_job_cost=cost.total_job_cost + amount,
    )
