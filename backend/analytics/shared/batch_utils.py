"""
Batch processing utilities for Lambda handlers.

Provides error isolation so one bad item never fails a whole batch.
"""

from typing import Callable, Any, Optional
from aws_lambda_powertools import Logger
from .logging_utils import log_batch_item_error

logger = Logger(child=True)


def process_batch_with_isolation(
    items: list,
    process_func: Callable[[Any], None],
    identifier_func: Callable[[Any], Optional[str]],
    logger_instance: Optional[Logger] = None
) -> list:
    """
    Process a batch of items with error isolation.

    Ensures that failures in individual items don't fail the entire batch.
    Returns a list of failed item identifiers for partial batch failure handling.

    Args:
        items: List of batch items
        process_func: Function to process each item
        identifier_func: Function returning the identifier of an item
        logger_instance: Optional logger instance

    Returns:
        List of batch item failures (dicts with "itemIdentifier" key)

    Example:
        failures = process_batch_with_isolation(
            event.get("sensors", []),
            evaluate_sensor,
            lambda item: item.get("sensor_id")
        )

        return {"failures": failures}
    """
    log = logger_instance or logger
    batch_item_failures = []

    for index, item in enumerate(items):
        try:
            process_func(item)
        except Exception as e:
            try:
                item_identifier = identifier_func(item)
            except (AttributeError, KeyError, TypeError):
                item_identifier = None

            if item_identifier is None:
                item_identifier = str(index)

            log_batch_item_error(log, item_identifier, str(e), type(e).__name__)
            batch_item_failures.append({"itemIdentifier": item_identifier})

    return batch_item_failures
