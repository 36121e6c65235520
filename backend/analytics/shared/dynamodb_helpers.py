"""
DynamoDB attribute-value parsing utilities.
"""

from decimal import Decimal
from typing import Dict, Any
from boto3.dynamodb.types import TypeDeserializer


# Initialize the deserializer
deserializer = TypeDeserializer()

DYNAMODB_TYPE_DESCRIPTORS = {"S", "N", "B", "BOOL", "NULL", "M", "L", "SS", "NS", "BS"}


def is_dynamodb_item(item: Dict[str, Any]) -> bool:
    """
    Check whether a dict is in DynamoDB attribute-value form.

    Every value must be a single-key dict whose key is a type descriptor
    like 'S' or 'N'.
    """
    if not item:
        return False

    return all(
        isinstance(value, dict)
        and len(value) == 1
        and next(iter(value)) in DYNAMODB_TYPE_DESCRIPTORS
        for value in item.values()
    )


def _to_native(value: Any) -> Any:
    if isinstance(value, Decimal):
        if value.is_finite() and value == value.to_integral_value():
            return int(value)
        return float(value)
    if isinstance(value, dict):
        return {k: _to_native(v) for k, v in value.items()}
    if isinstance(value, (list, set)):
        return [_to_native(v) for v in value]
    return value


def parse_dynamodb_item(dynamodb_item: Dict[str, Any]) -> Dict[str, Any]:
    """
    Parse a DynamoDB item from attribute-value format to a Python dict.

    Uses boto3's TypeDeserializer for type conversion, then turns Decimal
    numbers into int or float.

    Args:
        dynamodb_item: DynamoDB item with type descriptors like 'S', 'N', etc.

    Returns:
        Parsed item as Python dict with native types
    """
    if not dynamodb_item:
        return {}

    python_dict = {}
    for key, value in dynamodb_item.items():
        python_dict[key] = _to_native(deserializer.deserialize(value))

    return python_dict


def to_plain_item(item: Dict[str, Any]) -> Dict[str, Any]:
    """Return item with native types, whether or not it arrived in DynamoDB form."""
    if is_dynamodb_item(item):
        return parse_dynamodb_item(item)
    return _to_native(item or {})
