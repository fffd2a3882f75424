"""Domain services: pure business rules with no I/O."""

from .clock import Clock, FixedClock, SystemClock
from .driver_states import TRANSITIONS, DriverStateMachine
from .encoders import EncoderOptions, FormatEncoder
from .error_classifier import ErrorClassifier, messages_by_record
from .error_table import dedupe, parse_detail_table, parse_message_list
from .jurisdictions import JURISDICTIONS, get_jurisdiction, supported_codes
from .retry_policy import RetryPolicy

__all__ = [
    "Clock",
    "FixedClock",
    "SystemClock",
    "TRANSITIONS",
    "DriverStateMachine",
    "EncoderOptions",
    "FormatEncoder",
    "ErrorClassifier",
    "messages_by_record",
    "dedupe",
    "parse_detail_table",
    "parse_message_list",
    "JURISDICTIONS",
    "get_jurisdiction",
    "supported_codes",
    "RetryPolicy",
]
